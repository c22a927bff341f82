"""Tests for structured logging."""

from __future__ import annotations

import json
import logging
import sys

from audiovault.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    blob_id_var,
    configure_logging,
    current_context,
    request_id_var,
)


def _record(message: str = "Stored blob", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="audiovault.storage",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    """Test context variable handling."""

    def test_sets_and_resets(self) -> None:
        """Context is visible inside the block and cleared after."""
        assert current_context() == {}
        with LogContext(request_id="req-1", blob_id="blob-1"):
            assert current_context() == {"request_id": "req-1", "blob_id": "blob-1"}
        assert current_context() == {}

    def test_nested_restores_outer(self) -> None:
        with LogContext(blob_id="outer"):
            with LogContext(blob_id="inner"):
                assert blob_id_var.get() == "inner"
            assert blob_id_var.get() == "outer"

    def test_ignores_unknown_keys(self) -> None:
        with LogContext(tenant="t1"):
            assert current_context() == {}


class TestJsonFormatter:
    """Test JSON output."""

    def test_basic_fields(self) -> None:
        data = json.loads(JsonFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "audiovault.storage"
        assert data["message"] == "Stored blob"
        assert "timestamp" in data

    def test_includes_context_and_extras(self) -> None:
        """Context vars and extra attributes end up in the payload."""
        with LogContext(request_id="req-9", blob_id="blob-9"):
            data = json.loads(JsonFormatter().format(_record(chunks=4, obj=object())))

        assert data["request_id"] == "req-9"
        assert data["blob_id"] == "blob-9"
        assert data["chunks"] == 4
        assert isinstance(data["obj"], str)

    def test_exception_info(self) -> None:
        try:
            raise ValueError("bad chunk")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad chunk"


class TestConsoleFormatter:
    """Test console output."""

    def test_includes_short_context(self) -> None:
        token = request_id_var.set("abcdef0123456789")
        try:
            line = ConsoleFormatter(use_colors=False).format(_record())
        finally:
            request_id_var.reset(token)

        assert " INFO " in line
        assert "audiovault.storage: Stored blob" in line
        assert line.endswith("[req=abcdef01]")


class TestConfigureLogging:
    """Test root logger setup."""

    def test_installs_single_handler(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(json_format=True, level="DEBUG")
            configure_logging(json_format=False, level="WARNING")

            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
            assert root.level == logging.WARNING
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
