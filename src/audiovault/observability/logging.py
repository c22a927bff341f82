"""Structured logging for audiovault.

Two output formats share one set of context variables:
- JSON lines for log shippers (default outside development)
- a compact single-line console format

Request and blob ids are carried in context variables so every record emitted
while handling an upload or download is tagged without threading ids through
call signatures:

    configure_logging(json_format=False, level="DEBUG")

    with LogContext(blob_id=blob_id):
        logger.info("Audio file deleted")
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
blob_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("blob_id", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "request_id": request_id_var,
    "blob_id": blob_id_var,
}

# Attributes every LogRecord has; anything else was passed via ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def current_context() -> dict[str, str]:
    """Return the context variables that are currently set."""
    context = {}
    for key, var in _CONTEXT_VARS.items():
        value = var.get()
        if value:
            context[key] = value
    return context


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = repr(value)
        extras[key] = value
    return extras


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: timestamp, level, logger, message, location, then any context
    variables and ``extra=`` attributes, plus ``exception`` when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(current_context())
        payload.update(_extras(record))

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(payload, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Compact development format.

        12:34:56.789 INFO     audiovault.api.routers.audio: Audio file stored [req=abc12345 blob=3f0c1a2b]
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[34m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def _level(self, record: logging.LogRecord) -> str:
        name = f"{record.levelname:<8}"
        if not self.use_colors:
            return name
        return f"{self.LEVEL_COLORS.get(record.levelno, '')}{name}\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{when}.{int(record.msecs):03d} {self._level(record)} {record.name}: {record.getMessage()}"

        tags = []
        if request_id := request_id_var.get():
            tags.append(f"req={request_id[:8]}")
        if blob_id := blob_id_var.get():
            tags.append(f"blob={blob_id[:8]}")
        if tags:
            line = f"{line} [{' '.join(tags)}]"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    json_format: bool = True,
    level: str | int = "INFO",
    use_colors: bool = True,
) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        json_format: Emit JSON lines instead of the console format
        level: Root log level name or number
        use_colors: Colorize console output when stderr is a terminal
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter(use_colors))

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, handlers=[handler], force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """Temporarily set request/blob context for log records.

    Unknown keys are ignored. Contexts nest; leaving one restores the
    previous values.
    """

    def __init__(self, **values: Any) -> None:
        self.values = {key: str(value) for key, value in values.items() if key in _CONTEXT_VARS}
        self._tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []

    def __enter__(self) -> LogContext:
        for key, value in self.values.items():
            var = _CONTEXT_VARS[key]
            self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *exc_info: object) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
