"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from audiovault.config import DEFAULT_CHUNK_SIZE, Settings


class TestSettings:
    """Test defaults and environment overrides."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("AUDIO_CHUNK_SIZE", "API_URL", "MAX_UPLOAD_BYTES", "SWEEP_INTERVAL_SECONDS"):
            monkeypatch.delenv(name, raising=False)

        cfg = Settings(_env_file=None)

        assert cfg.chunk_size == DEFAULT_CHUNK_SIZE == 261120
        assert cfg.api_url == "http://localhost:5000"
        assert cfg.max_upload_bytes is None
        assert cfg.sweep_interval_seconds > 0

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AUDIO_CHUNK_SIZE", "4096")
        monkeypatch.setenv("API_URL", "https://chat.example.com")
        monkeypatch.setenv("SWEEP_INTERVAL_SECONDS", "0")

        cfg = Settings(_env_file=None)

        assert cfg.chunk_size == 4096
        assert cfg.api_url == "https://chat.example.com"
        assert cfg.sweep_interval_seconds == 0

    def test_field_names_accepted(self) -> None:
        cfg = Settings(_env_file=None, chunk_size=2048, database_url="sqlite+aiosqlite://")
        assert cfg.chunk_size == 2048
        assert cfg.database_url == "sqlite+aiosqlite://"

    def test_rejects_non_positive_chunk_size(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, chunk_size=0)
