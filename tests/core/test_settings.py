"""Tests for the configuration module."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from taxograph.core.config import DEFAULT_ONTOLOGY_PATH, Settings, get_settings


class TestSettings:
    """Test suite for application Settings."""

    def test_default_values(self) -> None:
        """Settings should have sensible defaults."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(
                _env_file=None,  # type: ignore[call-arg]
            )
        assert settings.app_name == "taxograph"
        assert settings.log_level == "INFO"
        assert settings.ontology_path == DEFAULT_ONTOLOGY_PATH
        assert settings.strict_ontology is False
        assert settings.definitions_path is None

    def test_bundled_ontology_exists(self) -> None:
        assert DEFAULT_ONTOLOGY_PATH.is_file()

    def test_log_level_normalized(self) -> None:
        settings = Settings(log_level=" debug ", _env_file=None)  # type: ignore[call-arg]
        assert settings.log_level == "DEBUG"
        assert settings.log_level_value == logging.DEBUG

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError, match="Invalid log level"):
            Settings(log_level="chatty", _env_file=None)  # type: ignore[call-arg]

    def test_environment_overrides(self) -> None:
        env = {
            "TAXOGRAPH_STRICT_ONTOLOGY": "true",
            "TAXOGRAPH_DEFINITIONS_PATH": "/srv/schemas",
            "TAXOGRAPH_LOG_LEVEL": "warning",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.strict_ontology is True
        assert settings.definitions_path == Path("/srv/schemas")
        assert settings.log_level == "WARNING"

    def test_env_file(self, tmp_path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("TAXOGRAPH_APP_NAME=scanner\n")
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=env_file)  # type: ignore[call-arg]
        assert settings.app_name == "scanner"


class TestGetSettings:
    def test_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_cache_clear_rereads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("TAXOGRAPH_APP_NAME", "first")
        assert get_settings().app_name == "first"
        monkeypatch.setenv("TAXOGRAPH_APP_NAME", "second")
        get_settings.cache_clear()
        assert get_settings().app_name == "second"
