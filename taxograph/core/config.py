"""Application configuration using Pydantic Settings v2.

Loads configuration from environment variables (prefixed ``TAXOGRAPH_``)
with .env file support. All settings are validated on first access and
available as typed attributes.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ONTOLOGY_PATH = Path(__file__).resolve().parent.parent / "taxonomy" / "ontology" / "taxonomy.yaml"

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


class Settings(BaseSettings):
    """taxograph settings.

    Configuration is loaded from environment variables.
    A .env file in the working directory is also read if present.
    """

    model_config = SettingsConfigDict(
        env_prefix="TAXOGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────────
    app_name: str = "taxograph"
    log_level: str = "INFO"

    # ── Taxonomy ─────────────────────────────────────────────────
    ontology_path: Path = DEFAULT_ONTOLOGY_PATH
    strict_ontology: bool = False

    # ── Schema registry ──────────────────────────────────────────
    definitions_path: Path | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Upper-case the level name and reject unknown levels."""
        level = str(v).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v!r}. Must be one of {sorted(_LOG_LEVELS)}")
        return level

    @property
    def log_level_value(self) -> int:
        """Numeric ``logging`` level for :attr:`log_level`."""
        return getattr(logging, self.log_level)


@functools.lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""
    return Settings()
