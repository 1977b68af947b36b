"""Base exception types shared across taxograph."""

from __future__ import annotations


class TaxographError(Exception):
    """Base exception for all taxograph errors."""


class SchemaLoadError(TaxographError):
    """Raised when a schema definition file cannot be read or parsed.

    Attributes:
        source: Path or name of the definition source that failed.
    """

    def __init__(self, message: str, source: str = "") -> None:
        self.source = source
        full_msg = message
        if source:
            full_msg += f" (source: {source})"
        super().__init__(full_msg)
