"""Structured validation errors.

Every error carries the dotted/indexed path of the offending location
(``posts[2].tags``) so callers can report exactly where a payload diverged
from its schema. Validation stops at the first error found depth-first.
"""

from __future__ import annotations

from typing import Any

from taxograph.core.exceptions import TaxographError


class SchemaValidationError(TaxographError, ValueError):
    """Base class for schema validation failures.

    Attributes:
        path: Location of the failing value, empty for the root.
        message: Human-readable description without the path prefix.
    """

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)


class TypeMismatch(SchemaValidationError):
    """Value kind does not match the declared schema type."""

    def __init__(self, expected: str, actual: str, path: str = "", detail: str = "") -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(detail or f"expected {expected}, got {actual}", path)


class MissingRequiredField(SchemaValidationError):
    """A required object property is absent."""

    def __init__(self, field: str, path: str = "") -> None:
        self.field = field
        super().__init__(f"required field {field!r} is missing", path)


class EnumViolation(SchemaValidationError):
    """Value is not one of the enumerated literals."""

    def __init__(self, value: Any, allowed: list[Any], path: str = "") -> None:
        self.value = value
        self.allowed = list(allowed)
        super().__init__(f"value {value!r} is not one of the allowed values: {self.allowed!r}", path)


class RangeViolation(SchemaValidationError):
    """Numeric value falls outside minimum/maximum."""


class LengthViolation(SchemaValidationError):
    """String length falls outside minLength/maxLength."""


class PatternMismatch(SchemaValidationError):
    """String does not match the declared pattern (or the pattern is invalid)."""

    def __init__(self, pattern: str, path: str = "", detail: str = "") -> None:
        self.pattern = pattern
        super().__init__(detail or f"string does not match pattern {pattern!r}", path)


class UnresolvableRef(SchemaValidationError):
    """A ``$ref`` names a definition the registry does not hold."""

    def __init__(self, ref: str, reason: str, path: str = "") -> None:
        self.ref = ref
        super().__init__(f"$ref {ref!r} cannot be resolved: {reason}", path)


class CircularRef(SchemaValidationError):
    """A ``$ref`` re-enters a definition that is already being expanded."""

    def __init__(self, ref: str, chain: tuple[str, ...] = (), path: str = "") -> None:
        self.ref = ref
        self.chain = chain
        trail = " -> ".join((*chain, ref)) if chain else ref
        super().__init__(f"circular $ref detected: {trail}", path)
