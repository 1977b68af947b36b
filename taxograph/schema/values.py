"""Closed classification of decoded wire values.

Payloads reaching the validator and compiler are decoded JSON/YAML/proto
data: mappings, sequences and scalars. Everything downstream switches on
:class:`ValueKind` instead of ad-hoc ``isinstance`` checks so that booleans
are never mistaken for numbers and unsupported Python objects are rejected
up front.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any


class ValueKind(enum.StrEnum):
    """Kinds a decoded value can have."""

    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


NUMERIC_KINDS: frozenset[ValueKind] = frozenset({ValueKind.INTEGER, ValueKind.NUMBER})
SCALAR_KINDS: frozenset[ValueKind] = frozenset(
    {ValueKind.BOOLEAN, ValueKind.INTEGER, ValueKind.NUMBER, ValueKind.STRING}
)


def kind_of(value: Any) -> ValueKind:
    """Classify a decoded value.

    Raises:
        TypeError: If the value is not plain decoded data.
    """
    if value is None:
        return ValueKind.NULL
    # bool is a subclass of int, so it must be checked first
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, Mapping):
        return ValueKind.OBJECT
    raise TypeError(f"Unsupported value type: {type(value).__name__}")


def is_scalar(value: Any) -> bool:
    """Return True for non-null booleans, numbers and strings."""
    try:
        return kind_of(value) in SCALAR_KINDS
    except TypeError:
        return False


def type_name(value: Any) -> str:
    """Short type name used in error messages (``int``, ``str``, ``null``)."""
    if value is None:
        return "null"
    return type(value).__name__


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality over decoded values.

    Booleans never equal numbers; integers and floats compare numerically;
    arrays compare element-wise; objects compare key sets and values.
    """
    kind_a = kind_of(a)
    kind_b = kind_of(b)

    if kind_a in NUMERIC_KINDS and kind_b in NUMERIC_KINDS:
        return a == b
    if kind_a != kind_b:
        return False

    if kind_a == ValueKind.ARRAY:
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b, strict=True))
    if kind_a == ValueKind.OBJECT:
        if set(a.keys()) != set(b.keys()):
            return False
        return all(deep_equal(a[key], b[key]) for key in a)
    return a == b
