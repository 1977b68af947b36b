"""Structural validation of decoded values against a schema tree.

``validate`` walks ``(schema, value)`` pairs depth-first and raises the first
:class:`~taxograph.schema.errors.SchemaValidationError` it meets. It is pure:
neither argument is mutated and no state survives the call, so it can run
concurrently on any number of inputs. ``$ref`` chains are tracked with an
immutable tuple of in-flight definition names that is extended per descent,
never shared between branches.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Mapping
from typing import Any

from taxograph.schema.errors import (
    CircularRef,
    EnumViolation,
    LengthViolation,
    MissingRequiredField,
    PatternMismatch,
    RangeViolation,
    SchemaValidationError,
    TypeMismatch,
    UnresolvableRef,
)
from taxograph.schema.model import SchemaNode, SchemaType, definition_name
from taxograph.schema.values import ValueKind, deep_equal, kind_of, type_name

logger = logging.getLogger(__name__)

Registry = Mapping[str, SchemaNode]


def validate(schema: SchemaNode, value: Any, registry: Registry | None = None) -> None:
    """Validate ``value`` against ``schema``.

    Args:
        schema: Root schema node.
        value: Decoded payload (mappings, sequences, scalars).
        registry: Named definitions used to resolve ``$ref`` nodes.

    Raises:
        SchemaValidationError: The first violation found, depth-first.
    """
    try:
        _validate(schema, value, registry, "", ())
    except SchemaValidationError as err:
        logger.debug("Validation failed: %s", err)
        raise


def is_valid(schema: SchemaNode, value: Any, registry: Registry | None = None) -> bool:
    """Return True when ``value`` conforms to ``schema``."""
    try:
        _validate(schema, value, registry, "", ())
    except SchemaValidationError:
        return False
    return True


def resolve_ref(
    ref: str,
    registry: Registry | None,
    in_flight: tuple[str, ...],
    path: str = "",
) -> tuple[SchemaNode, str]:
    """Look up a ``$ref`` target, refusing to re-enter an in-flight definition.

    Returns:
        The target schema and its normalized definition name.

    Raises:
        UnresolvableRef: Unsupported pointer, no registry, or unknown name.
        CircularRef: The definition is already being expanded on this branch.
    """
    name = definition_name(ref)
    if name is None:
        raise UnresolvableRef(ref, "only local definition references are supported", path)
    if name in in_flight:
        raise CircularRef(name, in_flight, path)
    if registry is None:
        raise UnresolvableRef(ref, "no schema registry provided", path)
    target = registry.get(name)
    if target is None:
        raise UnresolvableRef(ref, "definition not found", path)
    return target, name


def _validate(
    schema: SchemaNode,
    value: Any,
    registry: Registry | None,
    path: str,
    in_flight: tuple[str, ...],
) -> None:
    if schema.ref:
        target, name = resolve_ref(schema.ref, registry, in_flight, path)
        _validate(target, value, registry, path, (*in_flight, name))
        return

    try:
        kind = kind_of(value)
    except TypeError:
        raise TypeMismatch(schema.kind, type_name(value), path) from None

    if schema.enum:
        if not any(deep_equal(value, allowed) for allowed in schema.enum):
            raise EnumViolation(value, schema.enum, path)
        return

    if schema.type is None:
        return
    if kind == ValueKind.NULL:
        raise TypeMismatch(schema.type.value, "null", path)

    if schema.type == SchemaType.STRING:
        _validate_string(schema, value, kind, path)
    elif schema.type == SchemaType.INTEGER:
        _validate_integer(schema, value, kind, path)
    elif schema.type == SchemaType.NUMBER:
        _validate_number(schema, value, kind, path)
    elif schema.type == SchemaType.BOOLEAN:
        if kind != ValueKind.BOOLEAN:
            raise TypeMismatch("boolean", type_name(value), path)
    elif schema.type == SchemaType.ARRAY:
        _validate_array(schema, value, kind, registry, path, in_flight)
    elif schema.type == SchemaType.OBJECT:
        _validate_object(schema, value, kind, registry, path, in_flight)


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _validate_string(schema: SchemaNode, value: Any, kind: ValueKind, path: str) -> None:
    if kind != ValueKind.STRING:
        raise TypeMismatch("string", type_name(value), path)

    length = len(value)
    if schema.min_length is not None and length < schema.min_length:
        raise LengthViolation(f"string length {length} is less than minimum {schema.min_length}", path)
    if schema.max_length is not None and length > schema.max_length:
        raise LengthViolation(f"string length {length} is greater than maximum {schema.max_length}", path)

    if schema.pattern:
        try:
            compiled = _compile_pattern(schema.pattern)
        except re.error as err:
            raise PatternMismatch(schema.pattern, path, detail=f"invalid pattern {schema.pattern!r}: {err}") from err
        if compiled.search(value) is None:
            raise PatternMismatch(schema.pattern, path)


def _validate_integer(schema: SchemaNode, value: Any, kind: ValueKind, path: str) -> None:
    if kind == ValueKind.NUMBER:
        if not value.is_integer():
            raise TypeMismatch(
                "integer",
                "float",
                path,
                detail=f"expected integer, got float with fractional part: {value!r}",
            )
    elif kind != ValueKind.INTEGER:
        raise TypeMismatch("integer", type_name(value), path)
    _check_bounds(schema, value, path)


def _validate_number(schema: SchemaNode, value: Any, kind: ValueKind, path: str) -> None:
    if kind not in (ValueKind.INTEGER, ValueKind.NUMBER):
        raise TypeMismatch("number", type_name(value), path)
    _check_bounds(schema, value, path)


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def _check_bounds(schema: SchemaNode, num: float, path: str) -> None:
    if schema.minimum is not None and num < schema.minimum:
        raise RangeViolation(f"value {num!r} is less than minimum {_format_bound(schema.minimum)}", path)
    if schema.maximum is not None and num > schema.maximum:
        raise RangeViolation(f"value {num!r} is greater than maximum {_format_bound(schema.maximum)}", path)


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


def _validate_array(
    schema: SchemaNode,
    value: Any,
    kind: ValueKind,
    registry: Registry | None,
    path: str,
    in_flight: tuple[str, ...],
) -> None:
    if kind != ValueKind.ARRAY:
        raise TypeMismatch("array", type_name(value), path)
    if schema.items is None:
        return
    for index, item in enumerate(value):
        _validate(schema.items, item, registry, f"{path}[{index}]", in_flight)


def _validate_object(
    schema: SchemaNode,
    value: Any,
    kind: ValueKind,
    registry: Registry | None,
    path: str,
    in_flight: tuple[str, ...],
) -> None:
    if kind != ValueKind.OBJECT:
        raise TypeMismatch("object", type_name(value), path)

    for name in schema.required or ():
        if name not in value:
            raise MissingRequiredField(name, path)

    properties = schema.properties or {}
    for key, item in value.items():
        child = properties.get(key)
        if child is not None:
            _validate(child, item, registry, f"{path}.{key}" if path else str(key), in_flight)
