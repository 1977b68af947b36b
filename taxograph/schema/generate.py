"""Derive schema trees from Python type annotations.

Lets a tool declare its contract as a dataclass or pydantic model and get
the equivalent :class:`~taxograph.schema.model.SchemaNode`::

    @dataclass
    class ScanRequest:
        target: str
        ports: list[int] = field(default_factory=list)

    from_type(ScanRequest)  # object, required ["target"]

Supported: ``str``, ``int``, ``float``, ``bool``, ``list``/``tuple``/``set``,
``dict``, ``Optional``/``X | None``, ``datetime``/``date``, ``Any``,
``enum.Enum`` subclasses, dataclasses and pydantic models. Optional fields of
dataclasses and models become "any" nodes (or enums that also list ``None``)
so that serialized instances with unset fields still validate.
"""

from __future__ import annotations

import dataclasses
import datetime
import enum
import types
import typing
from typing import Any

from pydantic import BaseModel

from taxograph.schema.model import SchemaNode, SchemaType

_SCALARS: dict[type, SchemaType] = {
    bool: SchemaType.BOOLEAN,
    int: SchemaType.INTEGER,
    float: SchemaType.NUMBER,
    str: SchemaType.STRING,
}

_FORMATS: dict[type, str] = {
    datetime.datetime: "date-time",
    datetime.date: "date",
}


def _unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """Strip ``None`` from a union; returns (inner type, was optional)."""
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) < len(typing.get_args(tp)):
            if len(args) == 1:
                return args[0], True
            return typing.Union[tuple(args)], True
    return tp, False


def from_type(tp: Any, description: str | None = None) -> SchemaNode:
    """Build a schema node for a Python type.

    Args:
        tp: The annotation to convert.
        description: Description attached to the resulting node.

    Raises:
        TypeError: If the type has no schema equivalent.
    """
    tp, _ = _unwrap_optional(tp)

    if typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]

    if tp is Any or tp is object:
        return SchemaNode(description=description)

    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        # Heterogeneous unions have no closed equivalent here
        return SchemaNode(description=description)
    if origin is typing.Literal:
        return SchemaNode(enum=list(typing.get_args(tp)), description=description)

    if origin in (list, set, frozenset, tuple):
        args = typing.get_args(tp)
        items = None
        if origin is tuple:
            # Only tuple[T, ...] has a single element schema
            if len(args) == 2 and args[1] is Ellipsis:
                items = from_type(args[0])
        elif args:
            items = from_type(args[0])
        return SchemaNode(type=SchemaType.ARRAY, items=items, description=description)
    if origin is dict:
        return SchemaNode(type=SchemaType.OBJECT, description=description)

    if isinstance(tp, type):
        if issubclass(tp, enum.Enum):
            return SchemaNode(enum=[member.value for member in tp], description=description)
        for scalar, schema_type in _SCALARS.items():
            if tp is scalar:
                return SchemaNode(type=schema_type, description=description)
        for temporal, fmt in _FORMATS.items():
            if issubclass(tp, temporal):
                return SchemaNode(type=SchemaType.STRING, format=fmt, description=description)
        if tp in (list, tuple, set, frozenset):
            return SchemaNode(type=SchemaType.ARRAY, description=description)
        if tp is dict:
            return SchemaNode(type=SchemaType.OBJECT, description=description)
        if issubclass(tp, BaseModel):
            return _from_model(tp, description)
        if dataclasses.is_dataclass(tp):
            return _from_dataclass(tp, description)

    raise TypeError(f"Cannot derive a schema from {tp!r}")


def _field_schema(annotation: Any, description: str | None) -> tuple[SchemaNode, bool]:
    """Schema for one dataclass or model field; returns (node, was optional).

    Optional fields serialize unset values as ``None``, which only an "any"
    node or an enum listing ``None`` accepts.
    """
    inner, optional = _unwrap_optional(annotation)
    node = from_type(inner, description)
    if not optional:
        return node, False
    if node.enum is not None:
        if None not in node.enum:
            node = node.model_copy(update={"enum": [*node.enum, None]})
        return node, True
    return SchemaNode(description=description), True


def _from_dataclass(cls: type, description: str | None) -> SchemaNode:
    hints = typing.get_type_hints(cls)
    properties: dict[str, SchemaNode] = {}
    required: list[str] = []
    for f in dataclasses.fields(cls):
        properties[f.name], optional = _field_schema(hints.get(f.name, Any), f.metadata.get("description"))
        has_default = f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING
        if not has_default and not optional:
            required.append(f.name)
    return SchemaNode(
        type=SchemaType.OBJECT,
        properties=properties,
        required=required or None,
        description=description,
    )


def _from_model(model: type[BaseModel], description: str | None) -> SchemaNode:
    properties: dict[str, SchemaNode] = {}
    required: list[str] = []
    for name, info in model.model_fields.items():
        key = info.alias or name
        properties[key], _ = _field_schema(info.annotation, info.description)
        if info.is_required():
            required.append(key)
    return SchemaNode(
        type=SchemaType.OBJECT,
        properties=properties,
        required=required or None,
        description=description or _first_line(model.__doc__),
    )


def _first_line(doc: str | None) -> str | None:
    if not doc:
        return None
    line = doc.strip().splitlines()[0].strip()
    return line or None
