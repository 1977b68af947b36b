"""Recursive schema descriptors.

:class:`SchemaNode` is the JSON-Schema subset tools and agents use to declare
their input and output contracts. A node may carry a
:class:`~taxograph.taxonomy.mapping.TaxonomyMapping` describing how matching
data is projected into the knowledge graph.

Nodes are immutable. The helpers at the bottom of this module build the
common shapes::

    host = object_(
        {"ip": string(), "ports": array(ref_to("Port"))},
        "ip",
    ).with_taxonomy(host_mapping)
"""

from __future__ import annotations

import enum
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from taxograph.taxonomy.mapping import TaxonomyMapping

_DEFINITION_PREFIXES = ("#/definitions/", "#/$defs/")


class SchemaType(enum.StrEnum):
    """Declarable value types. An absent type accepts any value."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class SchemaNode(BaseModel):
    """A node in a schema tree.

    Attributes:
        type: Declared type, or None for "any".
        properties: Child schemas by property name (objects).
        required: Property names that must be present (objects).
        items: Schema for every element (arrays).
        enum: Allowed literal values; when non-empty, replaces type checking.
        minimum/maximum: Inclusive numeric bounds.
        min_length/max_length/pattern: String constraints.
        ref: Name of a registry definition (``Host`` or ``#/definitions/Host``).
        taxonomy: Optional graph projection for data matched by this node.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    type: SchemaType | None = None
    description: str | None = None
    properties: dict[str, SchemaNode] | None = None
    required: list[str] | None = None
    items: SchemaNode | None = None
    enum: list[Any] | None = None
    default: Any = None
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    pattern: str | None = None
    format: str | None = None
    ref: str | None = Field(default=None, alias="$ref")
    taxonomy: TaxonomyMapping | None = None

    @property
    def kind(self) -> str:
        """``"ref"``, ``"any"`` or the declared type name."""
        if self.ref:
            return "ref"
        if self.type is None:
            return "any"
        return self.type.value

    def with_taxonomy(self, mapping: TaxonomyMapping) -> SchemaNode:
        """Return a copy of this node with ``mapping`` attached."""
        return self.model_copy(update={"taxonomy": mapping})

    def iter_nodes(self, path: str = "") -> Iterator[tuple[str, SchemaNode]]:
        """Yield ``(path, node)`` for this node and every nested node.

        References are not followed; registry definitions are walked on
        their own.
        """
        yield path, self
        for name, child in (self.properties or {}).items():
            yield from child.iter_nodes(f"{path}.{name}" if path else name)
        if self.items is not None:
            yield from self.items.iter_nodes(f"{path}[]")

    # -----------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchemaNode:
        return cls.model_validate(dict(data))

    @classmethod
    def from_json(cls, text: str | bytes) -> SchemaNode:
        return cls.model_validate_json(text)


SchemaNode.model_rebuild()


def definition_name(ref: str) -> str | None:
    """Normalize a ``$ref`` to a registry definition name.

    Returns None for pointer forms other than local definitions.
    """
    for prefix in _DEFINITION_PREFIXES:
        if ref.startswith(prefix):
            return ref[len(prefix):] or None
    if ref.startswith("#"):
        return None
    return ref or None


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def any_(description: str | None = None) -> SchemaNode:
    """Schema accepting any value, including null."""
    return SchemaNode(description=description)


def string(description: str | None = None, **constraints: Any) -> SchemaNode:
    """String schema; ``constraints`` accepts min_length, max_length, pattern, format, enum."""
    return SchemaNode(type=SchemaType.STRING, description=description, **constraints)


def integer(description: str | None = None, **constraints: Any) -> SchemaNode:
    return SchemaNode(type=SchemaType.INTEGER, description=description, **constraints)


def number(description: str | None = None, **constraints: Any) -> SchemaNode:
    return SchemaNode(type=SchemaType.NUMBER, description=description, **constraints)


def boolean(description: str | None = None) -> SchemaNode:
    return SchemaNode(type=SchemaType.BOOLEAN, description=description)


def array(items: SchemaNode, description: str | None = None) -> SchemaNode:
    return SchemaNode(type=SchemaType.ARRAY, items=items, description=description)


def object_(properties: Mapping[str, SchemaNode] | None = None, *required: str) -> SchemaNode:
    return SchemaNode(
        type=SchemaType.OBJECT,
        properties=dict(properties or {}),
        required=list(required) or None,
    )


def enum_of(*values: Any) -> SchemaNode:
    """Schema accepting exactly one of ``values``."""
    return SchemaNode(enum=list(values))


def ref_to(name: str) -> SchemaNode:
    """Indirect reference to a registry definition."""
    return SchemaNode(ref=name)
