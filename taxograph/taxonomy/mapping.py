"""Declarative taxonomy mappings attached to schema nodes.

A :class:`TaxonomyMapping` tells the graph compiler how to project the data
matched by a schema node into a knowledge-graph node: which node type to
create, which path expressions identify it, which properties to copy and
which relationships to draw. Mappings are authored once alongside a tool or
agent schema and are immutable afterwards.

Serialized keys are snake_case (``node_type``, ``identifying_properties``);
camelCase spellings are accepted on input.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

SELF = "self"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class PropertyMapping(_FrozenModel):
    """Maps a source path expression to a target node or edge property."""

    source: str
    target: str
    default: Any = None
    transform: str | None = None


class NodeReference(_FrozenModel):
    """One endpoint of a relationship.

    ``type`` is either ``"self"`` (the node produced by the enclosing
    mapping) or another node type whose identity is computed from
    ``properties`` evaluated against the current data frame.
    """

    type: str
    properties: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _coerce_type_name(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"type": data}
        return data

    @property
    def is_self(self) -> bool:
        return self.type == SELF


class RelationshipMapping(_FrozenModel):
    """An edge to emit for every materialized node of the enclosing mapping."""

    type: str
    from_: NodeReference = Field(
        validation_alias=AliasChoices("from", "from_"),
        serialization_alias="from",
    )
    to: NodeReference
    condition: str | None = None
    properties: list[PropertyMapping] = Field(default_factory=list)


class TaxonomyMapping(_FrozenModel):
    """Projection of schema-matched data into a graph node."""

    node_type: str = Field(validation_alias=AliasChoices("node_type", "nodeType"))
    identifying_properties: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("identifying_properties", "identifyingProperties"),
    )
    properties: list[PropertyMapping] = Field(default_factory=list)
    relationships: list[RelationshipMapping] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Fluent helpers
# ---------------------------------------------------------------------------


def prop_map(
    source: str,
    target: str | None = None,
    default: Any = None,
    transform: str | None = None,
) -> PropertyMapping:
    """Create a property mapping; ``target`` defaults to the last source segment."""
    if target is None:
        target = source.rsplit(".", 1)[-1]
    return PropertyMapping(source=source, target=target, default=default, transform=transform)


def node_ref(node_type: str, **properties: str) -> NodeReference:
    """Reference a node of ``node_type`` identified by the given path expressions."""
    return NodeReference(type=node_type, properties=properties)


def rel(
    rel_type: str,
    from_: NodeReference | str,
    to: NodeReference | str,
    condition: str | None = None,
    properties: list[PropertyMapping] | tuple[PropertyMapping, ...] = (),
) -> RelationshipMapping:
    """Create a relationship mapping; plain strings are node type names."""
    return RelationshipMapping(
        type=rel_type,
        from_=NodeReference(type=from_) if isinstance(from_, str) else from_,
        to=NodeReference(type=to) if isinstance(to, str) else to,
        condition=condition,
        properties=list(properties),
    )
