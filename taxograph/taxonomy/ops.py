"""Graph operations emitted by the compiler.

These are plain records for an external ingestion service, which performs
the actual upsert against the graph store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class NodeOp:
    """Create or update a node.

    Attributes:
        node_type: Node label (e.g. host, port).
        id: Deterministic node identifier.
        properties: Identifying values followed by mapped properties.
    """

    node_type: str
    id: str
    properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": "node",
            "node_type": self.node_type,
            "id": self.id,
            "properties": dict(self.properties),
        }


@dataclass(frozen=True)
class EdgeOp:
    """Create or update a relationship.

    Attributes:
        type: Relationship type (e.g. HAS_PORT).
        from_id: Source node ID.
        to_id: Target node ID.
        properties: Mapped edge properties.
    """

    type: str
    from_id: str
    to_id: str
    properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": "edge",
            "type": self.type,
            "from_id": self.from_id,
            "to_id": self.to_id,
            "properties": dict(self.properties),
        }


GraphOp = NodeOp | EdgeOp
