"""Canonical taxonomy loader.

Loads the YAML taxonomy and provides typed accessors over its node types and
relationship types. Each file is loaded once and cached; the result is
read-only.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from taxograph.core.config import DEFAULT_ONTOLOGY_PATH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ontology:
    """Read-only view over a loaded taxonomy document."""

    version: str
    node_types: MappingProxyType[str, dict[str, Any]]
    relationship_types: MappingProxyType[str, dict[str, Any]]

    def is_canonical_node_type(self, node_type: str) -> bool:
        return node_type in self.node_types

    def is_canonical_relationship_type(self, rel_type: str) -> bool:
        return rel_type in self.relationship_types

    def identifying_properties(self, node_type: str) -> list[str] | None:
        """Identifying property names of a canonical node type, or None."""
        defn = self.node_types.get(node_type)
        if defn is None:
            return None
        return list(defn.get("identifying_properties", []))

    def valid_endpoints(self, rel_type: str) -> tuple[list[str], list[str]] | None:
        """Return (valid_from, valid_to) for a relationship type.

        Returns:
            Tuple of (from_types, to_types) or None if the type is unknown.
        """
        defn = self.relationship_types.get(rel_type)
        if defn is None:
            return None
        return list(defn.get("valid_from", [])), list(defn.get("valid_to", []))


@functools.cache
def _load_ontology(path: Path) -> Ontology:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    ontology = Ontology(
        version=str(data.get("version", "")),
        node_types=MappingProxyType(dict(data.get("node_types") or {})),
        relationship_types=MappingProxyType(dict(data.get("relationship_types") or {})),
    )
    logger.debug(
        "Loaded taxonomy %s from %s: %d node types, %d relationship types",
        ontology.version,
        path,
        len(ontology.node_types),
        len(ontology.relationship_types),
    )
    return ontology


def load_ontology(path: Path | str | None = None) -> Ontology:
    """Return the taxonomy at ``path`` (the bundled one by default), cached."""
    return _load_ontology(Path(path).resolve() if path else DEFAULT_ONTOLOGY_PATH)


def get_raw_ontology(path: Path | str | None = None) -> dict[str, Any]:
    """Return the unprocessed YAML document, for consistency checks."""
    with open(Path(path) if path else DEFAULT_ONTOLOGY_PATH, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_valid_node_types(path: Path | str | None = None) -> frozenset[str]:
    """Return the set of canonical node types."""
    return frozenset(load_ontology(path).node_types)


def get_valid_relationship_types(path: Path | str | None = None) -> frozenset[str]:
    """Return the set of canonical relationship types."""
    return frozenset(load_ontology(path).relationship_types)
