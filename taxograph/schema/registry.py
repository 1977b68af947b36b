"""Schema registry: named definitions for ``$ref`` resolution.

A :class:`SchemaRegistry` is an immutable name-to-schema mapping. Adding
definitions produces a new registry, so a registry handed to concurrent
validations can never change under them. Taxonomy mappings attached to
definitions are checked once when the registry is built.

Hot reload goes through :class:`RegistryHolder`, which publishes a new
registry by swapping a single reference; readers never lock.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import ValidationError

from taxograph.core.config import get_settings
from taxograph.core.exceptions import SchemaLoadError
from taxograph.schema.model import SchemaNode, definition_name
from taxograph.taxonomy.definitions import check_definitions

logger = logging.getLogger(__name__)

SCHEMA_SUFFIXES = (".json", ".yaml", ".yml")
_DEFINITION_KEYS = ("definitions", "$defs")


class SchemaRegistry(Mapping[str, SchemaNode]):
    """Read-only mapping of definition names to schema nodes.

    Args:
        definitions: Schema nodes (or their dict form) by name.
        check: Run taxonomy definition checks over every definition.

    Raises:
        TaxonomyDefinitionError: If ``check`` is set and a mapping is malformed.
    """

    def __init__(
        self,
        definitions: Mapping[str, SchemaNode | Mapping[str, Any]] | None = None,
        *,
        check: bool = True,
    ) -> None:
        nodes = {
            name: node if isinstance(node, SchemaNode) else SchemaNode.from_dict(node)
            for name, node in (definitions or {}).items()
        }
        if check and nodes:
            check_definitions(nodes)
        self._definitions: Mapping[str, SchemaNode] = MappingProxyType(nodes)

    def __getitem__(self, name: str) -> SchemaNode:
        key = definition_name(name) if isinstance(name, str) else None
        if key is None:
            raise KeyError(name)
        return self._definitions[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"SchemaRegistry({sorted(self._definitions)!r})"

    def get(self, name: str, default: SchemaNode | None = None) -> SchemaNode | None:  # type: ignore[override]
        """Look up a definition by bare name or ``#/definitions/`` pointer."""
        try:
            return self[name]
        except KeyError:
            return default

    def names(self) -> list[str]:
        """Sorted definition names."""
        return sorted(self._definitions)

    def with_definitions(self, **definitions: SchemaNode | Mapping[str, Any]) -> SchemaRegistry:
        """Return a new registry with ``definitions`` added or replaced."""
        merged: dict[str, SchemaNode | Mapping[str, Any]] = dict(self._definitions)
        merged.update(definitions)
        return SchemaRegistry(merged)

    @classmethod
    def from_directory(cls, path: Path | str, *, check: bool = True) -> SchemaRegistry:
        """Load every ``*.json``, ``*.yaml`` and ``*.yml`` file in ``path``.

        A file either holds a single definition named after the file stem,
        or a top-level ``definitions`` (or ``$defs``) map of named ones.

        Raises:
            SchemaLoadError: Missing directory, unreadable or malformed file,
                or a definition name defined twice.
        """
        directory = Path(path)
        if not directory.is_dir():
            raise SchemaLoadError("Schema definitions directory not found", source=str(directory))

        definitions: dict[str, SchemaNode] = {}
        sources: dict[str, Path] = {}
        for file in sorted(p for p in directory.iterdir() if p.suffix in SCHEMA_SUFFIXES):
            data = _read_document(file)
            embedded = _embedded_definitions(data, file)
            loaded = embedded if embedded is not None else {file.stem: _parse_node(data, file)}
            for name, node in loaded.items():
                if name in definitions:
                    raise SchemaLoadError(
                        f"Definition {name!r} is already defined in {sources[name].name}",
                        source=str(file),
                    )
                definitions[name] = node
                sources[name] = file
            logger.debug("Loaded %d schema definition(s) from %s", len(loaded), file)

        registry = cls(definitions, check=check)
        logger.info("Loaded schema registry from %s: %d definitions", directory, len(registry))
        return registry


def load_schema_document(path: Path | str) -> tuple[SchemaNode, dict[str, SchemaNode]]:
    """Load a single schema file.

    Returns:
        The root schema and any definitions embedded under ``definitions``
        or ``$defs``.

    Raises:
        SchemaLoadError: If the file cannot be read or parsed.
    """
    file = Path(path)
    data = _read_document(file)
    embedded = _embedded_definitions(data, file) or {}
    root = {k: v for k, v in data.items() if k not in _DEFINITION_KEYS}
    return _parse_node(root, file), embedded


def _read_document(file: Path) -> dict[str, Any]:
    try:
        with file.open(encoding="utf-8") as f:
            if file.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except OSError as err:
        raise SchemaLoadError(f"Cannot read schema file: {err}", source=str(file)) from err
    except (json.JSONDecodeError, yaml.YAMLError) as err:
        raise SchemaLoadError(f"Malformed schema file: {err}", source=str(file)) from err
    if not isinstance(data, dict):
        raise SchemaLoadError("Schema document must be a mapping", source=str(file))
    return data


def _parse_node(data: Mapping[str, Any], file: Path, name: str = "") -> SchemaNode:
    try:
        return SchemaNode.from_dict(data)
    except ValidationError as err:
        label = f"definition {name!r}" if name else "schema"
        raise SchemaLoadError(f"Invalid {label}: {err}", source=str(file)) from err


def _embedded_definitions(data: Mapping[str, Any], file: Path) -> dict[str, SchemaNode] | None:
    for key in _DEFINITION_KEYS:
        if key in data:
            raw = data[key]
            if not isinstance(raw, dict):
                raise SchemaLoadError(f"'{key}' must be a mapping of names to schemas", source=str(file))
            return {name: _parse_node(node, file, name) for name, node in raw.items()}
    return None


class RegistryHolder:
    """Holds the current registry and swaps it atomically on reload.

    Readers take :attr:`current` without locking; the reference they get is
    an immutable registry that stays consistent for as long as they use it.
    Writers are serialized by a lock.
    """

    def __init__(self, registry: SchemaRegistry | None = None) -> None:
        self._registry = registry
        self._lock = threading.Lock()

    @property
    def current(self) -> SchemaRegistry:
        registry = self._registry
        if registry is not None:
            return registry
        with self._lock:
            if self._registry is None:
                self._registry = _load_default()
            return self._registry

    def swap(self, registry: SchemaRegistry) -> SchemaRegistry | None:
        """Publish ``registry`` and return the one it replaced."""
        with self._lock:
            previous, self._registry = self._registry, registry
        logger.info("Swapped schema registry: %d definitions", len(registry))
        return previous

    def reload(self, path: Path | str | None = None) -> SchemaRegistry:
        """Load definitions from ``path`` (or the configured directory) and swap them in."""
        registry = SchemaRegistry.from_directory(path) if path else _load_default()
        self.swap(registry)
        return registry


def _load_default() -> SchemaRegistry:
    path = get_settings().definitions_path
    if path is None:
        return SchemaRegistry()
    return SchemaRegistry.from_directory(path)


_holder = RegistryHolder()


def registry_holder() -> RegistryHolder:
    """Return the process-wide registry holder."""
    return _holder


def default_registry() -> SchemaRegistry:
    """Return the current process-wide registry."""
    return _holder.current
