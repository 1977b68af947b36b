"""Registration-time checks for taxonomy mappings.

Malformed mappings are authoring errors. They are collected here, when a
schema or registry is registered, and reported together as one
:class:`~taxograph.taxonomy.errors.TaxonomyDefinitionError` instead of
surfacing as per-call compilation failures.

Checks:
- node type and identifying properties are present
- every path expression parses
- transforms are known and conditions parse
- relationship endpoints naming another node type either carry their own
  identifying expressions or name a declared type
- node and relationship types are canonical (warning, or error when strict)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from taxograph.core.config import get_settings
from taxograph.schema.model import SchemaNode
from taxograph.taxonomy.conditions import DEFAULT_EVALUATOR, ConditionEvaluator
from taxograph.taxonomy.errors import TaxonomyDefinitionError
from taxograph.taxonomy.mapping import NodeReference, PropertyMapping, TaxonomyMapping
from taxograph.taxonomy.ontology.loader import Ontology, load_ontology
from taxograph.taxonomy.paths import parse_path
from taxograph.taxonomy.transforms import Transform, get_transform

logger = logging.getLogger(__name__)

DeclaredTypes = Mapping[str, Mapping[str, str]]


def iter_mappings(schemas: Iterable[SchemaNode]) -> Iterable[tuple[str, TaxonomyMapping]]:
    """Yield ``(path, mapping)`` for every taxonomy attached in ``schemas``."""
    for schema in schemas:
        for path, node in schema.iter_nodes():
            if node.taxonomy is not None:
                yield path, node.taxonomy


def collect_declared_types(
    schemas: Iterable[SchemaNode],
    ontology: Ontology | None = None,
) -> dict[str, dict[str, str]]:
    """Index node types to the identifying expressions that declare them.

    Types declared by a mapping use that mapping's identifying expressions
    (first declaration wins). Canonical types not declared by any mapping
    use their identifying property names as bare field paths.
    """
    declared: dict[str, dict[str, str]] = {}
    for _path, mapping in iter_mappings(schemas):
        if mapping.node_type and mapping.identifying_properties:
            declared.setdefault(mapping.node_type, dict(mapping.identifying_properties))
    if ontology is not None:
        for node_type in ontology.node_types:
            names = ontology.identifying_properties(node_type) or []
            if node_type not in declared and names:
                declared[node_type] = {name: name for name in names}
    return declared


def check_taxonomy(
    schema: SchemaNode,
    registry: Mapping[str, SchemaNode] | None = None,
    *,
    ontology: Ontology | None = None,
    evaluator: ConditionEvaluator | None = None,
    transforms: Mapping[str, Transform] | None = None,
    strict: bool | None = None,
) -> None:
    """Check every taxonomy mapping attached to ``schema``.

    Registry definitions contribute declared node types but are not
    themselves checked here; they are checked when the registry is built.

    Raises:
        TaxonomyDefinitionError: Listing every problem found.
    """
    _check(
        [("", schema)],
        list(registry.values()) if registry else [],
        ontology=ontology,
        evaluator=evaluator,
        transforms=transforms,
        strict=strict,
    )


def check_definitions(
    definitions: Mapping[str, SchemaNode],
    *,
    ontology: Ontology | None = None,
    evaluator: ConditionEvaluator | None = None,
    transforms: Mapping[str, Transform] | None = None,
    strict: bool | None = None,
) -> None:
    """Check the taxonomy mappings of every named definition.

    Raises:
        TaxonomyDefinitionError: Listing every problem found.
    """
    _check(
        [(f"#/definitions/{name}", node) for name, node in definitions.items()],
        [],
        ontology=ontology,
        evaluator=evaluator,
        transforms=transforms,
        strict=strict,
    )


def _check(
    roots: list[tuple[str, SchemaNode]],
    extra: list[SchemaNode],
    *,
    ontology: Ontology | None,
    evaluator: ConditionEvaluator | None,
    transforms: Mapping[str, Transform] | None,
    strict: bool | None,
) -> None:
    settings = get_settings()
    if ontology is None:
        ontology = load_ontology(settings.ontology_path)
    if strict is None:
        strict = settings.strict_ontology

    checker = _MappingChecker(
        declared=collect_declared_types([node for _, node in roots] + extra, ontology),
        ontology=ontology,
        evaluator=evaluator or DEFAULT_EVALUATOR,
        transforms=transforms,
        strict=strict,
    )
    for label, root in roots:
        for path, node in root.iter_nodes():
            if node.taxonomy is not None:
                location = ".".join(p for p in (label, path) if p) or "<root>"
                checker.check(location, node.taxonomy)

    if checker.problems:
        raise TaxonomyDefinitionError(checker.problems)


class _MappingChecker:
    def __init__(
        self,
        declared: DeclaredTypes,
        ontology: Ontology,
        evaluator: ConditionEvaluator,
        transforms: Mapping[str, Transform] | None,
        strict: bool,
    ) -> None:
        self._declared = declared
        self._ontology = ontology
        self._evaluator = evaluator
        self._transforms = transforms
        self._strict = strict
        self.problems: list[str] = []

    def _problem(self, location: str, message: str) -> None:
        self.problems.append(f"{location}: {message}")

    def _non_canonical(self, location: str, message: str) -> None:
        if self._strict:
            self._problem(location, message)
        else:
            logger.warning("%s: %s", location, message)

    def _check_path(self, location: str, expr: str) -> None:
        try:
            parse_path(expr)
        except TaxonomyDefinitionError as err:
            self._problem(location, str(err))

    def _check_property(self, location: str, mapping: PropertyMapping) -> None:
        self._check_path(location, mapping.source)
        if not mapping.target.strip():
            self._problem(location, f"property mapping from {mapping.source!r} has an empty target")
        if mapping.transform is not None and get_transform(mapping.transform, self._transforms) is None:
            self._problem(location, f"unknown transform {mapping.transform!r}")

    def check(self, location: str, mapping: TaxonomyMapping) -> None:
        node_type = mapping.node_type.strip()
        if not node_type:
            self._problem(location, "taxonomy node_type is empty")
        elif not self._ontology.is_canonical_node_type(node_type):
            self._non_canonical(location, f"node type {node_type!r} is not in the canonical taxonomy")
        else:
            canonical = set(self._ontology.identifying_properties(node_type) or [])
            if canonical and set(mapping.identifying_properties) != canonical:
                logger.warning(
                    "%s: %s identifying properties %s differ from canonical %s",
                    location,
                    node_type,
                    sorted(mapping.identifying_properties),
                    sorted(canonical),
                )

        if not mapping.identifying_properties:
            self._problem(location, f"taxonomy for {mapping.node_type!r} declares no identifying properties")
        for expr in mapping.identifying_properties.values():
            self._check_path(location, expr)

        for prop in mapping.properties:
            self._check_property(location, prop)

        for relationship in mapping.relationships:
            rel_location = f"{location} {relationship.type or '<unnamed>'}"
            if not relationship.type.strip():
                self._problem(location, "relationship type is empty")
            elif not self._ontology.is_canonical_relationship_type(relationship.type):
                self._non_canonical(
                    rel_location, f"relationship type {relationship.type!r} is not in the canonical taxonomy"
                )
            else:
                self._check_endpoint_types(rel_location, relationship.type, mapping, relationship.from_, relationship.to)

            if relationship.condition is not None:
                try:
                    self._evaluator.check(relationship.condition)
                except TaxonomyDefinitionError as err:
                    self._problem(rel_location, str(err))

            for endpoint in (relationship.from_, relationship.to):
                self._check_reference(rel_location, endpoint)

            for prop in relationship.properties:
                self._check_property(rel_location, prop)

    def _check_reference(self, location: str, ref: NodeReference) -> None:
        if ref.is_self:
            return
        if not ref.type.strip():
            self._problem(location, "relationship endpoint has an empty node type")
            return
        for expr in ref.properties.values():
            self._check_path(location, expr)
        if not ref.properties and ref.type not in self._declared:
            self._problem(
                location,
                f"endpoint references undeclared node type {ref.type!r} without identifying properties",
            )

    def _check_endpoint_types(
        self,
        location: str,
        rel_type: str,
        mapping: TaxonomyMapping,
        from_: NodeReference,
        to: NodeReference,
    ) -> None:
        endpoints = self._ontology.valid_endpoints(rel_type)
        if endpoints is None:
            return
        valid_from, valid_to = endpoints
        source = mapping.node_type if from_.is_self else from_.type
        target = mapping.node_type if to.is_self else to.type
        if valid_from and source not in valid_from:
            self._non_canonical(location, f"{rel_type} source must be one of {valid_from}, got {source}")
        if valid_to and target not in valid_to:
            self._non_canonical(location, f"{rel_type} target must be one of {valid_to}, got {target}")
