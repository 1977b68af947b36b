"""Graph compiler: projects validated data into node and edge operations.

The compiler walks ``(schema, value)`` pairs the same way the validator does.
Wherever a schema node carries a taxonomy mapping it emits a
:class:`~taxograph.taxonomy.ops.NodeOp` for the matched data, followed by an
:class:`~taxograph.taxonomy.ops.EdgeOp` per relationship whose condition
holds and whose endpoints resolve.

Output order is depth-first pre-order: a node's operations come before those
of its descendants, object children follow the key order of the data and
array elements follow their index order.

Per-record gaps (a missing identifying value, an unresolved endpoint, a
false condition) skip the affected operation and never abort the walk.
Only structural schema faults (``$ref`` cycles or unknown definitions)
propagate as errors.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator, Mapping
from typing import Any

from taxograph.core.config import get_settings
from taxograph.schema.model import SchemaNode
from taxograph.schema.validator import resolve_ref
from taxograph.schema.values import ValueKind, is_scalar, kind_of
from taxograph.taxonomy.conditions import DEFAULT_EVALUATOR, ConditionEvaluator
from taxograph.taxonomy.definitions import DeclaredTypes, collect_declared_types
from taxograph.taxonomy.errors import TaxonomyDefinitionError
from taxograph.taxonomy.identity import is_identity_value, node_id
from taxograph.taxonomy.mapping import NodeReference, PropertyMapping, RelationshipMapping, TaxonomyMapping
from taxograph.taxonomy.ontology.loader import Ontology, load_ontology
from taxograph.taxonomy.ops import EdgeOp, GraphOp, NodeOp
from taxograph.taxonomy.paths import EvaluationContext
from taxograph.taxonomy.transforms import BUILTIN_TRANSFORMS, Transform, get_transform

logger = logging.getLogger(__name__)


class GraphCompiler:
    """Reusable compiler bound to a registry, evaluator and transform set.

    Instances hold no per-call state and may be shared between threads.

    Args:
        registry: Named definitions used to resolve ``$ref`` nodes.
        evaluator: Relationship condition evaluator.
        transforms: Named property transforms (built-ins by default).
        ontology: Canonical taxonomy supplying identifying properties for
            endpoint references that declare none (bundled one by default).
    """

    def __init__(
        self,
        registry: Mapping[str, SchemaNode] | None = None,
        *,
        evaluator: ConditionEvaluator | None = None,
        transforms: Mapping[str, Transform] | None = None,
        ontology: Ontology | None = None,
    ) -> None:
        self.registry = registry
        self.evaluator = evaluator or DEFAULT_EVALUATOR
        self.transforms = transforms if transforms is not None else BUILTIN_TRANSFORMS
        self.ontology = ontology if ontology is not None else load_ontology(get_settings().ontology_path)
        self._registry_types = collect_declared_types(registry.values() if registry else ())

    def declared_types(self, schema: SchemaNode) -> dict[str, dict[str, str]]:
        """Identifying expressions per node type visible while compiling ``schema``.

        Mappings in ``schema`` take precedence over registry definitions,
        which take precedence over the canonical taxonomy.
        """
        declared = collect_declared_types([schema])
        for node_type, exprs in self._registry_types.items():
            declared.setdefault(node_type, exprs)
        for node_type, exprs in collect_declared_types((), self.ontology).items():
            declared.setdefault(node_type, exprs)
        return declared

    def compile(
        self,
        schema: SchemaNode,
        value: Any,
        context: Mapping[str, Any] | None = None,
    ) -> Iterator[GraphOp]:
        """Lazily yield the graph operations for ``value``.

        Args:
            schema: Root schema the value was validated against.
            value: Decoded payload; never modified.
            context: Call-scoped constants visible as ``_context.*``.

        Raises:
            CircularRef: A ``$ref`` re-enters a definition being expanded.
            UnresolvableRef: A ``$ref`` names an unknown definition.
        """
        declared = self.declared_types(schema)
        yield from self._walk(schema, value, EvaluationContext.root(context), (), declared)

    # -----------------------------------------------------------------
    # Traversal
    # -----------------------------------------------------------------

    def _walk(
        self,
        schema: SchemaNode,
        value: Any,
        ctx: EvaluationContext,
        in_flight: tuple[str, ...],
        declared: DeclaredTypes,
    ) -> Iterator[GraphOp]:
        mappings: list[TaxonomyMapping] = []
        node = schema
        while node.ref:
            if node.taxonomy is not None:
                mappings.append(node.taxonomy)
            node, name = resolve_ref(node.ref, self.registry, in_flight)
            in_flight = (*in_flight, name)
        if node.taxonomy is not None:
            mappings.append(node.taxonomy)

        try:
            kind = kind_of(value)
        except TypeError:
            logger.debug("Not compiling unsupported value of type %s", type(value).__name__)
            return

        ctx = ctx.push(value) if kind == ValueKind.OBJECT else ctx.at(value)

        for mapping in mappings:
            yield from self._project(mapping, ctx, declared)

        if kind == ValueKind.OBJECT and node.properties:
            for key, item in value.items():
                child = node.properties.get(key)
                if child is not None:
                    yield from self._walk(child, item, ctx, in_flight, declared)
        elif kind == ValueKind.ARRAY and node.items is not None:
            for item in value:
                yield from self._walk(node.items, item, ctx, in_flight, declared)

    # -----------------------------------------------------------------
    # Projection
    # -----------------------------------------------------------------

    def _project(
        self,
        mapping: TaxonomyMapping,
        ctx: EvaluationContext,
        declared: DeclaredTypes,
    ) -> Iterator[GraphOp]:
        identifying = self._identify(mapping.identifying_properties, ctx)
        self_id: str | None = None
        if identifying is None:
            logger.debug(
                "Skipping %s node: identifying properties %s did not resolve",
                mapping.node_type,
                sorted(mapping.identifying_properties),
            )
        else:
            self_id = node_id(mapping.node_type, identifying)
            properties = dict(identifying)
            properties.update(self._map_properties(mapping.properties, ctx))
            yield NodeOp(node_type=mapping.node_type, id=self_id, properties=properties)

        for relationship in mapping.relationships:
            edge = self._relate(relationship, ctx, self_id, declared)
            if edge is not None:
                yield edge

    def _identify(self, exprs: Mapping[str, str], ctx: EvaluationContext) -> dict[str, Any] | None:
        if not exprs:
            return None
        values: dict[str, Any] = {}
        for name, expr in exprs.items():
            resolved = ctx.resolve(expr)
            if not is_identity_value(resolved):
                return None
            values[name] = resolved
        return values

    def _map_properties(self, mappings: list[PropertyMapping], ctx: EvaluationContext) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        for mapping in mappings:
            resolved = ctx.resolve(mapping.source)
            if resolved is None:
                resolved = mapping.default
            if resolved is None:
                continue
            if not is_scalar(resolved):
                resolved = copy.deepcopy(resolved)
            if mapping.transform is not None:
                transform = get_transform(mapping.transform, self.transforms)
                if transform is None:
                    raise TaxonomyDefinitionError(f"unknown transform {mapping.transform!r}")
                resolved = transform(resolved)
            properties[mapping.target] = resolved
        return properties

    def _relate(
        self,
        relationship: RelationshipMapping,
        ctx: EvaluationContext,
        self_id: str | None,
        declared: DeclaredTypes,
    ) -> EdgeOp | None:
        if relationship.condition is not None:
            outcome = self.evaluator.evaluate(relationship.condition, ctx)
            if outcome is not True:
                logger.debug(
                    "Skipping %s edge: condition %r evaluated to %s",
                    relationship.type,
                    relationship.condition,
                    outcome,
                )
                return None

        from_id = self._endpoint(relationship.from_, ctx, self_id, declared)
        to_id = self._endpoint(relationship.to, ctx, self_id, declared)
        if from_id is None or to_id is None:
            logger.debug(
                "Skipping %s edge: unresolved endpoint (from=%s, to=%s)",
                relationship.type,
                from_id,
                to_id,
            )
            return None

        return EdgeOp(
            type=relationship.type,
            from_id=from_id,
            to_id=to_id,
            properties=self._map_properties(relationship.properties, ctx),
        )

    def _endpoint(
        self,
        ref: NodeReference,
        ctx: EvaluationContext,
        self_id: str | None,
        declared: DeclaredTypes,
    ) -> str | None:
        if ref.is_self:
            return self_id
        exprs = ref.properties or declared.get(ref.type)
        if not exprs:
            return None
        identifying = self._identify(exprs, ctx)
        if identifying is None:
            return None
        return node_id(ref.type, identifying)


def compile_graph(
    schema: SchemaNode,
    value: Any,
    context: Mapping[str, Any] | None = None,
    registry: Mapping[str, SchemaNode] | None = None,
    *,
    evaluator: ConditionEvaluator | None = None,
    transforms: Mapping[str, Transform] | None = None,
    ontology: Ontology | None = None,
) -> Iterator[GraphOp]:
    """Compile ``value`` into graph operations.

    ``value`` is expected to have passed :func:`~taxograph.schema.validator.validate`
    against ``schema``. The result is a generator; stopping iteration early
    is the way to cancel.

    Example::

        ops = list(compile_graph(host_schema, {"ip": "10.0.0.1", "ports": [...]}))
    """
    compiler = GraphCompiler(registry, evaluator=evaluator, transforms=transforms, ontology=ontology)
    return compiler.compile(schema, value, context)
