"""Tests for registration-time taxonomy checks."""

from __future__ import annotations

import logging

import pytest

from taxograph.schema.model import array, object_, ref_to, string
from taxograph.taxonomy.definitions import check_definitions, check_taxonomy, collect_declared_types
from taxograph.taxonomy.errors import TaxonomyDefinitionError
from taxograph.taxonomy.mapping import PropertyMapping, TaxonomyMapping, node_ref, prop_map, rel
from taxograph.taxonomy.ontology.loader import load_ontology


def tagged(mapping: TaxonomyMapping):
    return object_({"name": string()}).with_taxonomy(mapping)


class TestValidMappings:
    def test_host_port_schema_passes(self, host_schema):
        check_taxonomy(host_schema)

    def test_declared_type_reference_without_properties(self):
        mapping = TaxonomyMapping(
            node_type="port",
            identifying_properties={"host_id": "_parent.ip", "number": "number", "protocol": "protocol"},
            relationships=[rel("HAS_PORT", "host", "self")],
        )
        check_taxonomy(tagged(mapping))

    def test_registry_definitions_declare_types(self):
        widget = tagged(TaxonomyMapping(node_type="widget", identifying_properties={"sn": "sn"}))
        gadget = tagged(
            TaxonomyMapping(
                node_type="gadget",
                identifying_properties={"name": "name"},
                relationships=[rel("PART_OF", "self", "widget")],
            )
        )
        check_taxonomy(object_({"gadget": gadget, "widget": ref_to("Widget")}), {"Widget": widget})


class TestProblems:
    """Every malformed mapping is reported, all at once."""

    def test_empty_node_type(self):
        with pytest.raises(TaxonomyDefinitionError, match="node_type is empty"):
            check_taxonomy(tagged(TaxonomyMapping(node_type=" ", identifying_properties={"name": "name"})))

    def test_no_identifying_properties(self):
        with pytest.raises(TaxonomyDefinitionError, match="no identifying properties"):
            check_taxonomy(tagged(TaxonomyMapping(node_type="host")))

    def test_bad_paths(self):
        mapping = TaxonomyMapping(
            node_type="host",
            identifying_properties={"ip": "a..b"},
            properties=[prop_map("_parent")],
            relationships=[rel("HAS_PORT", "self", node_ref("port", number="_context"))],
        )
        with pytest.raises(TaxonomyDefinitionError) as exc_info:
            check_taxonomy(tagged(mapping))
        assert len(exc_info.value.problems) == 3
        assert all("invalid path expression" in p for p in exc_info.value.problems)

    def test_unknown_transform(self):
        mapping = TaxonomyMapping(
            node_type="host",
            identifying_properties={"ip": "ip"},
            properties=[PropertyMapping(source="name", target="name", transform="reverse")],
        )
        with pytest.raises(TaxonomyDefinitionError, match="unknown transform 'reverse'"):
            check_taxonomy(tagged(mapping))

    def test_custom_transform_accepted(self):
        mapping = TaxonomyMapping(
            node_type="host",
            identifying_properties={"ip": "ip"},
            properties=[PropertyMapping(source="name", target="name", transform="reverse")],
        )
        check_taxonomy(tagged(mapping), transforms={"reverse": lambda v: v[::-1]})

    def test_bad_condition(self):
        mapping = TaxonomyMapping(
            node_type="finding",
            identifying_properties={"mission_id": "_context.mission_id", "fingerprint": "name"},
            relationships=[rel("AFFECTS", "self", node_ref("host", ip="ip"), condition="severity ==")],
        )
        with pytest.raises(TaxonomyDefinitionError, match="invalid condition"):
            check_taxonomy(tagged(mapping))

    def test_undeclared_endpoint_type(self):
        mapping = TaxonomyMapping(
            node_type="host",
            identifying_properties={"ip": "ip"},
            relationships=[rel("WATCHED_BY", "self", "sensor")],
        )
        with pytest.raises(TaxonomyDefinitionError, match="undeclared node type 'sensor'"):
            check_taxonomy(tagged(mapping), strict=False)

    def test_problems_carry_location(self):
        bad = tagged(TaxonomyMapping(node_type="host"))
        with pytest.raises(TaxonomyDefinitionError) as exc_info:
            check_taxonomy(object_({"hosts": array(bad)}))
        assert exc_info.value.problems[0].startswith("hosts[]: ")

    def test_problems_collected_together(self):
        schema = object_(
            {
                "a": tagged(TaxonomyMapping(node_type="host")),
                "b": tagged(TaxonomyMapping(node_type="", identifying_properties={"x": "x"})),
            }
        )
        with pytest.raises(TaxonomyDefinitionError) as exc_info:
            check_taxonomy(schema)
        assert len(exc_info.value.problems) == 2
        assert str(exc_info.value).startswith("2 taxonomy definition problems:")

    def test_check_definitions_labels_by_name(self):
        with pytest.raises(TaxonomyDefinitionError, match="#/definitions/Broken"):
            check_definitions({"Broken": tagged(TaxonomyMapping(node_type="host"))})


class TestCanonicalTypes:
    def test_non_canonical_type_warns(self, caplog):
        mapping = TaxonomyMapping(node_type="widget", identifying_properties={"name": "name"})
        with caplog.at_level(logging.WARNING, logger="taxograph.taxonomy.definitions"):
            check_taxonomy(tagged(mapping), strict=False)
        assert "'widget' is not in the canonical taxonomy" in caplog.text

    def test_non_canonical_type_fails_when_strict(self):
        mapping = TaxonomyMapping(node_type="widget", identifying_properties={"name": "name"})
        with pytest.raises(TaxonomyDefinitionError, match="not in the canonical taxonomy"):
            check_taxonomy(tagged(mapping), strict=True)

    def test_strict_from_settings(self, monkeypatch):
        monkeypatch.setenv("TAXOGRAPH_STRICT_ONTOLOGY", "true")
        mapping = TaxonomyMapping(node_type="widget", identifying_properties={"name": "name"})
        with pytest.raises(TaxonomyDefinitionError):
            check_taxonomy(tagged(mapping))

    def test_invalid_endpoint_types_when_strict(self):
        mapping = TaxonomyMapping(
            node_type="host",
            identifying_properties={"ip": "ip"},
            relationships=[rel("HAS_PORT", "self", node_ref("service", name="name", port_id="port"))],
        )
        with pytest.raises(TaxonomyDefinitionError, match="HAS_PORT target must be one of"):
            check_taxonomy(tagged(mapping), strict=True)


class TestDeclaredTypes:
    def test_mapping_declarations_win_over_ontology(self):
        schema = tagged(TaxonomyMapping(node_type="host", identifying_properties={"ip": "address"}))
        declared = collect_declared_types([schema], load_ontology())
        assert declared["host"] == {"ip": "address"}
        assert declared["port"] == {"host_id": "host_id", "number": "number", "protocol": "protocol"}

    def test_without_ontology(self):
        assert collect_declared_types([]) == {}
