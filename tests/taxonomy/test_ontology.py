"""Tests for the canonical taxonomy loader and its consistency checks."""

from __future__ import annotations

import pytest
import yaml

from taxograph.taxonomy.ontology.loader import (
    get_raw_ontology,
    get_valid_node_types,
    get_valid_relationship_types,
    load_ontology,
)
from taxograph.taxonomy.ontology.validate import main, validate_ontology


class TestLoader:
    def test_bundled_taxonomy(self):
        ontology = load_ontology()
        assert ontology.version == "3.0.0"
        assert ontology.is_canonical_node_type("host")
        assert not ontology.is_canonical_node_type("widget")
        assert ontology.is_canonical_relationship_type("HAS_PORT")

    def test_identifying_properties(self):
        ontology = load_ontology()
        assert ontology.identifying_properties("port") == ["host_id", "number", "protocol"]
        assert ontology.identifying_properties("widget") is None

    def test_valid_endpoints(self):
        ontology = load_ontology()
        assert ontology.valid_endpoints("HAS_PORT") == (["host"], ["port"])
        assert ontology.valid_endpoints("UNKNOWN") is None

    def test_cached(self):
        assert load_ontology() is load_ontology()

    def test_read_only(self):
        with pytest.raises(TypeError):
            load_ontology().node_types["widget"] = {}  # type: ignore[index]

    def test_type_sets(self):
        assert "finding" in get_valid_node_types()
        assert "AFFECTS" in get_valid_relationship_types()

    def test_custom_path(self, tmp_path):
        path = tmp_path / "mini.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "version": "1.0",
                    "node_types": {"widget": {"identifying_properties": ["sn"]}},
                    "relationship_types": {},
                }
            )
        )
        ontology = load_ontology(path)
        assert ontology.version == "1.0"
        assert ontology.identifying_properties("widget") == ["sn"]


class TestValidateOntology:
    def test_bundled_taxonomy_is_consistent(self):
        assert validate_ontology(get_raw_ontology()) == []

    def test_missing_top_level_keys(self):
        errors = validate_ontology({"version": "1"})
        assert "Missing required top-level key: node_types" in errors
        assert "Missing required top-level key: relationship_types" in errors

    def test_detects_problems(self):
        data = {
            "version": "1",
            "node_types": {
                "host": {"description": "h", "category": "asset", "identifying_properties": ["ip"]},
                "port": {"description": "p", "category": "asset"},
            },
            "relationship_types": {
                "has_port": {"description": "x", "valid_from": ["host"], "valid_to": ["socket"]},
            },
        }
        errors = validate_ontology(data)
        assert "Node type 'port' has no identifying properties" in errors
        assert "Relationship type 'has_port' should be UPPER_SNAKE_CASE" in errors
        assert "Relationship 'has_port' valid_to references unknown node type 'socket'" in errors

    def test_empty_endpoint_list(self):
        data = yaml.safe_load(
            "version: '1'\n"
            "node_types:\n"
            "  host: {description: h, category: asset, identifying_properties: [ip]}\n"
            "relationship_types:\n"
            "  RUNS:\n"
            "    description: x\n"
            "    valid_from:\n"
            "    valid_to: [host]\n"
        )
        assert validate_ontology(data) == []


class TestValidateCli:
    def test_bundled(self, capsys):
        main([])
        out = capsys.readouterr().out
        assert "Taxonomy 3.0.0 OK" in out
        assert "Validation complete." in out

    def test_invalid_file_exits_1(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"version": "1"}))
        with pytest.raises(SystemExit) as exc_info:
            main(["--ontology", str(path)])
        assert exc_info.value.code == 1
        assert "FAILED" in capsys.readouterr().out
