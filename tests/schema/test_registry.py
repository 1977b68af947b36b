"""Tests for the schema registry and its hot-reload holder."""

from __future__ import annotations

import json

import pytest
import yaml

from taxograph.core.exceptions import SchemaLoadError
from taxograph.schema.model import object_, ref_to, string
from taxograph.schema.registry import (
    RegistryHolder,
    SchemaRegistry,
    default_registry,
    load_schema_document,
    registry_holder,
)
from taxograph.taxonomy.errors import TaxonomyDefinitionError
from taxograph.taxonomy.mapping import TaxonomyMapping


@pytest.fixture
def broken_schema():
    return object_({"name": string()}).with_taxonomy(TaxonomyMapping(node_type="service"))


class TestSchemaRegistry:
    def test_mapping_protocol(self, port_schema):
        registry = SchemaRegistry({"Port": port_schema})
        assert len(registry) == 1
        assert "Port" in registry
        assert registry["Port"] is port_schema
        assert list(registry) == ["Port"]

    def test_get_accepts_ref_forms(self, port_schema):
        registry = SchemaRegistry({"Port": port_schema})
        assert registry.get("Port") is port_schema
        assert registry.get("#/definitions/Port") is port_schema
        assert registry.get("#/$defs/Port") is port_schema
        assert registry.get("Host") is None

    def test_item_access_accepts_ref_forms(self, port_schema):
        registry = SchemaRegistry({"Port": port_schema})
        assert registry["#/definitions/Port"] is port_schema
        assert "#/$defs/Port" in registry
        assert "#/properties/Port" not in registry
        assert 1 not in registry
        with pytest.raises(KeyError):
            registry["#/definitions/Host"]

    def test_accepts_dict_definitions(self, port_schema):
        registry = SchemaRegistry({"Port": port_schema.to_dict()})
        assert registry["Port"] == port_schema

    def test_read_only(self, port_schema):
        registry = SchemaRegistry({"Port": port_schema})
        with pytest.raises(TypeError):
            registry["Host"] = port_schema  # type: ignore[index]

    def test_with_definitions_returns_new_registry(self, port_schema):
        registry = SchemaRegistry({"Port": port_schema})
        extended = registry.with_definitions(Name=string())
        assert extended.names() == ["Name", "Port"]
        assert registry.names() == ["Port"]

    def test_malformed_taxonomy_rejected_at_registration(self, broken_schema):
        with pytest.raises(TaxonomyDefinitionError, match="no identifying properties"):
            SchemaRegistry({"Service": broken_schema})

    def test_check_can_be_skipped(self, broken_schema):
        registry = SchemaRegistry({"Service": broken_schema}, check=False)
        assert registry.names() == ["Service"]


class TestFromDirectory:
    """Loading definitions from JSON and YAML files."""

    def test_single_and_bundled_files(self, tmp_path, port_schema):
        (tmp_path / "Port.yaml").write_text(yaml.safe_dump(port_schema.to_dict()))
        (tmp_path / "common.json").write_text(
            json.dumps({"definitions": {"Name": {"type": "string", "minLength": 1}}})
        )
        (tmp_path / "notes.txt").write_text("ignored")

        registry = SchemaRegistry.from_directory(tmp_path)

        assert registry.names() == ["Name", "Port"]
        assert registry["Port"] == port_schema
        assert registry["Name"].min_length == 1

    def test_defs_key(self, tmp_path):
        (tmp_path / "common.yml").write_text(yaml.safe_dump({"$defs": {"Name": {"type": "string"}}}))
        assert SchemaRegistry.from_directory(tmp_path).names() == ["Name"]

    def test_duplicate_name(self, tmp_path):
        (tmp_path / "Name.yaml").write_text(yaml.safe_dump({"type": "string"}))
        (tmp_path / "other.json").write_text(json.dumps({"definitions": {"Name": {"type": "integer"}}}))
        with pytest.raises(SchemaLoadError, match="already defined"):
            SchemaRegistry.from_directory(tmp_path)

    def test_malformed_yaml(self, tmp_path):
        (tmp_path / "bad.yaml").write_text("type: [string\n")
        with pytest.raises(SchemaLoadError, match="Malformed schema file"):
            SchemaRegistry.from_directory(tmp_path)

    def test_malformed_json(self, tmp_path):
        (tmp_path / "bad.json").write_text("{")
        with pytest.raises(SchemaLoadError, match="bad.json"):
            SchemaRegistry.from_directory(tmp_path)

    def test_non_mapping_document(self, tmp_path):
        (tmp_path / "list.yaml").write_text("- a\n- b\n")
        with pytest.raises(SchemaLoadError, match="must be a mapping"):
            SchemaRegistry.from_directory(tmp_path)

    def test_invalid_schema(self, tmp_path):
        (tmp_path / "Bad.yaml").write_text(yaml.safe_dump({"type": "date"}))
        with pytest.raises(SchemaLoadError, match="Invalid schema"):
            SchemaRegistry.from_directory(tmp_path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(SchemaLoadError, match="not found"):
            SchemaRegistry.from_directory(tmp_path / "missing")


class TestLoadSchemaDocument:
    def test_root_and_embedded_definitions(self, tmp_path, port_schema):
        path = tmp_path / "host.yaml"
        document = object_({"ports": ref_to("#/definitions/Port")}).to_dict()
        document["definitions"] = {"Port": port_schema.to_dict()}
        path.write_text(yaml.safe_dump(document))

        root, embedded = load_schema_document(path)

        assert root.properties["ports"].ref == "#/definitions/Port"
        assert embedded == {"Port": port_schema}

    def test_without_definitions(self, tmp_path):
        path = tmp_path / "name.json"
        path.write_text(json.dumps({"type": "string"}))
        root, embedded = load_schema_document(path)
        assert root == string()
        assert embedded == {}


class TestRegistryHolder:
    def test_swap_returns_previous(self, port_schema):
        first = SchemaRegistry()
        second = SchemaRegistry({"Port": port_schema})
        holder = RegistryHolder(first)

        assert holder.swap(second) is first
        assert holder.current is second

    def test_readers_keep_their_snapshot(self, port_schema):
        holder = RegistryHolder(SchemaRegistry())
        snapshot = holder.current
        holder.swap(SchemaRegistry({"Port": port_schema}))
        assert len(snapshot) == 0
        assert len(holder.current) == 1

    def test_lazy_default_is_empty_without_configured_path(self, monkeypatch):
        monkeypatch.delenv("TAXOGRAPH_DEFINITIONS_PATH", raising=False)
        assert len(RegistryHolder().current) == 0

    def test_lazy_default_loads_configured_path(self, tmp_path, monkeypatch):
        (tmp_path / "Name.yaml").write_text(yaml.safe_dump({"type": "string"}))
        monkeypatch.setenv("TAXOGRAPH_DEFINITIONS_PATH", str(tmp_path))
        assert RegistryHolder().current.names() == ["Name"]

    def test_process_wide_holder(self):
        assert registry_holder() is registry_holder()
        assert default_registry() is registry_holder().current

    def test_reload_from_path(self, tmp_path):
        (tmp_path / "Name.yaml").write_text(yaml.safe_dump({"type": "string"}))
        holder = RegistryHolder(SchemaRegistry())
        reloaded = holder.reload(tmp_path)
        assert holder.current is reloaded
        assert reloaded.names() == ["Name"]
