"""Shared test fixtures for the taxograph test suite.

Provides a host/port scan schema with taxonomy mappings, a matching payload,
and isolation of the cached application settings.
"""

from __future__ import annotations

from typing import Any

import pytest

from taxograph.core.config import get_settings
from taxograph.schema.model import SchemaNode, array, integer, object_, string
from taxograph.taxonomy.mapping import TaxonomyMapping, node_ref, prop_map, rel


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Drop cached settings so env changes in one test never leak into another."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def port_mapping() -> TaxonomyMapping:
    return TaxonomyMapping(
        node_type="port",
        identifying_properties={
            "host_id": "_parent.ip",
            "number": "number",
            "protocol": "protocol",
        },
        properties=[prop_map("state")],
        relationships=[rel("HAS_PORT", node_ref("host", ip="_parent.ip"), "self")],
    )


@pytest.fixture
def host_mapping() -> TaxonomyMapping:
    return TaxonomyMapping(
        node_type="host",
        identifying_properties={"ip": "ip"},
        properties=[prop_map("hostname", transform="lowercase"), prop_map("os", default="unknown")],
    )


@pytest.fixture
def port_schema(port_mapping: TaxonomyMapping) -> SchemaNode:
    return object_(
        {
            "number": integer(minimum=1, maximum=65535),
            "protocol": string(),
            "state": string(),
        },
        "number",
        "protocol",
    ).with_taxonomy(port_mapping)


@pytest.fixture
def host_schema(host_mapping: TaxonomyMapping, port_schema: SchemaNode) -> SchemaNode:
    return object_(
        {
            "ip": string(),
            "hostname": string(),
            "ports": array(port_schema),
        },
        "ip",
    ).with_taxonomy(host_mapping)


@pytest.fixture
def scan_result() -> dict[str, Any]:
    return {
        "ip": "10.0.0.1",
        "hostname": "Web01.Example.COM",
        "ports": [
            {"number": 22, "protocol": "tcp", "state": "open"},
            {"number": 443, "protocol": "tcp", "state": "filtered"},
        ],
    }
