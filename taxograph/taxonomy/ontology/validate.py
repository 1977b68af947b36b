"""Taxonomy validation CLI.

Checks a taxonomy YAML document for internal consistency.

Usage::

    python -m taxograph.taxonomy.ontology.validate
    python -m taxograph.taxonomy.ontology.validate --ontology my_taxonomy.yaml
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import yaml

from taxograph.taxonomy.ontology.loader import get_raw_ontology


def validate_ontology(data: dict[str, Any]) -> list[str]:
    """Validate a taxonomy document for internal consistency.

    Returns:
        List of error messages (empty = valid).
    """
    errors: list[str] = []

    for key in ("version", "node_types", "relationship_types"):
        if key not in data:
            errors.append(f"Missing required top-level key: {key}")

    if errors:
        return errors

    node_types = data["node_types"] or {}
    rel_types = data["relationship_types"] or {}

    for node_type, defn in node_types.items():
        if not isinstance(defn, dict):
            errors.append(f"Node type '{node_type}' must be a mapping")
            continue
        if "description" not in defn:
            errors.append(f"Node type '{node_type}' missing 'description'")
        if "category" not in defn:
            errors.append(f"Node type '{node_type}' missing 'category'")

        ident = defn.get("identifying_properties")
        if not ident:
            errors.append(f"Node type '{node_type}' has no identifying properties")
        elif not isinstance(ident, list) or not all(isinstance(p, str) and p for p in ident):
            errors.append(f"Node type '{node_type}' identifying_properties must be a list of names")
        elif len(set(ident)) != len(ident):
            errors.append(f"Node type '{node_type}' lists an identifying property twice")

    for rel_type, defn in rel_types.items():
        if not isinstance(defn, dict):
            errors.append(f"Relationship type '{rel_type}' must be a mapping")
            continue
        if "description" not in defn:
            errors.append(f"Relationship type '{rel_type}' missing 'description'")
        if rel_type != rel_type.upper():
            errors.append(f"Relationship type '{rel_type}' should be UPPER_SNAKE_CASE")

        for endpoint_key in ("valid_from", "valid_to"):
            for endpoint in defn.get(endpoint_key) or []:
                if endpoint not in node_types:
                    errors.append(
                        f"Relationship '{rel_type}' {endpoint_key} references unknown node type '{endpoint}'"
                    )

    return errors


def main(argv: list[str] | None = None) -> None:
    """Run taxonomy validation from the command line."""
    parser = argparse.ArgumentParser(description="Validate a knowledge graph taxonomy document")
    parser.add_argument(
        "--ontology",
        type=Path,
        default=None,
        help="Taxonomy YAML to check (default: the bundled taxonomy)",
    )
    args = parser.parse_args(argv)

    print("Validating taxonomy...")
    print()

    try:
        data = get_raw_ontology(args.ontology)
    except (OSError, yaml.YAMLError) as err:
        print(f"FAILED: cannot read taxonomy: {err}")
        sys.exit(1)

    errors = validate_ontology(data)
    if errors:
        print(f"FAILED: {len(errors)} error(s):")
        for err in errors:
            print(f"  - {err}")
        sys.exit(1)

    print(
        f"Taxonomy {data['version']} OK: {len(data['node_types'])} node types, "
        f"{len(data['relationship_types'])} relationship types"
    )
    print(f"  Node types: {sorted(data['node_types'])}")
    print(f"  Relationship types: {sorted(data['relationship_types'])}")
    print()
    print("Validation complete.")


if __name__ == "__main__":
    main()
