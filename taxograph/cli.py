"""Command line entry point.

Usage::

    python -m taxograph schema host.yaml
    python -m taxograph validate host.yaml scan.json
    python -m taxograph compile host.yaml scan.json --context mission_id=m-42
    python -m taxograph --definitions ./schemas compile host.yaml scan.json

``compile`` writes one JSON object per graph operation per line. Logs go to
stderr so stdout stays machine-readable.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from taxograph import __version__
from taxograph.core.config import get_settings
from taxograph.core.exceptions import TaxographError
from taxograph.schema.model import SchemaNode
from taxograph.schema.registry import SchemaRegistry, default_registry, load_schema_document
from taxograph.schema.validator import validate
from taxograph.taxonomy.compiler import compile_graph
from taxograph.taxonomy.definitions import check_taxonomy

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="taxograph",
        description="Validate tool payloads and compile them into knowledge graph operations.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--definitions",
        type=Path,
        default=None,
        help="Directory of schema definitions for $ref resolution (default: TAXOGRAPH_DEFINITIONS_PATH).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: TAXOGRAPH_LOG_LEVEL or INFO).",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    schema_cmd = sub.add_parser("schema", help="Check a schema's taxonomy mappings and print it as JSON.")
    schema_cmd.add_argument("schema", type=Path, help="Schema file (JSON or YAML).")

    validate_cmd = sub.add_parser("validate", help="Validate a data file against a schema.")
    validate_cmd.add_argument("schema", type=Path, help="Schema file (JSON or YAML).")
    validate_cmd.add_argument("data", type=Path, help="Data file (JSON or YAML).")

    compile_cmd = sub.add_parser("compile", help="Validate a data file, then print its graph operations.")
    compile_cmd.add_argument("schema", type=Path, help="Schema file (JSON or YAML).")
    compile_cmd.add_argument("data", type=Path, help="Data file (JSON or YAML).")
    compile_cmd.add_argument(
        "--context",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Execution context entry visible as _context.KEY (repeatable).",
    )

    return parser.parse_args(argv)


def _load_data(path: Path) -> Any:
    with path.open(encoding="utf-8") as f:
        if path.suffix == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def _parse_context(entries: list[str]) -> dict[str, Any]:
    """Parse ``KEY=VALUE`` pairs; values are read as YAML scalars (``80``, ``true``)."""
    context: dict[str, Any] = {}
    for entry in entries:
        key, sep, raw = entry.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid --context entry {entry!r}, expected KEY=VALUE")
        context[key.strip()] = yaml.safe_load(raw) if raw else ""
    return context


def _load(args: argparse.Namespace) -> tuple[SchemaNode, SchemaRegistry]:
    """Load the schema file and the registry its references resolve against."""
    root, embedded = load_schema_document(args.schema)
    registry = SchemaRegistry.from_directory(args.definitions) if args.definitions else default_registry()
    if embedded:
        registry = registry.with_definitions(**embedded)
    check_taxonomy(root, registry)
    return root, registry


def _cmd_schema(args: argparse.Namespace) -> int:
    root, _ = _load(args)
    print(root.to_json(indent=2))
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    root, registry = _load(args)
    validate(root, _load_data(args.data), registry)
    print("OK")
    return 0


def _cmd_compile(args: argparse.Namespace) -> int:
    root, registry = _load(args)
    context = _parse_context(args.context)
    data = _load_data(args.data)
    validate(root, data, registry)

    count = 0
    for op in compile_graph(root, data, context, registry):
        sys.stdout.write(json.dumps(op.to_dict(), sort_keys=True) + "\n")
        count += 1
    logger.info("Compiled %s into %d graph operations", args.data, count)
    return 0


_COMMANDS = {
    "schema": _cmd_schema,
    "validate": _cmd_validate,
    "compile": _cmd_compile,
}


def run(argv: list[str] | None = None) -> int:
    """Parse arguments, configure logging and run one command.

    Returns:
        Process exit code.
    """
    args = _parse_args(argv)

    level = args.log_level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return _COMMANDS[args.command](args)
    except (TaxographError, ValueError, OSError, yaml.YAMLError) as err:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"ERROR: {err}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
