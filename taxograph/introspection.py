"""Schema introspection mode for tools and agents.

A component started with ``--schema`` as its first argument prints its
contract as exactly one JSON document on stdout and exits. Orchestrators use
this to discover input/output schemas (including taxonomy mappings) without
running the component.

Typical entry point::

    def main() -> None:
        code = handle_schema_flag(CONTRACT)
        if code is not None:
            sys.exit(code)
        ...  # normal mode
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

from pydantic import BaseModel, Field

from taxograph.schema.model import SchemaNode
from taxograph.taxonomy.definitions import check_taxonomy

logger = logging.getLogger(__name__)

SCHEMA_FLAG = "--schema"


class SchemaContract(BaseModel):
    """Identity and schemas a component exposes in introspection mode."""

    name: str
    version: str = "0.0.0"
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    input_schema: SchemaNode | None = None
    output_schema: SchemaNode | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def output_schema(
    contract: SchemaContract,
    stream: TextIO | None = None,
    error_stream: TextIO | None = None,
) -> int:
    """Write ``contract`` as an indented JSON document.

    Taxonomy mappings on both schemas are checked first. On failure nothing
    is written to ``stream``; one ``ERROR:`` line goes to ``error_stream``.

    Returns:
        Process exit code: 0 on success, 1 on failure.
    """
    out = stream if stream is not None else sys.stdout
    err = error_stream if error_stream is not None else sys.stderr
    try:
        for schema in (contract.input_schema, contract.output_schema):
            if schema is not None:
                check_taxonomy(schema)
        document = json.dumps(contract.to_dict(), indent=2)
    except (ValueError, TypeError) as exc:
        logger.debug("Schema introspection failed for %s", contract.name, exc_info=True)
        err.write(f"ERROR: {exc}\n")
        return 1
    out.write(document)
    out.write("\n")
    out.flush()
    return 0


def handle_schema_flag(contract: SchemaContract, argv: list[str] | None = None) -> int | None:
    """Run introspection mode if ``--schema`` is the first argument.

    Returns:
        The exit code when introspection ran, otherwise None.
    """
    args = sys.argv[1:] if argv is None else argv
    if not args or args[0] != SCHEMA_FLAG:
        return None
    return output_schema(contract)
