"""Deterministic node identity.

A node id is derived only from its node type and identifying property
values, so the same logical entity observed by separate tool invocations
always maps to the same id and the ingestion service can upsert instead of
duplicating.

Format: ``{node_type}:{base64url(sha256(canonical)[:12])}`` where the
canonical string is ``node_type:k1=v1|k2=v2`` with keys sorted.
"""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Mapping
from typing import Any

from taxograph.schema.values import ValueKind, is_scalar, kind_of

ID_DIGEST_BYTES = 12


def is_identity_value(value: Any) -> bool:
    """True for scalars usable as identity: non-null and not blank strings."""
    if not is_scalar(value):
        return False
    return not (isinstance(value, str) and not value.strip())


def normalize_identity_value(value: Any) -> str:
    """Canonical text for an identifying value.

    Strings are trimmed and lower-cased, booleans become ``true``/``false``,
    integral numbers print as integers (``80`` and ``80.0`` agree), other
    floats use six decimals.

    Raises:
        TypeError: If ``value`` is not a scalar.
    """
    kind = kind_of(value)
    if kind == ValueKind.STRING:
        return value.strip().lower()
    if kind == ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind == ValueKind.INTEGER:
        return str(value)
    if kind == ValueKind.NUMBER:
        return str(int(value)) if value.is_integer() else f"{value:.6f}"
    raise TypeError(f"Identifying values must be scalars, got {kind.value}")


def canonical_identity(node_type: str, identifying: Mapping[str, Any]) -> str:
    pairs = "|".join(f"{key}={normalize_identity_value(identifying[key])}" for key in sorted(identifying))
    return f"{node_type}:{pairs}"


def node_id(node_type: str, identifying: Mapping[str, Any]) -> str:
    """Compute the deterministic id of a node.

    Args:
        node_type: Graph label of the node.
        identifying: Identifying property name to resolved scalar value.

    Returns:
        The node id, e.g. ``host:3q2-7wEjRkSd1sVp``.
    """
    digest = hashlib.sha256(canonical_identity(node_type, identifying).encode("utf-8")).digest()
    encoded = base64.urlsafe_b64encode(digest[:ID_DIGEST_BYTES]).rstrip(b"=").decode("ascii")
    return f"{node_type}:{encoded}"
