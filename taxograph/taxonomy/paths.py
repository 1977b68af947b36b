"""Path expressions and the evaluation context they resolve against.

Taxonomy mappings refer to data with small dotted expressions:

``field`` / ``field.nested``
    Looked up on the current (innermost) data frame.
``_parent.field`` / ``_parent._parent.field``
    Each ``_parent`` steps one object-nesting level outwards.
``_context.field``
    Looked up in the flat, call-scoped execution context map.
``_value`` / ``_value.field``
    The value currently being walked; lets a mapping on a scalar or array
    schema node refer to the data it matched.

Numeric segments index into arrays (``tags.0``). Resolution never raises on
data conditions: walking past the root frame, through a missing key or a
non-container, or landing on null yields ``None`` ("unresolved").

One frame is pushed per object-nesting level. Arrays do not push frames;
their elements are siblings that share the container's ancestry.
"""

from __future__ import annotations

import enum
import functools
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from taxograph.taxonomy.errors import PathSyntaxError

PARENT = "_parent"
CONTEXT = "_context"
VALUE = "_value"
_RESERVED = frozenset({PARENT, CONTEXT, VALUE})


class Scope(enum.StrEnum):
    """What a path expression starts from."""

    FRAME = "frame"
    CONTEXT = "context"
    VALUE = "value"


@dataclass(frozen=True)
class PathExpression:
    """A parsed path expression.

    Attributes:
        text: The original expression.
        scope: Where resolution starts.
        parent_hops: Number of ``_parent`` steps (frame scope only).
        segments: Field names (or array indices) walked from the start.
    """

    text: str
    scope: Scope
    parent_hops: int
    segments: tuple[str, ...]


@functools.lru_cache(maxsize=2048)
def parse_path(expr: str) -> PathExpression:
    """Parse a path expression.

    Raises:
        PathSyntaxError: If the expression is empty or malformed.
    """
    text = expr.strip()
    if not text:
        raise PathSyntaxError(expr, "empty expression")

    parts = [p.strip() for p in text.split(".")]
    if any(not p for p in parts):
        raise PathSyntaxError(expr, "empty segment")

    hops = 0
    while hops < len(parts) and parts[hops] == PARENT:
        hops += 1
    rest = parts[hops:]
    if not rest:
        raise PathSyntaxError(expr, f"'{PARENT}' must be followed by a field")

    head = rest[0]
    if head == CONTEXT:
        if hops:
            raise PathSyntaxError(expr, f"'{CONTEXT}' cannot follow '{PARENT}'")
        scope, segments = Scope.CONTEXT, rest[1:]
        if not segments:
            raise PathSyntaxError(expr, f"'{CONTEXT}' must be followed by a field")
    elif head == VALUE:
        if hops:
            raise PathSyntaxError(expr, f"'{VALUE}' cannot follow '{PARENT}'")
        scope, segments = Scope.VALUE, rest[1:]
    else:
        scope, segments = Scope.FRAME, rest

    for segment in segments:
        if segment in _RESERVED:
            raise PathSyntaxError(expr, f"'{segment}' may only appear at the start")

    return PathExpression(text=text, scope=scope, parent_hops=hops, segments=tuple(segments))


def resolve(
    expr: str | PathExpression,
    frames: tuple[Mapping[str, Any], ...] | list[Mapping[str, Any]],
    context: Mapping[str, Any] | None = None,
    value: Any = None,
) -> Any | None:
    """Resolve ``expr`` against a frame stack and execution context.

    Args:
        expr: Expression text or a parsed expression.
        frames: Ancestor objects, outermost first, current frame last.
        context: Call-scoped constants for ``_context.*``.
        value: The value currently being walked, for ``_value``.

    Returns:
        The resolved value, or None when unresolved.
    """
    path = parse_path(expr) if isinstance(expr, str) else expr

    if path.scope == Scope.CONTEXT:
        start: Any = context
    elif path.scope == Scope.VALUE:
        start = value
    else:
        index = len(frames) - 1 - path.parent_hops
        if index < 0:
            return None
        start = frames[index]

    return _walk(start, path.segments)


def _walk(start: Any, segments: tuple[str, ...]) -> Any | None:
    current = start
    for segment in segments:
        if isinstance(current, Mapping):
            if segment not in current:
                return None
            current = current[segment]
        elif isinstance(current, (list, tuple)) and segment.isascii() and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return None
            current = current[index]
        else:
            return None
    return current


@dataclass(frozen=True)
class EvaluationContext:
    """Runtime state for resolving path expressions during one call.

    Created fresh per compilation and never shared between calls. ``push``
    and ``at`` return new contexts; nothing is modified in place.
    """

    frames: tuple[Mapping[str, Any], ...] = ()
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    value: Any = None

    @classmethod
    def root(cls, context: Mapping[str, Any] | None = None) -> EvaluationContext:
        """Start a context with no frames and a read-only copy of ``context``."""
        return cls(context=MappingProxyType(dict(context or {})))

    @property
    def current(self) -> Mapping[str, Any] | None:
        return self.frames[-1] if self.frames else None

    def push(self, frame: Mapping[str, Any]) -> EvaluationContext:
        """Enter an object: it becomes the current frame and the walked value."""
        return replace(self, frames=(*self.frames, frame), value=frame)

    def at(self, value: Any) -> EvaluationContext:
        """Walk a non-object value without changing the frame stack."""
        return replace(self, value=value)

    def resolve(self, expr: str | PathExpression) -> Any | None:
        return resolve(expr, self.frames, self.context, self.value)
