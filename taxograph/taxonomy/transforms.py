"""Named pure transforms applied to mapped property values."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from taxograph.schema.values import is_scalar

Transform = Callable[[Any], Any]


def _string_only(fn: Callable[[str], str]) -> Transform:
    def apply(value: Any) -> Any:
        return fn(value) if isinstance(value, str) else value

    apply.__name__ = fn.__name__
    return apply


def _to_string(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_scalar(value):
        return str(value)
    return value


BUILTIN_TRANSFORMS: Mapping[str, Transform] = MappingProxyType(
    {
        "lowercase": _string_only(str.lower),
        "uppercase": _string_only(str.upper),
        "trim": _string_only(str.strip),
        "title": _string_only(str.title),
        "string": _to_string,
    }
)


def get_transform(name: str, transforms: Mapping[str, Transform] | None = None) -> Transform | None:
    """Look up a transform by name, or None if it is not registered."""
    return (transforms if transforms is not None else BUILTIN_TRANSFORMS).get(name)
