"""Relationship conditions.

A relationship mapping may carry a ``condition``; the edge is emitted only
when it evaluates to True. Evaluation sits behind the
:class:`ConditionEvaluator` protocol so deployments can plug in a richer
predicate language. The default :class:`ComparisonEvaluator` understands a
single comparison::

    severity == 'critical'
    _parent.port >= 1024
    not _context.dry_run
    {{.severity}} == 'critical'      # template-style operands are accepted

Operands are path expressions, quoted strings, numbers, ``true``, ``false``
or ``null``. A lone operand is a truthiness test. Any unresolved path makes
the whole condition unresolved (``None``), except in comparisons against
``null``.
"""

from __future__ import annotations

import functools
import operator
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from taxograph.schema.values import ValueKind, deep_equal, kind_of
from taxograph.taxonomy.errors import ConditionSyntaxError, PathSyntaxError
from taxograph.taxonomy.paths import EvaluationContext, PathExpression, parse_path


class ConditionEvaluator(Protocol):
    """Pluggable predicate evaluation for relationship conditions."""

    def check(self, expr: str) -> None:
        """Raise ConditionSyntaxError if ``expr`` is malformed."""
        ...

    def evaluate(self, expr: str, ctx: EvaluationContext) -> bool | None:
        """Evaluate ``expr``; None means it could not be resolved."""
        ...


_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<template>\{\{\s*(?P<template_path>[^}]*?)\s*\}\})
      | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<op>==|!=|<=|>=|<|>)
      | (?P<number>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?(?![\w.]))
      | (?P<word>[A-Za-z_][\w]*(?:\.\w+)*)
    )
    """,
    re.VERBOSE,
)

_KEYWORDS: dict[str, Any] = {"true": True, "false": False, "null": None}

_ORDERING: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class _Literal:
    value: Any


@dataclass(frozen=True)
class _Path:
    path: PathExpression


_Operand = _Literal | _Path


@dataclass(frozen=True)
class _Comparison:
    negate: bool
    left: _Operand
    op: str | None = None
    right: _Operand | None = None


def _tokenize(expr: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    text = expr.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise ConditionSyntaxError(expr, f"unexpected input at position {pos}")
        kind = match.lastgroup
        if kind == "template_path":
            kind = "template"
        tokens.append((kind or "", match.group(kind or 0)))
        pos = match.end()
    return tokens


def _unquote(literal: str) -> str:
    body = literal[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


def _operand(expr: str, kind: str, text: str) -> _Operand:
    try:
        if kind == "string":
            return _Literal(_unquote(text))
        if kind == "number":
            number = float(text)
            return _Literal(int(number) if re.fullmatch(r"-?\d+", text) else number)
        if kind == "template":
            inner = re.match(r"\{\{\s*(.*?)\s*\}\}", text)
            path_text = inner.group(1) if inner else ""
            return _Path(parse_path(path_text.removeprefix(".")))
        if kind == "word":
            if text in _KEYWORDS:
                return _Literal(_KEYWORDS[text])
            return _Path(parse_path(text))
    except PathSyntaxError as err:
        raise ConditionSyntaxError(expr, str(err)) from err
    raise ConditionSyntaxError(expr, f"expected an operand, got {text!r}")


@functools.lru_cache(maxsize=1024)
def parse_condition(expr: str) -> _Comparison:
    """Parse a condition into a comparison.

    Raises:
        ConditionSyntaxError: If the text is not a single comparison.
    """
    tokens = _tokenize(expr)
    if not tokens:
        raise ConditionSyntaxError(expr, "empty condition")

    negate = False
    if tokens[0] == ("word", "not"):
        negate = True
        tokens = tokens[1:]
        if not tokens:
            raise ConditionSyntaxError(expr, "'not' must be followed by an operand")

    left = _operand(expr, *tokens[0])
    if len(tokens) == 1:
        return _Comparison(negate=negate, left=left)
    if len(tokens) != 3 or tokens[1][0] != "op":
        raise ConditionSyntaxError(expr, "expected '<operand> <op> <operand>'")
    right = _operand(expr, *tokens[2])
    return _Comparison(negate=negate, left=left, op=tokens[1][1], right=right)


def _truthy(value: Any) -> bool:
    kind = kind_of(value)
    if kind in (ValueKind.ARRAY, ValueKind.OBJECT, ValueKind.STRING):
        return len(value) > 0
    return bool(value)


class ComparisonEvaluator:
    """Default evaluator: one optional ``not``, one comparison or truth test."""

    def check(self, expr: str) -> None:
        parse_condition(expr)

    def evaluate(self, expr: str, ctx: EvaluationContext) -> bool | None:
        comparison = parse_condition(expr)
        result = self._compare(comparison, ctx)
        if result is None:
            return None
        return not result if comparison.negate else result

    def _value(self, operand: _Operand, ctx: EvaluationContext) -> tuple[bool, Any]:
        if isinstance(operand, _Literal):
            return True, operand.value
        value = ctx.resolve(operand.path)
        return value is not None, value

    def _compare(self, comparison: _Comparison, ctx: EvaluationContext) -> bool | None:
        left_ok, left = self._value(comparison.left, ctx)

        if comparison.op is None or comparison.right is None:
            if not left_ok:
                return None
            try:
                return _truthy(left)
            except TypeError:
                return None

        right_ok, right = self._value(comparison.right, ctx)
        op = comparison.op

        if op in ("==", "!=") and (
            (isinstance(comparison.left, _Literal) and left is None)
            or (isinstance(comparison.right, _Literal) and right is None)
        ):
            both_null = left is None and right is None
            return both_null if op == "==" else not both_null

        if not (left_ok and right_ok):
            return None

        if op in ("==", "!="):
            try:
                equal = deep_equal(left, right)
            except TypeError:
                return None
            return equal if op == "==" else not equal

        try:
            left_kind, right_kind = kind_of(left), kind_of(right)
        except TypeError:
            return None
        numeric = (ValueKind.INTEGER, ValueKind.NUMBER)
        if (left_kind in numeric and right_kind in numeric) or (
            left_kind == ValueKind.STRING and right_kind == ValueKind.STRING
        ):
            return _ORDERING[op](left, right)
        return None


DEFAULT_EVALUATOR: ConditionEvaluator = ComparisonEvaluator()
