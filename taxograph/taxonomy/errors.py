"""Errors raised for malformed taxonomy definitions.

Definition errors are authoring mistakes and surface when a schema is
registered, never as per-record compilation results.
"""

from __future__ import annotations

from collections.abc import Iterable

from taxograph.core.exceptions import TaxographError


class TaxonomyDefinitionError(TaxographError, ValueError):
    """Raised when one or more taxonomy mappings are malformed.

    Attributes:
        problems: Every problem found, each prefixed with its schema location.
    """

    def __init__(self, problems: Iterable[str] | str) -> None:
        self.problems = [problems] if isinstance(problems, str) else list(problems)
        if len(self.problems) == 1:
            msg = self.problems[0]
        else:
            msg = f"{len(self.problems)} taxonomy definition problems:\n" + "\n".join(
                f"  - {p}" for p in self.problems
            )
        super().__init__(msg)


class PathSyntaxError(TaxonomyDefinitionError):
    """Raised when a path expression cannot be parsed."""

    def __init__(self, expr: str, reason: str) -> None:
        self.expr = expr
        super().__init__(f"invalid path expression {expr!r}: {reason}")


class ConditionSyntaxError(TaxonomyDefinitionError):
    """Raised when a relationship condition cannot be parsed."""

    def __init__(self, expr: str, reason: str) -> None:
        self.expr = expr
        super().__init__(f"invalid condition {expr!r}: {reason}")
