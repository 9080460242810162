"""Models and data types for rule definitions.

A rule is data: metadata plus a pure matching function. New checks are
added by appending rules to a catalog, never by changing the engine.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from droidreview_core.models import LogicalRole, RawMatch, RuleCategory, SourceUnit
from droidreview_core.severity import Severity

if TYPE_CHECKING:
    from droidreview_core.roles import RoleIndex

POSITIVE_TAG = "positive"


@dataclass(frozen=True)
class Span:
    """A matcher hit: 1-based inclusive line range plus the matched text."""

    line_start: int
    line_end: int
    captured: str


Matcher = Callable[[SourceUnit, "RoleIndex"], Iterable[Span]]


@dataclass(frozen=True)
class Rule:
    """An immutable detection rule."""

    id: str
    title: str
    category: RuleCategory
    default_severity: Severity
    matcher: Matcher
    rationale: str
    fix_template: str = ""
    tags: tuple[str, ...] = ()
    roles: tuple[LogicalRole, ...] = ()  # Empty = all roles

    @property
    def is_positive(self) -> bool:
        return POSITIVE_TAG in self.tags

    def applies_to(self, unit: SourceUnit) -> bool:
        return not self.roles or unit.role in self.roles

    def evaluate(
        self,
        unit: SourceUnit,
        index: "RoleIndex",
        context_lines: int = 2,
    ) -> list[RawMatch]:
        """Run the matcher on one unit.

        Returns:
            Raw matches ordered by first occurrence in the file
        """
        if not self.applies_to(unit):
            return []

        spans = sorted(
            set(self.matcher(unit, index)),
            key=lambda s: (s.line_start, s.line_end, s.captured),
        )
        matches = []
        for span in spans:
            context_start, snippet = unit.line_index.snippet(
                span.line_start, span.line_end, context_lines
            )
            matches.append(
                RawMatch(
                    rule_id=self.id,
                    path=unit.path,
                    line_start=span.line_start,
                    line_end=span.line_end,
                    captured_text=span.captured,
                    context_start=context_start,
                    context_snippet=snippet,
                )
            )
        return matches

    def render_rationale(self, captured: str) -> str:
        return self.rationale.replace("{captured}", captured)

    def render_fix(self, captured: str) -> str:
        return self.fix_template.replace("{captured}", captured)
