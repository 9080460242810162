"""Matcher engine: runs rules over source units.

Each (rule, unit) evaluation is independent, so evaluations are spread over
a thread pool. Results are joined in unit-then-rule order, making the output
independent of scheduling.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import structlog

from droidreview_core.errors import MalformedSourceUnit, RuleEvaluationError
from droidreview_core.models import Diagnostic, DiagnosticKind, RawMatch, SourceUnit
from droidreview_core.roles import RoleIndex
from droidreview_core.rules.models import Rule

logger = structlog.get_logger()


@dataclass
class EngineResult:
    """Raw matches plus everything recovered along the way."""

    matches: list[RawMatch] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    evaluated_units: list[SourceUnit] = field(default_factory=list)
    evaluations: int = 0


class MatcherEngine:
    """Evaluate rules against a corpus with per-rule failure isolation.

    Args:
        max_workers: Thread pool size; 1 or less evaluates inline
        max_evaluations: Upper bound on units x rules for one run
        context_lines: Lines of context quoted around each match
    """

    def __init__(
        self,
        max_workers: int = 4,
        max_evaluations: int = 50_000,
        context_lines: int = 2,
    ) -> None:
        if max_evaluations < 0 or context_lines < 0:
            raise ValueError("max_evaluations and context_lines must be non-negative")
        self.max_workers = max_workers
        self.max_evaluations = max_evaluations
        self.context_lines = context_lines

    def run(
        self,
        rules: Sequence[Rule],
        units: Iterable[SourceUnit],
        index: RoleIndex | None = None,
    ) -> EngineResult:
        """Run every rule over every scannable unit.

        Malformed units, units beyond the corpus bound and failing matchers
        become diagnostics; none of them stops the run.
        """
        rules = list(rules)
        result = EngineResult()

        scannable = []
        for unit in units:
            try:
                unit.text
            except MalformedSourceUnit as e:
                logger.warning("Skipping malformed source unit", path=unit.path, reason=e.reason)
                result.diagnostics.append(Diagnostic(
                    kind=DiagnosticKind.MALFORMED_SOURCE_UNIT,
                    message=str(e),
                    path=unit.path,
                ))
                continue
            scannable.append(unit)

        result.evaluated_units = self._apply_bound(scannable, rules, result)
        if index is None:
            index = RoleIndex(result.evaluated_units)

        tasks = [
            (unit, rule)
            for unit in result.evaluated_units
            for rule in rules
            if rule.applies_to(unit)
        ]
        result.evaluations = len(tasks)

        if self.max_workers <= 1 or len(tasks) <= 1:
            outcomes = [self._evaluate(rule, unit, index) for unit, rule in tasks]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self._evaluate, rule, unit, index)
                    for unit, rule in tasks
                ]
                outcomes = [future.result() for future in futures]

        for matches, diagnostic in outcomes:
            result.matches.extend(matches)
            if diagnostic is not None:
                result.diagnostics.append(diagnostic)

        logger.debug(
            "Matcher engine finished",
            units=len(result.evaluated_units),
            evaluations=result.evaluations,
            matches=len(result.matches),
        )
        return result

    def _apply_bound(
        self,
        units: list[SourceUnit],
        rules: list[Rule],
        result: EngineResult,
    ) -> list[SourceUnit]:
        if not rules or len(units) * len(rules) <= self.max_evaluations:
            return units

        keep = self.max_evaluations // len(rules)
        skipped = len(units) - keep
        message = (
            f"Corpus of {len(units)} units x {len(rules)} rules exceeds the bound of "
            f"{self.max_evaluations} evaluations; {skipped} unit(s) were not evaluated"
        )
        logger.warning("Corpus bound exceeded", units=len(units), rules=len(rules), skipped=skipped)
        result.diagnostics.append(Diagnostic(
            kind=DiagnosticKind.CORPUS_BOUND_EXCEEDED,
            message=message,
            path=units[keep].path,
        ))
        return units[:keep]

    def _evaluate(
        self,
        rule: Rule,
        unit: SourceUnit,
        index: RoleIndex,
    ) -> tuple[list[RawMatch], Diagnostic | None]:
        try:
            return rule.evaluate(unit, index, self.context_lines), None
        except Exception as e:
            error = RuleEvaluationError(rule.id, unit.path, f"{type(e).__name__}: {e}")
            logger.warning(
                "Rule evaluation failed",
                rule_id=rule.id,
                path=unit.path,
                reason=error.reason,
            )
            return [], Diagnostic(
                kind=DiagnosticKind.RULE_EVALUATION_ERROR,
                message=str(error),
                rule_id=rule.id,
                path=unit.path,
            )
