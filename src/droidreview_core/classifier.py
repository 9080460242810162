"""Severity classification and presentation ordering."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from droidreview_core.models import (
    Finding,
    LogicalRole,
    RuleCategory,
    SourceUnit,
    category_rank,
)
from droidreview_core.severity import Severity, demote, escalate, severity_rank

logger = structlog.get_logger()


def presentation_key(finding: Finding) -> tuple[int, int, str, int, str, str]:
    """Sort key: severity (most urgent first), category, path, line, rule, id.

    The trailing rule id and finding id make the order total.
    """
    location = finding.primary_location
    return (
        -severity_rank(finding.severity),
        category_rank(finding.category),
        location.path,
        location.line_start,
        finding.rule_id,
        finding.id,
    )


class SeverityClassifier:
    """Applies contextual severity modifiers and orders findings.

    Severity is always recomputed from the rule default, so classifying an
    already classified list changes nothing.

    Modifiers, in order:
        1. Test-context demotion: every location lies in a test unit.
        2. Entry-point escalation: a Security finding with at least one
           location in an entry-point unit goes from Major to Critical.
    """

    def classify(self, findings: Iterable[Finding], units: Iterable[SourceUnit]) -> list[Finding]:
        roles = {unit.path: unit.role for unit in units}

        classified = []
        for finding in findings:
            severity = self.severity_for(finding, roles)
            if severity != finding.severity:
                logger.debug(
                    "Severity adjusted",
                    finding_id=finding.id,
                    default=finding.default_severity.value,
                    severity=severity.value,
                )
                finding = finding.model_copy(update={"severity": severity})
            classified.append(finding)

        return sorted(classified, key=presentation_key)

    def severity_for(self, finding: Finding, roles: dict[str, LogicalRole | None]) -> Severity:
        severity = finding.default_severity
        location_roles = [roles.get(loc.path) for loc in finding.locations]

        if all(role == LogicalRole.TEST for role in location_roles):
            severity = demote(severity)

        if finding.category == RuleCategory.SECURITY and LogicalRole.ENTRY_POINT in location_roles:
            severity = escalate(severity)

        return severity


def classify(findings: Iterable[Finding], units: Iterable[SourceUnit]) -> list[Finding]:
    return SeverityClassifier().classify(findings, units)
