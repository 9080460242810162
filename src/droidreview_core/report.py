"""Report synthesis.

Renderers are pure functions of a ReviewRun: they never sort, classify or
filter findings beyond splitting them by severity tier. A run that breaks
the finding invariants is rejected with ReportRenderError before anything
is produced.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog

from droidreview_core import __version__
from droidreview_core.classifier import presentation_key
from droidreview_core.errors import ReportRenderError
from droidreview_core.models import CATEGORY_LABELS, Evidence, Finding, Location, Verdict
from droidreview_core.severity import (
    SEVERITY_TIERS,
    Severity,
    get_severity_emoji,
    get_severity_label,
)

if TYPE_CHECKING:
    from droidreview_core.pipeline import ReviewRun

logger = structlog.get_logger()

SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"

VERDICT_EMOJI = {
    Verdict.APPROVE: "✅",
    Verdict.NEEDS_WORK: "🟠",
    Verdict.MAJOR_ISSUES: "🔴",
}

ISSUE_TIERS = (Severity.CRITICAL, Severity.MAJOR, Severity.MINOR)


def format_location(location: Location) -> str:
    if location.line_start == location.line_end:
        return f"{location.path}:{location.line_start}"
    return f"{location.path}:{location.line_start}-{location.line_end}"


def _sarif_level(severity: Severity) -> str:
    """Convert severity to SARIF level."""
    return {
        Severity.CRITICAL: "error",
        Severity.MAJOR: "error",
        Severity.MINOR: "warning",
    }.get(severity, "note")


class ReportSynthesizer:
    """Render a ReviewRun as Markdown, JSON or SARIF.

    Example:
        >>> synthesizer = ReportSynthesizer()
        >>> markdown = synthesizer.render(run)
    """

    def __init__(self, title: str = "Code Review Report") -> None:
        self.title = title

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, run: "ReviewRun") -> None:
        """Check the invariants every renderer relies on.

        Raises:
            ReportRenderError: if findings have duplicate ids, empty
                locations, unknown severities, asymmetric or self links, or
                are not in presentation order
        """
        ids = [f.id for f in run.findings]
        if len(set(ids)) != len(ids):
            raise ReportRenderError("Duplicate finding ids in review run")

        related = {f.id: set(f.related_finding_ids) for f in run.findings}
        for finding in run.findings:
            if not finding.locations:
                raise ReportRenderError(f"Finding {finding.id} has no locations")
            if finding.severity not in SEVERITY_TIERS:
                raise ReportRenderError(f"Finding {finding.id} has invalid severity")
            for other_id in related[finding.id]:
                if other_id == finding.id:
                    raise ReportRenderError(f"Finding {finding.id} is related to itself")
                if finding.id not in related.get(other_id, ()):
                    raise ReportRenderError(
                        f"Relation {finding.id} -> {other_id} is not symmetric"
                    )

        keys = [presentation_key(f) for f in run.findings]
        if any(a >= b for a, b in zip(keys, keys[1:])):
            raise ReportRenderError("Findings are not in presentation order")

    # ------------------------------------------------------------------
    # Markdown
    # ------------------------------------------------------------------

    def render(self, run: "ReviewRun") -> str:
        """Render the Markdown report.

        Raises:
            ReportRenderError: if the run is invalid or rendering fails
        """
        self.validate(run)
        try:
            lines = [
                *self._header(run),
                *self._summary(run),
                *self._diagnostics(run),
            ]
            for severity in ISSUE_TIERS:
                lines.extend(self._tier_section(run, severity))
            lines.extend(self._good_practices(run))
            lines.extend(self._action_items(run))
        except Exception as e:
            logger.error("Report rendering failed", error=str(e))
            raise ReportRenderError(f"Markdown rendering failed: {e}") from e
        return "\n".join(lines).rstrip() + "\n"

    def _header(self, run: "ReviewRun") -> list[str]:
        verdict = run.verdict
        return [
            f"# {self.title}",
            "",
            f"**Verdict:** {VERDICT_EMOJI[verdict]} {verdict.value}",
            "",
            f"Reviewed {len(run.units)} file(s) with {len(run.rules_evaluated)} rule(s).",
            "",
        ]

    def _summary(self, run: "ReviewRun") -> list[str]:
        labels = [get_severity_label(s) for s in SEVERITY_TIERS]
        lines = [
            "## Summary",
            "",
            "| Category | " + " | ".join(labels) + " | Total |",
            "|---|" + "---:|" * (len(labels) + 1),
        ]
        for category, row in run.counts_by_category.items():
            cells = [str(row[s]) for s in SEVERITY_TIERS]
            lines.append(
                f"| {CATEGORY_LABELS[category]} | " + " | ".join(cells) + f" | {sum(row.values())} |"
            )

        totals = run.counts_by_severity
        cells = [f"**{totals[s]}**" for s in SEVERITY_TIERS]
        lines.append("| **Total** | " + " | ".join(cells) + f" | **{len(run.findings)}** |")
        lines.append("")

        lines.append("**Findings by severity:**")
        lines.append("")
        for severity in SEVERITY_TIERS:
            lines.append(
                f"- {get_severity_emoji(severity)} {get_severity_label(severity)}: {totals[severity]}"
            )
        lines.append("")
        return lines

    def _diagnostics(self, run: "ReviewRun") -> list[str]:
        if not run.diagnostics:
            return []
        lines = [f"### Diagnostics ({len(run.diagnostics)})", ""]
        for diagnostic in run.diagnostics:
            lines.append(f"- `{diagnostic.kind.value}`: {diagnostic.message}")
        lines.append("")
        return lines

    def _tier_section(self, run: "ReviewRun", severity: Severity) -> list[str]:
        findings = [f for f in run.findings if f.severity == severity]
        lines = [
            f"## {get_severity_emoji(severity)} {get_severity_label(severity)} ({len(findings)})",
            "",
        ]
        if not findings:
            lines.extend(["None.", ""])
            return lines
        for number, finding in enumerate(findings, start=1):
            lines.extend(self._finding(number, finding))
        return lines

    def _finding(self, number: int, finding: Finding) -> list[str]:
        primary, *others = finding.locations
        location = f"`{format_location(primary)}`"
        if others:
            location += " (also " + ", ".join(f"`{format_location(o)}`" for o in others) + ")"

        lines = [
            f"### {number}. {finding.title} (`{finding.rule_id}`)",
            "",
            f"**Location:** {location}  ",
            f"**Category:** {CATEGORY_LABELS[finding.category]}  ",
            f"**ID:** `{finding.id}`",
            "",
        ]
        for evidence in finding.evidence:
            lines.extend(self._evidence_block(evidence))
        lines.append(f"**Why:** {finding.rationale}")
        lines.append("")
        if finding.fix_suggestion:
            lines.append(f"**Suggested fix:** {finding.fix_suggestion}")
            lines.append("")
        if finding.related_finding_ids:
            related = ", ".join(f"`{i}`" for i in finding.related_finding_ids)
            lines.append(f"**Related:** {related}")
            lines.append("")
        return lines

    def _evidence_block(self, evidence: Evidence) -> list[str]:
        snippet_lines = evidence.snippet.split("\n")
        width = len(str(evidence.snippet_start + len(snippet_lines) - 1))
        lines = ["```kotlin"]
        for offset, text in enumerate(snippet_lines):
            number = evidence.snippet_start + offset
            marker = ">" if evidence.line_start <= number <= evidence.line_end else " "
            lines.append(f"{marker} {number:>{width}} | {text}".rstrip())
        lines.extend(["```", ""])
        return lines

    def _good_practices(self, run: "ReviewRun") -> list[str]:
        good = run.good_practices
        lines = [f"## {get_severity_emoji(Severity.GOOD)} Good Practices ({len(good)})", ""]
        if not good:
            lines.extend(["No good practices detected.", ""])
            return lines
        for finding in good:
            lines.append(
                f"- **{finding.title}** at `{format_location(finding.primary_location)}`: "
                f"{finding.rationale}"
            )
        lines.append("")
        return lines

    def _action_items(self, run: "ReviewRun") -> list[str]:
        items = run.action_items
        lines = ["## Action Items", ""]
        if not items:
            lines.extend(["No action items.", ""])
            return lines
        for number, finding in enumerate(items, start=1):
            action = finding.fix_suggestion or finding.title
            lines.append(
                f"{number}. [ ] {get_severity_emoji(finding.severity)} **{finding.title}** "
                f"`{format_location(finding.primary_location)}`: {action}"
            )
        lines.append("")
        return lines

    # ------------------------------------------------------------------
    # Machine formats
    # ------------------------------------------------------------------

    def render_json(self, run: "ReviewRun") -> str:
        """Render the run snapshot as JSON."""
        self.validate(run)
        try:
            return json.dumps(run.snapshot(), indent=2, ensure_ascii=False)
        except Exception as e:
            raise ReportRenderError(f"JSON rendering failed: {e}") from e

    def render_sarif(self, run: "ReviewRun") -> str:
        """Render action items as a SARIF 2.1.0 log for IDE integration."""
        self.validate(run)
        try:
            return json.dumps(self.to_sarif(run), indent=2, ensure_ascii=False)
        except Exception as e:
            raise ReportRenderError(f"SARIF rendering failed: {e}") from e

    def to_sarif(self, run: "ReviewRun") -> dict[str, Any]:
        items = run.action_items
        rules: dict[str, dict[str, Any]] = {}
        for finding in items:
            rules.setdefault(finding.rule_id, {
                "id": finding.rule_id,
                "name": finding.title,
                "properties": {"category": finding.category.value, "tags": finding.tags},
            })

        return {
            "$schema": SARIF_SCHEMA,
            "version": "2.1.0",
            "runs": [{
                "tool": {
                    "driver": {
                        "name": "droidreview",
                        "version": __version__,
                        "rules": list(rules.values()),
                    }
                },
                "results": [
                    {
                        "ruleId": finding.rule_id,
                        "level": _sarif_level(finding.severity),
                        "message": {"text": finding.rationale},
                        "partialFingerprints": {"droidreviewFindingId": finding.id},
                        "locations": [
                            {
                                "physicalLocation": {
                                    "artifactLocation": {"uri": loc.path},
                                    "region": {
                                        "startLine": loc.line_start,
                                        "endLine": loc.line_end,
                                    },
                                }
                            }
                            for loc in finding.locations
                        ],
                    }
                    for finding in items
                ],
            }],
        }
