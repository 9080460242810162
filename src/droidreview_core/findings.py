"""Finding normalization, deduplication and cross-file linking."""

from __future__ import annotations

import hashlib
import re
from collections import defaultdict
from collections.abc import Iterable

import structlog

from droidreview_core.config import ReviewConfig, should_ignore_finding
from droidreview_core.errors import NotFoundError
from droidreview_core.models import (
    Diagnostic,
    DiagnosticKind,
    Evidence,
    Finding,
    Location,
    LogicalRole,
    RawMatch,
    SourceUnit,
)
from droidreview_core.rules.models import Rule

logger = structlog.get_logger()

ID_HASH_LENGTH = 10

COMPANION_ROLES = (LogicalRole.REPOSITORY, LogicalRole.USECASE)
_COMPANION_SUFFIXES = ("Repository", "UseCase", "Interactor")


def finding_id(rule_id: str, path: str, first: RawMatch) -> str:
    """Stable finding id derived from rule, location and captured content."""
    key = f"{rule_id}|{path}|{first.line_start}-{first.line_end}|{first.captured_text}"
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:ID_HASH_LENGTH]
    return f"{rule_id}-{digest}"


def group_matches(matches: Iterable[RawMatch]) -> list[list[RawMatch]]:
    """Group raw matches of one rule in one file into overlap chains.

    Matches are merged while their line ranges share at least one line with
    the range accumulated so far.
    """
    ordered = sorted(matches, key=lambda m: (m.line_start, m.line_end, m.captured_text))
    groups: list[list[RawMatch]] = []
    group_end = 0
    for match in ordered:
        if groups and match.line_start <= group_end:
            groups[-1].append(match)
            group_end = max(group_end, match.line_end)
        else:
            groups.append([match])
            group_end = match.line_end
    return groups


class Deduplicator:
    """Turns raw matches into normalized findings.

    Example:
        >>> dedup = Deduplicator(catalog.list_rules())
        >>> findings = dedup.normalize(engine_result.matches)
    """

    def __init__(self, rules: Iterable[Rule]) -> None:
        self._rules = {rule.id: rule for rule in rules}

    def normalize(self, raw_matches: Iterable[RawMatch]) -> list[Finding]:
        """Collapse overlapping matches and build findings.

        Output is ordered by (path, first line, rule id) and does not depend
        on the order of ``raw_matches``.

        Raises:
            NotFoundError: if a match refers to a rule this deduplicator
                does not know
        """
        by_key: dict[tuple[str, str], list[RawMatch]] = defaultdict(list)
        for match in raw_matches:
            by_key[(match.rule_id, match.path)].append(match)

        findings = []
        for (rule_id, path), matches in sorted(by_key.items()):
            rule = self._rules.get(rule_id)
            if rule is None:
                raise NotFoundError(rule_id)
            for group in group_matches(matches):
                findings.append(self._build(rule, path, group))

        findings.sort(key=lambda f: (
            f.primary_location.path,
            f.primary_location.line_start,
            f.rule_id,
            f.id,
        ))
        return findings

    def _build(self, rule: Rule, path: str, group: list[RawMatch]) -> Finding:
        first = group[0]
        locations = []
        evidence = []
        seen = set()
        for match in group:
            span = (match.line_start, match.line_end)
            if span in seen:
                continue
            seen.add(span)
            locations.append(Location(path=path, line_start=match.line_start, line_end=match.line_end))
            evidence.append(Evidence(
                path=path,
                line_start=match.line_start,
                line_end=match.line_end,
                snippet_start=match.context_start,
                snippet=match.context_snippet,
                captured=match.captured_text,
            ))

        return Finding(
            id=finding_id(rule.id, path, first),
            rule_id=rule.id,
            title=rule.title,
            category=rule.category,
            default_severity=rule.default_severity,
            severity=rule.default_severity,
            locations=locations,
            evidence=evidence,
            rationale=rule.render_rationale(first.captured_text),
            fix_suggestion=rule.render_fix(first.captured_text),
            tags=list(rule.tags),
        )


def normalize(raw_matches: Iterable[RawMatch], rules: Iterable[Rule]) -> list[Finding]:
    """Normalize raw matches with a one-off Deduplicator."""
    return Deduplicator(rules).normalize(raw_matches)


def apply_ignore_rules(findings: list[Finding], config: ReviewConfig) -> list[Finding]:
    """Drop findings covered by the configuration's ignore rules."""
    if not config.ignore_rules:
        return findings

    kept = []
    for finding in findings:
        ignored, reason = should_ignore_finding(
            config, finding.primary_location.path, finding.category.value
        )
        if ignored:
            logger.debug("Finding ignored", finding_id=finding.id, reason=reason)
            continue
        kept.append(finding)
    return kept


# ============================================================================
# Cross-file linking
# ============================================================================


def _base_name(stem: str) -> str:
    stem = stem.removesuffix("Impl")
    for suffix in ("ViewModel", *_COMPANION_SUFFIXES):
        if stem.endswith(suffix) and stem != suffix:
            return stem.removesuffix(suffix)
    return stem


def _mentions(text: str, names: Iterable[str]) -> bool:
    return any(re.search(rf"\b{re.escape(name)}\b", text) for name in names)


def _companion_paths(
    viewmodel: SourceUnit,
    finding: Finding,
    companions: list[SourceUnit],
) -> set[str]:
    """Companion units a ViewModel finding should be linked with.

    A companion qualifies when the finding's evidence names it directly, or
    when it is the only unit of its role sharing the ViewModel's base name.
    Uniqueness is counted separately for each companion role.
    """
    text = "\n".join(e.snippet for e in finding.evidence)
    linked = {
        unit.path
        for unit in companions
        if _mentions(text, (unit.stem, *unit.declared_names))
    }

    base = _base_name(viewmodel.stem)
    for role in COMPANION_ROLES:
        by_name = [
            unit for unit in companions
            if unit.role == role and _base_name(unit.stem) == base
        ]
        if len(by_name) == 1:
            linked.add(by_name[0].path)
    return linked


def link_related(
    findings: list[Finding],
    units: Iterable[SourceUnit],
) -> tuple[list[Finding], list[Diagnostic]]:
    """Link ViewModel findings with findings in their Repository/UseCase units.

    Relations are collected as an adjacency mapping of finding ids and made
    symmetric before being written back as sorted id lists. Linking is best
    effort: failures are logged and returned as diagnostics.

    Returns:
        (findings with related ids, diagnostics)
    """
    units_by_path = {unit.path: unit for unit in units}
    by_path: dict[str, list[Finding]] = defaultdict(list)
    for finding in findings:
        by_path[finding.primary_location.path].append(finding)

    companions = [
        unit
        for _, unit in sorted(units_by_path.items())
        if unit.role in COMPANION_ROLES and unit.is_scannable
    ]

    edges: dict[str, set[str]] = defaultdict(set)
    diagnostics: list[Diagnostic] = []

    for path in sorted(by_path):
        unit = units_by_path.get(path)
        if unit is None or unit.role != LogicalRole.VIEWMODEL or not companions:
            continue
        try:
            for finding in by_path[path]:
                for companion_path in sorted(_companion_paths(unit, finding, companions)):
                    for other in by_path.get(companion_path, ()):
                        if other.id == finding.id:
                            continue
                        edges[finding.id].add(other.id)
                        edges[other.id].add(finding.id)
        except Exception as e:
            logger.warning("Finding linking failed", path=path, error=str(e))
            diagnostics.append(Diagnostic(
                kind=DiagnosticKind.LINK_FAILED,
                message=f"Could not link findings for {path}: {e}",
                path=path,
            ))

    linked = []
    for finding in findings:
        related = edges.get(finding.id)
        if related:
            ids = sorted(set(finding.related_finding_ids) | related)
            finding = finding.model_copy(update={"related_finding_ids": ids})
        linked.append(finding)

    logger.debug("Findings linked", edges=sum(len(v) for v in edges.values()) // 2)
    return linked, diagnostics
