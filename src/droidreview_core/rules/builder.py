"""Fluent builder interface for creating rules.

This module provides RuleBuilder for constructing rules with a
clean, chainable API.
"""

from __future__ import annotations

from droidreview_core.models import LogicalRole, RuleCategory
from droidreview_core.rules import matchers
from droidreview_core.rules.models import POSITIVE_TAG, Matcher, Rule
from droidreview_core.severity import Severity, parse_severity


class RuleBuilder:
    """Builder class for creating rules with a fluent interface.

    Example:
        >>> rule = (RuleBuilder()
        ...     .id("concurrency-thread-sleep")
        ...     .title("Thread.sleep blocks a thread")
        ...     .category("concurrency")
        ...     .severity("minor")
        ...     .pattern(r"\\bThread\\s*\\.\\s*sleep\\s*\\(")
        ...     .rationale("Blocking sleeps stall the calling thread")
        ...     .fix("Use delay() inside a coroutine")
        ...     .build())
    """

    def __init__(self) -> None:
        """Initialize the builder with default values."""
        self._id = ""
        self._title = ""
        self._category: RuleCategory | None = None
        self._severity = Severity.MINOR
        self._matcher: Matcher | None = None
        self._rationale = ""
        self._fix_template = ""
        self._tags: list[str] = []
        self._roles: list[LogicalRole] = []

    def id(self, rule_id: str) -> "RuleBuilder":
        """Set the stable rule id (lowercase, hyphen separated)."""
        self._id = rule_id
        return self

    def title(self, title: str) -> "RuleBuilder":
        self._title = title
        return self

    def category(self, category: RuleCategory | str) -> "RuleBuilder":
        """Set the rule category.

        Args:
            category: RuleCategory enum or its string value
        """
        if isinstance(category, str):
            category = RuleCategory(category)
        self._category = category
        return self

    def severity(self, severity: Severity | str) -> "RuleBuilder":
        """Set the default severity.

        Args:
            severity: Severity enum or string
        """
        self._severity = parse_severity(severity)
        return self

    def matcher(self, matcher: Matcher) -> "RuleBuilder":
        """Set the matching function.

        Args:
            matcher: Pure function (unit, index) -> iterable of spans
        """
        self._matcher = matcher
        return self

    def pattern(self, regex: str, group: int = 0) -> "RuleBuilder":
        """Use a regex over stripped source as the matcher."""
        self._matcher = matchers.pattern(regex, group=group)
        return self

    def rationale(self, text: str) -> "RuleBuilder":
        """Explain why the pattern is harmful; may use {captured}."""
        self._rationale = text
        return self

    def fix(self, template: str) -> "RuleBuilder":
        """Suggested remediation; may use {captured}."""
        self._fix_template = template
        return self

    def with_tags(self, *tags: str) -> "RuleBuilder":
        self._tags = list(tags)
        return self

    def positive(self) -> "RuleBuilder":
        """Mark the rule as detecting a good practice."""
        self._severity = Severity.GOOD
        if POSITIVE_TAG not in self._tags:
            self._tags.append(POSITIVE_TAG)
        return self

    def for_roles(self, *roles: LogicalRole | str) -> "RuleBuilder":
        """Restrict the rule to units with the given logical roles."""
        self._roles = [LogicalRole(r) if isinstance(r, str) else r for r in roles]
        return self

    def build(self) -> Rule:
        """Build the rule.

        Raises:
            ValueError: if id, title, category, matcher or rationale is missing
        """
        missing = [
            name
            for name, value in (
                ("id", self._id),
                ("title", self._title),
                ("category", self._category),
                ("matcher", self._matcher),
                ("rationale", self._rationale),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Rule is missing required fields: {', '.join(missing)}")

        return Rule(
            id=self._id,
            title=self._title,
            category=self._category,
            default_severity=self._severity,
            matcher=self._matcher,
            rationale=self._rationale,
            fix_template=self._fix_template,
            tags=tuple(self._tags),
            roles=tuple(self._roles),
        )
