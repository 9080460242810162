"""The rule catalog: an immutable, ordered registry of rules."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from droidreview_core.errors import NotFoundError
from droidreview_core.models import RuleCategory
from droidreview_core.rules.builtin import builtin_rules
from droidreview_core.rules.models import Rule
from droidreview_core.severity import Severity


class RuleCatalog:
    """Ordered mapping from rule id to Rule.

    Construct one per process and pass it explicitly to whatever needs it.

    Example:
        >>> catalog = build_default_catalog()
        >>> catalog.get_rule("kotlin-non-null-assertion").category
        <RuleCategory.KOTLIN_IDIOM: 'kotlin_idiom'>
    """

    def __init__(self, rules: Iterable[Rule]) -> None:
        ordered: dict[str, Rule] = {}
        for rule in rules:
            if rule.id in ordered:
                raise ValueError(f"Duplicate rule id: {rule.id}")
            ordered[rule.id] = rule
        self._rules: Mapping[str, Rule] = MappingProxyType(ordered)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    @property
    def ids(self) -> list[str]:
        return list(self._rules)

    def list_rules(self, category: RuleCategory | str | None = None) -> list[Rule]:
        """Rules in catalog order, optionally limited to one category."""
        if category is None:
            return list(self._rules.values())
        category = RuleCategory(category)
        return [rule for rule in self._rules.values() if rule.category == category]

    def get_rule(self, rule_id: str) -> Rule:
        """Look up a rule by id.

        Raises:
            NotFoundError: if no rule has this id
        """
        try:
            return self._rules[rule_id]
        except KeyError:
            raise NotFoundError(rule_id) from None

    def select(
        self,
        disabled: Iterable[str] = (),
        severity_overrides: Mapping[str, Severity] | None = None,
    ) -> list[Rule]:
        """Rules for one run with configuration applied.

        Overridden rules are copies; the catalog itself is never changed.

        Raises:
            NotFoundError: if a disabled or overridden id is unknown
        """
        disabled_ids = set()
        for rule_id in disabled:
            self.get_rule(rule_id)
            disabled_ids.add(rule_id)

        overrides = dict(severity_overrides or {})
        for rule_id in overrides:
            self.get_rule(rule_id)

        selected = []
        for rule in self._rules.values():
            if rule.id in disabled_ids:
                continue
            if rule.id in overrides:
                rule = dataclasses.replace(rule, default_severity=overrides[rule.id])
            selected.append(rule)
        return selected


def build_default_catalog() -> RuleCatalog:
    """Catalog holding every built-in rule."""
    return RuleCatalog(builtin_rules())
