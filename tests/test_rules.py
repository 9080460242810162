"""Tests for rule models, the builder, matchers and the catalog."""

import pytest

from droidreview_core.config import ReviewConfig
from droidreview_core.errors import NotFoundError
from droidreview_core.models import LogicalRole, RuleCategory, SourceUnit
from droidreview_core.roles import RoleIndex, assign_roles
from droidreview_core.rules import POSITIVE_TAG, RuleBuilder, RuleCatalog, Span, matchers
from droidreview_core.severity import Severity


def _rule(rule_id="test-rule", matcher=None, **kwargs):
    builder = (
        RuleBuilder()
        .id(rule_id)
        .title("Test rule")
        .category(kwargs.pop("category", RuleCategory.KOTLIN_IDIOM))
        .severity(kwargs.pop("severity", Severity.MINOR))
        .rationale("`{captured}` is suspicious")
        .fix("Replace `{captured}`")
    )
    if matcher is None:
        builder.pattern(r"\bTODO\b")
    else:
        builder.matcher(matcher)
    return builder.build()


def _spans(matcher, text, path="src/main/Foo.kt", role=None, others=()):
    units = assign_roles([SourceUnit(path, text, role), *others], ReviewConfig())
    return list(matcher(units[0], RoleIndex(units)))


class TestRuleBuilder:
    """Tests for RuleBuilder fluent interface."""

    def test_builder_chain(self):
        builder = RuleBuilder()
        assert builder.id("x").title("X").category("testing") is builder

    def test_build_rule(self):
        rule = _rule()
        assert rule.id == "test-rule"
        assert rule.category == RuleCategory.KOTLIN_IDIOM
        assert rule.default_severity == Severity.MINOR
        assert rule.fix_template == "Replace `{captured}`"
        assert not rule.is_positive

    def test_positive_rule(self):
        rule = (
            RuleBuilder()
            .id("good")
            .title("Good")
            .category("architecture")
            .positive()
            .pattern(r"sealed")
            .rationale("Nice")
            .build()
        )
        assert rule.default_severity == Severity.GOOD
        assert POSITIVE_TAG in rule.tags
        assert rule.is_positive

    def test_severity_string_and_alias(self):
        rule = RuleBuilder().id("a").title("A").category("security").severity("high") \
            .pattern("x").rationale("r").build()
        assert rule.default_severity == Severity.MAJOR

    def test_missing_fields(self):
        with pytest.raises(ValueError, match="missing required fields: .*matcher"):
            RuleBuilder().id("a").title("A").category("security").rationale("r").build()

    def test_invalid_category(self):
        with pytest.raises(ValueError):
            RuleBuilder().category("performance")

    def test_for_roles(self):
        rule = RuleBuilder().id("a").title("A").category("testing").pattern("x") \
            .rationale("r").for_roles("viewmodel", LogicalRole.TEST).build()
        assert rule.roles == (LogicalRole.VIEWMODEL, LogicalRole.TEST)


class TestRuleEvaluate:
    """Tests for Rule.evaluate."""

    def test_raw_matches_in_file_order(self):
        rule = _rule()
        unit = SourceUnit("src/main/Foo.kt", "val a = 1\n// TODO not code\nfun TODO() {}\nval TODO = 2\n")
        matches = rule.evaluate(unit, RoleIndex([unit]))
        assert [m.line_start for m in matches] == [3, 4]
        assert all(m.rule_id == "test-rule" and m.path == "src/main/Foo.kt" for m in matches)
        assert matches[0].captured_text == "TODO"

    def test_context_snippet(self):
        rule = _rule()
        text = "\n".join(f"line{i}" for i in range(1, 10)).replace("line5", "TODO")
        unit = SourceUnit("src/main/Foo.kt", text)
        match = rule.evaluate(unit, RoleIndex([unit]), context_lines=1)[0]
        assert match.context_start == 4
        assert match.context_snippet == "line4\nTODO\nline6"

    def test_duplicate_spans_collapse(self):
        rule = _rule(matcher=matchers.any_of(matchers.pattern("TODO"), matchers.pattern("TODO")))
        unit = SourceUnit("src/main/Foo.kt", "TODO")
        assert len(rule.evaluate(unit, RoleIndex([unit]))) == 1

    def test_role_restriction(self):
        rule = RuleBuilder().id("a").title("A").category("testing").pattern("TODO") \
            .rationale("r").for_roles(LogicalRole.TEST).build()
        unit = SourceUnit("src/main/Foo.kt", "TODO", LogicalRole.OTHER)
        assert rule.evaluate(unit, RoleIndex([unit])) == []

    def test_render_templates(self):
        rule = _rule()
        assert rule.render_rationale("x!!") == "`x!!` is suspicious"
        assert rule.render_fix("x!!") == "Replace `x!!`"


class TestMatchers:
    """Tests for matcher factories."""

    def test_pattern_ignores_comments_and_strings(self):
        text = 'val a = "GlobalScope"\n// GlobalScope\nGlobalScope.launch { }\n'
        spans = _spans(matchers.pattern(r"GlobalScope"), text)
        assert spans == [Span(3, 3, "GlobalScope")]

    def test_pattern_group(self):
        spans = _spans(matchers.pattern(r"class (\w+)", group=1), "class Foo")
        assert spans == [Span(1, 1, "Foo")]

    def test_line_pattern_unless(self):
        text = "import a.Foo as Bar\nval x = y as Bar\n"
        spans = _spans(matchers.line_pattern(r"\bas\s+\w+", unless=r"^\s*import\b"), text)
        assert spans == [Span(2, 2, "as Bar")]

    def test_absent_in_block(self):
        text = (
            "scope.launch {\n"
            "    flow.collect { }\n"
            "}\n"
            "scope.launch {\n"
            "    guard()\n"
            "    flow.collect { }\n"
            "}\n"
        )
        matcher = matchers.absent_in_block(r"launch", r"guard\(", only_if=r"collect")
        assert _spans(matcher, text) == [Span(1, 3, "launch")]

    def test_absent_in_block_only_if(self):
        matcher = matchers.absent_in_block(r"launch", r"guard\(", only_if=r"collect")
        assert _spans(matcher, "scope.launch {\n    work()\n}\n") == []

    def test_absent_in_unit(self):
        matcher = matchers.absent_in_unit(r"\bopen\(", r"\bclose\(")
        assert _spans(matcher, "open()\nopen()") == [Span(1, 1, "open("), Span(2, 2, "open(")]
        assert _spans(matcher, "open()\nclose()") == []

    def test_declared_in_block(self):
        text = (
            "val top: Context = a\n"
            "object Holder {\n"
            "    val ctx: Context = b\n"
            "}\n"
        )
        matcher = matchers.declared_in_block(r"\bobject\s+\w+", r"\bval\s+\w+\s*:\s*Context\b")
        assert _spans(matcher, text) == [Span(3, 3, "val ctx: Context")]

    def test_outside_block(self):
        text = "val a = make()\nkeep {\n    make()\n}\n"
        matcher = matchers.outside_block(r"\bmake\(", r"\bkeep\b")
        assert _spans(matcher, text) == [Span(1, 1, "make(")]

    def test_when_present(self):
        matcher = matchers.when_present(r"@Composable", matchers.pattern("x"))
        assert _spans(matcher, "val x = 1") == []
        assert len(_spans(matcher, "@Composable\nval x = 1")) == 1

    def test_missing_companion(self):
        matcher = matchers.missing_companion(
            LogicalRole.TEST,
            lambda stem: (f"{stem}Test",),
            r"\bclass\s+\w+",
        )
        text = "class FooViewModel : ViewModel()"
        path = "src/main/FooViewModel.kt"
        assert _spans(matcher, text, path=path) == [Span(1, 1, "class FooViewModel")]

        test_unit = SourceUnit("src/test/FooViewModelTest.kt", "class FooViewModelTest")
        assert _spans(matcher, text, path=path, others=[test_unit]) == []

    def test_capture_is_single_line_and_bounded(self):
        text = "call(\n    " + "a" * 300 + "\n)"
        spans = _spans(matchers.pattern(r"call\([^)]*\)"), text)
        assert spans[0].line_start == 1
        assert spans[0].line_end == 3
        assert "\n" not in spans[0].captured
        assert len(spans[0].captured) == matchers.MAX_CAPTURE


class TestRuleCatalog:
    """Tests for RuleCatalog."""

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate rule id"):
            RuleCatalog([_rule("a"), _rule("a")])

    def test_get_rule(self):
        catalog = RuleCatalog([_rule("a"), _rule("b")])
        assert catalog.get_rule("b").id == "b"
        assert "a" in catalog
        assert catalog.ids == ["a", "b"]

    def test_get_unknown_rule(self):
        catalog = RuleCatalog([_rule("a")])
        with pytest.raises(NotFoundError) as exc_info:
            catalog.get_rule("missing")
        assert exc_info.value.rule_id == "missing"
        assert isinstance(exc_info.value, LookupError)

    def test_list_rules_by_category(self):
        catalog = RuleCatalog([
            _rule("a", category=RuleCategory.SECURITY),
            _rule("b", category=RuleCategory.TESTING),
            _rule("c", category=RuleCategory.SECURITY),
        ])
        assert [r.id for r in catalog.list_rules("security")] == ["a", "c"]
        assert [r.id for r in catalog.list_rules()] == ["a", "b", "c"]

    def test_select_applies_config_without_mutating(self):
        catalog = RuleCatalog([_rule("a"), _rule("b")])
        selected = catalog.select(disabled=["a"], severity_overrides={"b": Severity.CRITICAL})
        assert [r.id for r in selected] == ["b"]
        assert selected[0].default_severity == Severity.CRITICAL
        assert catalog.get_rule("b").default_severity == Severity.MINOR

    def test_select_unknown_ids(self):
        catalog = RuleCatalog([_rule("a")])
        with pytest.raises(NotFoundError):
            catalog.select(disabled=["nope"])
        with pytest.raises(NotFoundError):
            catalog.select(severity_overrides={"nope": Severity.MAJOR})


class TestDefaultCatalog:
    """Tests for the built-in catalog."""

    def test_every_category_has_rules(self, catalog):
        for category in RuleCategory:
            assert catalog.list_rules(category), category

    def test_rule_metadata(self, catalog):
        for rule in catalog:
            assert rule.id == rule.id.lower()
            assert rule.title
            assert rule.rationale
            if rule.is_positive:
                assert rule.default_severity == Severity.GOOD
            else:
                assert rule.fix_template

    def test_expected_defaults(self, catalog):
        assert catalog.get_rule("kotlin-non-null-assertion").default_severity == Severity.MAJOR
        assert catalog.get_rule("lifecycle-context-leak").default_severity == Severity.CRITICAL
        assert catalog.get_rule("arch-sealed-ui-state").is_positive
        assert len(catalog) == 26

    def test_catalogs_are_independent(self, catalog):
        from droidreview_core.rules.catalog import build_default_catalog

        other = build_default_catalog()
        assert other.ids == catalog.ids
        assert other is not catalog
