"""Rule catalog - Declarative detection rules for Kotlin/Android code.

This package holds everything a rule is made of: the Rule record, the
matcher factories rules are assembled from, a fluent builder and the
immutable catalog.

Modules:
    models: Rule, Span and the Matcher protocol
    matchers: Matcher factories over comment/string-stripped source
    builder: Fluent builder interface for constructing rules
    builtin: The built-in rule set
    catalog: RuleCatalog and build_default_catalog

Example:
    >>> from droidreview_core.rules import RuleBuilder, RuleCatalog
    >>>
    >>> rule = (RuleBuilder()
    ...     .id("concurrency-thread-sleep")
    ...     .title("Thread.sleep blocks a thread")
    ...     .category("concurrency")
    ...     .severity("minor")
    ...     .pattern(r"\\bThread\\s*\\.\\s*sleep\\s*\\(")
    ...     .rationale("`{captured}` parks a whole thread")
    ...     .build())
    >>> catalog = RuleCatalog([rule])
"""

# Models
from droidreview_core.rules.models import POSITIVE_TAG, Matcher, Rule, Span

# Matchers
from droidreview_core.rules import matchers

# Builder
from droidreview_core.rules.builder import RuleBuilder

# Catalog
from droidreview_core.rules.catalog import RuleCatalog, build_default_catalog

__all__ = [
    "POSITIVE_TAG",
    "Matcher",
    "Rule",
    "Span",
    "matchers",
    "RuleBuilder",
    "RuleCatalog",
    "build_default_catalog",
]
