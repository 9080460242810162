"""droidreview core - Rule engine, findings and reporting for Kotlin/Android review."""

__version__ = "0.1.0"

# Severity utilities
from droidreview_core.severity import (
    SEVERITY_EMOJI,
    SEVERITY_LABELS,
    SEVERITY_ORDER,
    SEVERITY_TIERS,
    Severity,
    demote,
    escalate,
    get_severity_emoji,
    get_severity_label,
    is_blocking_severity,
    parse_severity,
)

from droidreview_core.errors import (
    ConfigError,
    EmptyCorpusError,
    MalformedSourceUnit,
    NotFoundError,
    ReportRenderError,
    ReviewError,
    RuleEvaluationError,
)

from droidreview_core.models import (
    CATEGORY_LABELS,
    CATEGORY_ORDER,
    Diagnostic,
    DiagnosticKind,
    Evidence,
    Finding,
    FindingStatus,
    Location,
    LogicalRole,
    RawMatch,
    RuleCategory,
    SourceUnit,
    Verdict,
)

from droidreview_core.config import (
    EngineConfig,
    IgnoreRule,
    ReviewConfig,
    RuleSettings,
    load_config,
    parse_config,
    validate_config,
)

from droidreview_core.roles import RoleIndex, assign_roles, infer_role

from droidreview_core.rules import (
    Rule,
    RuleBuilder,
    RuleCatalog,
    Span,
    build_default_catalog,
)

from droidreview_core.engine import EngineResult, MatcherEngine
from droidreview_core.findings import Deduplicator, link_related, normalize
from droidreview_core.classifier import SeverityClassifier, presentation_key
from droidreview_core.pipeline import ReviewPipeline, ReviewRun, review
from droidreview_core.report import ReportSynthesizer

__all__ = [
    "__version__",
    # Severity
    "Severity",
    "SEVERITY_ORDER",
    "SEVERITY_EMOJI",
    "SEVERITY_LABELS",
    "SEVERITY_TIERS",
    "parse_severity",
    "demote",
    "escalate",
    "is_blocking_severity",
    "get_severity_emoji",
    "get_severity_label",
    # Errors
    "ReviewError",
    "RuleEvaluationError",
    "MalformedSourceUnit",
    "NotFoundError",
    "EmptyCorpusError",
    "ReportRenderError",
    "ConfigError",
    # Models
    "RuleCategory",
    "CATEGORY_ORDER",
    "CATEGORY_LABELS",
    "LogicalRole",
    "FindingStatus",
    "Verdict",
    "DiagnosticKind",
    "SourceUnit",
    "RawMatch",
    "Location",
    "Evidence",
    "Finding",
    "Diagnostic",
    # Configuration
    "ReviewConfig",
    "EngineConfig",
    "RuleSettings",
    "IgnoreRule",
    "parse_config",
    "load_config",
    "validate_config",
    # Roles
    "infer_role",
    "assign_roles",
    "RoleIndex",
    # Rules
    "Rule",
    "Span",
    "RuleBuilder",
    "RuleCatalog",
    "build_default_catalog",
    # Pipeline stages
    "MatcherEngine",
    "EngineResult",
    "Deduplicator",
    "normalize",
    "link_related",
    "SeverityClassifier",
    "presentation_key",
    "ReviewPipeline",
    "ReviewRun",
    "review",
    "ReportSynthesizer",
]
