"""Core data models for droidreview."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from pathlib import PurePosixPath

from pydantic import BaseModel, Field, model_validator

from droidreview_core.errors import MalformedSourceUnit
from droidreview_core.lexing import LineIndex, strip_comments_and_strings
from droidreview_core.severity import Severity


# ============================================================================
# Enums
# ============================================================================


class RuleCategory(str, Enum):
    """Anti-pattern family a rule belongs to."""

    ARCHITECTURE = "architecture"
    KOTLIN_IDIOM = "kotlin_idiom"
    CONCURRENCY = "concurrency"
    LIFECYCLE = "lifecycle"
    UI_FRAMEWORK = "ui_framework"
    TESTING = "testing"
    SECURITY = "security"


# Fixed presentation order of categories in reports and action lists
CATEGORY_ORDER: tuple[RuleCategory, ...] = (
    RuleCategory.ARCHITECTURE,
    RuleCategory.CONCURRENCY,
    RuleCategory.LIFECYCLE,
    RuleCategory.SECURITY,
    RuleCategory.UI_FRAMEWORK,
    RuleCategory.KOTLIN_IDIOM,
    RuleCategory.TESTING,
)

CATEGORY_LABELS: dict[RuleCategory, str] = {
    RuleCategory.ARCHITECTURE: "Architecture",
    RuleCategory.KOTLIN_IDIOM: "Kotlin Idioms",
    RuleCategory.CONCURRENCY: "Concurrency",
    RuleCategory.LIFECYCLE: "Lifecycle",
    RuleCategory.UI_FRAMEWORK: "UI Framework",
    RuleCategory.TESTING: "Testing",
    RuleCategory.SECURITY: "Security",
}


def category_rank(category: RuleCategory) -> int:
    return CATEGORY_ORDER.index(category)


class LogicalRole(str, Enum):
    """Inferred role of a source unit."""

    VIEWMODEL = "viewmodel"
    REPOSITORY = "repository"
    USECASE = "usecase"
    UI_COMPONENT = "ui_component"
    TEST = "test"
    ENTRY_POINT = "entry_point"
    OTHER = "other"


class FindingStatus(str, Enum):
    """Lifecycle status of a finding. Runs never persist findings."""

    NEW = "new"


class Verdict(str, Enum):
    """Aggregate outcome of a review run."""

    APPROVE = "APPROVE"
    NEEDS_WORK = "NEEDS WORK"
    MAJOR_ISSUES = "MAJOR ISSUES"


class DiagnosticKind(str, Enum):
    """Kind of recoverable problem met during a run."""

    RULE_EVALUATION_ERROR = "rule_evaluation_error"
    MALFORMED_SOURCE_UNIT = "malformed_source_unit"
    CORPUS_BOUND_EXCEEDED = "corpus_bound_exceeded"
    LINK_FAILED = "link_failed"


# ============================================================================
# Source units and raw matches
# ============================================================================

_DECLARATION_RE = re.compile(r"\b(?:class|interface|object)\s+([A-Z]\w*)")


@dataclass(frozen=True)
class SourceUnit:
    """A single file's content plus its path and logical role.

    ``content`` may be raw bytes when the collector could not decode the
    file; decoding is attempted lazily and failures surface as
    MalformedSourceUnit when the unit is scanned.
    """

    path: str
    content: str | bytes
    role: LogicalRole | None = None

    @cached_property
    def text(self) -> str:
        content = self.content
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedSourceUnit(self.path, f"undecodable content ({e.reason})") from e
        if "\x00" in content:
            raise MalformedSourceUnit(self.path, "binary content")
        if not content.strip():
            raise MalformedSourceUnit(self.path, "empty content")
        return content

    @cached_property
    def stripped(self) -> str:
        """Text with comments and string contents blanked out."""
        return strip_comments_and_strings(self.text)

    @cached_property
    def line_index(self) -> LineIndex:
        return LineIndex(self.text)

    @cached_property
    def stripped_index(self) -> LineIndex:
        return LineIndex(self.stripped)

    @cached_property
    def declared_names(self) -> tuple[str, ...]:
        """Class, interface and object names declared in the unit."""
        return tuple(dict.fromkeys(_DECLARATION_RE.findall(self.stripped)))

    @property
    def stem(self) -> str:
        return PurePosixPath(self.path).stem

    @property
    def is_scannable(self) -> bool:
        try:
            self.text
        except MalformedSourceUnit:
            return False
        return True


@dataclass(frozen=True)
class RawMatch:
    """One matcher hit with its location and surrounding evidence."""

    rule_id: str
    path: str
    line_start: int
    line_end: int
    captured_text: str
    context_start: int
    context_snippet: str

    def overlaps(self, other: "RawMatch") -> bool:
        return self.line_start <= other.line_end and other.line_start <= self.line_end


# ============================================================================
# Findings
# ============================================================================


class Location(BaseModel):
    """Location of a finding in a file."""

    path: str
    line_start: int = Field(ge=1)
    line_end: int = Field(ge=1)


class Evidence(BaseModel):
    """Quoted code supporting a finding."""

    path: str
    line_start: int
    line_end: int
    snippet_start: int
    snippet: str
    captured: str


class Finding(BaseModel):
    """A normalized, reportable anti-pattern instance."""

    id: str
    rule_id: str
    title: str
    category: RuleCategory
    default_severity: Severity
    severity: Severity
    locations: list[Location] = Field(min_length=1)
    evidence: list[Evidence] = Field(default_factory=list)
    rationale: str
    fix_suggestion: str = ""
    related_finding_ids: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    status: FindingStatus = FindingStatus.NEW

    @model_validator(mode="after")
    def _check_relations(self) -> "Finding":
        if self.id in self.related_finding_ids:
            raise ValueError(f"Finding {self.id} cannot be related to itself")
        return self

    @property
    def primary_location(self) -> Location:
        return self.locations[0]


class Diagnostic(BaseModel):
    """A recoverable problem recorded during a run."""

    kind: DiagnosticKind
    message: str
    rule_id: str | None = None
    path: str | None = None
