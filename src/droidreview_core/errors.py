"""Error taxonomy for review runs.

Per-rule and per-unit errors are recovered by the engine and turned into
diagnostics; configuration-level errors propagate to the caller.
"""

from __future__ import annotations


class ReviewError(Exception):
    """Base class for all review engine errors."""


class RuleEvaluationError(ReviewError):
    """A single rule's matcher failed on a source unit."""

    def __init__(self, rule_id: str, path: str, reason: str) -> None:
        self.rule_id = rule_id
        self.path = path
        self.reason = reason
        super().__init__(f"Rule '{rule_id}' failed on {path}: {reason}")


class MalformedSourceUnit(ReviewError):
    """A source unit cannot be scanned (undecodable or empty content)."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot scan {path}: {reason}")


class NotFoundError(ReviewError, LookupError):
    """A requested rule id does not exist in the catalog."""

    def __init__(self, rule_id: str) -> None:
        self.rule_id = rule_id
        super().__init__(f"Unknown rule id: {rule_id}")


class EmptyCorpusError(ReviewError):
    """No source units were provided to a review run."""


class ReportRenderError(ReviewError):
    """The report synthesizer could not produce a document."""


class ConfigError(ReviewError, ValueError):
    """Invalid configuration file or value."""
