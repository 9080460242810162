"""Severity utilities for consistent handling across the codebase.

This module provides centralized severity constants, parsing, comparison
and the contextual demotion/escalation steps used by the classifier.
"""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """Severity tier of a finding."""

    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    GOOD = "good"


# Severity ordering for comparison (higher number = more urgent)
SEVERITY_ORDER: dict[str, int] = {
    "good": 0,
    "minor": 1,
    "major": 2,
    "critical": 3,
}

# Emoji mapping for display purposes
SEVERITY_EMOJI: dict[str, str] = {
    "critical": "🔴",
    "major": "🟠",
    "minor": "🟡",
    "good": "🟢",
}

# Labels for UI display
SEVERITY_LABELS: dict[str, str] = {
    "critical": "Critical",
    "major": "Major",
    "minor": "Minor",
    "good": "Good",
}

# Report sections, most urgent first
SEVERITY_TIERS: tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.MAJOR,
    Severity.MINOR,
    Severity.GOOD,
)


def parse_severity(value: str | Severity) -> Severity:
    """Parse a severity value to the Severity enum.

    Accepts the common aliases used by other review tools so configuration
    files written for them keep working.

    Args:
        value: String or Severity value

    Returns:
        Severity enum value

    Raises:
        ValueError: if the value names no known severity

    Examples:
        >>> parse_severity("major")
        <Severity.MAJOR: 'major'>
        >>> parse_severity("high")  # alias
        <Severity.MAJOR: 'major'>
    """
    if isinstance(value, Severity):
        return value

    text = str(value).strip().lower()
    try:
        return Severity(text)
    except ValueError:
        aliases = {
            "blocker": Severity.CRITICAL,
            "high": Severity.MAJOR,
            "error": Severity.MAJOR,
            "medium": Severity.MINOR,
            "warning": Severity.MINOR,
            "low": Severity.MINOR,
            "positive": Severity.GOOD,
        }
        if text in aliases:
            return aliases[text]
        raise ValueError(f"Unknown severity: {value}") from None


def severity_rank(severity: str | Severity) -> int:
    """Numeric rank of a severity, higher is more urgent."""
    return SEVERITY_ORDER.get(_key(severity), 0)


def demote(severity: Severity) -> Severity:
    """Lower a severity by one tier.

    Minor is the floor for problems and Good findings are never moved.
    """
    if severity == Severity.CRITICAL:
        return Severity.MAJOR
    if severity == Severity.MAJOR:
        return Severity.MINOR
    return severity


def escalate(severity: Severity) -> Severity:
    """Raise Major to Critical; every other tier is unchanged."""
    if severity == Severity.MAJOR:
        return Severity.CRITICAL
    return severity


def is_blocking_severity(severity: str | Severity) -> bool:
    """Check if a severity level keeps a review from being approved."""
    return _key(severity) in ("critical", "major")


def get_severity_emoji(severity: str | Severity) -> str:
    return SEVERITY_EMOJI.get(_key(severity), "⚪")


def get_severity_label(severity: str | Severity) -> str:
    return SEVERITY_LABELS.get(_key(severity), "Unknown")


def _key(severity: str | Severity) -> str:
    if isinstance(severity, Severity):
        return severity.value
    return str(severity).lower()
