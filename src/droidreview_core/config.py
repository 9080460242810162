"""Configuration file parser for .droidreview.yml files."""
from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Any

import structlog
import yaml

from droidreview_core.errors import ConfigError
from droidreview_core.severity import Severity, parse_severity

logger = structlog.get_logger()

CONFIG_NAMES = (".droidreview.yml", ".droidreview.yaml", "droidreview.yml")


@dataclass
class EngineConfig:
    """Settings for the matcher engine."""

    max_workers: int = 4
    max_evaluations: int = 50_000  # SourceUnits x Rules per run
    context_lines: int = 2


@dataclass
class RuleSettings:
    """Per-run rule selection."""

    disabled: list[str] = field(default_factory=list)
    severity: dict[str, Severity] = field(default_factory=dict)


@dataclass
class IgnoreRule:
    """A rule for ignoring findings."""

    pattern: str          # Glob pattern for file paths
    categories: list[str] | None = None  # Categories to ignore
    reason: str = ""      # Documentation


@dataclass
class ReviewConfig:
    """Complete droidreview configuration."""

    version: str = "1"

    # Seeds for role inference
    framework_hints: set[str] = field(default_factory=set)
    test_directories: set[str] = field(default_factory=lambda: {
        "src/test/",
        "src/androidTest/",
        "src/testDebug/",
    })

    # File patterns used by the collector
    include_patterns: list[str] = field(default_factory=lambda: ["**/*.kt", "**/*.kts"])
    exclude_patterns: list[str] = field(default_factory=lambda: [
        "**/build/**",
        "**/.gradle/**",
        "**/generated/**",
    ])

    rules: RuleSettings = field(default_factory=RuleSettings)
    ignore_rules: list[IgnoreRule] = field(default_factory=list)
    engine: EngineConfig = field(default_factory=EngineConfig)


def parse_config(content: str | dict[str, Any]) -> ReviewConfig:
    """Parse configuration from YAML string or dict."""
    if isinstance(content, str):
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
    else:
        data = content

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML object")

    config = ReviewConfig()

    config.version = str(data.get("version", "1"))

    if "framework_hints" in data:
        config.framework_hints = {str(h).strip().lower() for h in _ensure_list(data, "framework_hints")}
    if "test_directories" in data:
        config.test_directories = {str(d) for d in _ensure_list(data, "test_directories")}

    if "include" in data:
        config.include_patterns = [str(p) for p in _ensure_list(data, "include")]
    if "exclude" in data:
        config.exclude_patterns = [str(p) for p in _ensure_list(data, "exclude")]

    # Rule selection
    if "rules" in data:
        r = data["rules"] or {}
        if not isinstance(r, dict):
            raise ConfigError("'rules' must be an object")
        severity = r.get("severity") or {}
        if not isinstance(severity, dict):
            raise ConfigError("'rules.severity' must be an object")
        overrides: dict[str, Severity] = {}
        for rule_id, value in severity.items():
            try:
                overrides[str(rule_id)] = parse_severity(value)
            except ValueError as e:
                raise ConfigError(f"rules.severity.{rule_id}: {e}") from e
        config.rules = RuleSettings(
            disabled=[str(i) for i in _ensure_list(r, "disabled")],
            severity=overrides,
        )

    # Ignore rules
    if "ignore" in data:
        for rule in _ensure_list(data, "ignore"):
            if not isinstance(rule, dict):
                raise ConfigError("Each ignore entry must be an object")
            config.ignore_rules.append(IgnoreRule(
                pattern=rule.get("pattern", "**/*"),
                categories=rule.get("categories"),
                reason=rule.get("reason", ""),
            ))

    # Engine
    if "engine" in data:
        e = data["engine"] or {}
        if not isinstance(e, dict):
            raise ConfigError("'engine' must be an object")
        defaults = EngineConfig()
        config.engine = EngineConfig(
            max_workers=_non_negative_int(e, "max_workers", defaults.max_workers),
            max_evaluations=_non_negative_int(e, "max_evaluations", defaults.max_evaluations),
            context_lines=_non_negative_int(e, "context_lines", defaults.context_lines),
        )

    return config


def find_config_file(path: Path | str) -> Path | None:
    """Return the config file for a directory, or the path itself if it is a file."""
    path = Path(path)
    if path.is_file():
        return path
    for name in CONFIG_NAMES:
        candidate = path / name
        if candidate.exists():
            return candidate
    return None


def load_config(path: Path | str) -> ReviewConfig:
    """Load configuration from a file or from a repository directory."""
    config_file = find_config_file(path)

    if config_file is not None:
        logger.info("Loading config", path=str(config_file))
        return parse_config(config_file.read_text(encoding="utf-8"))

    # Return defaults if no config file
    logger.info("No config file found, using defaults", path=str(path))
    return ReviewConfig()


def validate_config(path: Path) -> tuple[list[str], list[str]]:
    """Validate configuration file.

    Returns (errors, warnings).
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not path.exists():
        errors.append(f"Configuration file not found: {path}")
        return errors, warnings

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        errors.append(f"Invalid YAML syntax: {e}")
        return errors, warnings

    if not isinstance(data, dict):
        errors.append("Configuration must be a YAML object")
        return errors, warnings

    version = data.get("version")
    if version and str(version) not in ("1", "1.0"):
        warnings.append(f"Unknown config version: {version}")

    known_hints = {"compose", "hilt", "koin", "ktor", "room", "retrofit"}
    for hint in data.get("framework_hints") or []:
        if str(hint).lower() not in known_hints:
            warnings.append(f"Unknown framework hint: {hint}")

    rules = data.get("rules") or {}
    if not isinstance(rules, dict):
        errors.append("'rules' must be an object")
    else:
        for rule_id, value in (rules.get("severity") or {}).items():
            try:
                parse_severity(value)
            except ValueError:
                errors.append(f"rules.severity.{rule_id} has invalid severity: {value}")

    for i, rule in enumerate(data.get("ignore") or []):
        if not isinstance(rule, dict):
            errors.append(f"ignore[{i}] must be an object")
            continue
        if "pattern" not in rule:
            errors.append(f"ignore[{i}] missing required 'pattern' field")

    engine = data.get("engine") or {}
    for key in ("max_workers", "max_evaluations", "context_lines"):
        if key in engine and (not isinstance(engine[key], int) or engine[key] < 0):
            errors.append(f"engine.{key} must be a non-negative integer")
    if isinstance(engine.get("max_workers"), int) and engine["max_workers"] > 64:
        warnings.append("engine.max_workers is very high (>64)")

    return errors, warnings


def should_analyze_file(config: ReviewConfig, file_path: str) -> bool:
    """Check if a file should be analyzed based on config patterns."""
    for pattern in config.exclude_patterns:
        if fnmatch(file_path, pattern):
            return False

    for pattern in config.include_patterns:
        if fnmatch(file_path, pattern) or fnmatch(file_path, pattern.removeprefix("**/")):
            return True

    return False


def should_ignore_finding(
    config: ReviewConfig,
    file_path: str,
    category: str,
) -> tuple[bool, str]:
    """Check if a finding should be ignored based on rules."""
    for rule in config.ignore_rules:
        if fnmatch(file_path, rule.pattern):
            # If no categories specified, ignore all for this pattern
            if rule.categories is None:
                return True, rule.reason
            if category in rule.categories:
                return True, rule.reason

    return False, ""


def _ensure_list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list")
    return value


def _non_negative_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"engine.{key} must be a non-negative integer, got {value!r}")
    return value


# Example configuration written by `droidreview init`
EXAMPLE_CONFIG = """# .droidreview.yml - droidreview configuration
version: "1"

# Frameworks in use; they add role-inference markers
framework_hints:
  - compose
  - hilt

# Path prefixes holding test sources
test_directories:
  - "src/test/"
  - "src/androidTest/"

include:
  - "**/*.kt"
  - "**/*.kts"

exclude:
  - "**/build/**"
  - "**/generated/**"

rules:
  disabled: []
  severity:
    concurrency-thread-sleep: major

# Ignore rules
ignore:
  - pattern: "**/legacy/**"
    categories:
      - kotlin_idiom
    reason: "Scheduled for rewrite"

engine:
  max_workers: 4
  max_evaluations: 50000
  context_lines: 2
"""
