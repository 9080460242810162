"""Context collection: turn a path or a git diff into source units."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

import structlog

from droidreview_core.config import ReviewConfig, should_analyze_file
from droidreview_core.models import SourceUnit

logger = structlog.get_logger()

DEFAULT_EXCLUDED_DIRS = frozenset({
    ".git",
    ".gradle",
    ".idea",
    ".cxx",
    "build",
    "node_modules",
})


def read_unit(file_path: Path, display_path: str) -> SourceUnit:
    """Read a file into a SourceUnit.

    Undecodable content is kept as raw bytes; the engine reports such units
    as malformed instead of dropping them here.
    """
    data = file_path.read_bytes()
    try:
        content: str | bytes = data.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("Keeping undecodable file as bytes", path=display_path)
        content = data
    return SourceUnit(path=display_path, content=content)


def iter_source_files(root: Path, config: ReviewConfig) -> list[tuple[Path, str]]:
    """Files under ``root`` selected by the include/exclude patterns.

    Returns (file path, posix path relative to root) pairs in sorted order.
    """
    selected = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in DEFAULT_EXCLUDED_DIRS)
        for name in sorted(filenames):
            file_path = Path(dirpath) / name
            relative = file_path.relative_to(root).as_posix()
            if should_analyze_file(config, relative):
                selected.append((file_path, relative))
    return selected


def collect_units(path: Path | str, config: ReviewConfig) -> list[SourceUnit]:
    """Collect units from a file or a directory tree."""
    path = Path(path)
    if path.is_file():
        return [read_unit(path, path.as_posix())]

    units = [read_unit(file_path, relative) for file_path, relative in iter_source_files(path, config)]
    logger.info("Collected source units", path=str(path), count=len(units))
    return units


def changed_files(since: str = "HEAD", cwd: Path | str = ".") -> list[str]:
    """Paths changed relative to ``since``, relative to the repository root."""
    try:
        result = subprocess.run(
            ["git", "diff", "--name-only", "--diff-filter=ACMR", since],
            capture_output=True,
            text=True,
            cwd=cwd,
        )
    except FileNotFoundError:
        logger.warning("git is not installed")
        return []

    if result.returncode != 0:
        logger.warning("git diff failed", since=since, error=result.stderr.strip())
        return []
    return [line for line in result.stdout.splitlines() if line]


def collect_changed_units(
    config: ReviewConfig,
    since: str = "HEAD",
    cwd: Path | str = ".",
) -> list[SourceUnit]:
    """Collect units for files changed since a git ref."""
    root = Path(cwd)
    units = []
    for relative in changed_files(since, root):
        file_path = root / relative
        if not file_path.is_file() or not should_analyze_file(config, relative):
            continue
        units.append(read_unit(file_path, relative))
    logger.info("Collected changed source units", since=since, count=len(units))
    return units
