"""Logical role inference and the cross-file role index."""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterator, Mapping

import structlog

from droidreview_core.config import ReviewConfig
from droidreview_core.models import LogicalRole, SourceUnit

logger = structlog.get_logger()

_TEST_NAME_RE = re.compile(r"(?:Test|Tests|Spec|IT)$")
_VIEWMODEL_RE = re.compile(r":\s*(?:[\w.]+\.)?(?:Android)?ViewModel\s*\(")
_REPOSITORY_RE = re.compile(r"\b(?:class|interface)\s+\w+Repository(?:Impl)?\b")
_USECASE_RE = re.compile(r"\bclass\s+\w+(?:UseCase|Interactor)\b")

ENTRY_POINT_MARKERS: tuple[re.Pattern[str], ...] = (
    re.compile(r":\s*(?:[\w.]+\.)?(?:Application|ComponentActivity|AppCompatActivity|FragmentActivity|Activity)\s*\("),
    re.compile(r"\bfun\s+main\s*\("),
)

UI_MARKERS: tuple[re.Pattern[str], ...] = (
    re.compile(r"@Composable\b"),
    re.compile(r":\s*(?:[\w.]+\.)?(?:Fragment|DialogFragment|BottomSheetDialogFragment)\s*\("),
)

# Extra entry-point markers enabled by framework hints
HINT_ENTRY_MARKERS: dict[str, tuple[re.Pattern[str], ...]] = {
    "compose": (re.compile(r"\bsetContent\s*\{"),),
    "hilt": (re.compile(r"@HiltAndroidApp\b"),),
    "koin": (re.compile(r"\bstartKoin\s*\{"),),
    "ktor": (
        re.compile(r"\bembeddedServer\s*\("),
        re.compile(r"\bfun\s+Application\.module\s*\("),
    ),
}


def is_test_path(path: str, config: ReviewConfig) -> bool:
    """Check whether a path lies in a configured test directory or is test-named."""
    normalized = "/" + path.lstrip("/")
    for directory in config.test_directories:
        prefix = "/" + directory.strip("/") + "/"
        if prefix in normalized:
            return True
    stem = normalized.rsplit("/", 1)[-1].split(".", 1)[0]
    return bool(_TEST_NAME_RE.search(stem))


def infer_role(unit: SourceUnit, config: ReviewConfig) -> LogicalRole:
    """Infer the logical role of a unit from its path, name and content.

    Precedence: test location or name, then naming suffixes, then content
    markers for ViewModels, entry points and UI components.
    """
    if is_test_path(unit.path, config):
        return LogicalRole.TEST

    stem = unit.stem
    if stem.endswith("ViewModel"):
        return LogicalRole.VIEWMODEL
    if stem.endswith(("Repository", "RepositoryImpl")):
        return LogicalRole.REPOSITORY
    if stem.endswith(("UseCase", "Interactor")):
        return LogicalRole.USECASE

    if not unit.is_scannable:
        return LogicalRole.OTHER

    code = unit.stripped
    if _VIEWMODEL_RE.search(code):
        return LogicalRole.VIEWMODEL
    if _REPOSITORY_RE.search(code):
        return LogicalRole.REPOSITORY
    if _USECASE_RE.search(code):
        return LogicalRole.USECASE

    markers = list(ENTRY_POINT_MARKERS)
    for hint in sorted(config.framework_hints):
        markers.extend(HINT_ENTRY_MARKERS.get(hint, ()))
    if any(m.search(code) for m in markers):
        return LogicalRole.ENTRY_POINT

    if any(m.search(code) for m in UI_MARKERS):
        return LogicalRole.UI_COMPONENT

    return LogicalRole.OTHER


def assign_roles(units: list[SourceUnit], config: ReviewConfig) -> list[SourceUnit]:
    """Return units with a role, keeping roles supplied by the caller."""
    assigned: list[SourceUnit] = []
    for unit in units:
        if unit.role is None:
            unit = dataclasses.replace(unit, role=infer_role(unit, config))
            logger.debug("Role inferred", path=unit.path, role=unit.role.value)
        assigned.append(unit)
    return assigned


class RoleIndex(Mapping[LogicalRole, tuple[SourceUnit, ...]]):
    """Mapping from logical role to the units holding it.

    Built once before matching; matchers that need cross-file knowledge
    (e.g. whether a ViewModel has a test) read it but never change it.
    """

    def __init__(self, units: list[SourceUnit]) -> None:
        grouped: dict[LogicalRole, list[SourceUnit]] = {}
        for unit in units:
            grouped.setdefault(unit.role or LogicalRole.OTHER, []).append(unit)
        self._by_role = {role: tuple(items) for role, items in grouped.items()}

    def __getitem__(self, role: LogicalRole) -> tuple[SourceUnit, ...]:
        return self._by_role.get(role, ())

    def __contains__(self, role: object) -> bool:
        return role in self._by_role

    def __iter__(self) -> Iterator[LogicalRole]:
        return iter(self._by_role)

    def __len__(self) -> int:
        return len(self._by_role)

    def find(self, name: str, role: LogicalRole | None = None) -> SourceUnit | None:
        """First unit whose file stem or declared names match ``name``."""
        roles = [role] if role is not None else list(self._by_role)
        for r in roles:
            for unit in self[r]:
                if unit.stem == name:
                    return unit
                if unit.is_scannable and name in unit.declared_names:
                    return unit
        return None
