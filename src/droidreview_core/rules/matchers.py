"""Matcher factories.

Every factory returns a pure function ``(unit, index) -> Iterable[Span]``.
Matchers only scan ``unit.stripped`` (comments and string contents
blanked) and read captured text back from the original at the same
offsets.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING

from droidreview_core.lexing import find_block
from droidreview_core.models import LogicalRole, SourceUnit
from droidreview_core.rules.models import Matcher, Span

if TYPE_CHECKING:
    from droidreview_core.roles import RoleIndex

MAX_CAPTURE = 120

Regex = str | re.Pattern[str]


def _compile(regex: Regex, flags: int = 0) -> re.Pattern[str]:
    if isinstance(regex, re.Pattern):
        return regex
    return re.compile(regex, flags)


def span_for(unit: SourceUnit, start: int, end: int) -> Span:
    """Span covering the offsets ``start:end`` of a unit."""
    index = unit.line_index
    captured = " ".join(unit.text[start:end].split())
    return Span(
        line_start=index.line_of(start),
        line_end=index.line_of(max(start, end - 1)),
        captured=captured[:MAX_CAPTURE],
    )


def pattern(regex: Regex, *, group: int = 0, flags: int = 0) -> Matcher:
    """Every match of ``regex``; ``group`` selects the captured part."""
    compiled = _compile(regex, flags)

    def match(unit: SourceUnit, index: "RoleIndex") -> Iterator[Span]:
        for m in compiled.finditer(unit.stripped):
            yield span_for(unit, m.start(group), m.end(group))

    return match


def line_pattern(regex: Regex, *, unless: Regex | None = None, flags: int = 0) -> Matcher:
    """First match of ``regex`` per line, skipping lines matching ``unless``."""
    compiled = _compile(regex, flags)
    excluded = _compile(unless, flags) if unless is not None else None

    def match(unit: SourceUnit, index: "RoleIndex") -> Iterator[Span]:
        for number, line in enumerate(unit.stripped.split("\n"), start=1):
            m = compiled.search(line)
            if not m:
                continue
            if excluded is not None and excluded.search(line):
                continue
            original = unit.line_index.line(number)
            yield Span(number, number, " ".join(original[m.start():m.end()].split())[:MAX_CAPTURE])

    return match


def absent_in_block(trigger: Regex, required: Regex, *, only_if: Regex | None = None) -> Matcher:
    """Triggers whose brace block lacks a required companion call.

    With ``only_if``, blocks not containing that signal are skipped. The
    span runs from the trigger to the end of its block.
    """
    trigger_re = _compile(trigger)
    required_re = _compile(required)
    only_if_re = _compile(only_if) if only_if is not None else None

    def match(unit: SourceUnit, index: "RoleIndex") -> Iterator[Span]:
        code = unit.stripped
        hits = list(trigger_re.finditer(code))
        for i, m in enumerate(hits):
            limit = hits[i + 1].start() if i + 1 < len(hits) else None
            block = find_block(code, m.end(), limit)
            if block is None:
                continue
            body = code[block[0]:block[1] + 1]
            if only_if_re is not None and not only_if_re.search(body):
                continue
            if required_re.search(body):
                continue
            span = span_for(unit, m.start(), m.end())
            yield Span(span.line_start, unit.line_index.line_of(block[1]), span.captured)

    return match


def absent_in_unit(trigger: Regex, required: Regex) -> Matcher:
    """Triggers in a unit that contains the required call nowhere."""
    trigger_re = _compile(trigger)
    required_re = _compile(required)

    def match(unit: SourceUnit, index: "RoleIndex") -> Iterator[Span]:
        code = unit.stripped
        if required_re.search(code):
            return
        for m in trigger_re.finditer(code):
            yield span_for(unit, m.start(), m.end())

    return match


def declared_in_block(opener: Regex, declaration: Regex, *, group: int = 0) -> Matcher:
    """Declarations between an opener and the end of the block it opens.

    The range includes the opener's header, so constructor parameters of a
    class opener are searched as well. The opener may end with the block's
    own opening brace.
    """
    opener_re = _compile(opener)
    declaration_re = _compile(declaration)

    def match(unit: SourceUnit, index: "RoleIndex") -> Iterator[Span]:
        code = unit.stripped
        for m in opener_re.finditer(code):
            block = find_block(code, m.start())
            end = block[1] if block is not None else m.end()
            for d in declaration_re.finditer(code, m.start(), end + 1):
                yield span_for(unit, d.start(group), d.end(group))

    return match


def outside_block(trigger: Regex, opener: Regex) -> Matcher:
    """Triggers not enclosed in any block opened by ``opener``."""
    trigger_re = _compile(trigger)
    opener_re = _compile(opener)

    def match(unit: SourceUnit, index: "RoleIndex") -> Iterator[Span]:
        code = unit.stripped
        ranges = []
        for m in opener_re.finditer(code):
            block = find_block(code, m.start())
            if block is not None:
                ranges.append(block)
        for m in trigger_re.finditer(code):
            if any(start < m.start() < end for start, end in ranges):
                continue
            yield span_for(unit, m.start(), m.end())

    return match


def when_present(required: Regex, matcher: Matcher) -> Matcher:
    """Run ``matcher`` only in units containing ``required``."""
    required_re = _compile(required)

    def match(unit: SourceUnit, index: "RoleIndex") -> Iterable[Span]:
        if not required_re.search(unit.stripped):
            return ()
        return matcher(unit, index)

    return match


def any_of(*matchers: Matcher) -> Matcher:
    """Concatenate the spans of several matchers, in order."""

    def match(unit: SourceUnit, index: "RoleIndex") -> Iterator[Span]:
        for matcher in matchers:
            yield from matcher(unit, index)

    return match


def missing_companion(
    companion_role: LogicalRole,
    names: Callable[[str], Iterable[str]],
    declaration: Regex,
) -> Matcher:
    """Cross-file check that a companion unit exists in the role index.

    ``names`` maps the unit's file stem to acceptable companion names. When
    none is indexed under ``companion_role``, the unit's ``declaration`` is
    reported (or its first line when the declaration is not found).
    """
    declaration_re = _compile(declaration)

    def match(unit: SourceUnit, index: "RoleIndex") -> Iterator[Span]:
        for name in names(unit.stem):
            if index.find(name, companion_role) is not None:
                return
        m = declaration_re.search(unit.stripped)
        if m:
            yield span_for(unit, m.start(), m.end())
        else:
            yield Span(1, 1, unit.stem)

    return match
