"""Lexical helpers shared by all matchers.

Matchers never look at raw source text. They scan a copy in which comments
and string literal contents are blanked out, so a commented-out line or a
string mentioning a trigger can never produce a match. The blanked copy has
the same length and the same line breaks as the original, which lets
offsets found in it be used directly against the original text.
"""

from __future__ import annotations

import re
from bisect import bisect_right


def strip_comments_and_strings(text: str) -> str:
    """Blank Kotlin comments and string literal contents.

    Handles `//` line comments, nested `/* */` block comments, regular and
    raw (`\"\"\"`) strings including `${...}` templates, and char literals.
    Quote characters are kept so declarations such as `val key = "..."`
    still have a recognizable shape.
    """
    out = list(text)
    i, n = 0, len(text)

    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if ch == "/" and nxt == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(out, i, end)
            i = end
            continue

        if ch == "/" and nxt == "*":
            end = _block_comment_end(text, i)
            _blank(out, i, end)
            i = end
            continue

        if text.startswith('"""', i):
            end = text.find('"""', i + 3)
            if end == -1:
                _blank(out, i + 3, n)
                break
            # Raw strings may close with extra quotes, e.g. """a"""".
            while end + 3 < n and text[end + 3] == '"':
                end += 1
            _blank(out, i + 3, end)
            i = end + 3
            continue

        if ch == '"':
            end = _string_end(text, i + 1)
            _blank(out, i + 1, end)
            i = end + 1
            continue

        if ch == "'":
            end = _char_end(text, i + 1)
            if end is not None:
                _blank(out, i + 1, end)
                i = end + 1
                continue

        i += 1

    return "".join(out)


def find_block(text: str, start: int, limit: int | None = None) -> tuple[int, int] | None:
    """Locate the brace block opened at or after ``start``.

    The search for the opening brace stops at ``limit`` and at any closing
    brace met first (the statement has no block of its own). Returns the
    offsets of the opening and closing brace; an unterminated block closes
    at the end of the text.
    """
    stop = len(text) if limit is None else min(limit, len(text))
    open_at = None
    for pos in range(start, stop):
        if text[pos] == "{":
            open_at = pos
            break
        if text[pos] == "}":
            return None
    if open_at is None:
        return None

    depth = 0
    for pos in range(open_at, len(text)):
        if text[pos] == "{":
            depth += 1
        elif text[pos] == "}":
            depth -= 1
            if depth == 0:
                return open_at, pos
    return open_at, len(text) - 1


class LineIndex:
    """Offset to line-number lookup for one text."""

    def __init__(self, text: str) -> None:
        self._starts = [0] + [m.end() for m in re.finditer("\n", text)]
        self._lines = [line.rstrip("\r") for line in text.split("\n")]

    def __len__(self) -> int:
        return len(self._lines)

    def line_of(self, offset: int) -> int:
        """1-based line number containing ``offset``."""
        return bisect_right(self._starts, max(offset, 0))

    def offset_of(self, line: int) -> int:
        return self._starts[line - 1]

    def line(self, number: int) -> str:
        return self._lines[number - 1]

    def snippet(self, line_start: int, line_end: int, context: int = 2) -> tuple[int, str]:
        """Lines around a range, with the number of the first returned line."""
        first = max(1, line_start - context)
        last = min(len(self._lines), line_end + context)
        return first, "\n".join(self._lines[first - 1:last])


def _blank(out: list[str], start: int, end: int) -> None:
    for pos in range(start, min(end, len(out))):
        if out[pos] != "\n":
            out[pos] = " "


def _block_comment_end(text: str, start: int) -> int:
    depth = 0
    pos = start
    n = len(text)
    while pos < n:
        if text.startswith("/*", pos):
            depth += 1
            pos += 2
        elif text.startswith("*/", pos):
            depth -= 1
            pos += 2
            if depth == 0:
                return pos
        else:
            pos += 1
    return n


def _string_end(text: str, pos: int) -> int:
    """Offset of the closing quote of a single-line string (or line end)."""
    n = len(text)
    while pos < n:
        ch = text[pos]
        if ch == "\\":
            pos += 2
            continue
        if ch == '"' or ch == "\n":
            return pos
        if text.startswith("${", pos):
            pos = _template_end(text, pos + 2)
            continue
        pos += 1
    return n


def _template_end(text: str, pos: int) -> int:
    depth = 1
    n = len(text)
    while pos < n and depth:
        if text[pos] == "{":
            depth += 1
        elif text[pos] == "}":
            depth -= 1
        elif text[pos] == "\n":
            return pos
        pos += 1
    return pos


def _char_end(text: str, pos: int) -> int | None:
    # Valid shapes: 'a', an escape such as '\n', or a \uXXXX escape.
    if text.startswith("\\u", pos):
        end = pos + 6
    elif text.startswith("\\", pos):
        end = pos + 2
    else:
        end = pos + 1
    if end < len(text) and text[end] == "'":
        return end
    return None
