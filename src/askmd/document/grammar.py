"""
Line grammar of a session document.

The recognisers here are the single source of truth for what counts as a
turn boundary or a reference token:

- **Turn boundary**: a whole line ``# [<digits>] Human`` or ``# [<digits>] AI``
  (trailing spaces tolerated). Heading level and bracket syntax are fixed.
- **Reference token**: ``[[...]]`` on a single line, no nested brackets.
- **Fenced block**: opened by a line of 3+ backticks or tildes (up to 3
  spaces of indent, optional info string), closed by a line of the same
  character at least as long with nothing else on it.

Boundaries and references inside a *closed* fenced block are ignored, so a
file that itself contains a session transcript, or expanded content that
mentions ``[[x]]``, is inert. A fence that is never closed (for example an
AI turn cut short by a crash) hides nothing while it stays open. Any fence
written after it would close it and hide the turns in between, so writers
close it first with :func:`~askmd.document.mutator.close_open_fences`.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass

from askmd.models.document import Role

BOUNDARY_RE = re.compile(r"^# \[(\d+)\] (Human|AI)[ \t]*\r?$", re.MULTILINE)
REFERENCE_RE = re.compile(r"\[\[([^\[\]\n]+)\]\]")
_FENCE_OPEN_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")


@dataclass(frozen=True)
class Boundary:
    """A turn heading line located in a document."""

    start: int
    """Offset of the ``#`` that opens the heading line."""
    end: int
    """Offset just past the heading line (before its newline)."""
    number: int
    role: Role


@dataclass(frozen=True)
class ReferenceSpan:
    """A ``[[path]]`` token located in a text."""

    start: int
    end: int
    path: str

    @property
    def literal(self) -> str:
        return f"[[{self.path}]]"


@dataclass(frozen=True)
class OpenFence:
    """A fenced block still open at the end of a text."""

    start: int
    """Offset of the opening fence line."""
    marker: str
    """Shortest line that closes it, e.g. four backticks for an AI turn."""


def fenced_spans(text: str) -> list[tuple[int, int]]:
    """Return ``(start, end)`` offsets of every closed fenced block in ``text``."""
    return _scan_fences(text)[0]


def open_fence(text: str) -> OpenFence | None:
    """Return the fence left open at the end of ``text``, if any."""
    return _scan_fences(text)[1]


def _scan_fences(text: str) -> tuple[list[tuple[int, int]], OpenFence | None]:
    spans: list[tuple[int, int]] = []
    offset = 0
    open_at: int | None = None
    fence_char = ""
    fence_len = 0

    for line in text.splitlines(keepends=True):
        body = line.rstrip("\r\n")
        if open_at is None:
            match = _FENCE_OPEN_RE.match(body)
            if match and not (match.group(1)[0] == "`" and "`" in match.group(2)):
                open_at = offset
                fence_char = match.group(1)[0]
                fence_len = len(match.group(1))
        else:
            stripped = body.strip()
            if (
                len(stripped) >= fence_len
                and stripped == fence_char * len(stripped)
                and len(body) - len(body.lstrip(" ")) <= 3
            ):
                spans.append((open_at, offset + len(body)))
                open_at = None
        offset += len(line)

    if open_at is None:
        return spans, None
    return spans, OpenFence(start=open_at, marker=fence_char * fence_len)


class _SpanIndex:
    """Containment lookup over sorted, non-overlapping spans."""

    def __init__(self, spans: list[tuple[int, int]]) -> None:
        self._spans = spans
        self._starts = [s for s, _ in spans]

    def contains(self, position: int) -> bool:
        index = bisect.bisect_right(self._starts, position) - 1
        return index >= 0 and position < self._spans[index][1]


def find_boundaries(text: str) -> list[Boundary]:
    """Return every turn boundary outside closed fenced blocks, in document order."""
    fenced = _SpanIndex(fenced_spans(text))
    return [
        Boundary(
            start=match.start(),
            end=match.end(),
            number=int(match.group(1)),
            role=Role(match.group(2)),
        )
        for match in BOUNDARY_RE.finditer(text)
        if not fenced.contains(match.start())
    ]


def find_references(text: str) -> list[ReferenceSpan]:
    """Return every ``[[...]]`` token outside closed fenced blocks, left to right."""
    fenced = _SpanIndex(fenced_spans(text))
    return [
        ReferenceSpan(start=match.start(), end=match.end(), path=match.group(1))
        for match in REFERENCE_RE.finditer(text)
        if not fenced.contains(match.start())
    ]


def format_heading(number: int, role: Role | str) -> str:
    """Render the boundary line for a turn, e.g. ``# [3] Human``."""
    return f"# [{number}] {Role(role).value}"
