"""Markdown heading context detection and section formatting."""

from __future__ import annotations

import re

from askmd.models.document import MarkdownContext

DEFAULT_CONTEXT = MarkdownContext(header_level=2, number_prefix="")

_NUMBER_RE = re.compile(r"\[([0-9]+(?:\.[0-9]+)*)\]")
_BACKTICK_RUN_RE = re.compile(r"`+")


def detect_context(text: str, offset: int) -> MarkdownContext:
    """
    Infer the heading context for a reference at ``offset`` in ``text``.

    Scans backward line by line for the nearest line whose stripped text
    starts with ``#``. Without one, the default (level 2, no prefix) applies.
    """
    if offset <= 0 or offset > len(text):
        return DEFAULT_CONTEXT

    for line in reversed(text[:offset].split("\n")):
        stripped = line.strip()
        if stripped.startswith("#"):
            return parse_heading(stripped)
    return DEFAULT_CONTEXT


def parse_heading(line: str) -> MarkdownContext:
    """
    Derive a context from a heading line.

    The level is one deeper than the heading (capped at 6). A bracketed
    number such as ``[1.2]`` becomes the prefix for nested section numbers.
    """
    hashes = len(line) - len(line.lstrip("#"))
    level = DEFAULT_CONTEXT.header_level
    if 1 <= hashes <= 6:
        level = min(hashes + 1, 6)

    prefix = ""
    match = _NUMBER_RE.search(line)
    if match:
        prefix = match.group(1)
    return MarkdownContext(header_level=level, number_prefix=prefix)


def fence_for(content: str) -> str:
    """Return a backtick fence longer than any backtick run inside ``content``."""
    longest = max((len(run) for run in _BACKTICK_RUN_RE.findall(content)), default=0)
    return "`" * max(3, longest + 1)


def format_section(
    context: MarkdownContext,
    turn_number: int,
    section_number: int,
    path: str,
    language: str,
    content: str,
) -> str:
    """
    Render one expanded file as a heading plus a fenced code block.

    Example output for ``context=(level 3, prefix "1.2")``::

        ### [1.2.1] src/main.go
        ```go
        package main
        ```
    """
    hashes = "#" * context.header_level
    if context.number_prefix:
        number = f"{context.number_prefix}.{section_number}"
    else:
        number = f"{turn_number}.{section_number}"
    fence = fence_for(content)
    return f"{hashes} [{number}] {path}\n{fence}{language}\n{content}\n{fence}"
