"""Split a session document into role-tagged turns."""

from __future__ import annotations

import re

from askmd.document.grammar import find_boundaries
from askmd.errors import NoHumanTurnError, NoTurnsFoundError
from askmd.models.document import Role, Turn

AI_FENCE_OPEN = "````markdown"
AI_FENCE_CLOSE = "````"

_AI_OPEN_RE = re.compile(r"\A````markdown[ \t]*(?:\r?\n|\Z)")
_AI_CLOSE_RE = re.compile(r"(?:\r?\n)?````\Z")


def unwrap_ai_content(content: str) -> str:
    """
    Remove the ````` ````markdown ````` presentation fence around an AI turn.

    The closing marker is optional, so a body whose closing fence never made
    it to disk still unwraps cleanly. Content without the opening marker is
    returned unchanged.
    """
    match = _AI_OPEN_RE.match(content)
    if match is None:
        return content
    return _AI_CLOSE_RE.sub("", content[match.end() :], count=1)


def parse_all(document: str) -> list[Turn]:
    """
    Parse every turn in ``document``.

    Turn content is the stripped text between a boundary line and the next
    boundary (or the end of the document). AI turns have their markdown
    fence removed.

    Raises:
        NoTurnsFoundError: The document has no turn boundary.
    """
    boundaries = find_boundaries(document)
    if not boundaries:
        raise NoTurnsFoundError()

    turns: list[Turn] = []
    for index, boundary in enumerate(boundaries):
        stop = boundaries[index + 1].start if index + 1 < len(boundaries) else len(document)
        content = document[boundary.end : stop].strip()
        if boundary.role is Role.AI:
            content = unwrap_ai_content(content)
        turns.append(Turn(number=boundary.number, role=boundary.role, content=content))
    return turns


def find_last_human_turn(document: str) -> Turn:
    """
    Return the most recent Human turn.

    Raises:
        NoTurnsFoundError: The document has no turn boundary.
        NoHumanTurnError: There are turns, but none by the human.
    """
    for turn in reversed(parse_all(document)):
        if turn.role is Role.HUMAN:
            return turn
    raise NoHumanTurnError()
