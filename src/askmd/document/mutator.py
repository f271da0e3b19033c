"""Pure text transforms over a session document, plus atomic persistence."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import structlog

from askmd.document.grammar import find_boundaries, format_heading, open_fence
from askmd.document.parser import AI_FENCE_CLOSE, AI_FENCE_OPEN
from askmd.errors import DocumentNotFoundError
from askmd.models.document import Role

_logger = structlog.get_logger("askmd.document")


def turn_separator(document: str) -> str:
    """Newlines needed so a block appended to ``document`` starts after one blank line."""
    if not document or document.endswith("\n\n"):
        return ""
    if document.endswith("\n"):
        return "\n"
    return "\n\n"


def replace_turn_content(document: str, turn_number: int, role: Role | str, new_content: str) -> str:
    """
    Substitute the body of the last ``# [turn_number] role`` turn.

    The heading is kept, followed by a blank line, the stripped new content
    and a newline. A following turn, if any, stays one blank line below.
    The document is returned unchanged when the heading does not exist.
    Applying the same replacement twice yields the same document.
    """
    role = Role(role)
    boundaries = find_boundaries(document)
    target_index = next(
        (
            i
            for i in range(len(boundaries) - 1, -1, -1)
            if boundaries[i].number == turn_number and boundaries[i].role is role
        ),
        None,
    )
    if target_index is None:
        return document

    target = boundaries[target_index]
    has_next = target_index + 1 < len(boundaries)
    stop = boundaries[target_index + 1].start if has_next else len(document)

    body = new_content.strip()
    block = format_heading(turn_number, role) + "\n\n"
    if body:
        block += body + "\n"
    if has_next:
        block += "\n"
    return document[: target.start] + block + document[stop:]


def close_open_fences(document: str) -> str:
    """
    Close every fenced block left open, at the end of the turn it opened in.

    A fence left open by a typo in a Human turn or by an AI turn cut short
    mid-stream would be closed by the next fence line written after it,
    hiding every boundary in between. The closing line is inserted right
    before the next turn boundary, or at the end of the document.
    """
    while True:
        fence = open_fence(document)
        if fence is None:
            return document
        following = next((b for b in find_boundaries(document) if b.start > fence.start), None)
        if following is None:
            document += ("" if document.endswith("\n") else "\n") + fence.marker + "\n"
        else:
            head = document[: following.start].rstrip()
            document = head + "\n" + fence.marker + "\n\n" + document[following.start :]
        _logger.info("open_fence_closed", offset=fence.start, marker=fence.marker)


def format_ai_body(content: str) -> str:
    """Wrap AI text in the ````` ````markdown ````` presentation fence."""
    return f"{AI_FENCE_OPEN}\n{content.strip()}\n{AI_FENCE_CLOSE}"


def append_turn(document: str, turn_number: int, role: Role | str, content: str = "") -> str:
    """
    Append a new turn at the end of ``document``.

    AI content is wrapped in the markdown fence that :func:`parse_all`
    removes again. An empty Human turn is written as a bare heading ready
    for the user to type into. Fences left open earlier in the document are
    closed first.
    """
    role = Role(role)
    document = close_open_fences(document)
    block = format_heading(turn_number, role) + "\n\n"
    if role is Role.AI:
        block += format_ai_body(content) + "\n"
    elif content.strip():
        block += content.strip() + "\n"
    return document + turn_separator(document) + block


# ── Persistence ───────────────────────────────────────────────────────────────


def read_document(path: str | Path) -> str:
    """
    Read a session document.

    Raises:
        DocumentNotFoundError: ``path`` does not exist.
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DocumentNotFoundError(path) from exc


def write_atomic(path: str | Path, content: str) -> None:
    """
    Replace ``path`` with ``content`` in one step.

    The text goes to a temporary file in the same directory, is fsynced and
    then renamed over the target, so readers see either the old or the new
    document and never a partial one.
    """
    target = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        if target.exists():
            os.chmod(tmp_name, target.stat().st_mode & 0o777)
        else:
            os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    _logger.debug("document_written", path=str(target), chars=len(content))
