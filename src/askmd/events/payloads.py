"""Typed payload definitions for each :class:`~askmd.events.bus.AskEvent`.

Usage example::

    from askmd.events.bus import AskEvent, EventBus
    from askmd.events.payloads import StreamCompletedPayload

    def on_done(event: AskEvent, payload: StreamCompletedPayload) -> None:
        print(f"Response complete: {payload['token_count']} tokens")

    bus.subscribe(AskEvent.STREAM_COMPLETED, on_done)  # type: ignore[arg-type]
"""

from __future__ import annotations

from typing import TypedDict

# ── Reference expansion ───────────────────────────────────────────────────────


class ExpansionStartedPayload(TypedDict):
    """Payload for :attr:`AskEvent.EXPANSION_STARTED`."""

    turn_number: int
    files: int
    """Number of files inlined into the turn."""


class FileExpandedPayload(TypedDict):
    """Payload for :attr:`AskEvent.FILE_EXPANDED`."""

    turn_number: int
    path: str
    tokens: int
    """Estimated tokens of the filtered content."""


class FileSkippedPayload(TypedDict):
    """Payload for :attr:`AskEvent.FILE_SKIPPED`."""

    turn_number: int
    path: str
    reason: str


class ExpansionCompletedPayload(TypedDict):
    """Payload for :attr:`AskEvent.EXPANSION_COMPLETED`."""

    files: int
    total_tokens: int
    skipped: int


# ── Document persistence ──────────────────────────────────────────────────────


class DocumentUpdatedPayload(TypedDict):
    """Payload for :attr:`AskEvent.DOCUMENT_UPDATED`."""

    path: str
    turn_number: int
    reason: str
    """``"expanded"`` or ``"response"``."""


# ── Streaming ─────────────────────────────────────────────────────────────────


class StreamStartedPayload(TypedDict):
    """Payload for :attr:`AskEvent.STREAM_STARTED`."""

    turn_number: int
    model: str


class StreamProgressPayload(TypedDict):
    """Payload for :attr:`AskEvent.STREAM_PROGRESS`."""

    turn_number: int
    token_count: int


class StreamCompletedPayload(TypedDict):
    """Payload for :attr:`AskEvent.STREAM_COMPLETED`."""

    turn_number: int
    token_count: int


class StreamInterruptedPayload(TypedDict):
    """Payload for :attr:`AskEvent.STREAM_INTERRUPTED`."""

    turn_number: int
    token_count: int
