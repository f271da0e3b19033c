"""Incremental, crash-safe persistence of an AI turn while it streams."""

from __future__ import annotations

import asyncio
import os
from enum import StrEnum
from pathlib import Path
from types import TracebackType
from typing import IO

import structlog

from askmd.document.grammar import format_heading
from askmd.document.mutator import close_open_fences, turn_separator, write_atomic
from askmd.document.parser import AI_FENCE_CLOSE, AI_FENCE_OPEN
from askmd.models.document import Role


class StreamState(StrEnum):
    """Lifecycle of one :class:`StreamWriter`."""

    IDLE = "idle"
    """Constructed; the document is not open yet."""
    HEADER_PENDING = "header_pending"
    """Document open for append; nothing written until the first non-empty chunk."""
    STREAMING = "streaming"
    """AI heading and opening fence written; chunks are being appended."""
    INTERRUPTED = "interrupted"
    """Cancelled mid-stream; interruption notice written."""
    COMPLETED = "completed"
    """Stream ended normally."""
    CLOSED = "closed"
    """Fence closed, next Human turn appended, file synced and closed."""


_TERMINAL = frozenset({StreamState.INTERRUPTED, StreamState.COMPLETED, StreamState.CLOSED})


def interruption_notice(token_count: int) -> str:
    return f"[Interrupted after {token_count} tokens]"


class StreamWriter:
    """
    Appends a streamed AI response to the session document.

    Every chunk is written, flushed and fsynced before the next one is
    accepted, so a crash at any point leaves a document that parses: the
    AI turn is merely truncated. Nothing at all is written if the stream
    produces no content.

    Usage::

        with StreamWriter("session.md", turn_number=4) as writer:
            outcome = await client.stream_history(turns, writer.write_chunk, cancel_event)
            writer.finish(interrupted=outcome.interrupted, token_count=outcome.token_count)

    On close the writer terminates the fence and appends an empty
    ``# [turn_number + 1] Human`` turn, the same block
    :func:`~askmd.document.mutator.append_turn` produces.
    """

    def __init__(self, path: str | Path, turn_number: int) -> None:
        self._path = Path(path)
        self._turn_number = turn_number
        self._file: IO[str] | None = None
        self._state = StreamState.IDLE
        self._document = ""
        self._separator = ""
        self._ends_with_newline = True
        self._token_count = 0
        self._chars_written = 0
        self._logger = structlog.get_logger("askmd.stream").bind(turn=turn_number)

    # ── State ────────────────────────────────────────────────────────────────

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def turn_number(self) -> int:
        return self._turn_number

    @property
    def content_written(self) -> bool:
        """True once any chunk has reached the document."""
        return self._chars_written > 0

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def open(self) -> None:
        """
        Prepare the document for appending. Idempotent while not yet closed.

        The file itself is opened with the first non-empty chunk, so a stream
        without content leaves the document untouched.
        """
        if self._state is not StreamState.IDLE:
            return
        try:
            self._document = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._document = ""
        self._state = StreamState.HEADER_PENDING

    def write_chunk(self, chunk: str, token_count: int | None = None) -> None:
        """
        Append one chunk and make it durable.

        Empty chunks are ignored, as is anything arriving after the stream
        finished or was interrupted.

        Args:
            chunk: Text delta from the model.
            token_count: Running output token count, remembered for the
                interruption notice.
        """
        if token_count is not None:
            self._token_count = token_count
        if self._state in _TERMINAL or not chunk:
            return
        if self._state is StreamState.IDLE:
            self.open()
        if self._state is StreamState.HEADER_PENDING:
            self._begin()
            header = f"{self._separator}{format_heading(self._turn_number, Role.AI)}\n\n{AI_FENCE_OPEN}\n"
            self._write(header)
            self._state = StreamState.STREAMING
            self._logger.debug("stream_header_written")
        self._write(chunk)
        self._chars_written += len(chunk)
        self._ends_with_newline = chunk.endswith("\n")

    def finish(self, *, interrupted: bool = False, token_count: int | None = None) -> None:
        """
        Record how the stream ended without closing the file yet.

        Writes the interruption notice when ``interrupted`` and content was
        already streamed.
        """
        if token_count is not None:
            self._token_count = token_count
        if self._state is not StreamState.STREAMING:
            return
        if interrupted:
            notice = interruption_notice(self._token_count)
            self._write(("" if self._ends_with_newline else "\n") + notice)
            self._ends_with_newline = False
            self._state = StreamState.INTERRUPTED
            self._logger.info("stream_interrupted", tokens=self._token_count)
        else:
            self._state = StreamState.COMPLETED

    def close(self, *, interrupted: bool = False, token_count: int | None = None) -> bool:
        """
        Finalise the AI turn and release the file.

        Returns:
            True when an AI turn was written to the document.
        """
        self.finish(interrupted=interrupted, token_count=token_count)
        wrote_turn = self._state in (StreamState.INTERRUPTED, StreamState.COMPLETED)
        try:
            if wrote_turn:
                closing = ("" if self._ends_with_newline else "\n") + AI_FENCE_CLOSE + "\n"
                # The AI turn is complete on disk; append the next empty Human turn.
                self._write(f"{closing}\n{format_heading(self._turn_number + 1, Role.HUMAN)}\n\n")
        finally:
            if self._file is not None:
                self._file.close()
                self._file = None
            self._state = StreamState.CLOSED
        if wrote_turn:
            self._logger.info("stream_closed", chars=self._chars_written, tokens=self._token_count)
        return wrote_turn

    def __enter__(self) -> StreamWriter:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._state is StreamState.CLOSED:
            return
        cancelled = exc_type is not None and issubclass(
            exc_type, (KeyboardInterrupt, asyncio.CancelledError)
        )
        self.close(interrupted=cancelled)

    # ── Internals ────────────────────────────────────────────────────────────
    def _begin(self) -> None:
        sealed = close_open_fences(self._document)
        if sealed != self._document:
            write_atomic(self._path, sealed)
            self._logger.info("document_fences_closed")
        self._separator = turn_separator(sealed)
        self._file = self._path.open("a", encoding="utf-8", newline="")

    def _write(self, text: str) -> None:
        if self._file is None:
            raise RuntimeError("StreamWriter has no open document; write a chunk first")
        self._file.write(text)
        self._file.flush()
        os.fsync(self._file.fileno())
