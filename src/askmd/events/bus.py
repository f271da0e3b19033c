"""In-process pub/sub event bus for chat session status events."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

import structlog

Handler = Callable[["AskEvent", dict[str, Any]], None | Awaitable[None]]


class AskEvent(StrEnum):
    """All event types published by askmd components.

    Typed payload definitions for each event live in
    :mod:`askmd.events.payloads`.

    **Payload schemas by event:**

    ``EXPANSION_STARTED``
        :class:`~askmd.events.payloads.ExpansionStartedPayload`:
        ``turn_number: int``, ``files: int``

    ``FILE_EXPANDED``, ``FILE_SKIPPED``
        One per inlined file / per file a directory walk could not read.

    ``EXPANSION_COMPLETED``
        Totals for every Human turn expanded in one run.

    ``DOCUMENT_UPDATED``
        The expanded Human turn or a non-streamed reply was written back.

    ``STREAM_STARTED``, ``STREAM_PROGRESS``, ``STREAM_COMPLETED``,
    ``STREAM_INTERRUPTED``
        Lifecycle of one streamed AI turn. Progress fires every
        ``progress_interval`` output tokens.
    """

    # Reference expansion
    EXPANSION_STARTED = "expansion.started"
    FILE_EXPANDED = "file.expanded"
    FILE_SKIPPED = "file.skipped"
    EXPANSION_COMPLETED = "expansion.completed"

    # Document persistence
    DOCUMENT_UPDATED = "document.updated"

    # Streaming
    STREAM_STARTED = "stream.started"
    STREAM_PROGRESS = "stream.progress"
    STREAM_COMPLETED = "stream.completed"
    STREAM_INTERRUPTED = "stream.interrupted"


class EventBus:
    """
    Simple in-process pub/sub event bus.

    - Sync handlers are called inline within ``publish()``.
    - Async handlers are scheduled via ``asyncio.create_task()`` (fire-and-forget).
    - Handler exceptions are logged but never propagate to the publisher.

    Example::

        bus = EventBus()

        def on_file(event, payload):
            print(f"  {payload['path']} ({payload['tokens']} tokens)")

        bus.subscribe(AskEvent.FILE_EXPANDED, on_file)
        bus.publish(AskEvent.FILE_EXPANDED, {"path": "main.go", "tokens": 120})
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self._handlers: dict[AskEvent, list[Handler]] = {}
        self._global_handlers: list[Handler] = []
        self._logger = logger or structlog.get_logger("askmd.events")

    def subscribe(self, event: AskEvent, handler: Handler) -> None:
        """Register ``handler(event, payload)`` for one event type. May be sync or async."""
        self._handlers.setdefault(event, []).append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Register a handler for every event type."""
        self._global_handlers.append(handler)

    def unsubscribe(self, event: AskEvent, handler: Handler) -> None:
        """Remove a previously registered handler. No-op if not found."""
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: AskEvent, payload: dict[str, Any]) -> None:
        """
        Publish an event to all registered handlers.

        Specific handlers run before global ones, each group in registration
        order. Exceptions from any handler are logged and swallowed.

        Args:
            event: The event type to publish.
            payload: Event-specific data dictionary.
        """
        all_handlers = list(self._handlers.get(event, [])) + list(self._global_handlers)
        for handler in all_handlers:
            try:
                result = handler(event, payload)
                if asyncio.iscoroutine(result):
                    self._schedule(event, result)
            except Exception as exc:
                self._logger.error(
                    "event_handler_error",
                    event_type=str(event),
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(exc),
                )

    def _schedule(self, event: AskEvent, coro: Awaitable[None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop: close the coroutine so it is not left un-awaited.
            coro.close()  # type: ignore[attr-defined]
            self._logger.debug("async_handler_skipped", event_type=str(event))
            return
        loop.create_task(coro)  # noqa: RUF006
