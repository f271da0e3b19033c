"""askmd event bus."""

from askmd.events.bus import AskEvent, EventBus, Handler
from askmd.events.payloads import (
    DocumentUpdatedPayload,
    ExpansionCompletedPayload,
    ExpansionStartedPayload,
    FileExpandedPayload,
    FileSkippedPayload,
    StreamCompletedPayload,
    StreamInterruptedPayload,
    StreamProgressPayload,
    StreamStartedPayload,
)

__all__ = [
    "AskEvent",
    "DocumentUpdatedPayload",
    "EventBus",
    "ExpansionCompletedPayload",
    "ExpansionStartedPayload",
    "FileExpandedPayload",
    "FileSkippedPayload",
    "Handler",
    "StreamCompletedPayload",
    "StreamInterruptedPayload",
    "StreamProgressPayload",
    "StreamStartedPayload",
]
