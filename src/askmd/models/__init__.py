"""askmd data models."""

from askmd.models.config import (
    AskConfig,
    ConfigStore,
    ExpansionPolicy,
    FilterPolicy,
    HeaderPair,
    ThinkingConfig,
)
from askmd.models.document import (
    ChatResult,
    ExpansionResult,
    FileStat,
    MarkdownContext,
    Role,
    SkippedFile,
    StreamOutcome,
    Turn,
)

__all__ = [
    # Config
    "AskConfig",
    "ConfigStore",
    "ExpansionPolicy",
    "FilterPolicy",
    "HeaderPair",
    "ThinkingConfig",
    # Document
    "Role",
    "Turn",
    # Expansion
    "MarkdownContext",
    "FileStat",
    "SkippedFile",
    "ExpansionResult",
    # Results
    "StreamOutcome",
    "ChatResult",
]
