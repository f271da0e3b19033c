"""
askmd: chat with a language model inside a markdown document.

Primary entry point::

    from askmd import ChatSession, ConfigStore

    ChatSession.init_document("session.md")
    # ...write your question under "# [1] Human", then:
    result = await ChatSession("session.md", ConfigStore().load()).run()
    print(result.token_count)
"""

from askmd.session import ChatSession
from askmd.models import (
    AskConfig,
    ConfigStore,
    ExpansionPolicy,
    FilterPolicy,
    HeaderPair,
    ThinkingConfig,
    ChatResult,
    ExpansionResult,
    FileStat,
    MarkdownContext,
    Role,
    SkippedFile,
    StreamOutcome,
    Turn,
)
from askmd.document import StreamWriter, append_turn, parse_all, replace_turn_content
from askmd.events.bus import AskEvent, EventBus
from askmd.expand import ReferenceExpander, expand_references
from askmd.filters import ContentFilter, filter_content
from askmd.llm import ModelClient
from askmd.tokens.estimator import TokenEstimator
from askmd.errors import AskError

__version__ = "0.1.0"

__all__ = [
    # Session
    "ChatSession",
    # Config
    "AskConfig",
    "ConfigStore",
    "ExpansionPolicy",
    "FilterPolicy",
    "HeaderPair",
    "ThinkingConfig",
    # Models
    "ChatResult",
    "ExpansionResult",
    "FileStat",
    "MarkdownContext",
    "Role",
    "SkippedFile",
    "StreamOutcome",
    "Turn",
    # Document
    "StreamWriter",
    "append_turn",
    "parse_all",
    "replace_turn_content",
    # Expansion
    "ReferenceExpander",
    "expand_references",
    "ContentFilter",
    "filter_content",
    # Model + events
    "ModelClient",
    "EventBus",
    "AskEvent",
    "TokenEstimator",
    "AskError",
]
