"""Session document model: grammar, parsing, mutation and streaming persistence."""

from askmd.document.grammar import Boundary, ReferenceSpan, find_boundaries, find_references
from askmd.document.mutator import (
    append_turn,
    close_open_fences,
    read_document,
    replace_turn_content,
    write_atomic,
)
from askmd.document.parser import find_last_human_turn, parse_all, unwrap_ai_content
from askmd.document.stream import StreamState, StreamWriter

__all__ = [
    # Grammar
    "Boundary",
    "ReferenceSpan",
    "find_boundaries",
    "find_references",
    # Parsing
    "parse_all",
    "find_last_human_turn",
    "unwrap_ai_content",
    # Mutation
    "replace_turn_content",
    "append_turn",
    "close_open_fences",
    "read_document",
    "write_atomic",
    # Streaming
    "StreamState",
    "StreamWriter",
]
