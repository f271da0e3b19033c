"""Data models for session documents, expansion results and streaming outcomes."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    """Who authored a turn. The value is the literal used in turn headings."""

    HUMAN = "Human"
    AI = "AI"


class Turn(BaseModel):
    """One numbered, role-tagged block of a session document."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=1)
    role: Role
    content: str = ""


# ── Reference expansion ───────────────────────────────────────────────────────


class MarkdownContext(BaseModel):
    """Heading depth and numbering used to format one expanded section."""

    model_config = ConfigDict(frozen=True)

    header_level: int = Field(default=2, ge=1, le=6)
    number_prefix: str = ""
    """Dotted number captured from the enclosing heading, e.g. ``"1.2"``. Empty when absent."""


class FileStat(BaseModel):
    """Per-file accounting record surfaced to the caller for display."""

    model_config = ConfigDict(frozen=True)

    path: str
    tokens: int = Field(ge=0)
    """Approximate token count (``len(content) // 4`` of the filtered content)."""


class SkippedFile(BaseModel):
    """A file discovered during a directory walk that could not be included."""

    model_config = ConfigDict(frozen=True)

    path: str
    reason: str


class ExpansionResult(BaseModel):
    """Rewritten turn text plus what went into it."""

    content: str
    stats: list[FileStat] = Field(default_factory=list)
    skipped: list[SkippedFile] = Field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return sum(s.tokens for s in self.stats)


# ── Model output ──────────────────────────────────────────────────────────────


class StreamOutcome(BaseModel):
    """Terminal state of one streamed model response."""

    token_count: int = 0
    interrupted: bool = False
    text: str = ""
    """Full text accumulated from the chunks that were delivered."""


class ChatResult(BaseModel):
    """Result of one ``ChatSession.run()`` invocation."""

    turn_number: int
    """Number of the AI turn that was written."""
    model: str
    stats: list[FileStat] = Field(default_factory=list)
    skipped: list[SkippedFile] = Field(default_factory=list)
    token_count: int = 0
    interrupted: bool = False
    document_updated: bool = False
    """True when the expanded Human turn was written back to the document."""
