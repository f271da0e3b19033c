"""Exception hierarchy for askmd."""

from __future__ import annotations

from pathlib import Path

# ── Base ──────────────────────────────────────────────────────────────────────


class AskError(Exception):
    """Base class for all askmd errors."""


class ConfigError(AskError):
    """Raised when the persisted configuration cannot be read or updated."""


class ModelInvocationError(AskError):
    """Raised when the model provider call fails."""


# ── Reference expansion ───────────────────────────────────────────────────────


class ExpansionError(AskError):
    """Base class for failures while expanding ``[[path]]`` references."""


class DirectoryNotFoundError(ExpansionError):
    """Raised when a directory reference does not exist."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(f"directory '{path}' not found")
        self.path = str(path)


class NotADirectoryReferenceError(ExpansionError):
    """Raised when a reference ends in ``/`` but names something other than a directory."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(f"'{path}' is not a directory")
        self.path = str(path)


class NoMatchingFilesError(ExpansionError):
    """Raised when a directory expansion produces no files at its root."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(f"no matching files in directory '{path}'")
        self.path = str(path)


class ReferenceNotFoundError(ExpansionError):
    """Raised when an explicitly referenced file does not exist."""

    def __init__(self, path: str | Path, turn_number: int) -> None:
        super().__init__(f"cannot find '{path}' referenced in turn {turn_number}")
        self.path = str(path)
        self.turn_number = turn_number


class ReferenceReadError(ExpansionError):
    """Raised when an explicitly referenced file exists but cannot be read."""

    def __init__(self, path: str | Path, cause: OSError) -> None:
        super().__init__(f"failed to read '{path}': {cause}")
        self.path = str(path)
        self.cause = cause


class ReferenceResolutionError(ExpansionError):
    """
    Raised when a reference token cannot be resolved.

    Wraps the underlying failure so callers can report which token in which
    turn broke the expansion.
    """

    def __init__(self, path: str, cause: Exception, turn_number: int | None = None) -> None:
        where = f" in turn {turn_number}" if turn_number is not None else ""
        super().__init__(f"failed to expand '{path}'{where}: {cause}")
        self.path = path
        self.cause = cause
        self.turn_number = turn_number


# ── Document ──────────────────────────────────────────────────────────────────


class DocumentError(AskError):
    """Base class for session document errors."""


class DocumentNotFoundError(DocumentError):
    """Raised when the session document does not exist."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(f"no {Path(path).name} found. Run 'askmd init' to start")
        self.path = str(path)


class DocumentExistsError(DocumentError):
    """Raised by ``init`` when the session document already exists."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(f"{Path(path).name} already exists. Delete it to start fresh")
        self.path = str(path)


class NoTurnsFoundError(DocumentError):
    """Raised when a document contains no ``# [N] Human|AI`` boundary."""

    def __init__(self) -> None:
        super().__init__("no turns found in session document")


class NoHumanTurnError(DocumentError):
    """Raised when a document contains turns but none of them is a Human turn."""

    def __init__(self) -> None:
        super().__init__("no human turn found in session document")


class EmptyTurnContentError(DocumentError):
    """Raised when the latest Human turn has no content to send."""

    def __init__(self, turn_number: int) -> None:
        super().__init__(f"turn {turn_number} has no content. Add your thoughts and try again")
        self.turn_number = turn_number
