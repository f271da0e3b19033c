"""Expansion of ``[[path]]`` references into fenced content sections."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from askmd.document.grammar import ReferenceSpan, find_references
from askmd.errors import (
    ExpansionError,
    ReferenceNotFoundError,
    ReferenceReadError,
    ReferenceResolutionError,
)
from askmd.expand.context import detect_context, format_section
from askmd.expand.walker import walk
from askmd.filters.pipeline import ContentFilter
from askmd.languages import language_hint
from askmd.models.config import ExpansionPolicy, FilterPolicy
from askmd.models.document import ExpansionResult, FileStat, MarkdownContext, SkippedFile
from askmd.tokens.estimator import TokenEstimator

_RECURSIVE_MARKER = "/**/"


@dataclass(frozen=True)
class FileReference:
    """A token naming a single file."""

    path: str


@dataclass(frozen=True)
class DirectoryReference:
    """A token naming a directory, ``[[dir/]]`` or ``[[dir/**/]]``."""

    path: str
    forced_recursive: bool = False


Reference = FileReference | DirectoryReference


def classify(raw: str) -> Reference:
    """
    Turn the text inside ``[[...]]`` into a reference.

    ``dir/**/`` forces recursion, ``dir/`` is a directory, anything else is
    a file.
    """
    if raw.endswith(_RECURSIVE_MARKER):
        return DirectoryReference(path=raw[: -len(_RECURSIVE_MARKER)] or "/", forced_recursive=True)
    if raw.endswith("/"):
        return DirectoryReference(path=raw[:-1] or "/")
    return FileReference(path=raw)


@dataclass
class _Resolved:
    text: str
    stats: list[FileStat] = field(default_factory=list)
    skipped: list[SkippedFile] = field(default_factory=list)


class _BinaryContent(Exception):
    """Internal signal: the file holds a zero byte and must be dropped."""


class ReferenceExpander:
    """
    Rewrites a Human turn, inlining every file and directory it references.

    Reference spans and their markdown context are computed once against the
    original text, each span is resolved on its own, and the output is
    assembled in a single splice pass. Identical tokens appearing twice are
    therefore expanded twice, each with its own section numbers.

    Example::

        expander = ReferenceExpander(config.expand, config.filter)
        result = expander.expand("Review [[src/]] please", turn_number=3)
        for stat in result.stats:
            print(stat.path, stat.tokens)
    """

    def __init__(
        self,
        policy: ExpansionPolicy,
        filter_policy: FilterPolicy,
        *,
        base_dir: str | Path | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self._policy = policy
        self._filter = ContentFilter(filter_policy)
        self._base_dir = Path(base_dir) if base_dir is not None else None
        self._estimator = estimator or TokenEstimator()
        self._logger = structlog.get_logger("askmd.expand")

    def expand(self, content: str, turn_number: int) -> ExpansionResult:
        """
        Expand all references in one turn.

        Args:
            content: The Human turn text.
            turn_number: Used for fallback section numbers and error messages.

        Returns:
            ExpansionResult with the rewritten text, one FileStat per inlined
            file and the files a directory walk had to skip.

        Raises:
            ReferenceResolutionError: A file is missing or unreadable, or a
                directory reference cannot be walked.
        """
        spans = find_references(content)
        if not spans:
            return ExpansionResult(content=content)

        pieces: list[str] = []
        stats: list[FileStat] = []
        skipped: list[SkippedFile] = []
        cursor = 0
        section_number = 1

        for span in spans:
            context = detect_context(content, span.start)
            resolved = self._resolve(span, context, turn_number, section_number)
            pieces.append(content[cursor : span.start])
            pieces.append(resolved.text)
            cursor = span.end
            stats.extend(resolved.stats)
            skipped.extend(resolved.skipped)
            section_number += len(resolved.stats)

        pieces.append(content[cursor:])
        self._logger.info(
            "turn_expanded",
            turn=turn_number,
            references=len(spans),
            files=len(stats),
            skipped=len(skipped),
        )
        return ExpansionResult(content="".join(pieces), stats=stats, skipped=skipped)

    # ── Resolution ───────────────────────────────────────────────────────────

    def _resolve(
        self,
        span: ReferenceSpan,
        context: MarkdownContext,
        turn_number: int,
        section_number: int,
    ) -> _Resolved:
        reference = classify(span.path)
        try:
            if isinstance(reference, DirectoryReference):
                return self._resolve_directory(reference, context, turn_number, section_number)
            return self._resolve_file(reference, context, turn_number, section_number)
        except ExpansionError as exc:
            raise ReferenceResolutionError(span.path, exc, turn_number) from exc
        except OSError as exc:
            raise ReferenceResolutionError(span.path, exc, turn_number) from exc

    def _resolve_file(
        self,
        reference: FileReference,
        context: MarkdownContext,
        turn_number: int,
        section_number: int,
    ) -> _Resolved:
        try:
            text = self._read_text(reference.path)
        except FileNotFoundError as exc:
            raise ReferenceNotFoundError(reference.path, turn_number) from exc
        except _BinaryContent:
            self._logger.info("binary_reference_dropped", path=reference.path)
            return _Resolved(text="")
        except OSError as exc:
            raise ReferenceReadError(reference.path, exc) from exc

        section, stat = self._render(reference.path, text, context, turn_number, section_number)
        return _Resolved(text=section, stats=[stat])

    def _resolve_directory(
        self,
        reference: DirectoryReference,
        context: MarkdownContext,
        turn_number: int,
        section_number: int,
    ) -> _Resolved:
        recursive = reference.forced_recursive or self._policy.recursive_default
        files = walk(reference.path, self._policy, recursive, base_dir=self._base_dir)

        sections: list[str] = []
        resolved = _Resolved(text="")
        for path in files:
            display = path.as_posix()
            try:
                text = self._read_text(display)
            except _BinaryContent:
                self._logger.debug("binary_file_skipped", path=display)
                continue
            except OSError as exc:
                self._logger.warning("file_skipped", path=display, error=str(exc))
                resolved.skipped.append(SkippedFile(path=display, reason=str(exc)))
                continue

            number = section_number + len(resolved.stats)
            section, stat = self._render(display, text, context, turn_number, number)
            sections.append(section)
            resolved.stats.append(stat)

        resolved.text = "\n\n".join(sections)
        return resolved

    def _render(
        self,
        path: str,
        text: str,
        context: MarkdownContext,
        turn_number: int,
        section_number: int,
    ) -> tuple[str, FileStat]:
        filtered = self._filter.apply(text, path)
        section = format_section(
            context, turn_number, section_number, path, language_hint(path), filtered
        )
        stat = FileStat(path=path, tokens=self._estimator.estimate(filtered))
        self._logger.debug("reference_expanded", path=path, tokens=stat.tokens)
        return section, stat

    def _read_text(self, path: str) -> str:
        location = Path(path)
        if self._base_dir is not None:
            location = self._base_dir / location
        data = location.read_bytes()
        if b"\x00" in data:
            raise _BinaryContent(path)
        return data.decode("utf-8", errors="replace")


def expand_references(
    content: str,
    turn_number: int,
    policy: ExpansionPolicy,
    filter_policy: FilterPolicy,
    *,
    base_dir: str | Path | None = None,
) -> ExpansionResult:
    """Functional shortcut for :meth:`ReferenceExpander.expand`."""
    return ReferenceExpander(policy, filter_policy, base_dir=base_dir).expand(content, turn_number)
