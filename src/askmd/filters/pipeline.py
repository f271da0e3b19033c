"""Header and comment stripping applied to file content before inclusion."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath

import structlog

from askmd.languages import language_hint
from askmd.models.config import FilterPolicy

_BLANK_RUN_RE = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")


@dataclass(frozen=True)
class CommentSyntax:
    """Comment delimiters recognised by the line scanner for one language family."""

    line_prefixes: tuple[str, ...]
    block_pairs: tuple[tuple[str, str], ...]


_C_FAMILY = CommentSyntax(line_prefixes=("//",), block_pairs=(("/*", "*/"),))
_HASH = CommentSyntax(line_prefixes=("#",), block_pairs=())
_PYTHON = CommentSyntax(line_prefixes=("#",), block_pairs=(('"""', '"""'), ("'''", "'''")))
_DASH = CommentSyntax(line_prefixes=("--",), block_pairs=(("/*", "*/"),))
_MARKUP = CommentSyntax(line_prefixes=(), block_pairs=(("<!--", "-->"),))
_GENERIC = CommentSyntax(line_prefixes=("//",), block_pairs=(("/*", "*/"), ("<!--", "-->")))

_SYNTAX_BY_LANGUAGE: dict[str, CommentSyntax] = {
    **dict.fromkeys(
        (
            "go", "rust", "c", "cpp", "java", "csharp", "javascript", "typescript",
            "swift", "kotlin", "scala", "php", "protobuf", "css", "scss", "less",
            "graphql",
        ),
        _C_FAMILY,
    ),
    **dict.fromkeys(
        ("bash", "zsh", "fish", "powershell", "ruby", "yaml", "toml", "makefile",
         "dockerfile", "ini"),
        _HASH,
    ),
    "python": _PYTHON,
    "sql": _DASH,
    "lua": CommentSyntax(line_prefixes=("--",), block_pairs=(("--[[", "]]"),)),
    "haskell": CommentSyntax(line_prefixes=("--",), block_pairs=(("{-", "-}"),)),
    **dict.fromkeys(("html", "xml", "markdown", "vue", "svelte"), _MARKUP),
}


def comment_syntax_for(path: str | PurePath | None) -> CommentSyntax:
    """Pick the comment syntax for ``path``; the generic C/markup set when unknown."""
    if path is None:
        return _GENERIC
    return _SYNTAX_BY_LANGUAGE.get(language_hint(path), _GENERIC)


class ContentFilter:
    """
    Strips configured header blocks and comments from file content.

    Header stripping always runs before comment stripping. With
    ``policy.enabled`` false the content is returned untouched.

    Example::

        content_filter = ContentFilter(FilterPolicy(strip_all_comments=True))
        cleaned = content_filter.apply(source, "main.go")
    """

    def __init__(self, policy: FilterPolicy) -> None:
        self._policy = policy
        self._logger = structlog.get_logger("askmd.filter")

    @property
    def policy(self) -> FilterPolicy:
        return self._policy

    def apply(self, content: str, path: str | PurePath | None = None) -> str:
        """
        Run the enabled filters over ``content``.

        Args:
            content: Decoded file text.
            path: Optional file path used to choose the comment syntax.

        Returns:
            The filtered text.
        """
        if not self._policy.enabled:
            return content
        if self._policy.strip_headers:
            content = self.strip_headers(content)
        if self._policy.strip_all_comments:
            content = self.strip_comments(content, comment_syntax_for(path))
        return content

    def strip_headers(self, content: str) -> str:
        """
        Remove leading header blocks (license, doc banner) delimited by the
        configured ``(start, end)`` pairs.

        Consecutive blocks are removed one after another. Content that
        starts with a preserve prefix is left alone, including when the
        prefix only surfaces after an earlier block was removed.
        """
        pairs = self._policy.header_remove_pairs
        preserve = self._policy.header_preserve_prefixes
        removed = 0

        while True:
            trimmed = content.lstrip()
            if not trimmed:
                return "" if removed else content
            if any(trimmed.startswith(prefix) for prefix in preserve):
                break
            pair = next((p for p in pairs if trimmed.startswith(p.start)), None)
            if pair is None:
                break
            end_at = trimmed.find(pair.end, len(pair.start))
            if end_at == -1:
                # Unterminated block: not a header we can safely remove.
                break
            content = _drop_leading_blank_lines(trimmed[end_at + len(pair.end) :])
            removed += 1

        if removed:
            self._logger.debug("header_stripped", blocks=removed)
        return content

    def strip_comments(self, content: str, syntax: CommentSyntax = _GENERIC) -> str:
        """
        Drop comment lines and block comments with a line-oriented scanner.

        Lines starting with a preserve prefix and a leading shebang survive.
        Runs of blank lines left behind collapse to a single blank line and
        the result is trimmed.
        """
        preserve = self._policy.header_preserve_prefixes
        kept: list[str] = []
        closing: str | None = None

        for index, line in enumerate(content.split("\n")):
            stripped = line.strip()

            if closing is not None:
                end_at = stripped.find(closing)
                if end_at == -1:
                    continue
                rest = stripped[end_at + len(closing) :].strip()
                closing = None
                if rest:
                    kept.append(rest)
                continue

            if index == 0 and stripped.startswith("#!"):
                kept.append(line)
                continue
            if any(stripped.startswith(prefix) for prefix in preserve):
                kept.append(line)
                continue
            # Block openers first: Lua's "--[[" also starts with its line prefix.
            opener = next((p for p in syntax.block_pairs if stripped.startswith(p[0])), None)
            if opener is not None:
                start, end = opener
                end_at = stripped.find(end, len(start))
                if end_at == -1:
                    closing = end
                    continue
                rest = stripped[end_at + len(end) :].strip()
                if rest:
                    kept.append(rest)
                continue

            if any(stripped.startswith(prefix) for prefix in syntax.line_prefixes):
                continue

            kept.append(line)

        result = "\n".join(kept)
        result = _BLANK_RUN_RE.sub("\n\n", result)
        return result.strip()


def _drop_leading_blank_lines(text: str) -> str:
    lines = text.split("\n")
    index = 0
    while index < len(lines) and not lines[index].strip():
        index += 1
    return "\n".join(lines[index:])


def filter_content(content: str, policy: FilterPolicy, path: str | PurePath | None = None) -> str:
    """Functional shortcut for ``ContentFilter(policy).apply(content, path)``."""
    return ContentFilter(policy).apply(content, path)
