"""Reference expansion: ``[[path]]`` tokens to fenced content sections."""

from askmd.expand.context import detect_context, format_section, parse_heading
from askmd.expand.expander import (
    DirectoryReference,
    FileReference,
    ReferenceExpander,
    classify,
    expand_references,
)
from askmd.expand.walker import should_include, walk
from askmd.languages import language_hint

__all__ = [
    "ReferenceExpander",
    "expand_references",
    "FileReference",
    "DirectoryReference",
    "classify",
    "walk",
    "should_include",
    "detect_context",
    "parse_heading",
    "format_section",
    "language_hint",
]
