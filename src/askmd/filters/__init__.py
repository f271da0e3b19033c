"""Content filtering applied before files are inlined."""

from askmd.filters.pipeline import CommentSyntax, ContentFilter, comment_syntax_for, filter_content

__all__ = ["CommentSyntax", "ContentFilter", "comment_syntax_for", "filter_content"]
