"""Tests for [[path]] reference expansion."""

from __future__ import annotations

import pytest

from askmd.errors import (
    DirectoryNotFoundError,
    NoMatchingFilesError,
    NotADirectoryReferenceError,
    ReferenceNotFoundError,
    ReferenceResolutionError,
)
from askmd.expand.expander import (
    DirectoryReference,
    FileReference,
    ReferenceExpander,
    classify,
    expand_references,
)
from askmd.models.config import ExpansionPolicy, FilterPolicy
from askmd.models.document import FileStat


@pytest.fixture
def expander(project, policy, filter_policy):
    """ReferenceExpander rooted at the sample project tree."""
    return ReferenceExpander(policy, filter_policy, base_dir=project)


class TestClassify:
    def test_file(self):
        assert classify("src/main.go") == FileReference(path="src/main.go")

    def test_directory(self):
        assert classify("src/") == DirectoryReference(path="src", forced_recursive=False)

    def test_forced_recursive_directory(self):
        assert classify("src/**/") == DirectoryReference(path="src", forced_recursive=True)


class TestExpandFiles:
    def test_no_references_is_noop(self, expander):
        result = expander.expand("Just a question.", turn_number=1)
        assert result.content == "Just a question."
        assert result.stats == []

    def test_single_file_section(self, expander):
        result = expander.expand("Look at [[proj/a.go]] now", turn_number=3)
        assert result.content == "Look at ## [3.1] proj/a.go\n```go\npackage main\n\n``` now"
        assert result.stats == [FileStat(path="proj/a.go", tokens=3)]

    def test_binary_file_reference_dropped(self, write_files, policy, filter_policy):
        """A zero byte marks the file as binary: the token vanishes, no stat, no error."""
        root = write_files({"x.bin": b"ab\x00cd"})
        result = expand_references("See [[x.bin]]", 1, policy, filter_policy, base_dir=root)
        assert result.content == "See "
        assert result.stats == []

    def test_duplicate_references_each_expanded(self, expander):
        result = expander.expand("[[proj/a.go]]\n[[proj/a.go]]", turn_number=2)
        assert [s.path for s in result.stats] == ["proj/a.go", "proj/a.go"]
        assert "## [2.1] proj/a.go" in result.content
        assert "## [2.2] proj/a.go" in result.content
        assert "[[" not in result.content

    def test_heading_context_nests_sections(self, expander):
        text = "## [2.1] Code\n\n[[proj/a.go]]"
        result = expander.expand(text, turn_number=7)
        assert "### [2.1.1] proj/a.go\n```go" in result.content

    def test_header_filter_applied(self, write_files, policy, filter_policy):
        root = write_files({"lic.c": "/* License */\n\nint x;"})
        result = expand_references("[[lic.c]]", 1, policy, filter_policy, base_dir=root)
        assert result.content == "## [1.1] lic.c\n```c\nint x;\n```"
        assert result.stats[0].tokens == len("int x;") // 4

    def test_missing_file_fails_with_turn_number(self, expander):
        with pytest.raises(ReferenceResolutionError) as exc_info:
            expander.expand("[[missing.go]]", turn_number=3)
        assert exc_info.value.path == "missing.go"
        assert isinstance(exc_info.value.cause, ReferenceNotFoundError)
        assert "cannot find 'missing.go' referenced in turn 3" in str(exc_info.value)

    def test_fenced_reference_left_literal(self, expander):
        text = "Example:\n```\n[[proj/a.go]]\n```\n"
        result = expander.expand(text, turn_number=1)
        assert result.content == text
        assert result.stats == []

    def test_already_expanded_content_not_reexpanded(self, expander):
        first = expander.expand("[[proj/a.go]]", turn_number=1)
        second = expander.expand(first.content, turn_number=1)
        assert second.content == first.content
        assert second.stats == []


class TestExpandDirectories:
    def test_directory_sections_in_walk_order(self, expander):
        result = expander.expand("[[proj/]]", turn_number=3)
        assert [s.path for s in result.stats] == ["proj/Makefile", "proj/a.go"]
        assert result.content.startswith("## [3.1] proj/Makefile\n```makefile\n")
        assert "\n```\n\n## [3.2] proj/a.go\n```go\n" in result.content

    def test_section_numbers_continue_across_references(self, expander):
        result = expander.expand("[[proj/]] then [[proj/sub/d.py]]", turn_number=4)
        assert "## [4.3] proj/sub/d.py" in result.content

    def test_forced_recursive(self, expander):
        result = expander.expand("[[proj/**/]]", turn_number=1)
        assert [s.path for s in result.stats] == [
            "proj/Makefile",
            "proj/a.go",
            "proj/sub/d.py",
            "proj/sub/deeper/e.rs",
        ]

    def test_recursive_default(self, project, filter_policy):
        expander = ReferenceExpander(
            ExpansionPolicy(recursive_default=True), filter_policy, base_dir=project
        )
        result = expander.expand("[[proj/sub/]]", turn_number=1)
        assert [s.path for s in result.stats] == ["proj/sub/d.py", "proj/sub/deeper/e.rs"]

    def test_binary_files_in_directory_skipped(self, write_files, policy, filter_policy):
        root = write_files({"mixed/a.py": "a = 1", "mixed/b.py": b"\x00\x01"})
        result = expand_references("[[mixed/]]", 1, policy, filter_policy, base_dir=root)
        assert [s.path for s in result.stats] == ["mixed/a.py"]
        assert result.skipped == []

    def test_missing_directory(self, expander):
        with pytest.raises(ReferenceResolutionError) as exc_info:
            expander.expand("[[nowhere/]]", turn_number=1)
        assert isinstance(exc_info.value.cause, DirectoryNotFoundError)

    def test_file_referenced_as_directory(self, expander):
        with pytest.raises(ReferenceResolutionError) as exc_info:
            expander.expand("[[proj/a.go/]]", turn_number=1)
        assert isinstance(exc_info.value.cause, NotADirectoryReferenceError)

    def test_directory_without_matches(self, write_files, policy, filter_policy):
        root = write_files({"odd/file.xyz": "x"})
        with pytest.raises(ReferenceResolutionError) as exc_info:
            expand_references("[[odd/]]", 2, policy, filter_policy, base_dir=root)
        assert isinstance(exc_info.value.cause, NoMatchingFilesError)
        assert exc_info.value.turn_number == 2

    def test_comment_stripping_uses_file_language(self, write_files, policy):
        root = write_files({"src/a.py": "# note\nx = 1\n", "src/b.go": "// note\nvar y = 2\n"})
        result = expand_references(
            "[[src/]]", 1, policy, FilterPolicy(strip_all_comments=True), base_dir=root
        )
        assert "```python\nx = 1\n```" in result.content
        assert "```go\nvar y = 2\n```" in result.content
