"""Tests for directory walking and the file inclusion rule."""

from __future__ import annotations

import pytest

from askmd.errors import DirectoryNotFoundError, NoMatchingFilesError, NotADirectoryReferenceError
from askmd.expand.walker import should_include, walk
from askmd.models.config import ExpansionPolicy


def _names(paths):
    return [p.as_posix() for p in paths]


class TestShouldInclude:
    def test_listed_extension_accepted(self, policy):
        assert should_include("main.go", "src/main.go", policy)

    def test_extension_match_is_case_insensitive(self, policy):
        assert should_include("README.MD", "README.MD", policy)

    def test_unknown_extension_rejected(self, policy):
        assert not should_include("data.xyz", "data.xyz", policy)

    def test_exclude_pattern_beats_extension(self, policy):
        """*.min.js is excluded even though .js is an included extension."""
        assert not should_include("app.min.js", "web/app.min.js", policy)
        assert not should_include("x_test.go", "pkg/x_test.go", policy)

    def test_excluded_directory_component_rejects(self, policy):
        assert not should_include("c.go", "proj/vendor/c.go", policy)
        assert not should_include("index.js", "node_modules/pkg/index.js", policy)

    def test_include_pattern_for_extensionless_file(self, policy):
        assert should_include("Makefile", "Makefile", policy)
        assert should_include("Dockerfile", "deploy/Dockerfile", policy)

    def test_exclude_pattern_matches_relative_path(self):
        policy = ExpansionPolicy(exclude_glob_patterns=["gen/*"])
        assert not should_include("a.go", "gen/a.go", policy)
        assert should_include("a.go", "src/a.go", policy)

    def test_leading_dots_in_configured_extensions_ignored(self):
        policy = ExpansionPolicy(include_extensions=[".foo"])
        assert should_include("x.foo", "x.foo", policy)


class TestWalk:
    def test_non_recursive_skips_excluded_entries(self, project, policy):
        """proj/ holds a.go, b.min.js, vendor/c.go: only a.go (and Makefile) survive."""
        files = walk("proj", policy, recursive=False, base_dir=project)
        assert _names(files) == ["proj/Makefile", "proj/a.go"]

    def test_only_a_go_with_pattern_free_policy(self, project):
        policy = ExpansionPolicy(include_patterns=[])
        files = walk("proj", policy, recursive=False, base_dir=project)
        assert _names(files) == ["proj/a.go"]

    def test_recursive_lists_files_before_subdirectories(self, project, policy):
        files = walk("proj", policy, recursive=True, base_dir=project)
        assert _names(files) == [
            "proj/Makefile",
            "proj/a.go",
            "proj/sub/d.py",
            "proj/sub/deeper/e.rs",
        ]

    def test_excluded_directory_never_entered(self, project, policy):
        files = walk("proj", policy, recursive=True, base_dir=project)
        assert not any("vendor" in name for name in _names(files))

    def test_depth_bound(self, project):
        policy = ExpansionPolicy(max_depth=2, include_patterns=[])
        files = walk("proj", policy, recursive=True, base_dir=project)
        assert _names(files) == ["proj/a.go", "proj/sub/d.py"]

    def test_max_depth_one_is_non_recursive(self, project):
        policy = ExpansionPolicy(max_depth=1, include_patterns=[])
        files = walk("proj", policy, recursive=True, base_dir=project)
        assert _names(files) == ["proj/a.go"]

    def test_missing_directory_raises(self, tmp_path, policy):
        with pytest.raises(DirectoryNotFoundError):
            walk("nope", policy, recursive=False, base_dir=tmp_path)

    def test_file_instead_of_directory_raises(self, project, policy):
        with pytest.raises(NotADirectoryReferenceError):
            walk("proj/a.go", policy, recursive=False, base_dir=project)

    def test_no_matching_files_at_root_raises(self, write_files, policy):
        root = write_files({"empty/notes.xyz": "x"})
        with pytest.raises(NoMatchingFilesError):
            walk("empty", policy, recursive=True, base_dir=root)

    def test_empty_subdirectory_is_not_an_error(self, write_files, policy):
        root = write_files({"top/a.py": "a", "top/inner/skip.xyz": "x"})
        files = walk("top", policy, recursive=True, base_dir=root)
        assert _names(files) == ["top/a.py"]

    def test_paths_are_relative_to_reference_not_base_dir(self, project, policy):
        files = walk("proj/sub", policy, recursive=False, base_dir=project)
        assert _names(files) == ["proj/sub/d.py"]
        assert not files[0].is_absolute()
