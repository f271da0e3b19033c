"""Policy-driven, depth-bounded directory traversal."""

from __future__ import annotations

import os
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath

import structlog

from askmd.errors import DirectoryNotFoundError, NoMatchingFilesError, NotADirectoryReferenceError
from askmd.models.config import ExpansionPolicy

_logger = structlog.get_logger("askmd.walker")


def should_include(name: str, relative_path: str, policy: ExpansionPolicy) -> bool:
    """
    Decide whether a candidate file is picked up by a directory expansion.

    Rules, first decisive one wins:

    1. Any path component equal to an excluded directory name rejects.
    2. ``relative_path`` or ``name`` matching an exclude glob rejects.
    3. An extension listed in ``include_extensions`` (case-insensitive) accepts.
    4. ``name`` matching an include glob accepts (``Makefile``, ``Dockerfile``...).
    5. Anything else is rejected.

    Args:
        name: File name without directories.
        relative_path: Path as reached from the reference, ``/``-separated.
        policy: The expansion policy for this run.
    """
    posix = PurePosixPath(relative_path.replace(os.sep, "/"))
    excluded_dirs = set(policy.exclude_dir_names)
    if any(part in excluded_dirs for part in posix.parts):
        return False

    posix_str = str(posix)
    for pattern in policy.exclude_glob_patterns:
        if fnmatchcase(posix_str, pattern) or fnmatchcase(name, pattern):
            return False

    ext = PurePosixPath(name).suffix[1:].lower()
    if ext and any(ext == include.lower() for include in policy.include_extensions):
        return True

    return any(fnmatchcase(name, pattern) for pattern in policy.include_patterns)


def walk(
    dir_path: str | Path,
    policy: ExpansionPolicy,
    recursive: bool,
    depth: int = 0,
    *,
    base_dir: str | Path | None = None,
) -> list[Path]:
    """
    List the files a directory reference expands to.

    Files of each level come first, sorted by name, followed by the contents
    of each surviving subdirectory (also sorted) when ``recursive`` is set.
    Excluded directories are never entered.

    Args:
        dir_path: Directory to walk, as written in the reference.
        policy: Include/exclude rules and ``max_depth``.
        recursive: Descend into subdirectories.
        depth: Current depth; callers start at 0.
        base_dir: Directory relative paths are resolved against. Defaults
            to the working directory.

    Returns:
        Ordered file paths, each joined onto ``dir_path`` (not ``base_dir``).

    Raises:
        DirectoryNotFoundError: ``dir_path`` does not exist.
        NotADirectoryReferenceError: ``dir_path`` is not a directory.
        NoMatchingFilesError: Nothing matched at the root call (``depth == 0``).
    """
    if depth >= policy.max_depth:
        return []

    root = Path(dir_path)
    location = Path(base_dir) / root if base_dir is not None else root
    if not location.exists():
        raise DirectoryNotFoundError(root)
    if not location.is_dir():
        raise NotADirectoryReferenceError(root)

    files: list[Path] = []
    subdirs: list[Path] = []
    with os.scandir(location) as entries:
        for entry in entries:
            full = root / entry.name
            try:
                is_dir = entry.is_dir()
            except OSError:
                is_dir = False
            if is_dir:
                if entry.name in policy.exclude_dir_names:
                    _logger.debug("directory_pruned", path=full.as_posix())
                    continue
                subdirs.append(full)
            elif should_include(entry.name, full.as_posix(), policy):
                files.append(full)

    files.sort(key=lambda p: p.name)
    subdirs.sort(key=lambda p: p.name)

    result = list(files)
    if recursive:
        for subdir in subdirs:
            try:
                result.extend(walk(subdir, policy, recursive, depth + 1, base_dir=base_dir))
            except (OSError, DirectoryNotFoundError, NotADirectoryReferenceError) as exc:
                _logger.warning("directory_skipped", path=subdir.as_posix(), error=str(exc))

    if depth == 0 and not result:
        raise NoMatchingFilesError(root)
    return result
