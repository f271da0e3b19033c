"""Shared fixtures for askmd tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from askmd.events.bus import AskEvent, EventBus
from askmd.models.config import AskConfig, ExpansionPolicy, FilterPolicy
from askmd.tokens.estimator import TokenEstimator


@pytest.fixture
def policy():
    """Default ExpansionPolicy."""
    return ExpansionPolicy()


@pytest.fixture
def filter_policy():
    """Default FilterPolicy: headers stripped, comments kept."""
    return FilterPolicy()


@pytest.fixture
def config():
    """AskConfig with defaults."""
    return AskConfig()


@pytest.fixture
def estimator():
    return TokenEstimator()


@pytest.fixture
def event_bus():
    """EventBus with a .collected list for asserting events."""
    bus = EventBus()
    collected: list[tuple[AskEvent, dict[str, Any]]] = []

    def _collect(event: AskEvent, payload: dict[str, Any]) -> None:
        collected.append((event, payload))

    bus.subscribe_all(_collect)
    bus.collected = collected  # type: ignore[attr-defined]
    return bus


@pytest.fixture
def mock_llm_env(monkeypatch):
    """Enable offline mock responses for ModelClient."""
    monkeypatch.setenv("ASKMD_MOCK_LLM", "1")


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point ASKMD_CONFIG at a temp file so tests never touch ~/.askmd."""
    path = tmp_path / "config" / "config.json"
    monkeypatch.setenv("ASKMD_CONFIG", str(path))
    return path


def make_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create ``files`` (relative path → content) under ``root``."""
    for relative, content in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def project(tmp_path):
    """
    A small source tree::

        proj/a.go
        proj/b.min.js          (excluded pattern)
        proj/vendor/c.go       (excluded directory)
        proj/Makefile          (include pattern)
        proj/notes.xyz         (unknown extension)
        proj/sub/d.py
        proj/sub/deeper/e.rs
    """
    return make_tree(
        tmp_path,
        {
            "proj/a.go": "package main\n",
            "proj/b.min.js": "var x=1;",
            "proj/vendor/c.go": "package vendored\n",
            "proj/Makefile": "all:\n\tgo build\n",
            "proj/notes.xyz": "ignored",
            "proj/sub/d.py": "print('d')\n",
            "proj/sub/deeper/e.rs": "fn main() {}\n",
        },
    )


@pytest.fixture
def write_files(tmp_path):
    """Factory writing ``{relative path: content}`` under ``tmp_path``."""

    def _write(files: dict[str, str | bytes]) -> Path:
        return make_tree(tmp_path, files)

    return _write
