"""Tests for the askmd command line."""

from __future__ import annotations

import json

import pytest
import structlog

from askmd import __version__
from askmd.cli import main
from askmd.document.parser import parse_all


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch, isolated_config):
    """Run every CLI test in a scratch directory with its own config file."""
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    structlog.reset_defaults()


class TestVersionAndInit:
    def test_version(self, capsys):
        assert main(["version"]) == 0
        assert capsys.readouterr().out.strip() == f"askmd {__version__}"

    def test_init_creates_session(self, workdir, capsys):
        assert main(["init"]) == 0
        assert (workdir / "session.md").read_text(encoding="utf-8") == "# [1] Human\n\n"
        assert "Created session.md" in capsys.readouterr().out

    def test_init_twice_fails(self, capsys):
        main(["init"])
        assert main(["init"]) == 1
        assert "Error: session.md already exists" in capsys.readouterr().err


class TestChat:
    def test_bare_command_runs_chat(self, workdir, mock_llm_env, capsys):
        (workdir / "session.md").write_text("# [1] Human\n\nhello\n", encoding="utf-8")
        assert main([]) == 0
        assert "Response complete:" in capsys.readouterr().out
        assert len(parse_all((workdir / "session.md").read_text(encoding="utf-8"))) == 3

    def test_bare_command_with_verbose_flag(self, capsys):
        assert main(["-v"]) == 1
        assert "no session.md found" in capsys.readouterr().err

    def test_missing_session(self, capsys):
        assert main(["chat"]) == 1
        assert "Error: no session.md found. Run 'askmd init' to start" in capsys.readouterr().err

    def test_empty_turn(self, capsys):
        main(["init"])
        assert main(["chat"]) == 1
        assert "turn 1 has no content" in capsys.readouterr().err

    def test_chat_with_mock_model(self, workdir, mock_llm_env, capsys):
        (workdir / "main.go").write_text("package main\n", encoding="utf-8")
        (workdir / "session.md").write_text("# [1] Human\n\nReview [[main.go]]\n", encoding="utf-8")

        assert main(["chat"]) == 0

        out = capsys.readouterr().out
        assert "Expanding 1 file references..." in out
        assert "  main.go (3 tokens)" in out
        assert "Response complete:" in out
        turns = parse_all((workdir / "session.md").read_text(encoding="utf-8"))
        assert [t.number for t in turns] == [1, 2, 3]
        assert turns[1].content.startswith("[Mock response to: Review ## [1.1] main.go]")

    def test_no_stream_and_model_override(self, workdir, mock_llm_env, capsys):
        (workdir / "notes.md").write_text("# [1] Human\n\nhello\n", encoding="utf-8")
        assert main(["chat", "--file", "notes.md", "--no-stream", "--model", "haiku"]) == 0
        out = capsys.readouterr().out
        assert "Model: anthropic/claude-haiku-4-5" in out
        assert len(parse_all((workdir / "notes.md").read_text(encoding="utf-8"))) == 3


class TestCfg:
    def test_show(self, isolated_config, capsys):
        assert main(["cfg"]) == 0
        out = capsys.readouterr().out
        assert f"Config: {isolated_config}" in out
        assert "Model:        opus" in out

    def test_set(self, isolated_config, capsys):
        assert main(["cfg", "set", "expand.max_depth", "5"]) == 0
        assert json.loads(isolated_config.read_text())["expand"]["max_depth"] == 5
        assert "max_depth=5" in capsys.readouterr().out

    def test_set_unknown_key(self, capsys):
        assert main(["cfg", "set", "nope", "1"]) == 1
        assert "unknown config key 'nope'" in capsys.readouterr().err

    def test_path(self, isolated_config, capsys):
        assert main(["cfg", "path"]) == 0
        assert capsys.readouterr().out.strip() == str(isolated_config)

    def test_models(self, capsys):
        assert main(["cfg", "models"]) == 0
        out = capsys.readouterr().out
        assert "* opus     anthropic/claude-opus-4-1" in out
        assert "  sonnet   anthropic/claude-sonnet-4-5" in out
        assert "  haiku    anthropic/claude-haiku-4-5" in out

    def test_models_marks_configured_alias(self, capsys):
        main(["cfg", "set", "model", "haiku"])
        capsys.readouterr()
        assert main(["cfg", "models"]) == 0
        out = capsys.readouterr().out
        assert "* haiku" in out
        assert "* opus" not in out
