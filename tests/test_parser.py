"""Tests for the document grammar and turn parser."""

from __future__ import annotations

import pytest

from askmd.document.grammar import (
    fenced_spans,
    find_boundaries,
    find_references,
    format_heading,
    open_fence,
)
from askmd.document.parser import find_last_human_turn, parse_all, unwrap_ai_content
from askmd.errors import NoHumanTurnError, NoTurnsFoundError
from askmd.models.document import Role, Turn

SESSION = """# [1] Human

What does [[main.go]] do?

# [2] AI

````markdown
It prints hello.
````

# [3] Human

Thanks. Now [[lib/]]?
"""


class TestGrammar:
    def test_boundaries_found_in_order(self):
        boundaries = find_boundaries(SESSION)
        assert [(b.number, b.role) for b in boundaries] == [
            (1, Role.HUMAN),
            (2, Role.AI),
            (3, Role.HUMAN),
        ]

    def test_heading_must_be_exact(self):
        text = "## [1] Human\n# [1] human\n# 1 Human\n #  [1] Human\n# [x] AI\n"
        assert find_boundaries(text) == []

    def test_trailing_whitespace_tolerated(self):
        assert len(find_boundaries("# [4] AI   \nhi")) == 1

    def test_boundary_inside_closed_fence_ignored(self):
        text = "# [1] Human\n```\n# [2] AI\n```\n"
        assert [b.number for b in find_boundaries(text)] == [1]

    def test_unclosed_fence_hides_nothing(self):
        text = "# [1] AI\n\n````markdown\npartial\n# [2] Human\n\nnext\n"
        assert [b.number for b in find_boundaries(text)] == [1, 2]

    def test_open_fence_reported(self):
        text = "# [1] AI\n\n````markdown\npartial\n"
        fence = open_fence(text)
        assert fence is not None
        assert fence.start == text.index("````markdown")
        assert fence.marker == "````"

    def test_no_open_fence_when_balanced(self):
        assert open_fence("~~~~\nx\n~~~~~\n") is None

    def test_tilde_fence(self):
        text = "~~~\n[[a.go]]\n~~~\n[[b.go]]"
        assert [r.path for r in find_references(text)] == ["b.go"]

    def test_longer_fence_needs_longer_close(self):
        text = "````\n```\n[[a.go]]\n```\n````\n"
        assert fenced_spans(text) == [(0, len(text) - 1)]
        assert find_references(text) == []

    def test_references_do_not_nest_or_span_lines(self):
        text = "[[a]] [[b\nc]] [[[d]]] [[]]"
        assert [r.path for r in find_references(text)] == ["a", "d"]

    def test_reference_offsets_and_literal(self):
        text = "x [[src/a.go]] y"
        (ref,) = find_references(text)
        assert text[ref.start : ref.end] == ref.literal == "[[src/a.go]]"

    def test_format_heading(self):
        assert format_heading(12, Role.AI) == "# [12] AI"
        assert format_heading(1, "Human") == "# [1] Human"


class TestParseAll:
    def test_parses_all_turns(self):
        turns = parse_all(SESSION)
        assert turns == [
            Turn(number=1, role=Role.HUMAN, content="What does [[main.go]] do?"),
            Turn(number=2, role=Role.AI, content="It prints hello."),
            Turn(number=3, role=Role.HUMAN, content="Thanks. Now [[lib/]]?"),
        ]

    def test_no_boundaries_raises(self):
        with pytest.raises(NoTurnsFoundError):
            parse_all("just some notes\n")

    def test_empty_trailing_human_turn(self):
        turns = parse_all("# [1] Human\n\nhi\n\n# [2] AI\n\nyo\n\n# [3] Human\n\n")
        assert turns[-1] == Turn(number=3, role=Role.HUMAN, content="")

    def test_text_before_first_boundary_ignored(self):
        turns = parse_all("preamble\n# [1] Human\nq\n")
        assert turns == [Turn(number=1, role=Role.HUMAN, content="q")]

    def test_crash_truncated_ai_turn_unwraps(self):
        turns = parse_all("# [1] Human\n\nq\n\n# [2] AI\n\n````markdown\npartial answ")
        assert turns[-1].content == "partial answ"

    def test_transcript_inside_expanded_file_is_inert(self):
        doc = (
            "# [1] Human\n\n## [1.1] old.md\n```markdown\n# [7] AI\nquoted\n```\n\n"
            "# [2] AI\n\n````markdown\nok\n````\n"
        )
        assert [(t.number, t.role) for t in parse_all(doc)] == [(1, Role.HUMAN), (2, Role.AI)]

    def test_human_turn_keeps_fences(self):
        doc = "# [1] Human\n\n````markdown\nliteral\n````\n"
        assert parse_all(doc)[0].content == "````markdown\nliteral\n````"


class TestUnwrapAiContent:
    def test_with_and_without_closing_marker(self):
        assert unwrap_ai_content("````markdown\nbody\n````") == "body"
        assert unwrap_ai_content("````markdown\nbody") == "body"

    def test_unfenced_content_unchanged(self):
        assert unwrap_ai_content("plain answer") == "plain answer"

    def test_inner_fences_kept(self):
        body = "````markdown\n```go\nx\n```\n````"
        assert unwrap_ai_content(body) == "```go\nx\n```"


class TestFindLastHumanTurn:
    def test_returns_latest(self):
        turn = find_last_human_turn(SESSION)
        assert turn.number == 3
        assert turn.content == "Thanks. Now [[lib/]]?"

    def test_only_ai_turns(self):
        with pytest.raises(NoHumanTurnError):
            find_last_human_turn("# [1] AI\n\nhello\n")
