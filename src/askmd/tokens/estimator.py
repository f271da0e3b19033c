"""Character-based token estimation."""

from __future__ import annotations

from collections.abc import Iterable

from askmd.models.document import Turn


class TokenEstimator:
    """
    Approximate token counting.

    Uses a fixed ``len // 4`` heuristic. It is not a tokenizer and is only
    used for display (per-file stats, streaming progress) and never for
    budget enforcement.
    """

    CHARS_PER_TOKEN = 4

    def estimate(self, text: str) -> int:
        """Return ``len(text) // 4``; 0 for empty text."""
        return len(text) // self.CHARS_PER_TOKEN

    def estimate_turns(self, turns: Iterable[Turn]) -> int:
        """Estimate the prompt size of a turn history."""
        return sum(self.estimate(turn.content) for turn in turns)
