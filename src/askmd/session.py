"""ChatSession: one chat round over a markdown session document."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from askmd.document.grammar import format_heading
from askmd.document.mutator import append_turn, read_document, replace_turn_content, write_atomic
from askmd.document.parser import parse_all
from askmd.document.stream import StreamWriter
from askmd.errors import DocumentExistsError, EmptyTurnContentError, NoHumanTurnError
from askmd.events.bus import AskEvent, EventBus
from askmd.expand.expander import ReferenceExpander
from askmd.llm.client import ModelClient
from askmd.models.config import AskConfig
from askmd.models.document import (
    ChatResult,
    FileStat,
    Role,
    SkippedFile,
    StreamOutcome,
    Turn,
)
from askmd.tokens.estimator import TokenEstimator

DEFAULT_DOCUMENT = "session.md"


class ChatSession:
    """
    Runs one chat round against a session document.

    A round reads the document, expands the ``[[path]]`` references of every
    Human turn, writes the expanded last Human turn back, and then obtains
    the next AI turn from the model, either streamed into the document as it
    arrives or appended in one atomic write.

    Example::

        session = ChatSession("session.md", ConfigStore().load())
        result = await session.run()
        print(f"Response complete: {result.token_count} tokens")

    Status is reported through :attr:`event_bus`; the session itself never
    prints.
    """

    progress_interval: int = 100
    """Output tokens between two ``STREAM_PROGRESS`` events."""

    def __init__(
        self,
        path: str | Path,
        config: AskConfig,
        client: ModelClient | None = None,
        event_bus: EventBus | None = None,
        *,
        base_dir: str | Path | None = None,
    ) -> None:
        self._path = Path(path)
        self._config = config
        self._estimator = TokenEstimator()
        self._client = client or ModelClient(config, self._estimator)
        self._event_bus = event_bus or EventBus()
        self._expander = ReferenceExpander(
            config.expand, config.filter, base_dir=base_dir, estimator=self._estimator
        )
        self._logger = structlog.get_logger("askmd.session").bind(document=str(self._path))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @staticmethod
    def init_document(path: str | Path = DEFAULT_DOCUMENT) -> Path:
        """
        Create a new session document holding an empty first Human turn.

        Raises:
            DocumentExistsError: ``path`` already exists.
        """
        target = Path(path)
        if target.exists():
            raise DocumentExistsError(target)
        write_atomic(target, format_heading(1, Role.HUMAN) + "\n\n")
        structlog.get_logger("askmd.session").info("document_created", document=str(target))
        return target

    async def run(self, stream: bool = True, cancel_event: asyncio.Event | None = None) -> ChatResult:
        """
        Execute one chat round.

        Args:
            stream: Write the reply chunk by chunk. With ``False`` the full
                reply is requested first and appended atomically.
            cancel_event: Setting it stops streaming; the partial reply is
                kept, followed by an interruption notice.

        Returns:
            ChatResult describing the AI turn written and the files inlined.

        Raises:
            DocumentNotFoundError: The document does not exist.
            NoTurnsFoundError: The document has no turn headings.
            NoHumanTurnError: No Human turn to answer.
            EmptyTurnContentError: The last Human turn is empty.
            ReferenceResolutionError: A referenced path cannot be expanded.
            ModelInvocationError: The model call failed.
        """
        original = read_document(self._path)
        turns = parse_all(original)

        last_human_index = next(
            (i for i in range(len(turns) - 1, -1, -1) if turns[i].role is Role.HUMAN), None
        )
        if last_human_index is None:
            raise NoHumanTurnError()
        last_human = turns[last_human_index]
        if not last_human.content:
            raise EmptyTurnContentError(last_human.number)

        expanded_turns, stats, skipped = self._expand_turns(turns)

        document = original
        expanded_last = expanded_turns[last_human_index].content
        document_updated = False
        if expanded_last != last_human.content:
            document = replace_turn_content(original, last_human.number, Role.HUMAN, expanded_last)
            if document != original:
                write_atomic(self._path, document)
                document_updated = True
                self._event_bus.publish(
                    AskEvent.DOCUMENT_UPDATED,
                    {"path": str(self._path), "turn_number": last_human.number, "reason": "expanded"},
                )

        ai_number = turns[-1].number + 1
        self._logger.info(
            "chat_started",
            turn=ai_number,
            history=len(expanded_turns),
            prompt_tokens=self._estimator.estimate_turns(expanded_turns),
            stream=stream,
        )
        if stream:
            outcome = await self._stream(expanded_turns, ai_number, cancel_event)
        else:
            outcome = await self._send(document, expanded_turns, ai_number)

        return ChatResult(
            turn_number=ai_number,
            model=self._client.model,
            stats=stats,
            skipped=skipped,
            token_count=outcome.token_count,
            interrupted=outcome.interrupted,
            document_updated=document_updated,
        )

    # ── Expansion ────────────────────────────────────────────────────────────

    def _expand_turns(self, turns: list[Turn]) -> tuple[list[Turn], list[FileStat], list[SkippedFile]]:
        expanded: list[Turn] = []
        stats: list[FileStat] = []
        skipped: list[SkippedFile] = []

        for turn in turns:
            if turn.role is not Role.HUMAN:
                expanded.append(turn)
                continue
            result = self._expander.expand(turn.content, turn.number)
            if result.content == turn.content and not result.skipped:
                expanded.append(turn)
                continue

            self._event_bus.publish(
                AskEvent.EXPANSION_STARTED,
                {"turn_number": turn.number, "files": len(result.stats)},
            )
            for stat in result.stats:
                self._event_bus.publish(
                    AskEvent.FILE_EXPANDED,
                    {"turn_number": turn.number, "path": stat.path, "tokens": stat.tokens},
                )
            for skip in result.skipped:
                self._event_bus.publish(
                    AskEvent.FILE_SKIPPED,
                    {"turn_number": turn.number, "path": skip.path, "reason": skip.reason},
                )
            expanded.append(turn.model_copy(update={"content": result.content.strip()}))
            stats.extend(result.stats)
            skipped.extend(result.skipped)

        if stats or skipped:
            self._event_bus.publish(
                AskEvent.EXPANSION_COMPLETED,
                {
                    "files": len(stats),
                    "total_tokens": sum(s.tokens for s in stats),
                    "skipped": len(skipped),
                },
            )
        return expanded, stats, skipped

    # ── Model reply ──────────────────────────────────────────────────────────

    async def _stream(
        self, turns: list[Turn], ai_number: int, cancel_event: asyncio.Event | None
    ) -> StreamOutcome:
        self._event_bus.publish(
            AskEvent.STREAM_STARTED, {"turn_number": ai_number, "model": self._client.model}
        )
        last_reported = 0

        with StreamWriter(self._path, ai_number) as writer:

            def on_chunk(chunk: str, token_count: int) -> None:
                nonlocal last_reported
                writer.write_chunk(chunk, token_count)
                if token_count - last_reported >= self.progress_interval:
                    last_reported = token_count
                    self._event_bus.publish(
                        AskEvent.STREAM_PROGRESS,
                        {"turn_number": ai_number, "token_count": token_count},
                    )

            outcome = await self._client.stream_history(turns, on_chunk, cancel_event)
            writer.finish(interrupted=outcome.interrupted, token_count=outcome.token_count)

        event = AskEvent.STREAM_INTERRUPTED if outcome.interrupted else AskEvent.STREAM_COMPLETED
        self._event_bus.publish(event, {"turn_number": ai_number, "token_count": outcome.token_count})
        if writer.content_written:
            self._event_bus.publish(
                AskEvent.DOCUMENT_UPDATED,
                {"path": str(self._path), "turn_number": ai_number, "reason": "response"},
            )
        return outcome

    async def _send(self, document: str, turns: list[Turn], ai_number: int) -> StreamOutcome:
        text = await self._client.send_history(turns)
        token_count = self._estimator.estimate(text)
        if text.strip():
            document = append_turn(document, ai_number, Role.AI, text)
            document = append_turn(document, ai_number + 1, Role.HUMAN)
            write_atomic(self._path, document)
            self._event_bus.publish(
                AskEvent.DOCUMENT_UPDATED,
                {"path": str(self._path), "turn_number": ai_number, "reason": "response"},
            )
        self._event_bus.publish(
            AskEvent.STREAM_COMPLETED, {"turn_number": ai_number, "token_count": token_count}
        )
        return StreamOutcome(token_count=token_count, text=text)
