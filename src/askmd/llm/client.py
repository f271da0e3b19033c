"""Model invocation through litellm, one request per chat turn."""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from types import SimpleNamespace
from typing import Any

import structlog

from askmd.errors import ModelInvocationError
from askmd.models.config import AskConfig
from askmd.models.document import Role, StreamOutcome, Turn
from askmd.tokens.estimator import TokenEstimator

ChunkCallback = Callable[[str, int], None | Awaitable[None]]

CONTEXT_1M_BETA = "context-1m-2025-08-07"

_END = object()

# Substring in the provider error → hint appended to the message.
_ERROR_HINTS: tuple[tuple[str, str], ...] = (
    ("context-1m", "the 1M context window needs beta access; run: askmd cfg set context standard"),
    ("budget_tokens", "thinking configuration rejected; run: askmd cfg set thinking.enabled false"),
    ("thinking", "thinking configuration rejected; run: askmd cfg set thinking.enabled false"),
    ("Extra inputs", "this model does not support the configured features; try disabling thinking"),
)


def mock_enabled() -> bool:
    """True when ``ASKMD_MOCK_LLM=1``: responses are generated offline."""
    return os.environ.get("ASKMD_MOCK_LLM") == "1"


def mock_reply(turns: Sequence[Turn]) -> str:
    """Deterministic offline response echoing the last Human turn."""
    last_human = next(
        (turn.content for turn in reversed(turns) if turn.role is Role.HUMAN),
        "Hello",
    )
    first_line = last_human.strip().splitlines()[0] if last_human.strip() else ""
    return (
        f"[Mock response to: {first_line[:100]}]\n\n"
        "This is a simulated response. Unset ASKMD_MOCK_LLM and configure "
        "provider credentials to talk to a real model."
    )


class ModelClient:
    """
    Sends a turn history to the configured model.

    Human turns become ``user`` messages and AI turns ``assistant`` messages,
    in document order. Sampling parameters, the thinking budget and the
    1M-context header come from :class:`~askmd.models.config.AskConfig`.

    Example::

        client = ModelClient(config)
        outcome = await client.stream_history(turns, writer.write_chunk, cancel_event)
    """

    def __init__(self, config: AskConfig, estimator: TokenEstimator | None = None) -> None:
        self._config = config
        self._estimator = estimator or TokenEstimator()
        self._logger = structlog.get_logger("askmd.llm").bind(model=config.resolve_model())

    @property
    def model(self) -> str:
        return self._config.resolve_model()

    async def send_history(self, turns: Sequence[Turn]) -> str:
        """
        Request one complete, non-streamed response.

        Raises:
            ModelInvocationError: The provider call failed.
        """
        if mock_enabled():
            return mock_reply(turns)

        import litellm

        try:
            response = await litellm.acompletion(**self._request_kwargs(turns, stream=False))
        except Exception as exc:
            raise self._wrap(exc) from exc
        text = response.choices[0].message.content or ""
        self._logger.info("response_received", tokens=self._estimator.estimate(text))
        return text

    async def stream_history(
        self,
        turns: Sequence[Turn],
        on_chunk: ChunkCallback,
        cancel_event: asyncio.Event | None = None,
    ) -> StreamOutcome:
        """
        Stream a response, handing each text delta to ``on_chunk``.

        ``on_chunk(text, token_count)`` may be sync or async and is awaited
        before the next delta is read. ``token_count`` is the running output
        estimate; once the provider reports completion tokens that figure
        wins. Setting ``cancel_event`` stops the stream at the next delta
        and the outcome comes back with ``interrupted=True``.

        Raises:
            ModelInvocationError: The provider call failed before or during
                streaming.
        """
        if mock_enabled():
            chunks: AsyncIterator[Any] = _mock_chunks(mock_reply(turns))
        else:
            import litellm

            try:
                chunks = await litellm.acompletion(**self._request_kwargs(turns, stream=True))
            except Exception as exc:
                raise self._wrap(exc) from exc

        text = ""
        reported: int | None = None
        interrupted = False
        try:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    interrupted = True
                    break
                try:
                    chunk = await _next_chunk(chunks, cancel_event)
                except Exception as exc:
                    raise self._wrap(exc) from exc
                if chunk is _END:
                    break
                if chunk is None:
                    interrupted = True
                    break

                usage = getattr(chunk, "usage", None)
                if usage:
                    reported = getattr(usage, "completion_tokens", None) or reported

                delta = _delta_text(chunk)
                if not delta:
                    continue
                text += delta
                count = reported if reported is not None else self._estimator.estimate(text)
                result = on_chunk(delta, count)
                if asyncio.iscoroutine(result):
                    await result
        finally:
            await _close_stream(chunks)

        token_count = reported if reported is not None else self._estimator.estimate(text)
        if interrupted:
            self._logger.info("stream_cancelled", tokens=token_count)
        else:
            self._logger.info("stream_finished", tokens=token_count)
        return StreamOutcome(token_count=token_count, interrupted=interrupted, text=text)

    # ── Request building ─────────────────────────────────────────────────────

    def messages(self, turns: Sequence[Turn]) -> list[dict[str, str]]:
        return [
            {"role": "user" if turn.role is Role.HUMAN else "assistant", "content": turn.content}
            for turn in turns
        ]

    def _request_kwargs(self, turns: Sequence[Turn], *, stream: bool) -> dict[str, Any]:
        config = self._config
        kwargs: dict[str, Any] = {
            "model": config.resolve_model(),
            "messages": self.messages(turns),
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "timeout": config.timeout,
            "stream": stream,
        }
        if stream:
            kwargs["stream_options"] = {"include_usage": True}
        budget = config.thinking_tokens()
        if budget > 0:
            kwargs["thinking"] = {"type": "enabled", "budget_tokens": budget}
        if config.uses_1m_context():
            kwargs["extra_headers"] = {"anthropic-beta": CONTEXT_1M_BETA}
        return kwargs

    def _wrap(self, exc: Exception) -> ModelInvocationError:
        message = str(exc)
        self._logger.error("llm_call_failed", error=message)
        hint = next((h for needle, h in _ERROR_HINTS if needle in message), None)
        if hint:
            return ModelInvocationError(f"model request failed: {message} ({hint})")
        return ModelInvocationError(f"model request failed: {message}")


def _delta_text(chunk: Any) -> str:
    choices = getattr(chunk, "choices", None)
    if not choices:
        return ""
    delta = getattr(choices[0], "delta", None)
    if delta is None:
        return ""
    return getattr(delta, "content", None) or ""


async def _next_chunk(chunks: AsyncIterator[Any], cancel_event: asyncio.Event | None) -> Any:
    """
    Await the next stream item.

    Returns ``_END`` when the stream is exhausted and ``None`` when
    ``cancel_event`` fired first.
    """

    async def _pull() -> Any:
        try:
            return await chunks.__anext__()
        except StopAsyncIteration:
            return _END

    if cancel_event is None:
        return await _pull()

    pull = asyncio.ensure_future(_pull())
    cancelled = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({pull, cancelled}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        pending = [task for task in (pull, cancelled) if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            # The stream can only be closed once the cancelled read has unwound.
            await asyncio.wait(pending)
    if pull in done:
        return pull.result()
    return None


async def _close_stream(chunks: Any) -> None:
    """Release the provider stream and its HTTP response."""
    aclose = getattr(chunks, "aclose", None)
    if aclose is not None:
        await aclose()


def _mock_chunk(text: str) -> SimpleNamespace:
    delta = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)], usage=None)


async def _mock_chunks(text: str) -> AsyncIterator[Any]:
    words = text.split(" ")
    for index, word in enumerate(words):
        await asyncio.sleep(0)
        yield _mock_chunk(word if index == len(words) - 1 else word + " ")
