"""``askmd`` command line: init, chat, cfg, version."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

import structlog

from askmd import __version__
from askmd.errors import AskError
from askmd.events.bus import AskEvent, EventBus
from askmd.models.config import MODEL_ALIASES, AskConfig, ConfigStore
from askmd.session import DEFAULT_DOCUMENT, ChatSession

_STATUS_WIDTH = 60


def configure_logging(verbose: bool = False) -> None:
    """Route structlog to stderr, WARNING and up unless ``verbose``."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="askmd",
        description="Chat with a model inside a markdown document.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  askmd init                      # create session.md
  askmd                           # same as "askmd chat"
  askmd chat                      # answer the last Human turn
  askmd chat --no-stream --model sonnet
  askmd cfg set expand.max_depth 5
  ASKMD_MOCK_LLM=1 askmd chat     # offline, no API key needed
""",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = p.add_subparsers(dest="command")

    init = sub.add_parser("init", help="Create a new session document")
    init.add_argument("--file", type=Path, default=Path(DEFAULT_DOCUMENT), help="Document path")

    chat = sub.add_parser("chat", help="Expand references and get the next AI turn (default)")
    chat.add_argument("--file", type=Path, default=Path(DEFAULT_DOCUMENT), help="Document path")
    chat.add_argument(
        "--no-stream",
        action="store_false",
        dest="stream",
        help="Wait for the full response and write it in one step",
    )
    chat.add_argument("--model", default=None, help="Model alias or litellm model string")

    cfg = sub.add_parser("cfg", help="Show or change the configuration")
    cfg_sub = cfg.add_subparsers(dest="cfg_command")
    cfg_set = cfg_sub.add_parser("set", help="Set one dotted key, e.g. thinking.enabled")
    cfg_set.add_argument("key")
    cfg_set.add_argument("value")
    cfg_sub.add_parser("path", help="Print the config file location")
    cfg_sub.add_parser("models", help="List model aliases and what they resolve to")

    sub.add_parser("version", help="Print the version")
    return p


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args([*argv, "chat"])
    configure_logging(args.verbose)
    try:
        if args.command == "init":
            ChatSession.init_document(args.file)
            print(f"Created {args.file}")
        elif args.command == "chat":
            return asyncio.run(_chat(args))
        elif args.command == "cfg":
            _cfg(args)
        elif args.command == "version":
            print(f"askmd {__version__}")
    except AskError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


# ── chat ──────────────────────────────────────────────────────────────────────


async def _chat(args: argparse.Namespace) -> int:
    store = ConfigStore()
    try:
        config = store.load()
    except AskError as exc:
        print(f"Warning: using default configuration: {exc}")
        config = AskConfig()
    if args.model:
        config = config.model_copy(update={"model": args.model})

    bus = EventBus()
    _subscribe_status(bus)
    session = ChatSession(args.file, config, event_bus=bus)

    print(f"Model: {config.resolve_model()}")
    if config.thinking.enabled:
        print(f"Thinking: enabled (budget: {config.thinking_tokens()} tokens)")
    print()

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        installed = True
    except NotImplementedError:
        # Windows event loops: Ctrl+C raises KeyboardInterrupt instead.
        installed = False
    try:
        await session.run(stream=args.stream, cancel_event=cancel_event)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)
    return 0


def _subscribe_status(bus: EventBus) -> None:
    def on_expansion(event: AskEvent, payload: dict[str, Any]) -> None:
        print(f"Expanding {payload['files']} file references...")

    def on_file(event: AskEvent, payload: dict[str, Any]) -> None:
        print(f"  {payload['path']} ({payload['tokens']} tokens)")

    def on_skip(event: AskEvent, payload: dict[str, Any]) -> None:
        print(f"  skipped {payload['path']}: {payload['reason']}")

    def on_expanded(event: AskEvent, payload: dict[str, Any]) -> None:
        print()

    def on_stream_start(event: AskEvent, payload: dict[str, Any]) -> None:
        print("Streaming response... [ctrl+c to interrupt]", end="", flush=True)

    def on_progress(event: AskEvent, payload: dict[str, Any]) -> None:
        print(
            f"\rStreaming response... {payload['token_count']} tokens [ctrl+c to interrupt]",
            end="",
            flush=True,
        )

    def on_done(event: AskEvent, payload: dict[str, Any]) -> None:
        print("\r" + " " * _STATUS_WIDTH + "\r", end="")
        if event is AskEvent.STREAM_INTERRUPTED:
            print(f"Response interrupted after {payload['token_count']} tokens")
        else:
            print(f"Response complete: {payload['token_count']} tokens")

    bus.subscribe(AskEvent.EXPANSION_STARTED, on_expansion)
    bus.subscribe(AskEvent.FILE_EXPANDED, on_file)
    bus.subscribe(AskEvent.FILE_SKIPPED, on_skip)
    bus.subscribe(AskEvent.EXPANSION_COMPLETED, on_expanded)
    bus.subscribe(AskEvent.STREAM_STARTED, on_stream_start)
    bus.subscribe(AskEvent.STREAM_PROGRESS, on_progress)
    bus.subscribe(AskEvent.STREAM_COMPLETED, on_done)
    bus.subscribe(AskEvent.STREAM_INTERRUPTED, on_done)


# ── cfg ───────────────────────────────────────────────────────────────────────


def _cfg(args: argparse.Namespace) -> None:
    store = ConfigStore()
    if args.cfg_command == "path":
        print(store.path)
        return
    if args.cfg_command == "models":
        print_models(store.load())
        return
    if args.cfg_command == "set":
        config = store.set_value(args.key, args.value)
        print(f"Set {args.key} = {args.value}")
    else:
        config = store.load()
    print_config(config, store.path)


def print_config(config: AskConfig, path: Path) -> None:
    context = "1m (1 million tokens)" if config.uses_1m_context() else "standard"
    thinking = (
        f"enabled ({config.thinking.budget:.0%}, {config.thinking_tokens()} tokens)"
        if config.thinking.enabled
        else "disabled"
    )
    expand = config.expand
    print(f"Config: {path}")
    print(f"  Model:        {config.model} ({config.resolve_model()})")
    print(f"  Temperature:  {config.temperature}")
    print(f"  Max tokens:   {config.max_tokens}")
    print(f"  Timeout:      {config.timeout:g}s")
    print(f"  Context:      {context}")
    print(f"  Thinking:     {thinking}")
    print(f"  Expansion:    max_depth={expand.max_depth}, recursive={expand.recursive_default}")
    print(f"  Filtering:    enabled={config.filter.enabled}, "
          f"strip_headers={config.filter.strip_headers}, "
          f"strip_all_comments={config.filter.strip_all_comments}")


def print_models(config: AskConfig) -> None:
    current = config.model.lower()
    print("Model aliases:")
    for alias, model in MODEL_ALIASES.items():
        marker = "*" if alias == current or model == current else " "
        print(f"  {marker} {alias:<8} {model}")
    print("Any other value is passed to litellm unchanged, e.g. bedrock/<model-id>.")


if __name__ == "__main__":
    sys.exit(main())
