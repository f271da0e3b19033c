"""
Example 01: Basic Session
=========================

Demonstrates a two-round chat driven from Python instead of the CLI:
- Creating a session document with init_document()
- Referencing a directory with [[dir/]] in a Human turn
- Watching expansion and streaming status through the EventBus
- Writing the next Human turn and running a second round

Run without an API key:
    ASKMD_MOCK_LLM=1 uv run python examples/01_basic_session.py

Run with a real LLM (set your API key first):
    ANTHROPIC_API_KEY=sk-... uv run python examples/01_basic_session.py
"""

import asyncio
import sys
import tempfile
from pathlib import Path

# Add project root to path when running directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


async def main() -> None:
    from askmd import AskConfig, AskEvent, ChatSession, EventBus, ExpansionPolicy

    print("=== askmd Basic Session Example ===\n")

    workdir = Path(tempfile.mkdtemp(prefix="askmd_example_01_"))
    (workdir / "pkg").mkdir()
    (workdir / "pkg" / "greet.py").write_text(
        '"""Greeting helpers."""\n\ndef greet(name):\n    return f"Hello, {name}!"\n'
    )
    (workdir / "pkg" / "Makefile").write_text("test:\n\tpytest\n")

    document = workdir / "session.md"
    ChatSession.init_document(document)
    document.write_text(document.read_text() + "What does this package do?\n\n[[pkg/]]\n")

    bus = EventBus()
    bus.subscribe(AskEvent.FILE_EXPANDED, lambda e, p: print(f"  inlined {p['path']} ({p['tokens']} tokens)"))
    bus.subscribe(AskEvent.STREAM_COMPLETED, lambda e, p: print(f"  reply: {p['token_count']} tokens"))

    config = AskConfig(model="haiku", expand=ExpansionPolicy(max_depth=2))
    session = ChatSession(document, config, event_bus=bus, base_dir=workdir)

    print("Round 1")
    result = await session.run()
    print(f"  AI turn {result.turn_number}, expanded turn written back: {result.document_updated}\n")

    document.write_text(document.read_text() + "How would I test it?\n")

    print("Round 2")
    result = await session.run(stream=False)
    print(f"  AI turn {result.turn_number}\n")

    print(f"--- {document} ---")
    print(document.read_text())


if __name__ == "__main__":
    asyncio.run(main())
