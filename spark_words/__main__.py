"""CLI entry point for spark-words.

Usage:
  python -m spark_words serve [--port PORT] [--host HOST]
  python -m spark_words stop
  python -m spark_words restart [--port PORT]
  python -m spark_words status
  python -m spark_words generate --theme THEME [--count N] [--difficulty LEVEL] [--words a,b,c]
"""
from __future__ import annotations

import asyncio
import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "generate":
        _generate(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, generate")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _read_pid() -> int | None:
    """Read PID from file, return None if stale or missing."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None


def _stop() -> bool:
    """Stop a running server. Returns True if a server was stopped."""
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
        print(f"Stopped server (PID {pid}).")
        return True
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        return False
    finally:
        PID_FILE.unlink(missing_ok=True)


def _status():
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
    else:
        print(f"Server is running (PID {pid}).")


def _restart(args: list[str]):
    import time
    _stop()
    time.sleep(1)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8766"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    PID_FILE.write_text(str(os.getpid()))

    print(f"Starting Spark Words on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run(
            "spark_words.app:app",
            host=host,
            port=port,
            reload=False,
            timeout_graceful_shutdown=5,
        )
    finally:
        PID_FILE.unlink(missing_ok=True)


class TerminalSink:
    """Write the revealed preview to a terminal as it grows."""

    def __init__(self, out=None):
        self.out = out or sys.stdout
        self.shown = ""

    def __call__(self, text: str, active: bool) -> None:
        if not text.startswith(self.shown):
            # Preview was rewritten; print it again below
            self.out.write("\n")
            self.shown = ""
        self.out.write(text[len(self.shown):])
        self.out.flush()
        self.shown = text


def _generate(args: list[str]):
    theme = _parse_flag(args, "--theme", "")
    if not theme:
        print("Usage: generate --theme THEME [--count N] [--difficulty LEVEL] [--words a,b,c]")
        sys.exit(1)

    from spark_words.config import load_settings
    from spark_words.errors import StreamError
    from spark_words.models import GenerationParams
    from spark_words.paper_source import stream_paper
    from spark_words.pipeline import PipelineOrchestrator
    from spark_words.reveal import AsyncioTickScheduler
    from spark_words.storage import paper_path, save_paper

    settings = load_settings()
    words = _parse_flag(args, "--words", "").replace(",", " ").split()
    params = GenerationParams(
        theme=theme,
        words=[w.lower() for w in words],
        difficulty=_parse_flag(args, "--difficulty", settings.difficulty),
        question_count=int(_parse_flag(args, "--count", str(settings.question_count))),
    )

    if settings.llm_provider == "ollama":
        from spark_words.providers.llm_ollama import OllamaProvider
        llm = OllamaProvider(base_url=settings.ollama_url, model=settings.llm_model)
    elif settings.llm_provider == "anthropic":
        from spark_words.providers.llm_anthropic import AnthropicProvider
        llm = AnthropicProvider(model=settings.llm_model)
    elif settings.llm_provider == "openai":
        from spark_words.providers.llm_openai import OpenAIProvider
        llm = OpenAIProvider(model=settings.llm_model, base_url=settings.openai_base_url)
    else:
        print(f"Unknown LLM provider: {settings.llm_provider}")
        sys.exit(1)

    print(f"Generating {params.question_count} questions on '{theme}' using {llm.name()}...\n")

    pipeline = PipelineOrchestrator(
        display_sink=TerminalSink(),
        persistence_sink=save_paper(settings.papers_full_path),
        scheduler=AsyncioTickScheduler(interval=settings.reveal_tick_interval),
        **settings.reveal_options(),
    )
    try:
        paper = asyncio.run(pipeline.run(
            stream_paper(llm, params, thinking=settings.llm_thinking)))
    except StreamError as e:
        print(f"\n\nGeneration failed: {e.message}")
        sys.exit(1)

    print(f"Saved {len(paper.questions)} questions to {paper_path(settings.papers_full_path, paper.id)}")


if __name__ == "__main__":
    main()
