"""FastAPI application: settings and streamed paper generation."""
from __future__ import annotations

import asyncio
import json
import logging

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse

from spark_words.config import Settings, load_settings, save_settings
from spark_words.errors import StreamError
from spark_words.models import GenerationParams
from spark_words.paper_source import DIFFICULTIES, stream_paper
from spark_words.pipeline import PipelineOrchestrator
from spark_words.reveal import AsyncioTickScheduler
from spark_words.storage import load_paper, paper_path, save_paper

app = FastAPI(title="Spark Words")

_settings: Settings | None = None
_log = logging.getLogger("spark_words.app")


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _get_llm():
    s = get_settings()
    if s.llm_provider == "ollama":
        from spark_words.providers.llm_ollama import OllamaProvider
        return OllamaProvider(base_url=s.ollama_url, model=s.llm_model)
    elif s.llm_provider == "anthropic":
        from spark_words.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(model=s.llm_model)
    elif s.llm_provider == "openai":
        from spark_words.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(model=s.llm_model, base_url=s.openai_base_url)
    raise ValueError(f"Unknown LLM provider: {s.llm_provider}")


@app.on_event("startup")
async def startup():
    global _settings
    if _settings is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    return s.to_dict()


# ── API: Papers ───────────────────────────────────────────────────────────

def _params_from_body(body: dict, s: Settings) -> GenerationParams:
    theme = str(body.get("theme", "")).strip()
    if not theme:
        raise HTTPException(400, "No theme provided")

    difficulty = body.get("difficulty") or s.difficulty
    if difficulty not in DIFFICULTIES:
        raise HTTPException(400, f"Unknown difficulty: {difficulty}")

    words = body.get("words") or []
    if isinstance(words, str):
        words = words.replace(",", " ").split()
    words = [w.strip().lower() for w in words if w.strip()]

    try:
        count = int(body.get("question_count") or s.question_count)
    except (TypeError, ValueError):
        raise HTTPException(400, "question_count must be an integer")
    if count < 1:
        raise HTTPException(400, "question_count must be positive")

    return GenerationParams(theme=theme, words=words, difficulty=difficulty, question_count=count)


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


@app.post("/api/papers/generate")
async def api_generate_paper(request: Request):
    """Stream the paced preview of a paper as it is generated.

    Frames: ``{"text", "active", "state", "progress"}`` for every display
    update, then one ``{"done": true, "paper": ...}`` or ``{"error": ...}``.
    """
    body = await request.json() if await request.body() else {}
    s = get_settings()
    params = _params_from_body(body, s)
    llm = _get_llm()

    queue: asyncio.Queue = asyncio.Queue()
    pipeline = PipelineOrchestrator(
        display_sink=lambda text, active: queue.put_nowait(("frame", text, active)),
        persistence_sink=save_paper(s.papers_full_path),
        scheduler=AsyncioTickScheduler(interval=s.reveal_tick_interval),
        **s.reveal_options(),
    )

    async def generate():
        try:
            paper = await pipeline.run(
                stream_paper(llm, params, thinking=s.llm_thinking))
        except StreamError as e:
            queue.put_nowait(("error", e.message))
        else:
            if paper is None:
                queue.put_nowait(("error", "Generation cancelled"))
            else:
                queue.put_nowait(("done", paper))

    task = asyncio.create_task(generate())

    async def stream():
        try:
            while True:
                item = await queue.get()
                if item[0] == "frame":
                    yield _sse({
                        "text": item[1],
                        "active": item[2],
                        "state": pipeline.state.value,
                        "progress": pipeline.progress,
                    })
                elif item[0] == "done":
                    yield _sse({"done": True, "paper": item[1].to_dict()})
                    break
                else:
                    yield _sse({"error": item[1]})
                    break
        finally:
            if not task.done():
                _log.info("Client went away; abandoning generation")
                pipeline.reset()
                task.cancel()

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.get("/api/papers/{paper_id}")
async def api_get_paper(paper_id: str):
    path = paper_path(get_settings().papers_full_path, paper_id)
    if "/" in paper_id or not path.exists():
        raise HTTPException(404, "Paper not found")
    return load_paper(path)
