"""Stream a paper from an LLM as delta / complete / error events."""
from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from spark_words.extractor import parse_json_object, question_from_data
from spark_words.models import (
    CompleteEvent,
    DeltaEvent,
    ErrorEvent,
    GenerationParams,
    QuestionSet,
    StreamEvent,
)
from spark_words.prompts import PAPER_SYSTEM, build_paper_prompt

if TYPE_CHECKING:
    from spark_words.providers.base import LLMProvider

_log = logging.getLogger("spark_words.source")

DIFFICULTIES = ("beginner", "intermediate", "advanced")


def validate_question_set(data: dict) -> str | None:
    """Return None if *data* is a usable paper, else a human-readable reason."""
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        return "missing title"

    questions = data.get("questions")
    if not isinstance(questions, list) or not questions:
        return "questions must be a non-empty list"

    seen: set[str] = set()
    for i, raw in enumerate(questions):
        q = question_from_data(raw)
        if q is None:
            return f"question {i + 1} is malformed (needs string id and sentence)"
        if not q.answer:
            return f"question {i + 1} ({q.id}) has no answer"
        if q.id in seen:
            return f"duplicate question id: {q.id}"
        seen.add(q.id)

    tags = data.get("tags", [])
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        return "tags must be a list of strings"
    return None


def question_set_from_dict(data: dict, new_id: bool = False) -> QuestionSet:
    """Build a QuestionSet from an already validated dict."""
    paper_id = data.get("id")
    if new_id or not isinstance(paper_id, str) or not paper_id:
        paper_id = str(uuid.uuid4())
    return QuestionSet(
        id=paper_id,
        title=data["title"],
        description=data.get("description") or "",
        tags=list(data.get("tags", [])),
        questions=[question_from_data(q) for q in data["questions"]],
        created_at=data.get("createdAt") or datetime.now(timezone.utc).isoformat(),
        source=data.get("source", "local"),
    )


async def stream_paper(
    llm: LLMProvider,
    params: GenerationParams,
    temperature: float = 0.7,
    thinking: bool = False,
) -> AsyncIterator[StreamEvent]:
    """Yield a DeltaEvent per token, then exactly one CompleteEvent or ErrorEvent."""
    prompt = build_paper_prompt(params)
    text = ""
    try:
        async for token in llm.generate_stream(
            prompt, temperature=temperature, system=PAPER_SYSTEM, thinking=thinking,
        ):
            if not token:
                continue
            text += token
            yield DeltaEvent(token)
    except Exception as e:
        _log.warning("Paper stream failed: %s", e)
        yield ErrorEvent(str(e) or type(e).__name__)
        return

    data = parse_json_object(text)
    if data is None:
        _log.info("No valid JSON in response (%d chars)", len(text))
        _log.debug("Raw response: %.300s", text)
        yield ErrorEvent("The model response did not contain valid JSON.")
        return

    reason = validate_question_set(data)
    if reason:
        _log.info("Paper rejected: %s", reason)
        yield ErrorEvent(f"The generated paper is invalid: {reason}")
        return

    paper = question_set_from_dict(data, new_id=True)
    _log.info("Paper generated: %r (%d questions)", paper.title, len(paper.questions))
    yield CompleteEvent(paper)
