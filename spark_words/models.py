from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class Question:
    id: str
    sentence: str  # answer word shown as first letter + underscores, e.g. "d_____"
    answer: str = ""
    hint: str = ""
    translation: str | None = None


@dataclass
class PreviewRecord:
    """Best-effort reconstruction of a paper that is still being streamed."""

    title: str | None = None
    description: str | None = None
    questions: list[Question] = field(default_factory=list)

    def is_empty(self) -> bool:
        return self.title is None and self.description is None and not self.questions


@dataclass
class QuestionSet:
    id: str
    title: str
    questions: list[Question]
    description: str = ""
    tags: list[str] = field(default_factory=list)
    created_at: str | None = None
    source: str = "local"  # local | community

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "tags": self.tags,
            "questions": [
                {
                    k: v
                    for k, v in {
                        "id": q.id,
                        "sentence": q.sentence,
                        "answer": q.answer,
                        "hint": q.hint,
                        "translation": q.translation,
                    }.items()
                    if v is not None
                }
                for q in self.questions
            ],
            "createdAt": self.created_at,
            "source": self.source,
        }


@dataclass
class GenerationParams:
    theme: str
    words: list[str] = field(default_factory=list)
    difficulty: str = "intermediate"  # beginner | intermediate | advanced
    question_count: int = 20


class PipelineState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class DeltaEvent:
    text: str
    type: str = "delta"


@dataclass
class CompleteEvent:
    result: QuestionSet
    type: str = "complete"


@dataclass
class ErrorEvent:
    message: str
    type: str = "error"


StreamEvent = DeltaEvent | CompleteEvent | ErrorEvent


def event_from_dict(data: dict) -> StreamEvent:
    """Convert a ``{"type": ...}`` wire event into a typed stream event."""
    kind = data.get("type")
    if kind == "delta":
        return DeltaEvent(data.get("text", ""))
    if kind == "complete":
        result = data["result"]
        if isinstance(result, dict):
            from spark_words.paper_source import question_set_from_dict
            result = question_set_from_dict(result)
        return CompleteEvent(result)
    if kind == "error":
        return ErrorEvent(data.get("message", ""))
    raise ValueError(f"Unknown stream event type: {kind!r}")
