"""Tests for data models."""
from __future__ import annotations

from spark_words.models import (
    GenerationParams,
    PipelineState,
    PreviewRecord,
    Question,
    QuestionSet,
)


class TestQuestion:
    def test_create(self):
        q = Question("q1", "I usually w___ up at seven.", answer="wake", hint="w")
        assert q.id == "q1"
        assert q.answer == "wake"
        assert q.translation is None


class TestPreviewRecord:
    def test_empty(self):
        assert PreviewRecord().is_empty()

    def test_not_empty(self):
        assert not PreviewRecord(title="Daily").is_empty()
        assert not PreviewRecord(questions=[Question("q1", "s")]).is_empty()

    def test_questions_not_shared(self):
        a, b = PreviewRecord(), PreviewRecord()
        a.questions.append(Question("q1", "s"))
        assert b.questions == []


class TestQuestionSet:
    def test_to_dict(self):
        qs = QuestionSet(
            id="paper-001",
            title="Daily Routines",
            questions=[Question("q1", "I w___ up.", "wake", "w", "我醒来。")],
            tags=["daily"],
            created_at="2026-01-01T00:00:00+00:00",
        )
        d = qs.to_dict()
        assert d["createdAt"] == "2026-01-01T00:00:00+00:00"
        assert d["source"] == "local"
        assert d["questions"][0] == {
            "id": "q1", "sentence": "I w___ up.", "answer": "wake", "hint": "w", "translation": "我醒来。",
        }


class TestGenerationParams:
    def test_defaults(self):
        p = GenerationParams(theme="travel")
        assert p.words == []
        assert p.difficulty == "intermediate"
        assert p.question_count == 20


class TestPipelineState:
    def test_values(self):
        assert PipelineState.FINALIZING.value == "finalizing"
        assert PipelineState("failed") is PipelineState.FAILED
