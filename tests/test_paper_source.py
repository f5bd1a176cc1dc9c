"""Tests for the LLM paper stream adapter and final-paper validation."""
from __future__ import annotations

import asyncio

import pytest

from spark_words.formatter import format_preview
from spark_words.models import (
    CompleteEvent,
    DeltaEvent,
    ErrorEvent,
    GenerationParams,
    PipelineState,
    event_from_dict,
)
from spark_words.paper_source import (
    question_set_from_dict,
    stream_paper,
    validate_question_set,
)
from spark_words.pipeline import PipelineOrchestrator
from spark_words.prompts import PAPER_SYSTEM

from tests.conftest import FakeStreamLLM, chunked, drive


async def collect(stream):
    return [event async for event in stream]


class TestValidateQuestionSet:
    def test_valid(self, paper_dict):
        assert validate_question_set(paper_dict) is None

    def test_missing_title(self, paper_dict):
        del paper_dict["title"]
        assert validate_question_set(paper_dict) == "missing title"

    def test_empty_questions(self, paper_dict):
        paper_dict["questions"] = []
        assert "non-empty" in validate_question_set(paper_dict)

    def test_malformed_question(self, paper_dict):
        del paper_dict["questions"][1]["sentence"]
        assert "question 2" in validate_question_set(paper_dict)

    def test_missing_answer(self, paper_dict):
        del paper_dict["questions"][0]["answer"]
        assert "no answer" in validate_question_set(paper_dict)

    def test_duplicate_ids(self, paper_dict):
        paper_dict["questions"][2]["id"] = "q1"
        assert "duplicate" in validate_question_set(paper_dict)

    def test_bad_tags(self, paper_dict):
        paper_dict["tags"] = "daily"
        assert "tags" in validate_question_set(paper_dict)


class TestQuestionSetFromDict:
    def test_fields(self, paper_dict):
        paper = question_set_from_dict(paper_dict)
        assert paper.title == "Daily Routines"
        assert paper.source == "local"
        assert paper.created_at
        assert [q.answer for q in paper.questions] == ["wake", "brushes", "cook"]
        assert paper.questions[2].translation is None

    def test_keeps_or_replaces_id(self, paper_dict):
        paper_dict["id"] = "abc"
        assert question_set_from_dict(paper_dict).id == "abc"
        assert question_set_from_dict(paper_dict, new_id=True).id != "abc"

    def test_to_dict_omits_missing_translation(self, paper_dict):
        data = question_set_from_dict(paper_dict).to_dict()
        assert "translation" not in data["questions"][2]
        assert data["questions"][0]["translation"] == "我通常七点醒来。"


class TestEventFromDict:
    def test_delta(self):
        assert event_from_dict({"type": "delta", "text": "{"}) == DeltaEvent("{")

    def test_error(self):
        assert event_from_dict({"type": "error", "message": "boom"}) == ErrorEvent("boom")

    def test_complete_from_dict(self, paper_dict):
        event = event_from_dict({"type": "complete", "result": paper_dict})
        assert isinstance(event, CompleteEvent)
        assert event.result.title == "Daily Routines"

    def test_unknown(self):
        with pytest.raises(ValueError):
            event_from_dict({"type": "progress"})


class TestStreamPaper:
    @pytest.mark.asyncio
    async def test_valid_stream(self, paper_text):
        llm = FakeStreamLLM(chunked(paper_text, 17))
        params = GenerationParams(theme="daily routines", words=["wake"], question_count=3)
        result = await collect(stream_paper(llm, params))

        deltas = [e for e in result if isinstance(e, DeltaEvent)]
        assert "".join(d.text for d in deltas) == paper_text
        assert isinstance(result[-1], CompleteEvent)
        assert len(result[-1].result.questions) == 3
        assert "daily routines" in llm.prompts[0]
        assert "wake" in llm.prompts[0]
        assert llm.systems[0] == PAPER_SYSTEM

    @pytest.mark.asyncio
    async def test_not_json(self):
        llm = FakeStreamLLM(["I'm sorry, ", "I can't do that."])
        result = await collect(stream_paper(llm, GenerationParams(theme="x")))
        assert result[-1] == ErrorEvent("The model response did not contain valid JSON.")

    @pytest.mark.asyncio
    async def test_invalid_paper(self):
        llm = FakeStreamLLM(['{"title": "T", "questions": []}'])
        result = await collect(stream_paper(llm, GenerationParams(theme="x")))
        assert isinstance(result[-1], ErrorEvent)
        assert "non-empty" in result[-1].message

    @pytest.mark.asyncio
    async def test_provider_failure_mid_stream(self, paper_text):
        llm = FakeStreamLLM([paper_text[:30]], error=RuntimeError("Ollama error: model not found"))
        result = await collect(stream_paper(llm, GenerationParams(theme="x")))
        assert result[0] == DeltaEvent(paper_text[:30])
        assert result[-1] == ErrorEvent("Ollama error: model not found")
        assert len(result) == 2


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_pipeline_over_llm_stream(self, scheduler, paper_text):
        saved = []
        pipeline = PipelineOrchestrator(persistence_sink=saved.append, scheduler=scheduler)
        llm = FakeStreamLLM(chunked(paper_text, 11))

        task = asyncio.create_task(pipeline.run(stream_paper(llm, GenerationParams(theme="routines"))))
        paper = await drive(task, scheduler)

        assert pipeline.state is PipelineState.COMPLETE
        assert pipeline.revealed_text == format_preview(paper)
        assert saved == [paper]
        assert [q.id for q in paper.questions] == ["q1", "q2", "q3"]
