"""Tests for prompt templates and formatting."""
from __future__ import annotations

from spark_words.models import GenerationParams
from spark_words.prompts import (
    DIFFICULTY_GUIDANCE,
    build_paper_prompt,
    format_word_section,
)


class TestFormatWordSection:
    def test_with_words(self):
        result = format_word_section(["decide", "improve"])
        assert "decide, improve" in result
        assert "in this order" in result

    def test_empty(self):
        assert format_word_section([]) == ""


class TestBuildPaperPrompt:
    def test_fields(self):
        prompt = build_paper_prompt(GenerationParams(
            theme="travel", words=["luggage"], difficulty="beginner", question_count=5,
        ))
        assert "Theme: travel" in prompt
        assert "Number of questions: 5" in prompt
        assert DIFFICULTY_GUIDANCE["beginner"] in prompt
        assert "luggage" in prompt

    def test_json_example_braces_unescaped(self):
        prompt = build_paper_prompt(GenerationParams(theme="travel"))
        assert '"questions": [' in prompt
        assert "{{" not in prompt

    def test_unknown_difficulty_falls_back(self):
        prompt = build_paper_prompt(GenerationParams(theme="x", difficulty="expert"))
        assert DIFFICULTY_GUIDANCE["intermediate"] in prompt
