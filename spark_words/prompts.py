"""Prompt templates for paper generation."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from spark_words.models import GenerationParams

DIFFICULTY_GUIDANCE = {
    "beginner": "common everyday words (CEFR A2-B1) and short, simple sentences",
    "intermediate": "upper-intermediate words (CEFR B2) in natural sentences of 12-20 words",
    "advanced": "advanced, precise vocabulary (CEFR C1-C2) in rich sentences of 15-30 words",
}

PAPER_SYSTEM = (
    "You write English vocabulary practice papers. "
    "You respond with a single JSON object and nothing else."
)

PAPER_PROMPT = """\
Create a first-letter fill-in-the-blank vocabulary paper.

Theme: {theme}
Difficulty: {difficulty} (use {difficulty_guidance}).
Number of questions: {question_count}
{word_section}
Instructions:
1. Write a short title for the paper and a one-sentence description.
2. For each question write one natural English sentence that uses the target word.
3. In the sentence, replace the target word with its first letter followed by \
underscores, one underscore per remaining letter (e.g. "decide" becomes "d_____").
4. "answer" is the full target word exactly as it fits the sentence.
5. "hint" is the first letter of the answer.
6. "translation" is a Chinese translation of the full sentence.
7. Number question ids "q1", "q2", ... in order.

Respond in this exact JSON format only, with no other text:
{{
  "title": "Paper title",
  "description": "One-sentence description",
  "questions": [
    {{
      "id": "q1",
      "sentence": "We need to d_____ quickly.",
      "answer": "decide",
      "hint": "d",
      "translation": "我们需要迅速做出决定。"
    }}
  ]
}}
"""


def format_word_section(words: list[str]) -> str:
    if not words:
        return ""
    return (
        "\nTarget words (use each exactly once, in this order, before adding "
        "others that fit the theme):\n" + ", ".join(words) + "\n"
    )


def build_paper_prompt(params: GenerationParams) -> str:
    return PAPER_PROMPT.format(
        theme=params.theme,
        difficulty=params.difficulty,
        difficulty_guidance=DIFFICULTY_GUIDANCE.get(
            params.difficulty, DIFFICULTY_GUIDANCE["intermediate"],
        ),
        question_count=params.question_count,
        word_section=format_word_section(params.words),
    )
