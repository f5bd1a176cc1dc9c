"""Render a paper (partial or final) as the plain text shown during generation."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from spark_words.models import PreviewRecord, QuestionSet

TITLE_PLACEHOLDER = "Generating paper..."


def format_preview(record: PreviewRecord | QuestionSet) -> str:
    """Format *record* deterministically.

    A finished ``QuestionSet`` and a ``PreviewRecord`` with the same content
    produce the same text, so the final push extends the streamed preview
    instead of replacing it.
    """
    lines = [f"📝 {record.title or TITLE_PLACEHOLDER}"]
    if record.description:
        lines.append(record.description)
    lines.append("")

    for idx, q in enumerate(record.questions, 1):
        lines.append(f"{idx}. {q.sentence}")
        if q.translation:
            lines.append(f"   {q.translation}")
        lines.append("")

    return "\n".join(lines) + "\n"
