"""Reconstruct a paper preview from a partially streamed LLM response.

The model is asked for a single JSON object::

    {"title": ..., "description": ..., "questions": [{"id": ..., "sentence": ...}, ...]}

While the response is still arriving that object is usually truncated, so a
plain ``json.loads`` fails on almost every delta.  ``extract_preview`` first
tries a strict parse and, if that fails, falls back to a fixed chain of
field-level strategies.  Questions are only ever taken whole and in order:
the scan stops at the first question that is unterminated or broken.
"""
from __future__ import annotations

import json
import logging
import re

from spark_words.models import PreviewRecord, Question

_log = logging.getLogger("spark_words.extract")

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)
_CODE_FENCE = re.compile(r"```(?:json)?\s*\n?({.*?})\s*\n?```", re.DOTALL)
_QUESTIONS_ARRAY = re.compile(r'"questions"\s*:\s*\[')
_OPTIONAL_FIELDS = ("answer", "hint", "translation")


def _string_field(key: str) -> re.Pattern:
    return re.compile(r'"%s"\s*:\s*"((?:[^"\\]|\\.)*)"' % re.escape(key), re.DOTALL)


_TITLE_FIELD = _string_field("title")
_DESCRIPTION_FIELD = _string_field("description")


def strip_reasoning(text: str) -> str:
    """Drop ``<think>`` blocks; an unterminated one hides the rest of the text."""
    text = _THINK_BLOCK.sub("", text)
    idx = text.find("<think>")
    if idx >= 0:
        text = text[:idx]
    return text


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the ``}`` closing the object opened at *start*."""
    depth = 0
    in_str = False
    escape = False
    for j in range(start, len(text)):
        ch = text[j]
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch == '"':
            in_str = not in_str
            continue
        if in_str:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return j + 1
    return None


def find_json_objects(text: str) -> list[str]:
    """Find balanced top-level ``{…}`` substrings in *text*.

    An unbalanced opening brace ends the scan: everything after it belongs to
    an object that has not finished arriving.
    """
    results: list[str] = []
    i = 0
    while i < len(text):
        if text[i] != "{":
            i += 1
            continue
        end = _balanced_end(text, i)
        if end is None:
            break
        results.append(text[i:end])
        i = end
    return results


def parse_json_object(text: str) -> dict | None:
    """Strictly parse the JSON object in an LLM response, or return None.

    Tries code-fenced JSON first, then the balanced top-level blocks,
    preferring the *last* one since models often draft before answering.
    """
    text = strip_reasoning(text).strip()

    m = _CODE_FENCE.search(text)
    if m:
        try:
            data = json.loads(m.group(1))
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass

    for candidate in reversed(find_json_objects(text)):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def question_from_data(data) -> Question | None:
    """Build a Question from a decoded JSON item, or None if it is malformed."""
    if not isinstance(data, dict):
        return None
    qid = data.get("id")
    if isinstance(qid, int) and not isinstance(qid, bool):
        qid = str(qid)
    sentence = data.get("sentence")
    if not isinstance(qid, str) or not isinstance(sentence, str):
        return None
    for key in _OPTIONAL_FIELDS:
        if key in data and data[key] is not None and not isinstance(data[key], str):
            return None
    answer = data.get("answer") or ""
    hint = data.get("hint") or answer[:1]
    return Question(
        id=qid,
        sentence=sentence,
        answer=answer,
        hint=hint,
        translation=data.get("translation") or None,
    )


def _questions_in_order(items: list) -> list[Question]:
    questions: list[Question] = []
    for raw in items:
        q = question_from_data(raw)
        if q is None:
            _log.debug("Question %d malformed; stopping", len(questions) + 1)
            break
        questions.append(q)
    return questions


def _record_from_data(data: dict) -> PreviewRecord | None:
    if not any(key in data for key in ("title", "description", "questions")):
        return None
    title = data.get("title")
    description = data.get("description")
    items = data.get("questions")
    return PreviewRecord(
        title=title if isinstance(title, str) else None,
        description=description if isinstance(description, str) else None,
        questions=_questions_in_order(items) if isinstance(items, list) else [],
    )


# ── Fallback strategies ─────────────────────────────────────────────────


def _first_string(pattern: re.Pattern, text: str) -> str | None:
    """First occurrence of a string field whose value decodes cleanly."""
    for m in pattern.finditer(text):
        try:
            return json.loads('"' + m.group(1) + '"')
        except json.JSONDecodeError:
            continue
    return None


def _extract_title(text: str) -> str | None:
    return _first_string(_TITLE_FIELD, text)


def _extract_description(text: str) -> str | None:
    return _first_string(_DESCRIPTION_FIELD, text)


def _extract_questions(text: str) -> list[Question] | None:
    m = _QUESTIONS_ARRAY.search(text)
    if not m:
        return None

    questions: list[Question] = []
    pos = m.end()
    while pos < len(text):
        ch = text[pos]
        if ch.isspace() or ch == ",":
            pos += 1
            continue
        if ch != "{":
            break  # "]" or something we cannot read
        end = _balanced_end(text, pos)
        if end is None:
            break  # still streaming
        try:
            q = question_from_data(json.loads(text[pos:end]))
        except json.JSONDecodeError:
            q = None
        if q is None:
            _log.debug("Question %d unreadable; later questions skipped", len(questions) + 1)
            break
        questions.append(q)
        pos = end
    return questions


_STRATEGIES = (
    ("title", _extract_title),
    ("description", _extract_description),
    ("questions", _extract_questions),
)


def extract_preview(text: str) -> PreviewRecord:
    """Best-effort PreviewRecord for the cumulative stream *text*. Never raises."""
    data = parse_json_object(text)
    if data is not None:
        record = _record_from_data(data)
        if record is not None:
            return record

    text = strip_reasoning(text)
    found = {name: strategy(text) for name, strategy in _STRATEGIES}
    return PreviewRecord(
        title=found["title"],
        description=found["description"],
        questions=found["questions"] or [],
    )
