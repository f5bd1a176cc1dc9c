"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json

import pytest

from spark_words.models import Question, QuestionSet
from spark_words.reveal import TickScheduler

SAMPLE_PAPER = {
    "title": "Daily Routines",
    "description": "Everyday verbs for morning and evening habits.",
    "questions": [
        {
            "id": "q1",
            "sentence": "I usually w___ up at seven.",
            "answer": "wake",
            "hint": "w",
            "translation": "我通常七点醒来。",
        },
        {
            "id": "q2",
            "sentence": "She b______ her teeth twice a day.",
            "answer": "brushes",
            "hint": "b",
            "translation": "她每天刷两次牙。",
        },
        {
            "id": "q3",
            "sentence": "We often c___ dinner together.",
            "answer": "cook",
            "hint": "c",
        },
    ],
}


class FakeHandle:
    def __init__(self, callback):
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler(TickScheduler):
    """Manual tick source: time only advances when a test calls tick()."""

    def __init__(self, interval: float = 0.016):
        self.interval = interval
        self.now = 0.0
        self.pending: list[FakeHandle] = []

    def schedule(self, callback):
        handle = FakeHandle(callback)
        self.pending.append(handle)
        return handle

    def time(self) -> float:
        return self.now

    @property
    def has_pending(self) -> bool:
        return any(not h.cancelled for h in self.pending)

    def tick(self) -> None:
        self.now += self.interval
        due, self.pending = self.pending, []
        for handle in due:
            if not handle.cancelled:
                handle.callback()

    def run_until_idle(self, max_ticks: int = 10_000) -> int:
        ticks = 0
        while self.has_pending:
            self.tick()
            ticks += 1
            assert ticks < max_ticks, "reveal never caught up"
        return ticks


class FakeStreamLLM:
    """Fake LLM that streams canned tokens, optionally failing afterwards."""

    def __init__(self, tokens=None, error: Exception | None = None):
        self._tokens = tokens or []
        self._error = error
        self.prompts: list[str] = []
        self.systems: list[str | None] = []

    async def generate(self, prompt: str, temperature: float = 0.7, thinking: bool = True) -> str:
        return "".join(self._tokens)

    async def generate_stream(self, prompt, temperature=0.7, system=None, thinking=True):
        self.prompts.append(prompt)
        self.systems.append(system)
        for token in self._tokens:
            yield token
        if self._error is not None:
            raise self._error

    def name(self) -> str:
        return "fake-llm"


def chunked(text: str, size: int) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


async def events(*items):
    for item in items:
        yield item


async def drive(task: asyncio.Task, scheduler: FakeScheduler, max_rounds: int = 100_000):
    """Alternate between letting *task* run and ticking *scheduler* until it finishes."""
    for _ in range(max_rounds):
        if task.done():
            return task.result()
        await asyncio.sleep(0)
        scheduler.tick()
    raise AssertionError("task did not finish")


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def paper_dict():
    return json.loads(json.dumps(SAMPLE_PAPER))


@pytest.fixture
def paper_text():
    """The raw model response for SAMPLE_PAPER, as it would be streamed."""
    return json.dumps(SAMPLE_PAPER, ensure_ascii=False, indent=2)


@pytest.fixture
def sample_question_set():
    return QuestionSet(
        id="paper-001",
        title="Daily Routines",
        description="Everyday verbs for morning and evening habits.",
        questions=[
            Question("q1", "I usually w___ up at seven.", "wake", "w", "我通常七点醒来。"),
            Question("q2", "She b______ her teeth twice a day.", "brushes", "b", "她每天刷两次牙。"),
            Question("q3", "We often c___ dinner together.", "cook", "c"),
        ],
    )
