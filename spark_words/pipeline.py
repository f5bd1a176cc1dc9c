"""Drive the live paper preview from a generation stream.

One ``PipelineOrchestrator`` can serve many generation attempts, but every
attempt gets its own epoch and its own ``PacedRevealController``.  Events
tagged with an older epoch are dropped, so a late delta from a cancelled
attempt never reaches the display.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from spark_words.errors import StreamError
from spark_words.extractor import extract_preview
from spark_words.formatter import format_preview
from spark_words.models import (
    CompleteEvent,
    DeltaEvent,
    ErrorEvent,
    PipelineState,
    PreviewRecord,
    QuestionSet,
    StreamEvent,
)
from spark_words.reveal import DisplaySink, PacedRevealController, TickScheduler
from spark_words.storage import PersistenceSink

_log = logging.getLogger("spark_words.pipeline")


class PipelineOrchestrator:
    def __init__(
        self,
        display_sink: DisplaySink | None = None,
        persistence_sink: PersistenceSink | None = None,
        scheduler: TickScheduler | None = None,
        **reveal_options,
    ):
        self._display_sink = display_sink
        self._persistence_sink = persistence_sink
        self._scheduler = scheduler
        self._reveal_options = reveal_options

        self._epoch = 0
        self._state = PipelineState.IDLE
        self._controller: PacedRevealController | None = None
        self._raw = ""
        self._record = PreviewRecord()
        self._result: QuestionSet | None = None
        self._error: str | None = None
        self._outcome: asyncio.Future | None = None

    # ── Observables ──────────────────────────────────────────────────

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def revealed_text(self) -> str:
        return self._controller.revealed_text if self._controller else ""

    @property
    def is_active(self) -> bool:
        return self._controller is not None and self._controller.is_animation_active

    @property
    def result(self) -> QuestionSet | None:
        """The finished paper; set only once its preview is fully revealed."""
        return self._result

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def preview(self) -> PreviewRecord:
        return self._record

    @property
    def progress(self) -> str:
        n = len(self._record.questions)
        if self._state is PipelineState.COMPLETE:
            return "Generation complete"
        if n == 0:
            return ""
        return f"{n} question{'s' if n != 1 else ''} generated"

    # ── Lifecycle ────────────────────────────────────────────────────

    def begin(self) -> int:
        """Start a new attempt and return its epoch."""
        self._discard_attempt()
        self._epoch += 1
        self._controller = PacedRevealController(
            self._display_sink, scheduler=self._scheduler, **self._reveal_options,
        )
        self._state = PipelineState.STREAMING
        _log.info("Generation %d started", self._epoch)
        return self._epoch

    def reset(self) -> None:
        """Abandon the current attempt; late events from it are ignored."""
        self._epoch += 1
        self._discard_attempt()
        self._state = PipelineState.IDLE
        if self._display_sink is not None:
            self._display_sink("", False)

    def _discard_attempt(self) -> None:
        if self._controller is not None:
            self._controller.dispose()
            self._controller = None
        self._settle(None)
        self._raw = ""
        self._record = PreviewRecord()
        self._result = None
        self._error = None

    def _accepts(self, epoch: int | None, *states: PipelineState) -> bool:
        if epoch is not None and epoch != self._epoch:
            _log.debug("Dropped event from stale generation %d (current %d)", epoch, self._epoch)
            return False
        if self._state not in states:
            _log.debug("Dropped event in state %s", self._state.value)
            return False
        return True

    # ── Stream events ────────────────────────────────────────────────

    def push_raw_chunk(self, chunk: str, epoch: int | None = None) -> None:
        if not self._accepts(epoch, PipelineState.STREAMING) or not chunk:
            return
        self._raw += chunk
        self._record = extract_preview(self._raw)
        self._controller.push_text(format_preview(self._record))
        if not self._controller.is_animation_active:
            self._controller.start_animation()

    def notify_complete(self, result: QuestionSet, epoch: int | None = None) -> None:
        """Show the authoritative paper; finalize once it is fully revealed."""
        if not self._accepts(epoch, PipelineState.STREAMING):
            return
        self._state = PipelineState.FINALIZING
        self._controller.push_text(format_preview(result))
        current = self._epoch
        done = self._controller.start_animation()
        done.add_done_callback(lambda fut: self._finalize(current, result, fut))

    def notify_error(self, message: str, epoch: int | None = None) -> None:
        if not self._accepts(epoch, PipelineState.STREAMING, PipelineState.FINALIZING):
            return
        self._controller.stop_animation()
        self._state = PipelineState.FAILED
        self._error = message
        _log.warning("Generation %d failed: %s", self._epoch, message)
        self._settle(StreamError(message))

    def dispatch(self, event: StreamEvent, epoch: int | None = None) -> None:
        if isinstance(event, DeltaEvent):
            self.push_raw_chunk(event.text, epoch)
        elif isinstance(event, CompleteEvent):
            self.notify_complete(event.result, epoch)
        elif isinstance(event, ErrorEvent):
            self.notify_error(event.message, epoch)

    def _finalize(self, epoch: int, result: QuestionSet, fut: asyncio.Future) -> None:
        if fut.cancelled() or epoch != self._epoch or self._state is not PipelineState.FINALIZING:
            return
        self._state = PipelineState.COMPLETE
        self._result = result
        _log.info("Generation %d complete: %r", epoch, result.title)
        if self._persistence_sink is not None:
            try:
                self._persistence_sink(result)
            except Exception as e:
                _log.warning("Saving paper %s failed: %s", result.id, e)
        self._settle(result)

    # ── Async driver ─────────────────────────────────────────────────

    async def run(self, source: AsyncIterator[StreamEvent]) -> QuestionSet | None:
        """Consume *source* and return the paper once its preview is fully shown.

        Raises StreamError if the stream reports an error.  Returns None if
        the attempt is reset before it finishes.
        """
        epoch = self.begin()
        outcome = asyncio.get_running_loop().create_future()
        self._outcome = outcome

        try:
            async for event in source:
                if epoch != self._epoch:
                    break
                self.dispatch(event, epoch)
                if not isinstance(event, DeltaEvent):
                    break
            else:
                self.notify_error("The stream ended without a result.", epoch)
        except Exception as e:
            self.notify_error(str(e) or type(e).__name__, epoch)

        return await outcome

    def _settle(self, value) -> None:
        outcome, self._outcome = self._outcome, None
        if outcome is None or outcome.done():
            return
        if isinstance(value, BaseException):
            outcome.set_exception(value)
        else:
            outcome.set_result(value)
