"""Paced "typewriter" reveal of a growing preview text.

Network deltas arrive in bursts; the reveal runs on its own periodic tick so
the user sees a steady stream of characters regardless of arrival timing.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Protocol

_log = logging.getLogger("spark_words.reveal")

DisplaySink = Callable[[str, bool], None]

DEFAULT_CHARS_PER_SECOND = 120.0
DEFAULT_CATCHUP_THRESHOLD = 80
DEFAULT_CATCHUP_SECONDS = 0.75
DEFAULT_MAX_CHARS_PER_SECOND = 2000.0
DEFAULT_TICK_INTERVAL = 1 / 60


class TickHandle(Protocol):
    def cancel(self) -> None:
        ...


class TickScheduler(ABC):
    """Source of periodic ticks: a UI frame callback or a fixed timer."""

    @abstractmethod
    def schedule(self, callback: Callable[[], None]) -> TickHandle:
        """Run *callback* once, on the next tick."""
        ...

    @abstractmethod
    def time(self) -> float:
        ...

    def create_future(self) -> asyncio.Future:
        return asyncio.get_running_loop().create_future()


class AsyncioTickScheduler(TickScheduler):
    def __init__(self, interval: float = DEFAULT_TICK_INTERVAL, loop: asyncio.AbstractEventLoop | None = None):
        self.interval = interval
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(self.interval, callback)

    def time(self) -> float:
        return self.loop.time()

    def create_future(self) -> asyncio.Future:
        return self.loop.create_future()


def common_prefix_len(a: str, b: str) -> int:
    n = min(len(a), len(b))
    i = 0
    while i < n and a[i] == b[i]:
        i += 1
    return i


class PacedRevealController:
    """Reveal the latest pushed target text to *sink* at a readable pace.

    The revealed text is always ``target_text[:revealed_len]``.  Pushing a
    target that does not extend the previous one clips the revealed part to
    the longest prefix it shares with the new target.
    """

    def __init__(
        self,
        sink: DisplaySink | None = None,
        scheduler: TickScheduler | None = None,
        chars_per_second: float = DEFAULT_CHARS_PER_SECOND,
        catchup_threshold: int = DEFAULT_CATCHUP_THRESHOLD,
        catchup_seconds: float = DEFAULT_CATCHUP_SECONDS,
        max_chars_per_second: float = DEFAULT_MAX_CHARS_PER_SECOND,
    ):
        self._sink = sink
        self._scheduler = scheduler or AsyncioTickScheduler()
        self.chars_per_second = chars_per_second
        self.catchup_threshold = catchup_threshold
        self.catchup_seconds = catchup_seconds
        self.max_chars_per_second = max(max_chars_per_second, chars_per_second)

        self._target = ""
        self._revealed_len = 0
        self._carry = 0.0  # fractional characters owed from earlier ticks
        self._started = False
        self._handle: TickHandle | None = None
        self._last_tick = 0.0
        self._done: asyncio.Future | None = None

    # ── Read-only state ──────────────────────────────────────────────

    @property
    def target_text(self) -> str:
        return self._target

    @property
    def revealed_len(self) -> int:
        return self._revealed_len

    @property
    def revealed_text(self) -> str:
        return self._target[: self._revealed_len]

    @property
    def backlog(self) -> int:
        return len(self._target) - self._revealed_len

    @property
    def is_animation_active(self) -> bool:
        return self._handle is not None

    # ── Operations ───────────────────────────────────────────────────

    def push_text(self, target: str) -> None:
        """Replace the target text. Never awaits, so a tick sees all or nothing."""
        if not target or target == self._target:
            return

        clipped = False
        if not target.startswith(self._target):
            keep = common_prefix_len(self.revealed_text, target)
            if keep < self._revealed_len:
                _log.debug("Target diverged; clipping reveal %d -> %d", self._revealed_len, keep)
                self._revealed_len = keep
                clipped = True
        self._target = target

        if self._started and self._handle is None and self.backlog > 0:
            self._schedule()
        if clipped:
            self._emit()

    def start_animation(self) -> asyncio.Future:
        """Start (or resume) the reveal.

        Returns a future that resolves on the tick where the revealed text
        catches up with the target.  Calls made while one is pending share it.
        """
        if self._done is None or self._done.done():
            self._done = self._scheduler.create_future()
        done = self._done
        self._started = True

        if self.backlog == 0:
            self._resolve()
        elif self._handle is None:
            self._schedule()
            self._emit()
        return done

    def stop_animation(self) -> None:
        """Stop ticking. State is kept and a pending future stays unresolved."""
        self._started = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            self._emit()

    def dispose(self) -> None:
        """Stop, cancel any pending completion future, and detach the sink."""
        self.stop_animation()
        if self._done is not None and not self._done.done():
            self._done.cancel()
        self._done = None
        self._sink = None

    # ── Tick loop ────────────────────────────────────────────────────

    def _rate(self, backlog: int) -> float:
        if backlog <= self.catchup_threshold:
            return self.chars_per_second
        return min(
            self.max_chars_per_second,
            max(self.chars_per_second, backlog / self.catchup_seconds),
        )

    def _schedule(self) -> None:
        self._last_tick = self._scheduler.time()
        self._handle = self._scheduler.schedule(self._tick)

    def _tick(self) -> None:
        self._handle = None
        now = self._scheduler.time()
        elapsed = max(0.0, now - self._last_tick)
        self._last_tick = now

        backlog = self.backlog
        budget = elapsed * self._rate(backlog) + self._carry
        step = min(backlog, int(budget))
        self._carry = budget - step
        self._revealed_len += step

        if self.backlog > 0:
            self._handle = self._scheduler.schedule(self._tick)
            if step:
                self._emit()
            return

        self._carry = 0.0
        self._emit()
        self._resolve()

    def _emit(self) -> None:
        if self._sink is not None:
            self._sink(self.revealed_text, self.is_animation_active)

    def _resolve(self) -> None:
        if self._done is not None and not self._done.done():
            self._done.set_result(None)
