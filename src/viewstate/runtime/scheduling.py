"""
Timer scheduling and debouncing.

The search channel's debounce timer is the only deliberate suspension point
in the engine. Timers go through a ``Scheduler`` so hosts can run them on
the asyncio loop (``LoopScheduler``) and tests can drive a virtual clock
(``ManualScheduler``) instead of sleeping.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Schedules a callback after ``delay`` seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules on an asyncio event loop (the running loop by default)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class _ManualTimer:
    def __init__(self, due: float, seq: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: _ManualTimer) -> bool:
        return (self.due, self.seq) < (other.due, other.seq)


class ManualScheduler:
    """
    Virtual clock. Nothing fires until ``advance`` moves time forward.

    Example:
        clock = ManualScheduler()
        clock.call_later(0.3, commit)
        clock.advance(0.299)  # nothing
        clock.advance(0.001)  # commit() runs
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[_ManualTimer] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self.now + max(0.0, delay), next(self._seq), callback)
        heapq.heappush(self._timers, timer)
        return timer

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due timers in order. Returns the count fired."""
        target = self.now + seconds
        fired = 0
        while self._timers and self._timers[0].due <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self.now = timer.due
            timer.callback()
            fired += 1
        self.now = target
        return fired

    @property
    def pending(self) -> int:
        """Number of live (not cancelled) timers."""
        return sum(1 for t in self._timers if not t.cancelled)


class Debouncer:
    """
    Trailing-edge debouncer: the callback runs once, ``delay_ms`` after the
    last trigger. Every trigger cancels and replaces the pending timer.

    Parameters
    ----------
    callback:
        Callable to run when the quiet window elapses.
    delay_ms:
        Quiet window in milliseconds.
    scheduler:
        Timer source.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        *,
        delay_ms: int,
        scheduler: Scheduler,
    ) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self._callback = callback
        self._delay_s = delay_ms / 1000.0
        self._scheduler = scheduler
        self._timer: TimerHandle | None = None

    def __call__(self) -> None:
        self.cancel()
        self._timer = self._scheduler.call_later(self._delay_s, self._fire)

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def flush(self) -> None:
        """Run the pending callback now, if any."""
        if self._timer is not None:
            self.cancel()
            self._callback()

    def _fire(self) -> None:
        self._timer = None
        self._callback()
