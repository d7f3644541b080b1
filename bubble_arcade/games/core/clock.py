# bubble_arcade/games/core/clock.py
"""
Timekeeping for timed games.

Nothing here runs in the background. A ``Scheduler`` only remembers when its
callbacks are due; whoever owns it calls ``run_due()`` (the web layer does it
at the top of every request, tests do it after advancing a ``FakeClock``) and
every callback whose time has come fires in (due, sequence) order.

While a callback fires, ``Scheduler.now()`` reports that callback's due time
rather than the wall clock, so a chain of deferred callbacks replays on the
same timeline it would have followed if each had fired on time.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class Clock:
    """Monotonic time source in seconds."""

    def time(self) -> float:
        raise NotImplementedError


class RealClock(Clock):
    def time(self) -> float:
        return time.monotonic()


class FakeClock(Clock):
    """
    Clock that only moves when told to. Starts at zero unless given a start.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def time(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("Cannot advance clock backwards")
        self._now += seconds


class TimerHandle:
    __slots__ = ("due", "interval", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None], interval: Optional[float] = None):
        self.due = due
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self):
        kind = "every" if self.interval else "once"
        return f"<TimerHandle {kind} due={self.due:.3f} cancelled={self.cancelled}>"


class Scheduler:
    """One-shot and repeating callbacks against an injectable clock."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock = clock or RealClock()
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._firing_at: Optional[float] = None

    def now(self) -> float:
        if self._firing_at is not None:
            return self._firing_at
        return self.clock.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self.now() + max(0.0, delay), callback)
        self._push(handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """First call fires one full interval from now."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(self.now() + interval, callback, interval=interval)
        self._push(handle)
        return handle

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._heap, (handle.due, next(self._seq), handle))

    def pending(self) -> int:
        return sum(1 for _, _, h in self._heap if not h.cancelled)

    def run_due(self) -> int:
        """Fire every callback due at or before the current clock time."""
        fired = 0
        horizon = self.clock.time()
        while self._heap and self._heap[0][0] <= horizon:
            due, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            if handle.interval:
                handle.due = due + handle.interval
                self._push(handle)
            self._firing_at = due
            try:
                handle.callback()
            finally:
                self._firing_at = None
            fired += 1
        if fired:
            logger.debug("scheduler fired %d callback(s) up to t=%.3f", fired, horizon)
        return fired

    def cancel_all(self) -> None:
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()
