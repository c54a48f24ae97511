"""Clock port used by the scheduler to defer step completion.

Delays are expressed in scheduler time units (``estimated_time * delay_factor``).
``VirtualClock`` advances only when told to; ``AsyncioClock`` maps units to
seconds on the running event loop.
"""

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None: ...


@runtime_checkable
class Clock(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class VirtualTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock:
    """Deterministic clock for tests and simulations."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self._queue: list[tuple[float, int, VirtualTimer]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(self.now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.due, next(self._seq), timer))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, delta: float) -> int:
        """Move time forward by *delta*, firing due timers in order. Returns timers fired."""
        target = self.now + delta
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = due
            timer.callback()
            fired += 1
        self.now = target
        return fired

    def run_until_idle(self, limit: int = 10_000) -> int:
        """Fire every pending timer (including ones scheduled while firing)."""
        fired = 0
        while fired < limit:
            live = [entry for entry in self._queue if not entry[2].cancelled]
            if not live:
                break
            next_due = min(entry[0] for entry in live)
            fired += self.advance(next_due - self.now)
        return fired


class AsyncioClock:
    """Schedules callbacks on the running asyncio loop."""

    def __init__(self, time_unit_seconds: float = 0.001) -> None:
        self.time_unit_seconds = time_unit_seconds

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay * self.time_unit_seconds, callback)
