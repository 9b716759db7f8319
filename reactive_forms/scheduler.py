"""
Timers for debounced reactions.

Validation never waits on a timer; only the delivery of debounced
reactions does. Two schedulers are provided, both single-threaded:

- TimerQueue: a cooperative queue the host pumps with run_due(). Its clock
  is injectable, so tests drive it with a ManualClock.
- AsyncioScheduler: hands timers to a running asyncio event loop.

Any object with ``call_later(delay, callback, *args)`` returning a handle
with ``cancel()`` can be used as a scheduler.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self._now = start

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward and return the new time."""
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        self._now += seconds
        return self._now


class TimerHandle:
    """A scheduled callback that can be cancelled before it runs."""

    def __init__(self, when: float, callback: Callable, args: Tuple[Any, ...]):
        self.when = when
        self._callback = callback
        self._args = args
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def _run(self) -> None:
        self._callback(*self._args)


class TimerQueue:
    """
    Cooperative timer queue.

    Nothing runs in the background: timers whose deadline has passed fire
    when the owner calls run_due(), in deadline order (ties in scheduling
    order).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._sequence = itertools.count()

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        if delay < 0:
            raise ValueError(f"Timer delay must not be negative, got {delay}")
        handle = TimerHandle(self.clock() + delay, callback, args)
        heapq.heappush(self._heap, (handle.when, next(self._sequence), handle))
        return handle

    def run_due(self) -> int:
        """
        Fire every timer whose deadline is at or before the current time.

        Returns:
            Number of callbacks that ran

        Raises:
            Whatever a callback raises; timers not yet fired stay queued.
        """
        now = self.clock()
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            handle._run()
            fired += 1
        if fired:
            logger.debug(f"Fired {fired} timer(s) at {now:.3f}")
        return fired

    def next_deadline(self) -> Optional[float]:
        """Deadline of the earliest live timer, or None when idle."""
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0][0] if self._heap else None

    def clear(self) -> None:
        """Cancel and drop every pending timer."""
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()

    def __len__(self) -> int:
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)


class AsyncioScheduler:
    """Schedules timers on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable, *args) -> asyncio.TimerHandle:
        # Without an explicit loop this must be called from inside a running one
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback, *args)
