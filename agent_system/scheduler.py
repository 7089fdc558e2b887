"""
Scheduler - Timer abstraction for debouncing and periodic sweeps.

All times are milliseconds. ManualScheduler runs on a virtual clock so tests
and replays can advance time explicitly; AsyncioScheduler runs on the event
loop of the live page bridge.
"""

import asyncio
import heapq
import itertools
import time
from typing import Callable, List, Optional, Protocol, Tuple, runtime_checkable
import logging

logger = logging.getLogger(__name__)


Callback = Callable[[], None]


class TimerHandle:
    """Handle for a scheduled callback. cancel() is idempotent."""

    def __init__(self, cancel_fn: Optional[Callable[[], None]] = None):
        self._cancel_fn = cancel_fn
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._cancel_fn is not None:
            self._cancel_fn()


@runtime_checkable
class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...

    def call_every(self, interval: float, callback: Callback) -> TimerHandle: ...


class ManualScheduler:
    """
    Virtual-clock scheduler.

    Callbacks fire only from advance(), in due-time order; callbacks due at
    the same instant fire in the order they were scheduled.
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._queue: List[Tuple[float, int, TimerHandle, Callback, Optional[float]]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        self._push(self._now + max(0.0, delay), handle, callback, None)
        return handle

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle()
        self._push(self._now + interval, handle, callback, interval)
        return handle

    def advance(self, delta: float) -> int:
        """Move the clock forward, firing every callback that falls due. Returns the count fired."""
        target = self._now + delta
        fired = 0

        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback, interval = heapq.heappop(self._queue)
            if handle.cancelled:
                continue

            self._now = due
            if interval is not None:
                self._push(due + interval, handle, callback, interval)
            callback()
            fired += 1

        self._now = target
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)

    def _push(
        self,
        due: float,
        handle: TimerHandle,
        callback: Callback,
        interval: Optional[float],
    ) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback, interval))


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop. now() is wall-clock ms."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.time() * 1000

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        timer = self.loop.call_later(max(0.0, delay) / 1000, self._run, callback)
        return TimerHandle(timer.cancel)

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")

        current: List[asyncio.TimerHandle] = []

        def tick() -> None:
            current[0] = self.loop.call_later(interval / 1000, tick)
            self._run(callback)

        current.append(self.loop.call_later(interval / 1000, tick))
        return TimerHandle(lambda: current[0].cancel())

    @staticmethod
    def _run(callback: Callback) -> None:
        try:
            callback()
        except Exception as e:
            logger.error(f"Error in scheduled callback: {e}")
