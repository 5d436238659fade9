"""Cancelable deferred callbacks on a single serialized context.

A GameSession is only ever mutated from one event loop. The scheduler is
that loop: timers fire on it, and work finished on other threads is handed
back to it with call_soon().

ManualScheduler runs on a virtual clock that only moves when advance() is
called, which makes timing fully deterministic. LoopScheduler runs on an
asyncio event loop in real time.
"""

import asyncio
import heapq
import itertools
import logging
import threading
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Stop the callback from running. Calling twice is harmless."""
        ...


class Scheduler(Protocol):
    def now(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def call_soon(self, callback: Callable[[], None]) -> None:
        """Run callback on the scheduler's context. Safe from any thread."""
        ...


class ManualHandle:
    """Handle for a ManualScheduler callback."""

    __slots__ = ("when", "callback", "_cancelled")

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Scheduler driven by an explicit virtual clock.

    Usage:
        scheduler = ManualScheduler()
        scheduler.call_later(1.0, session.tick)
        scheduler.advance(1.0)   # runs the tick
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, ManualHandle]] = []
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self._now + max(0.0, delay), callback)
        with self._lock:
            heapq.heappush(self._queue, (handle.when, next(self._counter), handle))
        return handle

    def call_soon(self, callback: Callable[[], None]) -> None:
        self.call_later(0.0, callback)

    @property
    def pending_count(self) -> int:
        """Number of callbacks still waiting to run."""
        with self._lock:
            return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward, running every callback that becomes due.

        Callbacks scheduled while advancing also run if they fall inside the
        window. Callbacks run in time order, ties in scheduling order.

        Returns:
            Number of callbacks run.
        """
        target = self._now + seconds
        ran = 0
        while True:
            with self._lock:
                if not self._queue or self._queue[0][0] > target:
                    break
                when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, when)
            handle.callback()
            ran += 1
        self._now = target
        return ran

    def run_pending(self) -> int:
        """Run callbacks that are already due without moving the clock."""
        return self.advance(0.0)


class LoopScheduler:
    """Scheduler on an asyncio event loop.

    Usage:
        scheduler = LoopScheduler()
        orchestrator = SessionOrchestrator(library, gateway, scheduler)
        scheduler.call_soon(lambda: orchestrator.start_session(photos, settings))
        scheduler.run_forever()   # until scheduler.stop()
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.new_event_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)

    def call_soon(self, callback: Callable[[], None]) -> None:
        self.loop.call_soon_threadsafe(callback)

    def run_forever(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def stop(self) -> None:
        """Stop run_forever(). Safe from any thread."""
        self.loop.call_soon_threadsafe(self.loop.stop)

    def close(self) -> None:
        if not self.loop.is_running() and not self.loop.is_closed():
            self.loop.close()
