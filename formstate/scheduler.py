"""Deferred-call scheduling for the reset timer.

The submission lifecycle only needs one capability from its host: run a
callback once after a delay, with a handle that can cancel it. Any object
with ``call_later(delay, callback)`` returning a handle with ``cancel()``
will do. An ``asyncio`` event loop already qualifies, and its callbacks run
on the same single-threaded loop as every other event.

``ManualScheduler`` is a virtual-clock implementation for hosts that pump
their own loop, and for tests:

    >>> scheduler = ManualScheduler()
    >>> fired = []
    >>> handle = scheduler.call_later(3.0, lambda: fired.append("reset"))
    >>> scheduler.advance(2.9)
    0
    >>> scheduler.advance(0.1)
    1
    >>> fired
    ['reset']
"""

import heapq
import itertools
import logging
from typing import Any, Callable, List, Tuple

from typing_extensions import Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback once after ``delay`` seconds."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Cancellable: ...


class ScheduledCall:
    """Handle for a callback queued on a ManualScheduler.

    Mirrors the parts of ``asyncio.TimerHandle`` callers rely on.
    """

    def __init__(self, when: float, callback: Callable[..., Any], args: Tuple[Any, ...]):
        self._when = when
        self._callback = callback
        self._args = args
        self._cancelled = False

    def when(self) -> float:
        return self._when

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self) -> None:
        self._callback(*self._args)


class ManualScheduler:
    """Scheduler driven by an explicit virtual clock.

    Callbacks never run on their own. ``advance`` moves the clock forward and
    runs every due callback in deadline order, one at a time, on the calling
    thread. Callbacks scheduled by a running callback are honored within the
    same ``advance`` if they fall due.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, ScheduledCall]] = []
        self._sequence = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ScheduledCall:
        """Queue ``callback(*args)`` to run ``delay`` seconds from now."""
        if delay < 0:
            delay = 0.0
        handle = ScheduledCall(self._now + delay, callback, args)
        heapq.heappush(self._queue, (handle.when(), next(self._sequence), handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of queued callbacks that have not been cancelled."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled())

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run what falls due.

        Args:
            seconds: How far to move the clock (must be >= 0)

        Returns:
            Number of callbacks that ran
        """
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        deadline = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= deadline:
            when, _, handle = heapq.heappop(self._queue)
            self._now = when
            if handle.cancelled():
                continue
            logger.debug("Running scheduled call due at %.3f", when)
            handle._run()
            ran += 1
        self._now = deadline
        return ran

    def run_all(self) -> int:
        """Run every pending callback, jumping the clock to each deadline."""
        ran = 0
        while self._queue:
            ran += self.advance(max(self._queue[0][0] - self._now, 0.0))
        return ran


__all__ = [
    "Cancellable",
    "Scheduler",
    "ScheduledCall",
    "ManualScheduler",
]
