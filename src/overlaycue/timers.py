"""Cancellable delayed tasks for deferred unmounting.

The lifecycle scheduler only needs "run this later, unless I cancel it".
Two implementations:

  - ManualTimers: a virtual clock advanced explicitly. Tests and offline
    playback (exports, CLI timelines) use it to fast-forward time.
  - AsyncioTimers: wraps ``loop.call_later`` for live playback.
"""

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timers(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """Virtual clock. Callbacks run from advance()/advance_to(), in due order."""

    def __init__(self, now: float = 0.0):
        self.now = now
        self._queue: list[tuple[float, int, ManualTimer]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.due, next(self._seq), timer))
        return timer

    def advance(self, seconds: float) -> int:
        return self.advance_to(self.now + seconds)

    def advance_to(self, when: float) -> int:
        """Move the clock to *when*, firing due callbacks. Returns how many ran."""
        fired = 0
        while self._queue and self._queue[0][0] <= when:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = max(self.now, due)
            timer.callback()
            fired += 1
        self.now = max(self.now, when)
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)


class AsyncioTimers:
    """Timers on an asyncio event loop (the running loop by default)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), callback)
