"""
Timer scheduling for the dashboard simulation.

Every component owns its timers through a TimerGroup so that teardown can
cancel exactly what that component scheduled. Two schedulers are provided:

    - LoopScheduler: wall-clock timers on the running asyncio event loop.
    - VirtualScheduler: virtual time advanced explicitly. Used for instant
      replays, Streamlit reruns and deterministic tests.

All delays are in milliseconds.

Example:
    scheduler = VirtualScheduler()
    timers = TimerGroup(scheduler)
    timers.call_later(1500, on_waveform_done)
    scheduler.advance(1500)
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Callable, Optional, Protocol


__all__ = [
    "Scheduler",
    "Cancellable",
    "LoopScheduler",
    "VirtualScheduler",
    "TimerGroup",
]


logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    """Anything returned by Scheduler.call_later."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Minimal clock + one-shot timer interface."""

    def now_ms(self) -> float: ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Cancellable: ...


class LoopScheduler:
    """
    Scheduler backed by the asyncio event loop.

    The loop is resolved lazily so the scheduler can be created outside of a
    running loop and used once the loop is up.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now_ms(self) -> float:
        return self.loop.time() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay_ms, 0.0) / 1000.0, callback)


class _VirtualTimer:
    __slots__ = ("due_ms", "callback", "cancelled")

    def __init__(self, due_ms: float, callback: Callable[[], None]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """
    Deterministic scheduler over virtual time.

    Timers due at the same instant fire in the order they were scheduled.
    Timers scheduled by a callback fire within the same advance() call if
    they fall due before its target time.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = start_ms
        self._queue: list[tuple[float, int, _VirtualTimer]] = []
        self._sequence = itertools.count()

    def now_ms(self) -> float:
        return self._now_ms

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _VirtualTimer:
        timer = _VirtualTimer(self._now_ms + max(delay_ms, 0.0), callback)
        heapq.heappush(self._queue, (timer.due_ms, next(self._sequence), timer))
        return timer

    @property
    def pending_count(self) -> int:
        """Number of timers still waiting to fire."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def next_due_ms(self) -> Optional[float]:
        """Due time of the earliest live timer, or None when idle."""
        self._drop_cancelled()
        if not self._queue:
            return None
        return self._queue[0][0]

    def advance(self, delta_ms: float) -> int:
        """Advance virtual time by delta_ms. Returns the number of callbacks run."""
        if delta_ms < 0:
            raise ValueError(f"Cannot move virtual time backwards (delta={delta_ms})")
        return self.advance_to(self._now_ms + delta_ms)

    def advance_to(self, target_ms: float) -> int:
        """Run every timer due at or before target_ms, then set the clock to it."""
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._queue or self._queue[0][0] > target_ms:
                break
            due_ms, _, timer = heapq.heappop(self._queue)
            self._now_ms = max(self._now_ms, due_ms)
            timer.cancelled = True
            timer.callback()
            fired += 1
        self._now_ms = max(self._now_ms, target_ms)
        return fired

    def run_until_idle(self, max_callbacks: int = 100_000) -> int:
        """
        Fire timers in order until none remain.

        Raises:
            RuntimeError: If max_callbacks is exceeded (a timer line that
                never stops rescheduling itself).
        """
        fired = 0
        while True:
            due_ms = self.next_due_ms()
            if due_ms is None:
                return fired
            fired += self.advance_to(due_ms)
            if fired > max_callbacks:
                raise RuntimeError(
                    f"VirtualScheduler did not go idle after {max_callbacks} callbacks"
                )

    def _drop_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)


class _OwnedTimer:
    """Handle that turns a late fire after cancellation into a no-op."""

    __slots__ = ("_group", "_callback", "_inner", "cancelled")

    def __init__(self, group: "TimerGroup", callback: Callable[[], None]) -> None:
        self._group = group
        self._callback = callback
        self._inner: Optional[Cancellable] = None
        self.cancelled = False

    def fire(self) -> None:
        self._group._handles.discard(self)
        if self.cancelled or self._group.closed:
            return
        self.cancelled = True
        self._callback()

    def cancel(self) -> None:
        self.cancelled = True
        self._group._handles.discard(self)
        if self._inner is not None:
            self._inner.cancel()


class TimerGroup:
    """
    The set of timers owned by one component.

    cancel_all() cancels everything still pending; close() does the same and
    refuses further scheduling.
    """

    def __init__(self, scheduler: Scheduler, name: str = "timers") -> None:
        self._scheduler = scheduler
        self._name = name
        self._handles: set[_OwnedTimer] = set()
        self.closed = False

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def pending_count(self) -> int:
        return len(self._handles)

    def now_ms(self) -> float:
        return self._scheduler.now_ms()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _OwnedTimer:
        if self.closed:
            raise RuntimeError(f"TimerGroup '{self._name}' is closed")
        owned = _OwnedTimer(self, callback)
        self._handles.add(owned)
        owned._inner = self._scheduler.call_later(delay_ms, owned.fire)
        return owned

    def cancel_all(self) -> int:
        """Cancel every pending timer. Returns how many were cancelled."""
        handles = list(self._handles)
        for handle in handles:
            handle.cancel()
        if handles:
            logger.debug("%s: cancelled %d pending timer(s)", self._name, len(handles))
        return len(handles)

    def close(self) -> None:
        self.cancel_all()
        self.closed = True
