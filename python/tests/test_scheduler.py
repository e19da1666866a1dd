"""
Tests for the virtual and asyncio schedulers and owned timer groups.
"""

from __future__ import annotations

import asyncio

import pytest

from voicebot.scheduler import LoopScheduler, TimerGroup, VirtualScheduler


# =============================================================================
# VirtualScheduler Tests
# =============================================================================


class TestVirtualScheduler:
    """Tests for VirtualScheduler."""

    def test_timers_fire_in_due_order(self, scheduler):
        """Timers fire by due time, ties in scheduling order."""
        fired: list[str] = []
        scheduler.call_later(300, lambda: fired.append("c"))
        scheduler.call_later(100, lambda: fired.append("a"))
        scheduler.call_later(100, lambda: fired.append("b"))

        scheduler.advance(1000)

        assert fired == ["a", "b", "c"]
        assert scheduler.now_ms() == 1000

    def test_advance_stops_at_target(self, scheduler):
        """Timers due after the target stay pending."""
        fired: list[int] = []
        scheduler.call_later(500, lambda: fired.append(1))

        scheduler.advance(499)
        assert fired == []
        assert scheduler.pending_count == 1

        scheduler.advance(1)
        assert fired == [1]
        assert scheduler.pending_count == 0

    def test_callback_sees_its_due_time(self, scheduler):
        """now_ms() inside a callback equals the timer's due time."""
        seen: list[float] = []
        scheduler.call_later(250, lambda: seen.append(scheduler.now_ms()))

        scheduler.advance(1000)

        assert seen == [250]

    def test_nested_timers_fire_within_same_advance(self, scheduler):
        """A timer scheduled by a callback fires if due before the target."""
        fired: list[float] = []

        def first() -> None:
            scheduler.call_later(100, lambda: fired.append(scheduler.now_ms()))

        scheduler.call_later(100, first)
        scheduler.advance(250)

        assert fired == [200]

    def test_cancelled_timer_does_not_fire(self, scheduler):
        fired: list[int] = []
        handle = scheduler.call_later(100, lambda: fired.append(1))
        handle.cancel()

        scheduler.advance(1000)

        assert fired == []
        assert scheduler.next_due_ms() is None

    def test_advance_backwards_raises(self, scheduler):
        with pytest.raises(ValueError, match="backwards"):
            scheduler.advance(-1)

    def test_run_until_idle_drains_queue(self, scheduler):
        fired: list[int] = []
        for delay in (10, 20, 5000):
            scheduler.call_later(delay, lambda d=delay: fired.append(d))

        count = scheduler.run_until_idle()

        assert count == 3
        assert fired == [10, 20, 5000]
        assert scheduler.now_ms() == 5000

    def test_run_until_idle_detects_runaway_timer(self, scheduler):
        """A timer line that reschedules forever is reported."""

        def again() -> None:
            scheduler.call_later(1, again)

        scheduler.call_later(1, again)

        with pytest.raises(RuntimeError, match="did not go idle"):
            scheduler.run_until_idle(max_callbacks=50)


# =============================================================================
# TimerGroup Tests
# =============================================================================


class TestTimerGroup:
    """Tests for TimerGroup ownership and cancellation."""

    def test_cancel_all_cancels_owned_timers_only(self, scheduler):
        fired: list[str] = []
        mine = TimerGroup(scheduler, name="mine")
        other = TimerGroup(scheduler, name="other")
        mine.call_later(100, lambda: fired.append("mine"))
        other.call_later(100, lambda: fired.append("other"))

        assert mine.cancel_all() == 1
        scheduler.advance(200)

        assert fired == ["other"]

    def test_pending_count_tracks_fired_timers(self, scheduler):
        group = TimerGroup(scheduler)
        group.call_later(100, lambda: None)
        group.call_later(200, lambda: None)
        assert group.pending_count == 2

        scheduler.advance(150)
        assert group.pending_count == 1

    def test_closed_group_rejects_new_timers(self, scheduler):
        group = TimerGroup(scheduler, name="closed")
        group.close()

        with pytest.raises(RuntimeError, match="closed"):
            group.call_later(10, lambda: None)

    def test_late_fire_after_cancel_is_noop(self, scheduler):
        """A cancelled handle whose callback still runs does nothing."""
        fired: list[int] = []
        group = TimerGroup(scheduler)
        handle = group.call_later(100, lambda: fired.append(1))

        handle.cancel()
        handle.fire()

        assert fired == []


# =============================================================================
# LoopScheduler Tests
# =============================================================================


class TestLoopScheduler:
    """Tests for the asyncio-backed scheduler."""

    @pytest.mark.asyncio
    async def test_call_later_fires_on_running_loop(self):
        scheduler = LoopScheduler()
        fired = asyncio.Event()

        scheduler.call_later(10, fired.set)

        await asyncio.wait_for(fired.wait(), timeout=2.0)
        assert fired.is_set()

    @pytest.mark.asyncio
    async def test_cancelled_group_timer_never_fires(self):
        scheduler = LoopScheduler()
        group = TimerGroup(scheduler)
        fired: list[int] = []

        group.call_later(10, lambda: fired.append(1))
        group.cancel_all()
        await asyncio.sleep(0.05)

        assert fired == []

    @pytest.mark.asyncio
    async def test_now_ms_tracks_loop_time(self):
        scheduler = LoopScheduler()
        loop = asyncio.get_running_loop()

        assert scheduler.now_ms() == pytest.approx(loop.time() * 1000.0, abs=50)
