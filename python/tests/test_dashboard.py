"""
Tests for DashboardSession: composition, render snapshot, input contract
and teardown.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime

import pytest

from voicebot.config import PlaybackSettings, ScriptBundle
from voicebot.conversation import TurnPhase
from voicebot.dashboard import DashboardSession
from voicebot.models import CallStatus, ScriptedTurn, SentimentLabel, Speaker
from voicebot.pubsub import DashboardEventType
from voicebot.scheduler import LoopScheduler
from voicebot.shared_content import (
    ACTIVE_CALLS_COUNT,
    CALL_SENTIMENT_RECORDS,
    CONVERSATION_SCRIPT,
    CUSTOMER_PROFILE,
    SEED_TICKETS,
    SENTIMENT_PROGRESSION,
)


FAST_SETTINGS = PlaybackSettings(
    ai_waveform_ms=5,
    customer_waveform_ms=5,
    content_settle_ms=5,
    ai_typing_speed_ms=1,
    customer_typing_speed_ms=1,
    reveal_start_delay_ms=1,
    typing_estimate_pad_ms=1,
    completion_buffer_ms=1,
    sentiment_interval_ms=10,
    ticket_generation_delay_ms=5,
)


@pytest.fixture
def session(scheduler):
    return DashboardSession(scheduler, rng=random.Random(3))


# =============================================================================
# Playback Tests
# =============================================================================


class TestDashboardPlayback:
    """Tests for the composed session on virtual time."""

    def test_full_run(self, session, scheduler):
        session.start()
        scheduler.run_until_idle()

        view = session.snapshot()
        assert session.is_idle
        assert view.phase == TurnPhase.FINISHED
        assert view.call_status == CallStatus.CONNECTED
        assert view.current_turn == view.total_turns == len(CONVERSATION_SCRIPT)
        assert [m.text for m in view.messages] == [t.text for t in CONVERSATION_SCRIPT]
        assert all(m.is_fully_revealed for m in view.messages)
        assert view.sentiment.cursor == len(SENTIMENT_PROGRESSION) - 1
        assert view.sentiment.total_snapshots == len(SENTIMENT_PROGRESSION)
        assert len(view.sentiment.history) == 8
        assert view.has_new_ticket
        assert view.tickets[0].ticket_id == "TKT-2024-0016"
        assert len(view.tickets) == len(SEED_TICKETS) + 1

    def test_clocks_are_independent(self, session, scheduler):
        """Sentiment ticks on its interval while the first turn is still typing."""
        session.start()
        scheduler.advance_to(4000)

        view = session.snapshot()
        assert view.current_turn == 0
        assert view.phase == TurnPhase.REVEALING
        assert view.sentiment.cursor == 1
        assert view.sentiment.current == SentimentLabel.NEGATIVE
        assert view.sentiment.alert_active

    def test_can_send_follows_status(self, session, scheduler):
        session.start()
        assert session.snapshot().can_send

        scheduler.advance_to(1000)
        assert not session.snapshot().can_send

        scheduler.advance_to(2500)
        assert session.snapshot().can_send

    def test_submit_and_mute_delegate(self, session, scheduler):
        session.start()
        scheduler.advance_to(2500)

        message = session.submit_user_message("Is the refund coming?")
        session.set_muted(True)

        view = session.snapshot()
        assert message is not None
        assert view.messages[-1].id == message.id
        assert view.messages[-1].speaker == Speaker.CUSTOMER
        assert view.is_muted

    def test_snapshot_is_a_copy(self, session, scheduler):
        session.start()
        scheduler.run_until_idle()

        view = session.snapshot()
        view.messages[0].displayed_text = "tampered"
        view.sentiment.history.clear()

        fresh = session.snapshot()
        assert fresh.messages[0].displayed_text == CONVERSATION_SCRIPT[0].text
        assert len(fresh.sentiment.history) == 8

    def test_lifecycle_events(self, session, scheduler):
        session.start()
        scheduler.run_until_idle()
        session.close()

        contents = [e.payload["content"] for e in session.publisher.get_history(DashboardEventType.SYSTEM)]
        assert contents[0] == "session_started"
        assert "conversation_finished" in contents
        assert contents[-1] == "session_closed"


# =============================================================================
# Panel Tests
# =============================================================================


class TestDashboardPanels:
    """Header, caller profile, ticket table and post-call records."""

    @pytest.fixture
    def clocked_session(self, scheduler):
        return DashboardSession(
            scheduler,
            rng=random.Random(3),
            clock=lambda: datetime(2024, 1, 15, 14, 32, 5),
        )

    def test_static_panels(self, clocked_session):
        view = clocked_session.snapshot()

        assert view.active_calls_count == ACTIVE_CALLS_COUNT == 3
        assert view.current_time == datetime(2024, 1, 15, 14, 32, 5)
        assert view.customer == CUSTOMER_PROFILE
        assert view.customer.name == "Rajesh Kumar"
        assert [r.call_id for r in view.call_records] == [r.call_id for r in CALL_SENTIMENT_RECORDS]
        assert view.call_duration == "00:00"

    def test_live_ticket_joins_table(self, clocked_session, scheduler):
        clocked_session.start()
        scheduler.advance_to(14_999)
        view = clocked_session.snapshot()
        assert [t.ticket_id for t in view.tickets] == [t.ticket_id for t in SEED_TICKETS]
        assert not view.has_new_ticket

        scheduler.advance_to(15_000)
        view = clocked_session.snapshot()
        assert view.has_new_ticket
        assert len(view.tickets) == len(SEED_TICKETS) + 1
        assert view.tickets[0].ticket_id == "TKT-2024-0016"
        assert view.tickets[0].created_time == "2024-01-15 14:32:05"

    def test_call_duration_freezes_on_close(self, clocked_session, scheduler):
        clocked_session.start()
        scheduler.advance_to(65_400)
        assert clocked_session.snapshot().call_duration == "01:05"

        clocked_session.close()
        scheduler.advance(60_000)
        assert clocked_session.snapshot().call_duration == "01:05"

    def test_close_before_ticket_keeps_backlog(self, clocked_session, scheduler):
        clocked_session.start()
        scheduler.advance_to(10_000)
        clocked_session.close()
        scheduler.advance(60_000)

        view = clocked_session.snapshot()
        assert not view.has_new_ticket
        assert len(view.tickets) == len(SEED_TICKETS)
        assert clocked_session.publisher.get_history(DashboardEventType.TICKET_CREATED) == []


# =============================================================================
# Teardown Tests
# =============================================================================


class TestDashboardClose:
    def test_close_freezes_both_components(self, session, scheduler):
        session.start()
        scheduler.advance_to(5000)
        session.close()
        before = session.snapshot()

        scheduler.advance(600_000)
        after = session.snapshot()

        assert session.is_closed
        assert [m.model_dump() for m in after.messages] == [m.model_dump() for m in before.messages]
        assert after.sentiment.cursor == before.sentiment.cursor
        assert scheduler.next_due_ms() is None

    def test_start_after_close_raises(self, session):
        session.close()
        with pytest.raises(RuntimeError, match="closed"):
            session.start()

    def test_close_is_idempotent(self, session):
        session.start()
        session.close()
        session.close()

        closed = [
            e for e in session.publisher.get_history(DashboardEventType.SYSTEM)
            if e.payload["content"] == "session_closed"
        ]
        assert len(closed) == 1


# =============================================================================
# Real-time Tests
# =============================================================================


class TestDashboardRealtime:
    """Tests on the asyncio event loop with compressed timings."""

    @pytest.mark.asyncio
    async def test_async_context_manager_runs_to_idle(self, short_progression):
        scripts = ScriptBundle(
            conversation=(
                ScriptedTurn(speaker=Speaker.AI, text="Hello!", inter_turn_delay_ms=5),
                ScriptedTurn(
                    speaker=Speaker.CUSTOMER,
                    text="Hi there.",
                    sentiment=SentimentLabel.POSITIVE,
                    inter_turn_delay_ms=5,
                ),
            ),
            sentiment=short_progression,
        )
        session = DashboardSession(
            LoopScheduler(),
            settings=FAST_SETTINGS,
            scripts=scripts,
            rng=random.Random(0),
        )

        async with session:
            queue = session.publisher.subscribe()

            async def drain() -> None:
                while not session.is_idle:
                    await queue.get()

            await asyncio.wait_for(drain(), timeout=5.0)
            view = session.snapshot()

        assert session.is_closed
        assert [m.text for m in view.messages] == ["Hello!", "Hi there."]
        assert all(m.is_fully_revealed for m in view.messages)
        assert view.sentiment.cursor == 2
