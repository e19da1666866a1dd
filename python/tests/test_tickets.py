"""
Tests for the ticket management board: backlog, timed live-call ticket and
teardown.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from voicebot.config import PlaybackSettings
from voicebot.models import TicketPriority, TicketStatus
from voicebot.pubsub import DashboardEventType
from voicebot.shared_content import CUSTOMER_PROFILE, SEED_TICKETS
from voicebot.tickets import (
    PRIORITY_COLORS,
    TICKET_STATUS_COLORS,
    TicketBoard,
    build_live_call_ticket,
    ticket_sentiment_color,
)


FIXED_NOW = datetime(2024, 1, 15, 14, 32, 5)


@pytest.fixture
def board(scheduler, publisher):
    return TicketBoard(scheduler, publisher=publisher, clock=lambda: FIXED_NOW)


# =============================================================================
# Backlog Tests
# =============================================================================


class TestBacklog:
    def test_seed_order_newest_first(self, board):
        assert [t.ticket_id for t in board.tickets] == [
            "TKT-2024-0015",
            "TKT-2024-0014",
            "TKT-2024-0013",
            "TKT-2024-0012",
            "TKT-2024-0011",
        ]
        assert not board.has_new_ticket
        assert board.live_ticket is None

    def test_tickets_is_a_copy(self, board):
        board.tickets.clear()
        assert len(board.tickets) == len(SEED_TICKETS)

    def test_get_ticket(self, board):
        assert board.get_ticket("TKT-2024-0013").priority == TicketPriority.HIGH
        assert board.get_ticket("TKT-0000") is None

    def test_every_status_and_priority_has_a_color(self):
        assert set(PRIORITY_COLORS) == set(TicketPriority)
        assert set(TICKET_STATUS_COLORS) == set(TicketStatus)

    @pytest.mark.parametrize(
        "score, color",
        [(85, "#16A34A"), (70, "#16A34A"), (69, "#CA8A04"), (40, "#CA8A04"), (39, "#DC2626"), (0, "#DC2626")],
    )
    def test_sentiment_color_bands(self, score, color):
        assert ticket_sentiment_color(score) == color


# =============================================================================
# Live-call Ticket Tests
# =============================================================================


class TestLiveCallTicket:
    def test_ticket_fields(self):
        ticket = build_live_call_ticket(FIXED_NOW)

        assert ticket.ticket_id == "TKT-2024-0016"
        assert ticket.priority == TicketPriority.HIGH
        assert ticket.status == TicketStatus.NEW
        assert ticket.assigned_agent is None
        assert ticket.created_time == "2024-01-15 14:32:05"
        assert ticket.customer_name == CUSTOMER_PROFILE.name
        assert ticket.account_number == CUSTOMER_PROFILE.account_number
        assert ticket.sentiment_score == 25
        assert "REF-UPI-2024-001234" in ticket.issue_description
        assert ticket.followup_required
        assert ticket.followup_date == "2024-01-16"

    def test_followup_crosses_month_end(self):
        ticket = build_live_call_ticket(datetime(2024, 1, 31, 23, 59, 0))
        assert ticket.followup_date == "2024-02-01"

    def test_appears_at_delay(self, board, scheduler):
        board.start()
        assert board.is_pending
        assert board.generate_at_ms == 15000

        scheduler.advance_to(14_999)
        assert not board.has_new_ticket

        scheduler.advance_to(15_000)
        assert board.has_new_ticket
        assert not board.is_pending
        assert board.tickets[0].ticket_id == "TKT-2024-0016"
        assert board.tickets[1:] == list(SEED_TICKETS)
        assert scheduler.next_due_ms() is None

    def test_custom_delay(self, scheduler):
        board = TicketBoard(scheduler, settings=PlaybackSettings(ticket_generation_delay_ms=250))
        board.start()

        scheduler.advance_to(250)
        assert board.live_ticket is not None

    def test_event_published(self, board, scheduler, publisher):
        board.start()
        scheduler.advance_to(15_000)

        events = publisher.get_history(DashboardEventType.TICKET_CREATED)
        assert len(events) == 1
        assert events[0].sim_time_ms == 15000
        assert events[0].payload["ticket"]["ticket_id"] == "TKT-2024-0016"
        assert events[0].payload["ticket"]["priority"] == "high"

    def test_generate_is_idempotent(self, board, scheduler, publisher):
        first = board.generate_live_ticket()
        board.start()
        scheduler.advance_to(15_000)

        assert board.generate_live_ticket() is first
        assert [t.ticket_id for t in board.tickets].count("TKT-2024-0016") == 1
        assert len(publisher.get_history(DashboardEventType.TICKET_CREATED)) == 1

    def test_start_is_idempotent(self, board, scheduler):
        board.start()
        board.start()
        assert scheduler.pending_count == 1


# =============================================================================
# Teardown Tests
# =============================================================================


class TestTicketBoardClose:
    def test_close_before_delay_prevents_ticket(self, board, scheduler, publisher):
        board.start()
        scheduler.advance_to(10_000)
        board.close()

        scheduler.advance(60_000)

        assert not board.has_new_ticket
        assert not board.is_pending
        assert board.tickets == list(SEED_TICKETS)
        assert publisher.get_history(DashboardEventType.TICKET_CREATED) == []
        assert scheduler.next_due_ms() is None

    def test_close_after_ticket_keeps_it(self, board, scheduler):
        board.start()
        scheduler.advance_to(15_000)
        board.close()

        assert board.tickets[0].ticket_id == "TKT-2024-0016"

    def test_start_after_close_raises(self, board):
        board.close()
        with pytest.raises(RuntimeError, match="closed"):
            board.start()
