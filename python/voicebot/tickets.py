"""
Ticket Management Board.

Holds the support ticket backlog and, on its own one-shot timer, opens a
ticket for the live call shortly after the dashboard starts. The new ticket
is placed at the top of the list.

Usage:
    board = TicketBoard(VirtualScheduler())
    board.start()
    scheduler.advance(15000)
    board.tickets[0].ticket_id  # 'TKT-2024-0016'
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from .config import PlaybackSettings
from .models import Ticket, TicketPriority, TicketStatus
from .pubsub import DashboardEventPublisher, DashboardEventType
from .scheduler import Scheduler, TimerGroup
from .shared_content import CUSTOMER_PROFILE, LIVE_CALL_ISSUE, LIVE_CALL_TICKET_ID, SEED_TICKETS


__all__ = [
    "PRIORITY_COLORS",
    "TICKET_STATUS_COLORS",
    "TicketBoard",
    "build_live_call_ticket",
    "ticket_sentiment_color",
]


logger = logging.getLogger(__name__)


PRIORITY_COLORS: dict[TicketPriority, str] = {
    TicketPriority.HIGH: "#EF4444",
    TicketPriority.MEDIUM: "#EAB308",
    TicketPriority.LOW: "#22C55E",
}

TICKET_STATUS_COLORS: dict[TicketStatus, str] = {
    TicketStatus.NEW: "#DBEAFE",
    TicketStatus.IN_PROGRESS: "#FFEDD5",
    TicketStatus.ESCALATED: "#FEE2E2",
    TicketStatus.RESOLVED: "#DCFCE7",
}

CREATED_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
FOLLOWUP_DATE_FORMAT = "%Y-%m-%d"

LIVE_CALL_SENTIMENT_SCORE = 25


def ticket_sentiment_color(score: int) -> str:
    """Text color for a ticket's sentiment score."""
    if score >= 70:
        return "#16A34A"
    if score >= 40:
        return "#CA8A04"
    return "#DC2626"


def build_live_call_ticket(created_at: datetime) -> Ticket:
    """
    Ticket for the call in progress.

    Args:
        created_at: Local time the ticket is opened. Follow-up is due the next day.
    """
    return Ticket(
        ticket_id=LIVE_CALL_TICKET_ID,
        issue_category="UPI Issues",
        priority=TicketPriority.HIGH,
        status=TicketStatus.NEW,
        created_time=created_at.strftime(CREATED_TIME_FORMAT),
        customer_name=CUSTOMER_PROFILE.name,
        account_number=CUSTOMER_PROFILE.account_number,
        contact_info=CUSTOMER_PROFILE.phone,
        issue_description=LIVE_CALL_ISSUE,
        sentiment_score=LIVE_CALL_SENTIMENT_SCORE,
        followup_required=True,
        followup_date=(created_at + timedelta(days=1)).strftime(FOLLOWUP_DATE_FORMAT),
    )


class TicketBoard:
    """
    The ticket table, newest first.

    Owns the ticket list; it only changes when the live-call ticket is
    generated. The generation timer is independent of the conversation and
    sentiment clocks.

    Args:
        scheduler: Clock for the generation timer.
        seed: Backlog shown before the live ticket arrives.
        settings: Provides ticket_generation_delay_ms.
        publisher: Receives a TICKET_CREATED event.
        clock: Wall-clock source for the ticket's created/follow-up dates.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        seed: Sequence[Ticket] = SEED_TICKETS,
        *,
        settings: Optional[PlaybackSettings] = None,
        publisher: Optional[DashboardEventPublisher] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings or PlaybackSettings()
        self._scheduler = scheduler
        self._publisher = publisher
        self._clock = clock
        self._timers = TimerGroup(scheduler, name="tickets")

        self._seed_count = len(seed)
        self._tickets: list[Ticket] = list(seed)
        self._live_ticket: Optional[Ticket] = None
        self._started = False
        self._closed = False
        self._generate_at_ms: Optional[float] = None

    @property
    def tickets(self) -> list[Ticket]:
        return list(self._tickets)

    @property
    def live_ticket(self) -> Optional[Ticket]:
        return self._live_ticket

    @property
    def has_new_ticket(self) -> bool:
        """True once a ticket beyond the backlog exists."""
        return len(self._tickets) > self._seed_count

    @property
    def is_pending(self) -> bool:
        """Generation timer armed and not yet fired."""
        return self._generate_at_ms is not None

    @property
    def generate_at_ms(self) -> Optional[float]:
        return self._generate_at_ms

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        for ticket in self._tickets:
            if ticket.ticket_id == ticket_id:
                return ticket
        return None

    def start(self) -> None:
        """Arm the generation timer. No-op if already started."""
        if self._closed:
            raise RuntimeError("TicketBoard is closed")
        if self._started:
            return
        self._started = True
        delay = self._settings.ticket_generation_delay_ms
        self._generate_at_ms = self._scheduler.now_ms() + delay
        self._timers.call_later(delay, self._on_timer)
        logger.info("Live-call ticket scheduled in %d ms", delay)

    def close(self) -> None:
        """Cancel the pending generation timer."""
        if self._closed:
            return
        self._timers.close()
        self._generate_at_ms = None
        self._closed = True
        logger.info("TicketBoard closed with %d tickets", len(self._tickets))

    def generate_live_ticket(self) -> Ticket:
        """Open the live-call ticket now. Returns the existing one if already open."""
        if self._live_ticket is not None:
            return self._live_ticket

        ticket = build_live_call_ticket(self._clock())
        self._live_ticket = ticket
        self._tickets.insert(0, ticket)
        logger.info("Generated ticket %s for %s", ticket.ticket_id, ticket.customer_name)

        if self._publisher is not None:
            self._publisher.emit(
                DashboardEventType.TICKET_CREATED,
                self._scheduler.now_ms(),
                ticket=ticket.model_dump(mode="json"),
            )
        return ticket

    def _on_timer(self) -> None:
        self._generate_at_ms = None
        self.generate_live_ticket()
