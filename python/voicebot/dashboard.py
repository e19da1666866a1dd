"""
Dashboard session: the conversation driver, sentiment tracker and ticket
board together.

The three components keep their own clocks and share only the scheduler
and the event publisher. The session exposes the render contract
(snapshot()) and the input contract (submit_user_message, set_muted) and
owns teardown of all of them.

Example:
    async with DashboardSession(LoopScheduler()) as session:
        queue = session.publisher.subscribe()
        ...
        view = session.snapshot()
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel, Field

from .config import PlaybackSettings, ScriptBundle
from .conversation import ConversationDriver, TurnPhase
from .models import (
    CallSentimentRecord,
    CallStatus,
    CustomerProfile,
    EmotionTag,
    LiveMessage,
    SentimentLabel,
    SentimentSnapshot,
    Speaker,
    Ticket,
)
from .pubsub import DashboardEventPublisher
from .scheduler import Scheduler, VirtualScheduler
from .sentiment import SentimentTracker, SentimentTrend
from .shared_content import ACTIVE_CALLS_COUNT, CALL_SENTIMENT_RECORDS, CUSTOMER_PROFILE
from .tickets import TicketBoard


__all__ = ["DashboardSession", "DashboardSnapshot", "SentimentView", "format_call_duration"]


logger = logging.getLogger(__name__)


def format_call_duration(elapsed_ms: float) -> str:
    """Elapsed call time as MM:SS."""
    total_seconds = max(int(elapsed_ms // 1000), 0)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


class SentimentView(BaseModel):
    """Sentiment panel values at one instant."""

    current: SentimentLabel
    confidence: int
    gauge_percent: int
    trend: SentimentTrend
    color: str
    alert_active: bool
    alert_message: Optional[str] = None
    emotions: list[EmotionTag] = Field(default_factory=list)
    history: list[SentimentSnapshot] = Field(default_factory=list)
    cursor: int
    total_snapshots: int


class DashboardSnapshot(BaseModel):
    """Everything the presentation layer renders, as read-only copies."""

    sim_time_ms: float
    current_time: datetime
    active_calls_count: int
    call_duration: str
    customer: CustomerProfile
    call_status: CallStatus
    current_speaker: Optional[Speaker] = None
    is_muted: bool
    phase: TurnPhase
    current_turn: int
    total_turns: int
    messages: list[LiveMessage] = Field(default_factory=list)
    sentiment: SentimentView
    tickets: list[Ticket] = Field(default_factory=list)
    has_new_ticket: bool = False
    call_records: list[CallSentimentRecord] = Field(default_factory=list)

    @property
    def can_send(self) -> bool:
        """Send affordance is disabled while the AI is processing."""
        return self.call_status != CallStatus.PROCESSING


class DashboardSession:
    """
    One simulated call on the dashboard.

    Args:
        scheduler: Clock for every component. Defaults to a VirtualScheduler.
        settings: Timing settings. Defaults to PlaybackSettings().
        scripts: Conversation and sentiment scripts. Defaults to the shared content.
        rng: Random source for typing jitter. Seeded from settings when omitted.
        publisher: Event publisher. A fresh one is created when omitted.
        clock: Wall-clock source for the header time and ticket dates.
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        *,
        settings: Optional[PlaybackSettings] = None,
        scripts: Optional[ScriptBundle] = None,
        rng: Optional[random.Random] = None,
        publisher: Optional[DashboardEventPublisher] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._scheduler = scheduler if scheduler is not None else VirtualScheduler()
        self._settings = settings or PlaybackSettings()
        self._scripts = scripts or ScriptBundle.default()
        self._publisher = publisher or DashboardEventPublisher()
        self._clock = clock
        self._closed = False
        self._started = False
        self._started_at_ms: Optional[float] = None
        self._ended_at_ms: Optional[float] = None

        self._conversation = ConversationDriver(
            self._scheduler,
            self._scripts.conversation,
            settings=self._settings,
            rng=rng or random.Random(self._settings.random_seed),
            publisher=self._publisher,
        )
        self._sentiment = SentimentTracker(
            self._scheduler,
            self._scripts.sentiment,
            settings=self._settings,
            publisher=self._publisher,
        )
        self._tickets = TicketBoard(
            self._scheduler,
            settings=self._settings,
            publisher=self._publisher,
            clock=clock,
        )

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def publisher(self) -> DashboardEventPublisher:
        return self._publisher

    @property
    def conversation(self) -> ConversationDriver:
        return self._conversation

    @property
    def sentiment(self) -> SentimentTracker:
        return self._sentiment

    @property
    def tickets(self) -> TicketBoard:
        return self._tickets

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_idle(self) -> bool:
        """Both scripts have run to their end and no ticket is pending."""
        return (
            self._conversation.is_finished
            and self._sentiment.is_exhausted
            and not self._tickets.is_pending
        )

    def start(self) -> None:
        if self._closed:
            raise RuntimeError("DashboardSession is closed")
        if self._started:
            return
        self._started = True
        self._started_at_ms = self._scheduler.now_ms()
        self._publisher.publish_system("session_started", sim_time_ms=self._started_at_ms)
        self._conversation.start()
        self._sentiment.start()
        self._tickets.start()

    def close(self) -> None:
        """Cancel every timer owned by the session's components."""
        if self._closed:
            return
        self._conversation.close()
        self._sentiment.close()
        self._tickets.close()
        self._closed = True
        self._ended_at_ms = self._scheduler.now_ms()
        self._publisher.publish_system("session_closed", sim_time_ms=self._ended_at_ms)
        logger.info("Dashboard session closed")

    async def __aenter__(self) -> "DashboardSession":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def submit_user_message(self, text: str) -> Optional[LiveMessage]:
        return self._conversation.submit_user_message(text)

    def set_muted(self, muted: bool) -> None:
        self._conversation.set_muted(muted)

    def elapsed_ms(self) -> float:
        """Call time since start, frozen once closed."""
        if self._started_at_ms is None:
            return 0.0
        end = self._ended_at_ms if self._ended_at_ms is not None else self._scheduler.now_ms()
        return end - self._started_at_ms

    def snapshot(self) -> DashboardSnapshot:
        """Current render state."""
        tracker = self._sentiment
        driver = self._conversation
        return DashboardSnapshot(
            sim_time_ms=self._scheduler.now_ms(),
            current_time=self._clock(),
            active_calls_count=ACTIVE_CALLS_COUNT,
            call_duration=format_call_duration(self.elapsed_ms()),
            customer=CUSTOMER_PROFILE,
            call_status=driver.call_status,
            current_speaker=driver.current_speaker,
            is_muted=driver.is_muted,
            phase=driver.phase,
            current_turn=driver.current_index,
            total_turns=driver.total_turns,
            messages=driver.messages,
            sentiment=SentimentView(
                current=tracker.current_sentiment,
                confidence=tracker.confidence,
                gauge_percent=tracker.gauge_percent,
                trend=tracker.trend,
                color=tracker.color,
                alert_active=tracker.alert_active,
                alert_message=tracker.alert_message,
                emotions=tracker.emotions,
                history=tracker.history,
                cursor=tracker.cursor,
                total_snapshots=len(self._scripts.sentiment),
            ),
            tickets=self._tickets.tickets,
            has_new_ticket=self._tickets.has_new_ticket,
            call_records=list(CALL_SENTIMENT_RECORDS),
        )
