"""
Real-time Pub/Sub for dashboard state changes.

Every committed transition of the playback driver and the sentiment
tracker is published as a DashboardEvent. Event types mirror the
documented WebSocket channel (call_status, message_received,
voice_activity, sentiment_update) so a transport can forward them as-is.

Publishing is synchronous because it happens inside timer callbacks;
subscribers consume through asyncio queues.

Example usage:
    publisher = DashboardEventPublisher()
    queue = publisher.subscribe()
    publisher.publish_call_status("Speaking", speaker="ai")
    event = await queue.get()
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class DashboardEventType(str, Enum):
    """
    Types of dashboard events.

    Attributes:
        CALL_STATUS: Call status changed.
        MESSAGE_RECEIVED: A message was appended to the conversation.
        MESSAGE_UPDATED: A message's text or phase flags changed.
        VOICE_ACTIVITY: A message's waveform started or stopped.
        SENTIMENT_UPDATE: The sentiment tracker advanced.
        TICKET_CREATED: A ticket was generated from the live call.
        SYSTEM: Lifecycle notices (started, finished, closed).
    """

    CALL_STATUS = "call_status"
    MESSAGE_RECEIVED = "message_received"
    MESSAGE_UPDATED = "message_updated"
    VOICE_ACTIVITY = "voice_activity"
    SENTIMENT_UPDATE = "sentiment_update"
    TICKET_CREATED = "ticket_created"
    SYSTEM = "system"


def _get_utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DashboardEvent:
    """
    A single published state change.

    Attributes:
        event_type: Category of the change.
        payload: JSON-serializable details of the change.
        sim_time_ms: Scheduler time when the change was committed.
        timestamp: Wall-clock UTC timestamp when the event was created.
    """

    event_type: DashboardEventType
    payload: dict[str, object] = field(default_factory=dict)
    sim_time_ms: float = 0.0
    timestamp: str = field(default_factory=_get_utc_timestamp)

    def to_dict(self) -> dict[str, object]:
        return {
            "event_type": self.event_type.value,
            "payload": self.payload,
            "sim_time_ms": self.sim_time_ms,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class DashboardEventPublisher:
    """
    Broadcasts dashboard events to queue subscribers and listeners.

    Keeps a bounded history that is replayed to every new subscriber.

    Attributes:
        max_history: Maximum number of events retained in history.
    """

    def __init__(self, max_history: int = 500) -> None:
        self._subscribers: list[asyncio.Queue[DashboardEvent]] = []
        self._listeners: list[Callable[[DashboardEvent], None]] = []
        self._history: list[DashboardEvent] = []
        self._max_history = max_history
        logger.debug("DashboardEventPublisher initialized with max_history=%d", max_history)

    @property
    def max_history(self) -> int:
        return self._max_history

    def subscribe(self) -> asyncio.Queue[DashboardEvent]:
        """
        Subscribe to dashboard events.

        Returns a queue pre-filled with the current history. Caller is
        responsible for calling unsubscribe when done.
        """
        queue: asyncio.Queue[DashboardEvent] = asyncio.Queue()
        for event in self._history:
            queue.put_nowait(event)
        self._subscribers.append(queue)
        logger.debug("New subscriber added. Total: %d", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[DashboardEvent]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)
        logger.debug("Subscriber removed. Total: %d", len(self._subscribers))

    def add_listener(self, listener: Callable[[DashboardEvent], None]) -> None:
        """Register a callback invoked synchronously for each event."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[DashboardEvent], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event: DashboardEvent) -> None:
        """Record the event in history and deliver it to everyone."""
        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history :]

        for queue in self._subscribers:
            queue.put_nowait(event)
        for listener in list(self._listeners):
            listener(event)

        logger.debug("Published event: %s", event.event_type.value)

    def emit(
        self,
        event_type: DashboardEventType,
        sim_time_ms: float = 0.0,
        **payload: object,
    ) -> DashboardEvent:
        """Build and publish an event in one call."""
        event = DashboardEvent(event_type=event_type, payload=dict(payload), sim_time_ms=sim_time_ms)
        self.publish(event)
        return event

    def publish_call_status(
        self,
        status: str,
        *,
        speaker: Optional[str] = None,
        sim_time_ms: float = 0.0,
    ) -> DashboardEvent:
        return self.emit(
            DashboardEventType.CALL_STATUS,
            sim_time_ms,
            status=status,
            speaker=speaker,
        )

    def publish_system(self, content: str, *, sim_time_ms: float = 0.0) -> DashboardEvent:
        return self.emit(DashboardEventType.SYSTEM, sim_time_ms, content=content)

    def get_history(self, event_type: Optional[DashboardEventType] = None) -> list[DashboardEvent]:
        """Copy of the history, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [event for event in self._history if event.event_type == event_type]

    def clear_history(self) -> None:
        self._history.clear()
        logger.debug("History cleared")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
