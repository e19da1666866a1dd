"""
Sentiment/Emotion Tracker.

Walks the scripted sentiment progression on its own fixed-interval clock,
independent of the conversation playback. Each tick adopts the next
snapshot's sentiment and confidence, rebuilds the emotion badges and
appends the snapshot to a bounded timeline history. Once the last snapshot
is reached the values freeze.
"""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from typing import Optional, Sequence

from .config import PlaybackSettings
from .models import EmotionTag, SentimentLabel, SentimentSnapshot
from .pubsub import DashboardEventPublisher, DashboardEventType
from .scheduler import Scheduler, TimerGroup
from .shared_content import SENTIMENT_PROGRESSION


__all__ = [
    "NEGATIVE_ALERT_MESSAGE",
    "SentimentTracker",
    "SentimentTrend",
    "build_emotion_tags",
    "emotion_color",
    "sentiment_color",
    "sentiment_gauge",
    "sentiment_trend",
]


logger = logging.getLogger(__name__)


NEGATIVE_ALERT_MESSAGE = "Negative sentiment detected. Consider escalating to human agent."

DEFAULT_EMOTION_COLOR = "bg-blue-500"

EMOTION_COLORS: dict[str, str] = {
    "Frustrated": "bg-red-500",
    "Angry": "bg-red-500",
    "Concerned": "bg-orange-500",
    "Cautious": "bg-orange-500",
    "Skeptical": "bg-orange-500",
    "Happy": "bg-green-500",
    "Satisfied": "bg-green-500",
    "Grateful": "bg-green-500",
    "Appreciative": "bg-green-500",
    "Urgent": "bg-yellow-500",
    "Impatient": "bg-yellow-500",
    "Relieved": "bg-emerald-500",
    "Hopeful": "bg-emerald-500",
}

INITIAL_EMOTIONS: tuple[EmotionTag, ...] = (
    EmotionTag(name="Neutral", active=True, color="bg-blue-500"),
    EmotionTag(name="Polite", active=True, color="bg-green-500"),
    EmotionTag(name="Cooperative", active=False, color="bg-green-500"),
    EmotionTag(name="Urgent", active=False, color="bg-yellow-500"),
)

GAUGE_PERCENT: dict[SentimentLabel, int] = {
    SentimentLabel.POSITIVE: 85,
    SentimentLabel.NEUTRAL: 50,
    SentimentLabel.NEGATIVE: 25,
}

SENTIMENT_COLORS: dict[SentimentLabel, str] = {
    SentimentLabel.POSITIVE: "text-green-600",
    SentimentLabel.NEUTRAL: "text-yellow-600",
    SentimentLabel.NEGATIVE: "text-red-600",
}


class SentimentTrend(str, Enum):
    """Icon shown next to the current sentiment."""

    UP = "trending-up"
    DOWN = "trending-down"
    FLAT = "flat"


def emotion_color(name: str) -> str:
    return EMOTION_COLORS.get(name, DEFAULT_EMOTION_COLOR)


def sentiment_trend(label: SentimentLabel) -> SentimentTrend:
    if label == SentimentLabel.POSITIVE:
        return SentimentTrend.UP
    if label == SentimentLabel.NEGATIVE:
        return SentimentTrend.DOWN
    return SentimentTrend.FLAT


def sentiment_gauge(label: SentimentLabel) -> int:
    return GAUGE_PERCENT.get(label, 50)


def sentiment_color(label: SentimentLabel) -> str:
    return SENTIMENT_COLORS.get(label, SENTIMENT_COLORS[SentimentLabel.NEUTRAL])


def build_emotion_tags(
    snapshot: SentimentSnapshot,
    slots: int,
    default_pool: Sequence[str],
) -> tuple[EmotionTag, ...]:
    """
    Emotion badges for a snapshot.

    Authored tags come first (active, colored by name); remaining slots are
    padded from default_pool, active only for positive sentiment. Names are
    never repeated and the result never exceeds slots.
    """
    seen: set[str] = set()
    tags: list[EmotionTag] = []

    for name in snapshot.emotion_tags:
        if len(tags) >= slots:
            break
        if name and name not in seen:
            seen.add(name)
            tags.append(EmotionTag(name=name, active=True, color=emotion_color(name)))

    filler_active = snapshot.sentiment == SentimentLabel.POSITIVE
    for name in default_pool:
        if len(tags) >= slots:
            break
        if name not in seen:
            seen.add(name)
            tags.append(EmotionTag(name=name, active=filler_active, color=DEFAULT_EMOTION_COLOR))

    return tuple(tags)


class SentimentTracker:
    """
    Independent clock over the sentiment progression.

    The cursor starts on the first snapshot, which seeds the current values
    and the history. Owns the history; it is only changed by tick().
    """

    def __init__(
        self,
        scheduler: Scheduler,
        progression: Sequence[SentimentSnapshot] = SENTIMENT_PROGRESSION,
        *,
        settings: Optional[PlaybackSettings] = None,
        publisher: Optional[DashboardEventPublisher] = None,
    ) -> None:
        self._progression: tuple[SentimentSnapshot, ...] = tuple(progression)
        if not self._progression:
            raise ValueError("Sentiment progression must contain at least one snapshot")

        self._settings = settings or PlaybackSettings()
        self._scheduler = scheduler
        self._publisher = publisher
        self._timers = TimerGroup(scheduler, name="sentiment")

        first = self._progression[0]
        self._cursor = 0
        self._current_sentiment = first.sentiment
        self._confidence = first.confidence
        self._emotions: tuple[EmotionTag, ...] = INITIAL_EMOTIONS[: self._settings.emotion_slots]
        self._history: deque[SentimentSnapshot] = deque(
            [first], maxlen=self._settings.sentiment_history_size
        )
        self._running = False
        self._closed = False
        self._next_tick_at_ms: Optional[float] = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current_snapshot(self) -> SentimentSnapshot:
        return self._progression[self._cursor]

    @property
    def current_sentiment(self) -> SentimentLabel:
        return self._current_sentiment

    @property
    def confidence(self) -> int:
        return self._confidence

    @property
    def emotions(self) -> list[EmotionTag]:
        return list(self._emotions)

    @property
    def history(self) -> list[SentimentSnapshot]:
        """Trailing history, oldest first."""
        return list(self._history)

    @property
    def is_exhausted(self) -> bool:
        return self._cursor >= len(self._progression) - 1

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def next_tick_at_ms(self) -> Optional[float]:
        return self._next_tick_at_ms

    @property
    def alert_active(self) -> bool:
        return self._current_sentiment == SentimentLabel.NEGATIVE

    @property
    def alert_message(self) -> Optional[str]:
        return NEGATIVE_ALERT_MESSAGE if self.alert_active else None

    @property
    def gauge_percent(self) -> int:
        return sentiment_gauge(self._current_sentiment)

    @property
    def trend(self) -> SentimentTrend:
        return sentiment_trend(self._current_sentiment)

    @property
    def color(self) -> str:
        return sentiment_color(self._current_sentiment)

    # -------------------------------------------------------------------------
    # Control Methods
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the interval clock. No-op if already running."""
        if self._closed:
            raise RuntimeError("SentimentTracker is closed")
        if self._running:
            return
        self._running = True
        logger.info(
            "Starting sentiment tracker (%d snapshots every %d ms)",
            len(self._progression),
            self._settings.sentiment_interval_ms,
        )
        self._schedule_tick()

    def close(self) -> None:
        """Stop the clock and cancel the pending tick."""
        if self._closed:
            return
        self._timers.close()
        self._running = False
        self._closed = True
        self._next_tick_at_ms = None
        logger.info("SentimentTracker closed at snapshot %d/%d", self._cursor + 1, len(self._progression))

    def tick(self) -> bool:
        """
        Advance to the next snapshot.

        Returns:
            True if the cursor moved, False once the progression is exhausted.
        """
        if self._closed or self.is_exhausted:
            return False

        self._cursor += 1
        snapshot = self._progression[self._cursor]
        self._current_sentiment = snapshot.sentiment
        self._confidence = snapshot.confidence
        self._emotions = build_emotion_tags(
            snapshot,
            self._settings.emotion_slots,
            self._settings.default_emotion_pool,
        )
        self._history.append(snapshot)

        logger.debug(
            "Sentiment %s (%d%%) at %s",
            snapshot.sentiment.value,
            snapshot.confidence,
            snapshot.offset_label,
        )
        if self._publisher is not None:
            self._publisher.emit(
                DashboardEventType.SENTIMENT_UPDATE,
                self._scheduler.now_ms(),
                cursor=self._cursor,
                sentiment=snapshot.sentiment.value,
                confidence=snapshot.confidence,
                sentiment_score=snapshot.sentiment_score,
                offset_label=snapshot.offset_label,
                emotions=[tag.name for tag in self._emotions],
                alert=self.alert_active,
            )
        return True

    def _schedule_tick(self) -> None:
        interval = self._settings.sentiment_interval_ms
        self._next_tick_at_ms = self._scheduler.now_ms() + interval
        self._timers.call_later(interval, self._on_timer)

    def _on_timer(self) -> None:
        self._next_tick_at_ms = None
        self.tick()
        if self.is_exhausted:
            self._running = False
            logger.info("Sentiment progression finished at %s", self.current_snapshot.offset_label)
            return
        self._schedule_tick()
