"""
Shared fixtures for the voice bot dashboard tests.
"""

from __future__ import annotations

import random

import pytest

from voicebot.config import PlaybackSettings, ScriptBundle
from voicebot.models import ScriptedTurn, SentimentLabel, SentimentSnapshot, Speaker
from voicebot.pubsub import DashboardEventPublisher
from voicebot.scheduler import VirtualScheduler


@pytest.fixture
def scheduler() -> VirtualScheduler:
    """Virtual clock starting at 0 ms."""
    return VirtualScheduler()


@pytest.fixture
def publisher() -> DashboardEventPublisher:
    """Fresh publisher with a large history."""
    return DashboardEventPublisher(max_history=10_000)


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for typing jitter."""
    return random.Random(1234)


@pytest.fixture
def settings() -> PlaybackSettings:
    return PlaybackSettings()


@pytest.fixture
def two_turn_script() -> tuple[ScriptedTurn, ...]:
    """ai 'Hi' after 1000 ms, then customer 'Hello' after 3000 ms."""
    return (
        ScriptedTurn(speaker=Speaker.AI, text="Hi", inter_turn_delay_ms=1000),
        ScriptedTurn(
            speaker=Speaker.CUSTOMER,
            text="Hello",
            sentiment=SentimentLabel.NEUTRAL,
            inter_turn_delay_ms=3000,
        ),
    )


@pytest.fixture
def short_progression() -> tuple[SentimentSnapshot, ...]:
    return (
        SentimentSnapshot(
            offset_label="0:00",
            sentiment_score=60,
            emotion_tags=("Calm",),
            sentiment=SentimentLabel.NEUTRAL,
            confidence=80,
        ),
        SentimentSnapshot(
            offset_label="0:10",
            sentiment_score=20,
            emotion_tags=("Angry", "Urgent"),
            sentiment=SentimentLabel.NEGATIVE,
            confidence=90,
        ),
        SentimentSnapshot(
            offset_label="0:20",
            sentiment_score=90,
            emotion_tags=("Happy",),
            sentiment=SentimentLabel.POSITIVE,
            confidence=95,
        ),
    )


@pytest.fixture
def small_bundle(two_turn_script, short_progression) -> ScriptBundle:
    return ScriptBundle(conversation=two_turn_script, sentiment=short_progression)
