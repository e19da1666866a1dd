"""
Voice Bot Dashboard Simulator.

Replays a scripted call-center conversation for the SecureBank voice bot
dashboard with realistic timing.

Components:
    - ConversationDriver: Four-phase turn playback with derived call status
    - TypewriterReveal: Character-by-character message reveal
    - SentimentTracker: Independent sentiment/emotion clock with timeline history
    - TicketBoard: Support ticket backlog with a timed live-call ticket
    - DashboardSession: Composes them and exposes the render/input contract
    - DashboardEventPublisher: Pub/sub of committed state changes
    - Schedulers: asyncio wall-clock and virtual-time timer lines
    - Models: Pydantic models for turns, messages, sentiment, tickets and profiles

Example:
    >>> from voicebot import DashboardSession, VirtualScheduler
    >>>
    >>> scheduler = VirtualScheduler()
    >>> session = DashboardSession(scheduler)
    >>> session.start()
    >>> scheduler.advance(5000)
    >>> print(session.snapshot().call_status)
"""

from .models import (
    CallSentimentRecord,
    CallStatus,
    CustomerProfile,
    EmotionTag,
    LiveMessage,
    ResolutionStatus,
    ScriptedTurn,
    SentimentLabel,
    SentimentSnapshot,
    Speaker,
    Ticket,
    TicketPriority,
    TicketStatus,
)

from .scheduler import LoopScheduler, TimerGroup, VirtualScheduler

from .typewriter import TypewriterReveal, reveal_steps, typing_delay

from .config import (
    PlaybackSettings,
    ScriptBundle,
    load_playback_settings,
    load_script_bundle,
)

from .conversation import ConversationDriver, TurnPhase

from .sentiment import SentimentTracker, SentimentTrend, build_emotion_tags

from .tickets import TicketBoard, build_live_call_ticket

from .pubsub import DashboardEvent, DashboardEventPublisher, DashboardEventType

from .dashboard import DashboardSession, DashboardSnapshot, SentimentView


__all__ = [
    # Models
    "CallSentimentRecord",
    "CallStatus",
    "CustomerProfile",
    "EmotionTag",
    "LiveMessage",
    "ResolutionStatus",
    "ScriptedTurn",
    "SentimentLabel",
    "SentimentSnapshot",
    "Speaker",
    "Ticket",
    "TicketPriority",
    "TicketStatus",
    # Scheduling
    "LoopScheduler",
    "TimerGroup",
    "VirtualScheduler",
    # Reveal
    "TypewriterReveal",
    "reveal_steps",
    "typing_delay",
    # Config
    "PlaybackSettings",
    "ScriptBundle",
    "load_playback_settings",
    "load_script_bundle",
    # Playback
    "ConversationDriver",
    "TurnPhase",
    # Sentiment
    "SentimentTracker",
    "SentimentTrend",
    "build_emotion_tags",
    # Tickets
    "TicketBoard",
    "build_live_call_ticket",
    # Pub/Sub
    "DashboardEvent",
    "DashboardEventPublisher",
    "DashboardEventType",
    # Session
    "DashboardSession",
    "DashboardSnapshot",
    "SentimentView",
]

__version__ = "0.1.0"
