"""
Pydantic models for the Voice Bot Dashboard.

Defines the scripted inputs (conversation turns, sentiment snapshots),
the live message state rendered by the chat window, and the derived
emotion tags shown by the sentiment panel.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


MAX_EMOTION_TAGS = 4


class Speaker(str, Enum):
    """Who is talking in a conversation turn."""

    CUSTOMER = "customer"
    AI = "ai"


class SentimentLabel(str, Enum):
    """Coarse sentiment classification."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class CallStatus(str, Enum):
    """
    Coarse call indicator derived from the playback driver position.

    Attributes:
        CONNECTED: Idle between turns.
        LISTENING: Customer audio is arriving, no text yet.
        PROCESSING: The AI is preparing its answer.
        SPEAKING: A turn's text is being shown.
    """

    CONNECTED = "Connected"
    LISTENING = "Listening"
    PROCESSING = "Processing"
    SPEAKING = "Speaking"


def _format_utc_timestamp() -> str:
    """Return current UTC timestamp as ISO 8601 string with 'Z' suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ScriptedTurn(BaseModel):
    """
    One utterance of the fixed conversation script.

    Example:
        >>> turn = ScriptedTurn(
        ...     speaker="customer",
        ...     text="My UPI transaction failed.",
        ...     sentiment="negative",
        ...     inter_turn_delay_ms=3000,
        ... )
    """

    speaker: Speaker = Field(..., description="Speaker of the turn: 'customer' or 'ai'")
    text: str = Field(..., min_length=1, description="Full text of the utterance")
    sentiment: Optional[SentimentLabel] = Field(
        default=None,
        description="Sentiment label attached when the text is revealed",
    )
    inter_turn_delay_ms: int = Field(
        ...,
        ge=0,
        description="Wait before this turn starts, measured from the previous turn's completion",
    )

    model_config = {"frozen": True, "extra": "forbid"}


class LiveMessage(BaseModel):
    """
    A message as currently rendered in the chat window.

    Scripted turns move through the phase flags in order:
    pending reveal (waveform only) -> content visible -> revealing -> revealed.
    Manually submitted messages are created in their final state.
    """

    id: str = Field(..., description="Unique message id ('message-N' or 'manual-N')")
    speaker: Speaker
    text: str = Field(default="", description="Full text, empty until the reveal starts")
    displayed_text: str = Field(default="", description="Prefix of text revealed so far")
    created_at: str = Field(
        default_factory=_format_utc_timestamp,
        description="ISO 8601 UTC timestamp when the message was created",
    )
    sentiment: Optional[SentimentLabel] = None
    is_pending_reveal: bool = False
    is_content_visible: bool = False
    is_revealing: bool = False
    is_manual: bool = False

    @property
    def is_waveform_active(self) -> bool:
        """Waveform animates before text appears and while it is typed out."""
        return self.is_pending_reveal or self.is_revealing

    @property
    def is_fully_revealed(self) -> bool:
        """Whether the whole text is on screen."""
        return bool(self.text) and self.displayed_text == self.text


class SentimentSnapshot(BaseModel):
    """
    One point of the scripted sentiment progression.

    Example:
        >>> point = SentimentSnapshot(
        ...     offset_label="0:15",
        ...     sentiment_score=30,
        ...     emotion_tags=("Frustrated", "Urgent"),
        ...     sentiment="negative",
        ...     confidence=92,
        ... )
    """

    offset_label: str = Field(..., description="Display time of the point, e.g. '1:45'")
    sentiment_score: int = Field(..., ge=0, le=100)
    emotion_tags: tuple[str, ...] = Field(default_factory=tuple)
    sentiment: SentimentLabel
    confidence: int = Field(..., ge=0, le=100)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("emotion_tags")
    @classmethod
    def validate_emotion_tags(cls, tags: tuple[str, ...]) -> tuple[str, ...]:
        if len(tags) > MAX_EMOTION_TAGS:
            raise ValueError(f"emotion_tags cannot exceed {MAX_EMOTION_TAGS} entries")
        if len(tags) != len(set(tags)):
            raise ValueError("emotion_tags must not contain duplicates")
        if any(not tag.strip() for tag in tags):
            raise ValueError("emotion_tags must not contain blank names")
        return tags


class EmotionTag(BaseModel):
    """An emotion badge in the detected-emotions grid."""

    name: str
    active: bool
    color: str

    model_config = {"frozen": True}


class TicketPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TicketStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    ESCALATED = "escalated"
    RESOLVED = "resolved"


class ResolutionStatus(str, Enum):
    """Outcome of a finished call."""

    RESOLVED = "resolved"
    TRANSFERRED = "transferred"
    FOLLOW_UP = "follow-up"


class Ticket(BaseModel):
    """
    A support ticket in the ticket management table.

    Example:
        >>> ticket = Ticket(
        ...     ticket_id="TKT-2024-0014",
        ...     issue_category="Account Queries",
        ...     priority="medium",
        ...     status="in-progress",
        ...     created_time="2024-01-15 14:25:15",
        ...     customer_name="Priya Sharma",
        ...     account_number="****5643",
        ...     contact_info="+91 87654 32109",
        ...     issue_description="Credit card application status.",
        ...     sentiment_score=70,
        ... )
    """

    ticket_id: str = Field(..., min_length=1)
    issue_category: str
    priority: TicketPriority
    status: TicketStatus
    assigned_agent: Optional[str] = None
    created_time: str = Field(..., description="Local time as 'YYYY-MM-DD HH:MM:SS'")
    customer_name: str
    account_number: str = Field(..., description="Masked account number, e.g. '****7892'")
    contact_info: str
    issue_description: str
    sentiment_score: int = Field(..., ge=0, le=100)
    followup_required: bool = False
    followup_date: Optional[str] = Field(default=None, description="Follow-up day as 'YYYY-MM-DD'")

    model_config = {"frozen": True, "extra": "forbid"}


class CustomerProfile(BaseModel):
    """Caller details shown above the live conversation."""

    name: str
    phone: str
    account_type: str
    account_number: str
    language: str
    location: str

    model_config = {"frozen": True, "extra": "forbid"}


class CallSentimentRecord(BaseModel):
    """One row of the post-call sentiment table."""

    call_id: str
    duration: str = Field(..., description="Call length as 'MM:SS'")
    overall_sentiment: SentimentLabel
    key_emotions: tuple[str, ...] = Field(default_factory=tuple)
    escalation_triggered: bool = False
    escalation_reason: Optional[str] = None
    resolution_status: ResolutionStatus
    customer_satisfaction: Optional[float] = Field(default=None, ge=0, le=5)
    language: str
    timestamp: str

    model_config = {"frozen": True, "extra": "forbid"}
