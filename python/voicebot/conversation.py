"""
Conversation Playback Driver.

Replays the scripted call one turn at a time. Each turn walks a fixed
phase sequence and nothing of the next turn happens until the current
one has completed:

    scheduled       wait inter_turn_delay_ms
    pending_reveal  waveform only, status Listening / Processing
    reveal_settling text attached, status Speaking, short settle
    revealing       content visible, typewriter running, completion timer
    -> next turn's scheduled, or finished

A single advance function runs on every timer fire and dispatches on the
committed phase, so transitions always read current state.

Usage:
    driver = ConversationDriver(VirtualScheduler())
    driver.start()
    driver.submit_user_message("Any update on my refund?")
    driver.close()
"""

from __future__ import annotations

import itertools
import logging
import random
from enum import Enum
from typing import Optional, Sequence

from .config import PlaybackSettings
from .models import CallStatus, LiveMessage, ScriptedTurn, SentimentLabel, Speaker
from .pubsub import DashboardEventPublisher, DashboardEventType
from .scheduler import Scheduler, TimerGroup
from .shared_content import CONVERSATION_SCRIPT
from .typewriter import TypewriterReveal


__all__ = ["ConversationDriver", "TurnPhase", "estimated_turn_duration_ms"]


logger = logging.getLogger(__name__)


class TurnPhase(str, Enum):
    """Playback phase of the turn at the current index."""

    IDLE = "idle"
    SCHEDULED = "scheduled"
    PENDING_REVEAL = "pending_reveal"
    REVEAL_SETTLING = "reveal_settling"
    REVEALING = "revealing"
    FINISHED = "finished"
    CLOSED = "closed"


def estimated_turn_duration_ms(text: str, typing_speed_ms: float, settings: PlaybackSettings) -> float:
    """Time from content visible to turn completion, including the buffer."""
    typing_ms = len(text) * typing_speed_ms * settings.typing_estimate_factor
    return typing_ms + settings.typing_estimate_pad_ms + settings.completion_buffer_ms


class ConversationDriver:
    """
    Timed state machine over a fixed conversation script.

    Owns the LiveMessage list and the call status. The list is only
    mutated from this driver's own timer callbacks and from
    submit_user_message().
    """

    def __init__(
        self,
        scheduler: Scheduler,
        script: Sequence[ScriptedTurn] = CONVERSATION_SCRIPT,
        *,
        settings: Optional[PlaybackSettings] = None,
        rng: Optional[random.Random] = None,
        publisher: Optional[DashboardEventPublisher] = None,
    ) -> None:
        self._script: tuple[ScriptedTurn, ...] = tuple(script)
        self._settings = settings or PlaybackSettings()
        self._rng = rng or random.Random(self._settings.random_seed)
        self._publisher = publisher
        self._scheduler = scheduler
        self._timers = TimerGroup(scheduler, name="conversation")

        self._phase = TurnPhase.IDLE
        self._current_index = 0
        self._call_status = CallStatus.CONNECTED
        self._current_speaker: Optional[Speaker] = None
        self._is_muted = False
        self._next_transition_at_ms: Optional[float] = None

        self._messages: list[LiveMessage] = []
        self._active_message: Optional[LiveMessage] = None
        self._reveals: dict[str, TypewriterReveal] = {}
        self._awaiting_reveal = False
        self._message_ids = itertools.count(1)

        logger.debug("ConversationDriver initialized with %d turns", len(self._script))

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    @property
    def call_status(self) -> CallStatus:
        return self._call_status

    @property
    def current_speaker(self) -> Optional[Speaker]:
        return self._current_speaker

    @property
    def current_index(self) -> int:
        """Index of the turn in flight, or len(script) once finished."""
        return self._current_index

    @property
    def total_turns(self) -> int:
        return len(self._script)

    @property
    def is_muted(self) -> bool:
        return self._is_muted

    @property
    def is_finished(self) -> bool:
        return self._phase == TurnPhase.FINISHED

    @property
    def next_transition_at_ms(self) -> Optional[float]:
        """Scheduler time of the next phase transition, if one is pending."""
        return self._next_transition_at_ms

    @property
    def messages(self) -> list[LiveMessage]:
        """Copies of the rendered messages, oldest first."""
        return [message.model_copy() for message in self._messages]

    @property
    def active_reveal_count(self) -> int:
        return sum(1 for reveal in self._reveals.values() if reveal.is_typing)

    # -------------------------------------------------------------------------
    # Control Methods
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Schedule the first turn. No-op if already started."""
        if self._phase == TurnPhase.CLOSED:
            raise RuntimeError("ConversationDriver is closed")
        if self._phase != TurnPhase.IDLE:
            logger.debug("ConversationDriver already started (phase=%s)", self._phase.value)
            return

        logger.info("Starting conversation playback (%d turns)", len(self._script))
        self._schedule_turn()

    def close(self) -> None:
        """Cancel the pending phase timer and every running reveal."""
        if self._phase == TurnPhase.CLOSED:
            return
        self._timers.close()
        for reveal in self._reveals.values():
            reveal.cancel()
        self._next_transition_at_ms = None
        self._awaiting_reveal = False
        self._phase = TurnPhase.CLOSED
        logger.info("ConversationDriver closed at turn %d/%d", self._current_index, len(self._script))

    def set_muted(self, muted: bool) -> None:
        """Store the microphone mute flag. Playback is unaffected."""
        self._is_muted = bool(muted)
        logger.debug("Muted set to %s", self._is_muted)

    def submit_user_message(self, text: str) -> Optional[LiveMessage]:
        """
        Append a message typed by the user.

        Rejected (returns None) when the text is blank or the AI is
        processing. Accepted messages skip the reveal phases entirely and
        do not touch the turn index or call status.
        """
        cleaned = (text or "").strip()
        if not cleaned:
            logger.debug("Rejected user message: empty input")
            return None
        if self._call_status == CallStatus.PROCESSING:
            logger.debug("Rejected user message: call status is Processing")
            return None
        if self._phase == TurnPhase.CLOSED:
            logger.debug("Rejected user message: driver closed")
            return None

        message = LiveMessage(
            id=f"manual-{next(self._message_ids)}",
            speaker=Speaker.CUSTOMER,
            text=cleaned,
            displayed_text=cleaned,
            sentiment=SentimentLabel.NEUTRAL,
            is_content_visible=True,
            is_manual=True,
        )
        self._messages.append(message)
        self._emit(DashboardEventType.MESSAGE_RECEIVED, message=message.model_dump(mode="json"))
        logger.info("User message accepted: %s", cleaned[:80])
        return message.model_copy()

    # -------------------------------------------------------------------------
    # Phase Machine
    # -------------------------------------------------------------------------

    def _schedule_turn(self) -> None:
        if self._current_index >= len(self._script):
            self._phase = TurnPhase.FINISHED
            self._next_transition_at_ms = None
            logger.info("Conversation script finished after %d turns", len(self._script))
            self._emit(DashboardEventType.SYSTEM, content="conversation_finished")
            return

        turn = self._script[self._current_index]
        self._phase = TurnPhase.SCHEDULED
        self._arm(turn.inter_turn_delay_ms)
        logger.debug(
            "Turn %d/%d scheduled in %d ms",
            self._current_index + 1,
            len(self._script),
            turn.inter_turn_delay_ms,
        )

    def _arm(self, delay_ms: float) -> None:
        self._next_transition_at_ms = self._scheduler.now_ms() + delay_ms
        self._timers.call_later(delay_ms, self._advance)

    def _advance(self) -> None:
        self._next_transition_at_ms = None
        if self._phase == TurnPhase.SCHEDULED:
            self._enter_pending_reveal()
        elif self._phase == TurnPhase.PENDING_REVEAL:
            self._enter_reveal_start()
        elif self._phase == TurnPhase.REVEAL_SETTLING:
            self._show_content()
        elif self._phase == TurnPhase.REVEALING:
            self._complete_turn()
        else:
            logger.debug("Ignoring timer in phase %s", self._phase.value)

    def _enter_pending_reveal(self) -> None:
        turn = self._script[self._current_index]
        if turn.speaker == Speaker.CUSTOMER:
            self._set_status(CallStatus.LISTENING, Speaker.CUSTOMER)
        else:
            self._set_status(CallStatus.PROCESSING, None)

        message = LiveMessage(
            id=f"message-{next(self._message_ids)}",
            speaker=turn.speaker,
            is_pending_reveal=True,
        )
        self._messages.append(message)
        self._active_message = message
        self._phase = TurnPhase.PENDING_REVEAL
        self._emit(DashboardEventType.MESSAGE_RECEIVED, message=message.model_dump(mode="json"))
        self._emit_voice_activity(message)

        logger.info(
            "[%d/%d] %s waveform started",
            self._current_index + 1,
            len(self._script),
            turn.speaker.value,
        )
        self._arm(self._waveform_ms(turn.speaker))

    def _enter_reveal_start(self) -> None:
        turn = self._script[self._current_index]
        message = self._require_active_message()

        self._set_status(CallStatus.SPEAKING, turn.speaker)
        message.text = turn.text
        message.sentiment = turn.sentiment
        message.is_pending_reveal = False
        self._phase = TurnPhase.REVEAL_SETTLING
        self._emit_message_updated(message)
        self._emit_voice_activity(message)

        self._arm(self._settings.content_settle_ms)

    def _show_content(self) -> None:
        turn = self._script[self._current_index]
        message = self._require_active_message()
        speed = self._typing_speed_ms(turn.speaker)

        message.is_content_visible = True
        self._phase = TurnPhase.REVEALING
        self._emit_message_updated(message)
        self._start_reveal(message, speed)

        self._arm(estimated_turn_duration_ms(turn.text, speed, self._settings))

    def _complete_turn(self) -> None:
        message = self._require_active_message()
        reveal = self._reveals.get(message.id)
        if reveal is not None and not reveal.is_complete:
            # completion estimate ran short; finish when the text is fully typed
            logger.debug("Turn %d waiting for reveal of %s", self._current_index + 1, message.id)
            self._awaiting_reveal = True
            return

        self._awaiting_reveal = False
        self._set_status(CallStatus.CONNECTED, None)
        self._active_message = None
        self._current_index += 1
        logger.info("[%d/%d] turn complete", self._current_index, len(self._script))
        self._schedule_turn()

    # -------------------------------------------------------------------------
    # Reveal Wiring
    # -------------------------------------------------------------------------

    def _start_reveal(self, message: LiveMessage, speed: float) -> None:
        message_id = message.id

        def on_start() -> None:
            message.is_revealing = True
            self._emit_message_updated(message)
            self._emit_voice_activity(message)

        def on_progress(prefix: str) -> None:
            message.displayed_text = prefix

        def on_complete() -> None:
            message.displayed_text = message.text
            message.is_revealing = False
            self._emit_message_updated(message)
            self._emit_voice_activity(message)
            if self._awaiting_reveal and self._active_message is message:
                self._complete_turn()

        reveal = TypewriterReveal(
            self._scheduler,
            message.text,
            base_speed=speed,
            start_delay=self._settings.reveal_start_delay_ms,
            on_start=on_start,
            on_complete=on_complete,
            on_progress=on_progress,
            rng=self._rng,
        )
        self._reveals[message_id] = reveal
        reveal.start()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_active_message(self) -> LiveMessage:
        if self._active_message is None:
            raise RuntimeError(f"No active message in phase {self._phase.value}")
        return self._active_message

    def _waveform_ms(self, speaker: Speaker) -> int:
        if speaker == Speaker.AI:
            return self._settings.ai_waveform_ms
        return self._settings.customer_waveform_ms

    def _typing_speed_ms(self, speaker: Speaker) -> float:
        if speaker == Speaker.AI:
            return self._settings.ai_typing_speed_ms
        return self._settings.customer_typing_speed_ms

    def _set_status(self, status: CallStatus, speaker: Optional[Speaker]) -> None:
        self._current_speaker = speaker
        if status == self._call_status:
            return
        logger.debug("Call status %s -> %s", self._call_status.value, status.value)
        self._call_status = status
        if self._publisher is not None:
            self._publisher.publish_call_status(
                status.value,
                speaker=speaker.value if speaker else None,
                sim_time_ms=self._scheduler.now_ms(),
            )

    def _emit(self, event_type: DashboardEventType, **payload: object) -> None:
        if self._publisher is not None:
            self._publisher.emit(event_type, self._scheduler.now_ms(), **payload)

    def _emit_message_updated(self, message: LiveMessage) -> None:
        self._emit(DashboardEventType.MESSAGE_UPDATED, message=message.model_dump(mode="json"))

    def _emit_voice_activity(self, message: LiveMessage) -> None:
        self._emit(
            DashboardEventType.VOICE_ACTIVITY,
            message_id=message.id,
            speaker=message.speaker.value,
            active=message.is_waveform_active,
        )

    # -------------------------------------------------------------------------
    # Status Methods
    # -------------------------------------------------------------------------

    def get_status(self) -> dict[str, object]:
        """Current playback status as a dictionary."""
        total = len(self._script)
        return {
            "phase": self._phase.value,
            "call_status": self._call_status.value,
            "current_speaker": self._current_speaker.value if self._current_speaker else None,
            "current_index": self._current_index,
            "total_turns": total,
            "progress_pct": round(self._current_index / total * 100, 1) if total else 100.0,
            "messages_count": len(self._messages),
            "is_muted": self._is_muted,
            "is_finished": self.is_finished,
            "next_transition_at_ms": self._next_transition_at_ms,
        }

    def get_last_message(self) -> Optional[LiveMessage]:
        """Get the most recently appended message."""
        if self._messages:
            return self._messages[-1].model_copy()
        return None

    def get_transcript_so_far(self) -> str:
        """Transcript of every message whose text has been attached."""
        lines = []
        for message in self._messages:
            if not message.text:
                continue
            role = "AI" if message.speaker == Speaker.AI else "Customer"
            lines.append(f"[{role}] {message.text}")
        return "\n\n".join(lines)
