"""
Tests for the command-line simulator.
"""

from __future__ import annotations

import sys

import pytest

import simulate_call
from voicebot.config import PlaybackSettings, ScriptBundle
from voicebot.models import ScriptedTurn, Speaker
from voicebot.pubsub import DashboardEvent, DashboardEventType


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


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("VOICEBOT_SETTINGS_PATH", raising=False)
    monkeypatch.delenv("VOICEBOT_SCRIPT_PATH", raising=False)


class TestDescribeEvent:
    def test_call_status_line(self):
        event = DashboardEvent(
            event_type=DashboardEventType.CALL_STATUS,
            payload={"status": "Processing", "speaker": None},
            sim_time_ms=1000,
        )
        line = simulate_call.describe_event(event)
        assert "STATUS" in line
        assert "Processing" in line
        assert "1.00s" in line

    def test_sentiment_alert_line(self):
        event = DashboardEvent(
            event_type=DashboardEventType.SENTIMENT_UPDATE,
            payload={"offset_label": "0:15", "sentiment": "negative", "confidence": 92, "emotions": [], "alert": True},
        )
        assert simulate_call.describe_event(event).endswith("ALERT")

    def test_message_line_shows_flags(self):
        event = DashboardEvent(
            event_type=DashboardEventType.MESSAGE_RECEIVED,
            payload={"message": {"id": "message-1", "text": "", "is_pending_reveal": True}},
        )
        line = simulate_call.describe_event(event)
        assert "message-1" in line
        assert "is_pending_reveal" in line

    def test_ticket_line(self):
        event = DashboardEvent(
            event_type=DashboardEventType.TICKET_CREATED,
            payload={
                "ticket": {
                    "ticket_id": "TKT-2024-0016",
                    "priority": "high",
                    "issue_category": "UPI Issues",
                    "customer_name": "Rajesh Kumar",
                }
            },
            sim_time_ms=15000,
        )
        line = simulate_call.describe_event(event)
        assert "TICKET" in line
        assert "TKT-2024-0016" in line
        assert "Rajesh Kumar" in line


class TestRunFast:
    def test_replays_whole_call(self):
        session = simulate_call.run_fast(PlaybackSettings(), ScriptBundle.default(), 7, None)

        driver = session.conversation
        assert session.is_closed
        assert driver.current_index == driver.total_turns
        assert all(m.is_fully_revealed for m in driver.messages)
        assert session.sentiment.is_exhausted
        assert session.tickets.live_ticket is not None

    def test_message_submitted_after_first_turn(self):
        session = simulate_call.run_fast(PlaybackSettings(), ScriptBundle.default(), 7, "Any news?")

        manual = [m for m in session.conversation.messages if m.is_manual]
        assert [m.text for m in manual] == ["Any news?"]
        assert session.conversation.messages.index(manual[0]) == 1


class TestRunRealtime:
    @pytest.mark.asyncio
    async def test_realtime_playback_completes(self):
        scripts = ScriptBundle(
            conversation=(
                ScriptedTurn(speaker=Speaker.AI, text="Hello!", inter_turn_delay_ms=5),
                ScriptedTurn(speaker=Speaker.CUSTOMER, text="Hi.", inter_turn_delay_ms=5),
            ),
            sentiment=ScriptBundle.default().sentiment[:2],
        )

        session = await simulate_call.run_realtime(FAST_SETTINGS, scripts, 1, None)

        assert session.is_closed
        assert [m.text for m in session.conversation.messages] == ["Hello!", "Hi."]

    @pytest.mark.asyncio
    async def test_realtime_logs_every_event_before_close(self, monkeypatch):
        """Events still queued when the session goes idle are logged too."""
        logged: list[DashboardEvent] = []
        monkeypatch.setattr(simulate_call, "log_event", logged.append)
        scripts = ScriptBundle(
            conversation=(
                ScriptedTurn(speaker=Speaker.AI, text="Hello!", inter_turn_delay_ms=5),
                ScriptedTurn(speaker=Speaker.CUSTOMER, text="Hi.", inter_turn_delay_ms=5),
            ),
            sentiment=ScriptBundle.default().sentiment[:2],
        )

        session = await simulate_call.run_realtime(FAST_SETTINGS, scripts, 1, None)

        published = [
            e for e in session.publisher.get_history()
            if e.payload.get("content") != "session_closed"
        ]
        assert logged == published
        system = [e.payload["content"] for e in logged if e.event_type == DashboardEventType.SYSTEM]
        assert "conversation_finished" in system
        assert any(e.event_type == DashboardEventType.TICKET_CREATED for e in logged)


class TestMain:
    def test_fast_run_succeeds(self, capsys):
        assert simulate_call.main(fast=True, seed=1) == simulate_call.EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Transcript" in out
        assert "TKT-2024-0016" in out

    def test_bad_settings_path(self, tmp_path):
        code = simulate_call.main(fast=True, settings_path=str(tmp_path / "missing.json"))
        assert code == simulate_call.EXIT_CONFIG_ERROR

    def test_cli_exit_code(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["simulate_call.py", "--fast", "--seed", "5"])

        with pytest.raises(SystemExit) as exc_info:
            simulate_call.cli()

        assert exc_info.value.code == 0
