#!/usr/bin/env python3
"""
Voice Bot Call Simulator.

Replays the scripted SecureBank call through the dashboard session and
logs every state change: call status, message phases, voice activity and
sentiment updates.

Usage:
    # Real-time playback on the asyncio loop:
    uv run python simulate_call.py

    # Instant replay on virtual time:
    uv run python simulate_call.py --fast --seed 7

    # Custom scripts and timings:
    uv run python simulate_call.py --script ./call.json --settings ./timing.json
"""

from __future__ import annotations

import asyncio
import logging
import random
import sys
from typing import Final, Optional

from voicebot import (
    DashboardEvent,
    DashboardEventType,
    DashboardSession,
    LoopScheduler,
    PlaybackSettings,
    ScriptBundle,
    VirtualScheduler,
    load_playback_settings,
    load_script_bundle,
)

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger: logging.Logger = logging.getLogger(__name__)


# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS: Final[int] = 0
EXIT_CONFIG_ERROR: Final[int] = 2
EXIT_INTERRUPTED: Final[int] = 130  # Standard SIGINT exit code


# =============================================================================
# Event Formatting
# =============================================================================

def describe_event(event: DashboardEvent) -> str:
    """One log line for a dashboard event."""
    payload = event.payload
    stamp = f"t={event.sim_time_ms / 1000:7.2f}s"

    if event.event_type == DashboardEventType.CALL_STATUS:
        speaker = payload.get("speaker") or "-"
        return f"{stamp} STATUS    {payload.get('status')} (speaker={speaker})"

    if event.event_type in (DashboardEventType.MESSAGE_RECEIVED, DashboardEventType.MESSAGE_UPDATED):
        message = payload.get("message") or {}
        if not isinstance(message, dict):
            return f"{stamp} MESSAGE   {message}"
        flags = [
            name
            for name in ("is_pending_reveal", "is_content_visible", "is_revealing", "is_manual")
            if message.get(name)
        ]
        text = str(message.get("text") or "")
        preview = text[:60] + "..." if len(text) > 60 else text
        label = "NEW" if event.event_type == DashboardEventType.MESSAGE_RECEIVED else "UPDATE"
        return f"{stamp} MSG {label:<6}{message.get('id')} [{','.join(flags)}] {preview}"

    if event.event_type == DashboardEventType.VOICE_ACTIVITY:
        state = "on" if payload.get("active") else "off"
        return f"{stamp} VOICE     {payload.get('speaker')} waveform {state}"

    if event.event_type == DashboardEventType.SENTIMENT_UPDATE:
        alert = " ALERT" if payload.get("alert") else ""
        return (
            f"{stamp} SENTIMENT {payload.get('offset_label')} {payload.get('sentiment')} "
            f"({payload.get('confidence')}%) {payload.get('emotions')}{alert}"
        )

    if event.event_type == DashboardEventType.TICKET_CREATED:
        ticket = payload.get("ticket") or {}
        if not isinstance(ticket, dict):
            return f"{stamp} TICKET    {ticket}"
        return (
            f"{stamp} TICKET    {ticket.get('ticket_id')} {ticket.get('priority')} "
            f"{ticket.get('issue_category')} for {ticket.get('customer_name')}"
        )

    return f"{stamp} SYSTEM    {payload.get('content')}"


def log_event(event: DashboardEvent) -> None:
    logger.info(describe_event(event))


def print_summary(session: DashboardSession) -> None:
    """Print the final transcript and sentiment state."""
    view = session.snapshot()
    print(f"\n{'=' * 60}")
    print("Transcript")
    print(f"{'=' * 60}\n")
    print(session.conversation.get_transcript_so_far())
    print(f"\n{'=' * 60}")
    print(
        f"Sentiment: {view.sentiment.current.value} "
        f"({view.sentiment.confidence}% confidence, gauge {view.sentiment.gauge_percent})"
    )
    print(f"Emotions:  {', '.join(tag.name for tag in view.sentiment.emotions)}")
    print(f"Timeline:  {' '.join(f'{p.offset_label}={p.sentiment_score}' for p in view.sentiment.history)}")
    print(f"Tickets:   {len(view.tickets)} (newest {view.tickets[0].ticket_id})" if view.tickets else "Tickets:   none")
    print(f"{'=' * 60}\n")


def _submit_after_first_turn(session: DashboardSession, text: str) -> None:
    """Queue a user message for the first time the call returns to Connected."""
    submitted = False

    def listener(event: DashboardEvent) -> None:
        nonlocal submitted
        if submitted or event.event_type != DashboardEventType.CALL_STATUS:
            return
        if event.payload.get("status") == "Connected":
            submitted = True
            session.scheduler.call_later(0, lambda: session.submit_user_message(text))

    session.publisher.add_listener(listener)


# =============================================================================
# Simulation Modes
# =============================================================================

def run_fast(
    settings: PlaybackSettings,
    scripts: ScriptBundle,
    seed: Optional[int],
    message: Optional[str],
) -> DashboardSession:
    """Replay the whole call on virtual time, instantly."""
    scheduler = VirtualScheduler()
    session = DashboardSession(
        scheduler,
        settings=settings,
        scripts=scripts,
        rng=random.Random(seed) if seed is not None else None,
    )
    session.publisher.add_listener(log_event)
    if message:
        _submit_after_first_turn(session, message)

    session.start()
    fired = scheduler.run_until_idle()
    logger.info("Virtual replay finished: %d timer callbacks, %.1fs simulated", fired, scheduler.now_ms() / 1000)
    session.close()
    return session


async def run_realtime(
    settings: PlaybackSettings,
    scripts: ScriptBundle,
    seed: Optional[int],
    message: Optional[str],
) -> DashboardSession:
    """Play the call in wall-clock time, consuming the event stream."""
    session = DashboardSession(
        LoopScheduler(),
        settings=settings,
        scripts=scripts,
        rng=random.Random(seed) if seed is not None else None,
    )
    if message:
        _submit_after_first_turn(session, message)

    queue = session.publisher.subscribe()
    try:
        async with session:
            while not session.is_idle:
                event = await queue.get()
                log_event(event)
            # Events published by the final timer are still queued.
            while not queue.empty():
                log_event(queue.get_nowait())
    finally:
        session.publisher.unsubscribe(queue)
    return session


def main(
    fast: bool = False,
    seed: Optional[int] = None,
    settings_path: Optional[str] = None,
    script_path: Optional[str] = None,
    message: Optional[str] = None,
) -> int:
    """
    Run the simulation.

    Returns:
        Exit code.
    """
    try:
        settings = load_playback_settings(settings_path)
        scripts = load_script_bundle(script_path)
    except RuntimeError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_CONFIG_ERROR

    logger.info("=" * 60)
    logger.info("SecureBank Voice Bot Simulator")
    logger.info("=" * 60)
    logger.info("Mode: %s", "virtual (fast)" if fast else "real-time")
    logger.info("Turns: %d, sentiment snapshots: %d", len(scripts.conversation), len(scripts.sentiment))
    logger.info("")

    try:
        if fast:
            session = run_fast(settings, scripts, seed, message)
        else:
            session = asyncio.run(run_realtime(settings, scripts, seed, message))
    except KeyboardInterrupt:
        logger.info("\nSimulation interrupted")
        return EXIT_INTERRUPTED

    print_summary(session)
    return EXIT_SUCCESS


def cli() -> None:
    """
    Command-line interface entry point with argument parsing.
    """
    import argparse

    parser = argparse.ArgumentParser(
        description="Replay the scripted voice bot call and log every dashboard state change.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Real-time playback
    uv run python simulate_call.py

    # Instant, reproducible replay
    uv run python simulate_call.py --fast --seed 42

    # Send a message as the customer once the greeting is done
    uv run python simulate_call.py --fast --message "Is my refund on the way?"

Environment Variables:
    VOICEBOT_SETTINGS_PATH   Playback settings JSON
    VOICEBOT_SCRIPT_PATH     Script bundle JSON
        """,
    )

    parser.add_argument(
        "--fast",
        action="store_true",
        help="Replay on virtual time instead of waiting in real time",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for typing jitter (default: settings.random_seed)",
    )
    parser.add_argument(
        "--settings",
        type=str,
        default=None,
        dest="settings_path",
        help="Playback settings JSON path",
    )
    parser.add_argument(
        "--script",
        type=str,
        default=None,
        dest="script_path",
        help="Script bundle JSON path",
    )
    parser.add_argument(
        "--message",
        type=str,
        default=None,
        help="User message to submit after the first turn completes",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    exit_code = main(
        fast=args.fast,
        seed=args.seed,
        settings_path=args.settings_path,
        script_path=args.script_path,
        message=args.message,
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
