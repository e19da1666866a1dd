#!/usr/bin/env python3
"""
Streamlit UI for the SecureBank Voice Bot Dashboard.

Provides a live call view with:
- Chat window with waveform cue, typing indicator and typewriter reveal
- Call status badge, mute toggle and manual message input
- Real-time sentiment gauge, confidence, detected emotions and timeline
- Negative sentiment alert
- Header with active calls and a live clock, and the caller profile
- Post-call sentiment records and the ticket management table

The dashboard session runs on virtual time; every rerun advances it to the
wall-clock time elapsed since the call started.

Usage:
    uv run streamlit run streamlit_ui.py --server.port 8502
"""

from __future__ import annotations

import html
import logging
import time
from datetime import datetime
from typing import Final

import streamlit as st

from voicebot import (
    CallSentimentRecord,
    CallStatus,
    CustomerProfile,
    DashboardSession,
    DashboardSnapshot,
    LiveMessage,
    ResolutionStatus,
    SentimentTrend,
    Speaker,
    VirtualScheduler,
    load_playback_settings,
    load_script_bundle,
)
from voicebot.tickets import PRIORITY_COLORS, TICKET_STATUS_COLORS, ticket_sentiment_color

# =============================================================================
# Logging Configuration
# =============================================================================

logger: logging.Logger = logging.getLogger(__name__)

# =============================================================================
# Configuration
# =============================================================================

SETTINGS = load_playback_settings()
SCRIPTS = load_script_bundle()

# UI refresh delays
REFRESH_DELAY_SECONDS: Final[float] = 0.15
IDLE_POLL_DELAY_SECONDS: Final[float] = 1.0  # header clock ticks every second

STATUS_COLORS: Final[dict[CallStatus, str]] = {
    CallStatus.CONNECTED: "#22C55E",
    CallStatus.SPEAKING: "#3B82F6",
    CallStatus.LISTENING: "#EAB308",
    CallStatus.PROCESSING: "#F97316",
}

TREND_ICONS: Final[dict[SentimentTrend, str]] = {
    SentimentTrend.UP: "📈",
    SentimentTrend.DOWN: "📉",
    SentimentTrend.FLAT: "➖",
}

SENTIMENT_BADGE_COLORS: Final[dict[str, str]] = {
    "positive": "#15803D",
    "negative": "#B91C1C",
    "neutral": "#A16207",
}

RESOLUTION_ICONS: Final[dict[ResolutionStatus, str]] = {
    ResolutionStatus.RESOLVED: "✅",
    ResolutionStatus.TRANSFERRED: "↗️",
    ResolutionStatus.FOLLOW_UP: "🕒",
}


# =============================================================================
# Page Configuration
# =============================================================================

st.set_page_config(
    page_title="SecureBank Voice Bot Dashboard",
    page_icon="🏦",
    layout="wide",
    initial_sidebar_state="collapsed",
)


# =============================================================================
# Custom CSS
# =============================================================================

st.markdown("""
<style>
#MainMenu {visibility: hidden;}
footer {visibility: hidden;}
.stDeployButton {display: none;}

.bubble-ai {
    background: #F3F4F6;
    color: #111827;
    padding: 0.75rem 1rem;
    border-radius: 12px;
    border-bottom-left-radius: 4px;
    margin-bottom: 0.25rem;
    max-width: 85%;
}

.bubble-customer {
    background: #1B365D;
    color: white;
    padding: 0.75rem 1rem;
    border-radius: 12px;
    border-bottom-right-radius: 4px;
    margin: 0 0 0.25rem auto;
    max-width: 85%;
}

.bubble-meta {
    font-size: 0.7rem;
    color: #6B7280;
    margin-bottom: 0.75rem;
}

.status-badge {
    color: white;
    padding: 0.2rem 0.6rem;
    border-radius: 999px;
    font-size: 0.8rem;
    font-weight: 600;
}

.emotion-badge {
    display: inline-block;
    padding: 0.3rem 0.7rem;
    margin: 0.15rem;
    border-radius: 6px;
    font-size: 0.8rem;
}

.dash-table {
    width: 100%;
    font-size: 0.8rem;
    border-collapse: collapse;
}

.dash-table th, .dash-table td {
    padding: 0.4rem 0.5rem;
    border-bottom: 1px solid #E5E7EB;
    text-align: left;
    vertical-align: top;
}
</style>
""", unsafe_allow_html=True)


# =============================================================================
# State Management
# =============================================================================

def new_session() -> None:
    """Replace the session in Streamlit state with a fresh, started one."""
    old = st.session_state.get("session")
    if old is not None:
        old.close()

    session = DashboardSession(VirtualScheduler(), settings=SETTINGS, scripts=SCRIPTS)
    session.start()
    st.session_state.session = session
    st.session_state.started_at = time.monotonic()
    logger.info("New dashboard session started")


def init_state() -> None:
    """
    Initialize Streamlit session state.

    Only initializes state on first run; subsequent calls are no-ops.
    """
    if "init" not in st.session_state:
        st.session_state.init = True
        new_session()


def advance_session() -> DashboardSnapshot:
    """Move the virtual clock to the elapsed wall time and take a snapshot."""
    session: DashboardSession = st.session_state.session
    elapsed_ms = (time.monotonic() - st.session_state.started_at) * 1000.0
    scheduler = session.scheduler
    if isinstance(scheduler, VirtualScheduler):
        scheduler.advance_to(elapsed_ms)
    return session.snapshot()


# =============================================================================
# Rendering
# =============================================================================

def fmt_time(timestamp: str) -> str:
    """Format an ISO timestamp to h:mm AM/PM."""
    try:
        dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        return dt.astimezone().strftime("%I:%M %p").lstrip("0")
    except (ValueError, AttributeError):
        return timestamp


def render_message(message: LiveMessage) -> None:
    css_class = "bubble-customer" if message.speaker == Speaker.CUSTOMER else "bubble-ai"
    align = "right" if message.speaker == Speaker.CUSTOMER else "left"
    wave = "🔊 " if message.is_waveform_active else ""

    if not message.text:
        body = "<em>● ● ●</em>"
    elif not message.is_content_visible:
        return
    else:
        body = html.escape(message.displayed_text)
        if message.is_revealing:
            body += "▍"

    meta = fmt_time(message.created_at)
    if message.sentiment is not None and message.text:
        color = SENTIMENT_BADGE_COLORS.get(message.sentiment.value, "#6B7280")
        meta += f' · <span style="color:{color};">{message.sentiment.value}</span>'

    st.markdown(f"""
    <div class="{css_class}">{wave}{body}</div>
    <div class="bubble-meta" style="text-align:{align};">{meta}</div>
    """, unsafe_allow_html=True)


def render_chat(view: DashboardSnapshot) -> None:
    session: DashboardSession = st.session_state.session

    col_t, col_s, col_m = st.columns([3, 1, 1])
    with col_t:
        st.markdown("**💬 Live Voice Conversation**")
    with col_s:
        color = STATUS_COLORS.get(view.call_status, "#6B7280")
        st.markdown(
            f'<span class="status-badge" style="background:{color};">{view.call_status.value}</span>',
            unsafe_allow_html=True,
        )
    with col_m:
        muted = st.toggle("Mute", value=view.is_muted)
        if muted != view.is_muted:
            session.set_muted(muted)

    render_customer(view.customer, view.call_duration)

    with st.container(border=True, height=620):
        if not view.messages:
            st.info("Connecting the call...")
        for message in view.messages:
            render_message(message)

    prompt = st.chat_input("Type your message here...", disabled=not view.can_send)
    if prompt:
        session.submit_user_message(prompt)


def render_sentiment(view: DashboardSnapshot) -> None:
    sentiment = view.sentiment

    with st.container(border=True):
        st.markdown("**Real-Time Sentiment**")
        icon = TREND_ICONS.get(sentiment.trend, "")
        st.markdown(f"### {icon} {sentiment.current.value.capitalize()}")
        st.progress(sentiment.gauge_percent / 100)
        st.caption(f"Confidence {sentiment.confidence}%")
        st.progress(sentiment.confidence / 100)

    with st.container(border=True):
        st.markdown("**Detected Emotions**")
        badges = []
        for tag in sentiment.emotions:
            if tag.active:
                style = "background:#1B365D;color:white;"
            else:
                style = "border:1px solid #CBD5E1;color:#64748B;"
            badges.append(f'<span class="emotion-badge" style="{style}">{html.escape(tag.name)}</span>')
        st.markdown("".join(badges), unsafe_allow_html=True)

    with st.container(border=True):
        st.markdown("**Sentiment Timeline**")
        st.line_chart(
            {
                "time": [point.offset_label for point in sentiment.history],
                "sentiment": [point.sentiment_score for point in sentiment.history],
            },
            x="time",
            y="sentiment",
            height=160,
        )

    if sentiment.alert_active and sentiment.alert_message:
        st.error(sentiment.alert_message, icon="⚠️")


def render_header(view: DashboardSnapshot) -> None:
    col_h1, col_h2, col_h3, col_h4 = st.columns([4, 1, 1, 1])
    with col_h1:
        st.markdown("### 🏦 SecureBank Voice Bot Dashboard")
        st.caption(f"Turn {min(view.current_turn + 1, view.total_turns)} of {view.total_turns}")
    with col_h2:
        st.metric("Active Calls", view.active_calls_count)
    with col_h3:
        st.metric("Local Time", view.current_time.strftime("%I:%M:%S %p").lstrip("0"))
    with col_h4:
        if st.button("🔄 Restart call"):
            new_session()
            st.rerun()


def render_customer(customer: CustomerProfile, call_duration: str) -> None:
    with st.container(border=True):
        col_a, col_b, col_c = st.columns([2, 2, 1])
        with col_a:
            st.markdown(f"**👤 {html.escape(customer.name)}**")
            st.caption(f"{customer.phone} · {customer.location}")
        with col_b:
            st.markdown(f"**{customer.account_type}**")
            st.caption(f"Account {customer.account_number} · {customer.language}")
        with col_c:
            st.metric("Duration", call_duration)


def render_call_records(records: list[CallSentimentRecord]) -> None:
    with st.container(border=True):
        st.markdown("**Post-Call Sentiment Analysis**")
        rows = []
        for record in records:
            satisfaction = (
                f"{record.customer_satisfaction:.1f}/5" if record.customer_satisfaction is not None else "-"
            )
            rows.append(
                f"<tr><td>{record.call_id}</td><td>{record.duration}</td>"
                f'<td style="color:{SENTIMENT_BADGE_COLORS.get(record.overall_sentiment.value, "#6B7280")};">'
                f"{record.overall_sentiment.value}</td>"
                f"<td>{html.escape(', '.join(record.key_emotions))}</td>"
                f"<td>{'⚠️ ' + html.escape(record.escalation_reason or '') if record.escalation_triggered else '-'}</td>"
                f"<td>{RESOLUTION_ICONS.get(record.resolution_status, '')} {record.resolution_status.value}</td>"
                f"<td>{satisfaction}</td><td>{record.language}</td><td>{record.timestamp}</td></tr>"
            )
        st.markdown(
            '<table class="dash-table"><tr><th>Call ID</th><th>Duration</th><th>Sentiment</th>'
            "<th>Key Emotions</th><th>Escalation</th><th>Resolution</th><th>CSAT</th>"
            "<th>Language</th><th>Time</th></tr>" + "".join(rows) + "</table>",
            unsafe_allow_html=True,
        )


def render_tickets(view: DashboardSnapshot) -> None:
    with st.container(border=True):
        title = "**🎫 Ticket Management**"
        if view.has_new_ticket:
            title += ' <span class="status-badge" style="background:#EF4444;">New Ticket Generated</span>'
        st.markdown(title, unsafe_allow_html=True)

        rows = []
        for ticket in view.tickets:
            priority_color = PRIORITY_COLORS.get(ticket.priority, "#6B7280")
            status_color = TICKET_STATUS_COLORS.get(ticket.status, "#F3F4F6")
            followup = ticket.followup_date if ticket.followup_required else "-"
            rows.append(
                f"<tr><td><strong>{ticket.ticket_id}</strong></td><td>{html.escape(ticket.issue_category)}</td>"
                f'<td><span class="status-badge" style="background:{priority_color};">{ticket.priority.value}</span></td>'
                f'<td><span class="emotion-badge" style="background:{status_color};">{ticket.status.value}</span></td>'
                f"<td>{html.escape(ticket.assigned_agent or 'Unassigned')}</td>"
                f"<td>{html.escape(ticket.customer_name)}<br/><small>{ticket.account_number} · "
                f"{html.escape(ticket.contact_info)}</small></td>"
                f"<td>{html.escape(ticket.issue_description)}</td>"
                f'<td style="color:{ticket_sentiment_color(ticket.sentiment_score)};">{ticket.sentiment_score}%</td>'
                f"<td>{ticket.created_time}</td><td>{followup}</td></tr>"
            )
        st.markdown(
            '<table class="dash-table"><tr><th>Ticket</th><th>Category</th><th>Priority</th><th>Status</th>'
            "<th>Agent</th><th>Customer</th><th>Issue</th><th>Sentiment</th><th>Created</th>"
            "<th>Follow-up</th></tr>" + "".join(rows) + "</table>",
            unsafe_allow_html=True,
        )


# =============================================================================
# Main Application
# =============================================================================

def main() -> None:
    """
    Main Streamlit application entry point.

    Renders the header, then 60% live conversation and 40% sentiment panel,
    then the post-call records and the ticket table.
    """
    init_state()
    view = advance_session()
    session: DashboardSession = st.session_state.session

    render_header(view)

    col_chat, col_sentiment = st.columns([3, 2])
    with col_chat:
        render_chat(view)
    with col_sentiment:
        render_sentiment(view)

    render_call_records(view.call_records)
    render_tickets(view)

    # NOTE: time.sleep() blocks the Streamlit thread between reruns.
    if session.is_idle:
        time.sleep(IDLE_POLL_DELAY_SECONDS)
    else:
        time.sleep(REFRESH_DELAY_SECONDS)
    st.rerun()


if __name__ == "__main__":
    main()
