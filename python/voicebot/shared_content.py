"""
Shared simulation content: the SecureBank failed-UPI-refund call, the
caller profile, the ticket backlog and past call sentiment records.
"""

from __future__ import annotations

from .models import (
    CallSentimentRecord,
    CustomerProfile,
    ResolutionStatus,
    ScriptedTurn,
    SentimentLabel,
    SentimentSnapshot,
    Speaker,
    Ticket,
    TicketPriority,
    TicketStatus,
)


AI = Speaker.AI
CUSTOMER = Speaker.CUSTOMER

POSITIVE = SentimentLabel.POSITIVE
NEUTRAL = SentimentLabel.NEUTRAL
NEGATIVE = SentimentLabel.NEGATIVE


def _turn(
    speaker: Speaker,
    text: str,
    delay_ms: int,
    sentiment: SentimentLabel | None = None,
) -> ScriptedTurn:
    return ScriptedTurn(
        speaker=speaker,
        text=text,
        sentiment=sentiment,
        inter_turn_delay_ms=delay_ms,
    )


def _point(
    offset: str,
    score: int,
    emotions: tuple[str, ...],
    sentiment: SentimentLabel,
    confidence: int,
) -> SentimentSnapshot:
    return SentimentSnapshot(
        offset_label=offset,
        sentiment_score=score,
        emotion_tags=emotions,
        sentiment=sentiment,
        confidence=confidence,
    )


CONVERSATION_SCRIPT: tuple[ScriptedTurn, ...] = (
    _turn(
        AI,
        "Hello! Welcome to SecureBank. I'm your AI assistant. How can I help you today?",
        1000,
    ),
    _turn(
        CUSTOMER,
        "Hi, I'm having trouble with my UPI transaction. It failed but the money was deducted from my account.",
        3000,
        NEGATIVE,
    ),
    _turn(
        AI,
        "I understand your concern about the failed UPI transaction. Let me quickly check your account details and recent transactions to help resolve this issue.",
        4000,
    ),
    _turn(
        CUSTOMER,
        "It happened this morning around 10:30 AM. The transaction was for ₹2,500 to a merchant called PayTM_Grocery.",
        3500,
        NEUTRAL,
    ),
    _turn(
        AI,
        "I can see the transaction in your account history. Let me check with our payment gateway partner for the status of transaction ID UPI2024011514301234.",
        5000,
    ),
    _turn(
        CUSTOMER,
        "This is really frustrating. I need that money back urgently. I have other payments to make today.",
        3000,
        NEGATIVE,
    ),
    _turn(
        AI,
        "I completely understand your frustration. Based on my investigation, the transaction was processed but failed at the merchant end. I'm initiating an immediate refund which should reflect in your account within 2-4 hours.",
        6000,
    ),
    _turn(
        CUSTOMER,
        "How can I be sure this will be resolved? I've had issues before and it took weeks to get my money back.",
        4000,
        NEGATIVE,
    ),
    _turn(
        AI,
        "I've created a high-priority ticket TKT-2024-0016 for your case. You'll receive SMS and email confirmations. I'm also escalating this to our specialized refund team to ensure faster processing.",
        5500,
    ),
    _turn(
        CUSTOMER,
        "Okay, that sounds better. Will I get any confirmation or reference number?",
        3000,
        NEUTRAL,
    ),
    _turn(
        AI,
        "Yes, your reference number is REF-UPI-2024-001234. I've also sent you an SMS with all the details. Is there anything else I can help you with today?",
        4000,
    ),
    _turn(
        CUSTOMER,
        "Thank you for your help. I appreciate the quick response and the escalation.",
        2500,
        POSITIVE,
    ),
    _turn(
        AI,
        "You're very welcome! I'm glad I could assist you today. Your refund should be processed soon, and you can always call us back if you need any updates.",
        4000,
    ),
)


SENTIMENT_PROGRESSION: tuple[SentimentSnapshot, ...] = (
    _point("0:00", 70, ("Calm", "Polite"), NEUTRAL, 85),
    _point("0:15", 30, ("Frustrated", "Urgent"), NEGATIVE, 92),
    _point("0:45", 40, ("Concerned", "Hopeful"), NEUTRAL, 78),
    _point("1:15", 45, ("Cooperative", "Patient"), NEUTRAL, 82),
    _point("1:45", 50, ("Understanding", "Attentive"), NEUTRAL, 88),
    _point("2:30", 25, ("Angry", "Impatient"), NEGATIVE, 95),
    _point("3:15", 55, ("Cautious", "Skeptical"), NEUTRAL, 86),
    _point("4:00", 45, ("Worried", "Questioning"), NEUTRAL, 83),
    _point("4:45", 65, ("Relieved", "Optimistic"), NEUTRAL, 89),
    _point("5:30", 75, ("Satisfied", "Grateful"), POSITIVE, 91),
    _point("6:15", 85, ("Happy", "Appreciative"), POSITIVE, 94),
)


# =============================================================================
# Caller and Dashboard Header
# =============================================================================

CUSTOMER_PROFILE = CustomerProfile(
    name="Rajesh Kumar",
    phone="+91 98765 43210",
    account_type="Premium Banking",
    account_number="****7892",
    language="English",
    location="Mumbai, Maharashtra",
)

ACTIVE_CALLS_COUNT = 3


# =============================================================================
# Ticket Backlog
# =============================================================================

HIGH = TicketPriority.HIGH
MEDIUM = TicketPriority.MEDIUM
LOW = TicketPriority.LOW


def _ticket(
    ticket_id: str,
    category: str,
    priority: TicketPriority,
    status: TicketStatus,
    created: str,
    customer: str,
    account: str,
    contact: str,
    description: str,
    score: int,
    agent: str | None = None,
    followup_date: str | None = None,
) -> Ticket:
    return Ticket(
        ticket_id=ticket_id,
        issue_category=category,
        priority=priority,
        status=status,
        assigned_agent=agent,
        created_time=created,
        customer_name=customer,
        account_number=account,
        contact_info=contact,
        issue_description=description,
        sentiment_score=score,
        followup_required=followup_date is not None,
        followup_date=followup_date,
    )


SEED_TICKETS: tuple[Ticket, ...] = (
    _ticket(
        "TKT-2024-0015",
        "UPI Issues",
        HIGH,
        TicketStatus.NEW,
        "2024-01-15 14:30:22",
        "Rajesh Kumar",
        "****7892",
        "+91 98765 43210",
        "UPI transaction failed but amount was deducted. Transaction ID: UPI2024011514301234. Amount: ₹2,500 to merchant PayTM_Grocery.",
        25,
        followup_date="2024-01-16",
    ),
    _ticket(
        "TKT-2024-0014",
        "Account Queries",
        MEDIUM,
        TicketStatus.IN_PROGRESS,
        "2024-01-15 14:25:15",
        "Priya Sharma",
        "****5643",
        "+91 87654 32109",
        "Customer inquired about new credit card application status and eligibility for premium banking services.",
        70,
        agent="Agent Sarah M.",
    ),
    _ticket(
        "TKT-2024-0013",
        "Card Problems",
        HIGH,
        TicketStatus.ESCALATED,
        "2024-01-15 14:20:08",
        "Arjun Patel",
        "****9876",
        "+91 76543 21098",
        "Debit card blocked due to suspicious activity. Customer traveling abroad and needs immediate card activation.",
        35,
        agent="Agent Mike R.",
        followup_date="2024-01-15",
    ),
    _ticket(
        "TKT-2024-0012",
        "General Banking",
        LOW,
        TicketStatus.RESOLVED,
        "2024-01-15 14:15:33",
        "Meera Reddy",
        "****3421",
        "+91 65432 10987",
        "Customer requested information about fixed deposit rates and terms. Provided complete details and brochure.",
        85,
        agent="Agent Lisa K.",
    ),
    _ticket(
        "TKT-2024-0011",
        "Loan Services",
        MEDIUM,
        TicketStatus.IN_PROGRESS,
        "2024-01-15 14:10:12",
        "Suresh Gupta",
        "****8765",
        "+91 54321 09876",
        "Home loan pre-approval request. Customer provided all documents and awaiting credit assessment completion.",
        60,
        agent="Agent John D.",
        followup_date="2024-01-18",
    ),
)

LIVE_CALL_TICKET_ID = "TKT-2024-0016"

LIVE_CALL_ISSUE = (
    "LIVE CALL: UPI transaction failed but amount was deducted. "
    "Transaction ID: UPI2024011514301234. Amount: ₹2,500 to merchant PayTM_Grocery. "
    "Customer expressing high frustration and urgency. "
    "Refund initiated with reference REF-UPI-2024-001234."
)


# =============================================================================
# Post-Call Sentiment Records
# =============================================================================

CALL_SENTIMENT_RECORDS: tuple[CallSentimentRecord, ...] = (
    CallSentimentRecord(
        call_id="CALL-2024-001",
        duration="05:23",
        overall_sentiment=NEGATIVE,
        key_emotions=("Frustrated", "Urgent"),
        escalation_triggered=True,
        escalation_reason="High frustration level",
        resolution_status=ResolutionStatus.TRANSFERRED,
        language="English",
        timestamp="2024-01-15 14:30:22",
    ),
    CallSentimentRecord(
        call_id="CALL-2024-002",
        duration="03:45",
        overall_sentiment=POSITIVE,
        key_emotions=("Satisfied", "Grateful"),
        resolution_status=ResolutionStatus.RESOLVED,
        customer_satisfaction=4.8,
        language="Hindi",
        timestamp="2024-01-15 14:25:15",
    ),
    CallSentimentRecord(
        call_id="CALL-2024-003",
        duration="07:12",
        overall_sentiment=NEUTRAL,
        key_emotions=("Calm", "Inquisitive"),
        resolution_status=ResolutionStatus.RESOLVED,
        customer_satisfaction=4.2,
        language="English",
        timestamp="2024-01-15 14:20:08",
    ),
    CallSentimentRecord(
        call_id="CALL-2024-004",
        duration="02:18",
        overall_sentiment=POSITIVE,
        key_emotions=("Happy", "Quick"),
        resolution_status=ResolutionStatus.RESOLVED,
        customer_satisfaction=5.0,
        language="Tamil",
        timestamp="2024-01-15 14:15:33",
    ),
    CallSentimentRecord(
        call_id="CALL-2024-005",
        duration="09:45",
        overall_sentiment=NEGATIVE,
        key_emotions=("Angry", "Confused", "Impatient"),
        escalation_triggered=True,
        escalation_reason="Complex issue + anger",
        resolution_status=ResolutionStatus.FOLLOW_UP,
        language="English",
        timestamp="2024-01-15 14:10:12",
    ),
)
