"""Event-driven processing: every incoming event gets its own short-lived conversation."""

from dataclasses import dataclass
from datetime import UTC, datetime

from agent_harness.models.agents import AgentSpec
from agent_harness.services.cleanup import agent_scope
from agent_harness.use_cases.base import UseCase, UseCaseContext, print_result, print_section

INSTRUCTIONS = """\
You are EventProcessor, an intelligent event-processing agent.
You receive events from various systems (emails, monitoring alerts,
support tickets). For each event you must:

1. **Classify** the event: determine severity (Critical/High/Medium/Low)
   and category (Bug, Feature Request, Outage, Customer Inquiry, etc.)
2. **Summarize** the event in 1-2 sentences.
3. **Decide on an action**:
   - Route to a team (Engineering, Support, Sales, Management)
   - Suggest an automated response
   - Flag for human review if ambiguous
4. **Output a structured JSON response** with these fields:
   {
     "eventId": "...",
     "severity": "Critical|High|Medium|Low",
     "category": "...",
     "summary": "...",
     "action": "...",
     "routeTo": "...",
     "autoResponse": "..." (suggested reply if applicable)
   }

After the JSON, briefly explain your reasoning in plain text."""


@dataclass
class SimulatedEvent:
    id: str
    source: str
    payload: str


EVENTS = [
    SimulatedEvent(
        "EVT-001",
        "Email",
        """\
From: angry.customer@bigcorp.com
Subject: URGENT: Our production system is down!
Body: Hi, our entire production environment has been down for 2 hours.
We're losing $50K/hour. We need immediate help. This started after
your latest patch (v3.2.1) was applied. Please escalate IMMEDIATELY.
Our account ID is CORP-9912.""",
    ),
    SimulatedEvent(
        "EVT-002",
        "Monitoring Alert",
        """\
Alert: CPU_THRESHOLD_EXCEEDED
Service: api-gateway-prod
Region: East US
Current CPU: 94.2% (threshold: 80%)
Duration: 15 minutes
Correlated alerts: Memory at 78%, Response latency P99 = 4200ms (normal: 200ms)
Last deployment: 45 minutes ago (deploy-id: d-8834)""",
    ),
    SimulatedEvent(
        "EVT-003",
        "Support Ticket",
        """\
Ticket #TK-4421
Customer: Jane Smith (jane@startup.io, Pro Plan)
Subject: How to set up SSO with Okta?
Description: We recently upgraded to the Pro plan and want to configure
SSO using Okta as our identity provider. I followed the docs but got stuck
at the SAML configuration step. Can someone walk me through it or provide
a video tutorial? Not urgent but would like help this week.""",
    ),
    SimulatedEvent(
        "EVT-004",
        "Email",
        """\
From: cto@techpartner.com
Subject: Partnership opportunity: AI integration
Body: Hi team, we're impressed with your AI agent platform and would like
to explore a partnership. We have 500+ enterprise customers who could benefit
from integrating your agents into our workflow platform. Would love to schedule
a call next week to discuss API access, pricing tiers, and co-marketing.
Looking forward to hearing from you.""",
    ),
    SimulatedEvent(
        "EVT-005",
        "Monitoring Alert",
        """\
Alert: SECURITY_ANOMALY_DETECTED
Service: auth-service-prod
Details: 847 failed login attempts from IP range 103.45.xx.xx in the last
10 minutes. Pattern consistent with credential stuffing attack.
Rate limiting activated. No successful breaches detected yet.
Affected accounts: 12 accounts locked due to failed attempt threshold.""",
    ),
]


def event_prompt(event: SimulatedEvent, received_at: datetime | None = None) -> str:
    """Envelope sent to the agent for one event."""
    received_at = received_at or datetime.now(UTC)
    return (
        "[INCOMING EVENT]\n"
        f"Event ID: {event.id}\n"
        f"Source: {event.source}\n"
        f"Timestamp: {received_at:%Y-%m-%d %H:%M:%S} UTC\n"
        f"Payload:\n{event.payload}\n\n"
        "Please classify, summarize, and decide on an action for this event."
    )


async def run(ctx: UseCaseContext) -> None:
    async with agent_scope(ctx.service, AgentSpec(name="EventProcessor", instructions=INSTRUCTIONS)) as scope:
        for event in EVENTS:
            print_section(ctx.console, f"Event {event.id} ({event.source})")
            # Each event is processed in isolation and its conversation dropped right away
            conversation_id = await scope.new_conversation()
            try:
                result = await ctx.executor.execute_turn(scope.agent, event_prompt(event), conversation_id)
                print_result(ctx.console, result, speaker=scope.agent.name)
            finally:
                await scope.release_conversation(conversation_id)

    ctx.console.print(f"\nProcessed {len(EVENTS)} events.", style="dim")


def create_events_use_case() -> UseCase:
    return UseCase(
        number=10,
        key="events",
        title="Event-Driven Processing",
        description="Simulated emails, alerts and tickets are classified and routed, one conversation per event.",
        run=run,
    )
