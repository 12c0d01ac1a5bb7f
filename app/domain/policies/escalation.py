"""EscalationPolicy — decides whether a classified conversation should be handed off."""

from __future__ import annotations

from dataclasses import dataclass, field

from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import Urgency


@dataclass(frozen=True)
class EscalationCriteria:
    frustration_threshold: int = 7
    urgency_levels: frozenset[Urgency] = field(
        default_factory=lambda: frozenset({Urgency.HIGH, Urgency.CRITICAL})
    )
    confidence_threshold: float = 60.0
    max_handoffs_per_day: int = 3
    escalation_intents: frozenset[str] = field(
        default_factory=lambda: frozenset({"complaint", "technical_support", "billing_issue"})
    )


@dataclass(frozen=True)
class EscalationDecision:
    should_escalate: bool
    reasons: tuple[str, ...]
    handoffs_last_day: int


def evaluate_escalation(
    classification: Classification,
    handoffs_last_day: int,
    criteria: EscalationCriteria | None = None,
) -> EscalationDecision:
    """Any single trigger is enough; a conversation at the daily cap never escalates."""
    criteria = criteria or EscalationCriteria()

    if handoffs_last_day >= criteria.max_handoffs_per_day:
        return EscalationDecision(
            should_escalate=False,
            reasons=(f"daily handoff limit reached ({handoffs_last_day})",),
            handoffs_last_day=handoffs_last_day,
        )

    reasons = []
    if classification.frustration_level >= criteria.frustration_threshold:
        reasons.append(f"frustration {classification.frustration_level}")
    if classification.urgency in criteria.urgency_levels:
        reasons.append(f"urgency {classification.urgency.value}")
    if classification.confidence < criteria.confidence_threshold:
        reasons.append(f"low confidence {classification.confidence:g}")
    if classification.intent in criteria.escalation_intents:
        reasons.append(f"intent {classification.intent}")

    return EscalationDecision(
        should_escalate=bool(reasons),
        reasons=tuple(reasons),
        handoffs_last_day=handoffs_last_day,
    )
