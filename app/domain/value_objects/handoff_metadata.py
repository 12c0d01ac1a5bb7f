"""Handoff metadata — one typed payload per handoff kind.

Each variant is serialized with a ``kind`` tag so the JSON column can be
decoded back into the right class; unknown tags are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class RoutingMetadata:
    """Why the router picked the target of an automatic handoff."""

    confidence: float
    estimated_wait_minutes: int
    routing_version: str
    alternative_team_ids: tuple[int, ...] = field(default_factory=tuple)
    degraded: bool = False

    kind = "routing"


@dataclass(frozen=True)
class EscalationMetadata:
    trigger_event: str | None = None
    escalation_reason: str | None = None
    customer_sentiment: str | None = None
    previous_handoffs: int = 0

    kind = "escalation"


@dataclass(frozen=True)
class ManualTransferMetadata:
    actor_id: int | None = None
    unassign: bool = False
    membership_override: bool = False

    kind = "manual"


HandoffMetadata = Union[RoutingMetadata, EscalationMetadata, ManualTransferMetadata]


def metadata_to_dict(metadata: HandoffMetadata) -> dict:
    if isinstance(metadata, RoutingMetadata):
        return {
            "kind": RoutingMetadata.kind,
            "confidence": metadata.confidence,
            "estimated_wait_minutes": metadata.estimated_wait_minutes,
            "routing_version": metadata.routing_version,
            "alternative_team_ids": list(metadata.alternative_team_ids),
            "degraded": metadata.degraded,
        }
    if isinstance(metadata, EscalationMetadata):
        return {
            "kind": EscalationMetadata.kind,
            "trigger_event": metadata.trigger_event,
            "escalation_reason": metadata.escalation_reason,
            "customer_sentiment": metadata.customer_sentiment,
            "previous_handoffs": metadata.previous_handoffs,
        }
    if isinstance(metadata, ManualTransferMetadata):
        return {
            "kind": ManualTransferMetadata.kind,
            "actor_id": metadata.actor_id,
            "unassign": metadata.unassign,
            "membership_override": metadata.membership_override,
        }
    raise TypeError(f"Unsupported handoff metadata: {type(metadata).__name__}")


def metadata_from_dict(data: dict) -> HandoffMetadata:
    kind = data.get("kind")
    if kind == RoutingMetadata.kind:
        return RoutingMetadata(
            confidence=float(data["confidence"]),
            estimated_wait_minutes=int(data["estimated_wait_minutes"]),
            routing_version=data["routing_version"],
            alternative_team_ids=tuple(data.get("alternative_team_ids", ())),
            degraded=bool(data.get("degraded", False)),
        )
    if kind == EscalationMetadata.kind:
        return EscalationMetadata(
            trigger_event=data.get("trigger_event"),
            escalation_reason=data.get("escalation_reason"),
            customer_sentiment=data.get("customer_sentiment"),
            previous_handoffs=int(data.get("previous_handoffs", 0)),
        )
    if kind == ManualTransferMetadata.kind:
        return ManualTransferMetadata(
            actor_id=data.get("actor_id"),
            unassign=bool(data.get("unassign", False)),
            membership_override=bool(data.get("membership_override", False)),
        )
    raise ValueError(f"Unknown handoff metadata kind: {kind!r}")
