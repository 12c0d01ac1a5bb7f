"""Handoff lifecycle endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.persistence.database import get_session
from app.application.use_cases.assignment_service import AssignmentService
from app.application.use_cases.handoff_state_machine import HandoffRequest
from app.domain.value_objects.enums import ConversationPriority, HandoffType
from app.domain.value_objects.handoff_metadata import EscalationMetadata, ManualTransferMetadata
from app.infrastructure.api.dependencies import get_assignment_service, run_in_transaction
from app.infrastructure.api.schemas import ClassificationIn
from app.infrastructure.api.serializers import serialize_handoff

router = APIRouter(prefix="/handoffs", tags=["handoffs"])


class CreateHandoffRequest(BaseModel):
    conversation_id: int
    type: HandoffType = HandoffType.MANUAL
    to_team_id: int | None = None
    to_user_id: int | None = None
    reason: str | None = None
    priority: ConversationPriority | None = None
    classification: ClassificationIn | None = None
    actor_id: int | None = None
    trigger_event: str | None = None
    customer_sentiment: str | None = None


class AcceptHandoffRequest(BaseModel):
    agent_id: int


class RejectHandoffRequest(BaseModel):
    reason: str | None = None


def _metadata_for(body: CreateHandoffRequest):
    if body.type == HandoffType.ESCALATION:
        return EscalationMetadata(
            trigger_event=body.trigger_event,
            escalation_reason=body.reason,
            customer_sentiment=body.customer_sentiment,
        )
    if body.type == HandoffType.MANUAL:
        return ManualTransferMetadata(actor_id=body.actor_id)
    return None


@router.post("")
async def create_handoff(
    body: CreateHandoffRequest,
    service: AssignmentService = Depends(get_assignment_service),
    session: AsyncSession = Depends(get_session),
):
    """Create a handoff; escalations wait for accept/reject, others execute at once."""
    request = HandoffRequest(
        conversation_id=body.conversation_id,
        type=body.type,
        to_team_id=body.to_team_id,
        to_user_id=body.to_user_id,
        reason=body.reason,
        priority=body.priority,
        classification=body.classification.to_domain() if body.classification else None,
        metadata=_metadata_for(body),
    )
    handoff = await run_in_transaction(session, lambda: service.create_handoff(request))
    return serialize_handoff(handoff)


@router.get("/pending")
async def pending_handoffs(
    agent_id: int | None = Query(default=None),
    team_id: int | None = Query(default=None),
    service: AssignmentService = Depends(get_assignment_service),
):
    """Pending handoffs for one agent or one team, most urgent first."""
    handoffs = await service.get_pending_handoffs(agent_id=agent_id, team_id=team_id)
    return {
        "total": len(handoffs),
        "handoffs": [serialize_handoff(h) for h in handoffs],
    }


@router.get("/stats")
async def handoff_stats(
    days: int = Query(default=7, ge=1),
    service: AssignmentService = Depends(get_assignment_service),
):
    stats = await service.get_handoff_stats(days)
    return {
        "days": days,
        "total": stats.total,
        "pending": stats.pending,
        "accepted": stats.accepted,
        "completed": stats.completed,
        "rejected": stats.rejected,
        "by_type": stats.by_type,
        "by_priority": stats.by_priority,
    }


@router.get("/{handoff_id}")
async def get_handoff(
    handoff_id: int,
    service: AssignmentService = Depends(get_assignment_service),
):
    return serialize_handoff(await service.get_handoff(handoff_id))


@router.post("/{handoff_id}/accept")
async def accept_handoff(
    handoff_id: int,
    body: AcceptHandoffRequest,
    service: AssignmentService = Depends(get_assignment_service),
    session: AsyncSession = Depends(get_session),
):
    execution = await run_in_transaction(
        session, lambda: service.accept_handoff(handoff_id, body.agent_id)
    )
    return {
        "outcome": execution.outcome.value,
        "handoff": serialize_handoff(execution.handoff),
    }


@router.post("/{handoff_id}/reject")
async def reject_handoff(
    handoff_id: int,
    body: RejectHandoffRequest,
    service: AssignmentService = Depends(get_assignment_service),
    session: AsyncSession = Depends(get_session),
):
    handoff = await run_in_transaction(
        session, lambda: service.reject_handoff(handoff_id, body.reason)
    )
    return serialize_handoff(handoff)
