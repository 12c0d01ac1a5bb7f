"""Conversation endpoints — assignment, routing preview and handoff history."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.persistence.database import get_session
from app.application.use_cases.assignment_service import AssignmentService, ManualTarget
from app.infrastructure.api.dependencies import get_assignment_service, run_in_transaction
from app.infrastructure.api.schemas import ClassificationIn
from app.infrastructure.api.serializers import (
    serialize_handoff,
    serialize_recommendation,
    serialize_result,
)

router = APIRouter(prefix="/conversations", tags=["assignments"])


class AutomaticAssignRequest(BaseModel):
    classification: ClassificationIn | None = None
    message_text: str | None = None  # classified server-side when no classification is given


class ManualAssignRequest(BaseModel):
    team_id: int | None = None
    user_id: int | None = None
    actor_id: int | None = None
    reason: str | None = None


@router.post("/{conversation_id}/assign/automatic")
async def assign_automatic(
    conversation_id: int,
    body: AutomaticAssignRequest | None = Body(default=None),
    service: AssignmentService = Depends(get_assignment_service),
    session: AsyncSession = Depends(get_session),
):
    """Route and assign a conversation; without a classification routing is degraded."""
    body = body or AutomaticAssignRequest()

    async def operation():
        if body.classification is not None:
            return await service.assign_automatically(
                conversation_id, body.classification.to_domain()
            )
        if body.message_text:
            return await service.assign_from_message(conversation_id, body.message_text)
        return await service.assign_automatically(conversation_id, None)

    result = await run_in_transaction(session, operation)
    return serialize_result(result)


@router.post("/{conversation_id}/assign/manual")
async def assign_manual(
    conversation_id: int,
    body: ManualAssignRequest,
    service: AssignmentService = Depends(get_assignment_service),
    session: AsyncSession = Depends(get_session),
):
    """Transfer a conversation; omit both team_id and user_id to unassign."""
    target = ManualTarget(team_id=body.team_id, user_id=body.user_id)
    result = await run_in_transaction(
        session,
        lambda: service.assign_manually(conversation_id, target, body.actor_id, body.reason),
    )
    return serialize_result(result)


@router.post("/{conversation_id}/recommendation")
async def recommend(
    conversation_id: int,
    body: ClassificationIn,
    service: AssignmentService = Depends(get_assignment_service),
):
    """Preview the routing decision without assigning."""
    recommendation = await service.recommend(conversation_id, body.to_domain())
    return serialize_recommendation(recommendation)


@router.post("/{conversation_id}/escalation/evaluate")
async def evaluate_escalation(
    conversation_id: int,
    body: ClassificationIn,
    service: AssignmentService = Depends(get_assignment_service),
):
    decision = await service.evaluate_escalation(conversation_id, body.to_domain())
    return {
        "conversation_id": conversation_id,
        "should_escalate": decision.should_escalate,
        "reasons": list(decision.reasons),
        "handoffs_last_day": decision.handoffs_last_day,
    }


@router.get("/{conversation_id}/handoffs")
async def conversation_handoffs(
    conversation_id: int,
    days: int | None = Query(default=None, ge=1),
    service: AssignmentService = Depends(get_assignment_service),
):
    """Handoff history of the conversation, newest first."""
    handoffs = await service.get_conversation_handoffs(conversation_id, days)
    return {
        "conversation_id": conversation_id,
        "total": len(handoffs),
        "handoffs": [serialize_handoff(h) for h in handoffs],
    }
