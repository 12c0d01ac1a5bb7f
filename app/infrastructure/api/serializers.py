"""Response serializers shared by the routers."""

from __future__ import annotations

from app.application.use_cases.assignment_service import AssignmentResult
from app.application.use_cases.team_router import HandoffRecommendation
from app.domain.entities.handoff import Handoff
from app.domain.value_objects.capacity import TeamCapacity
from app.domain.value_objects.handoff_metadata import metadata_to_dict


def _iso(value):
    return value.isoformat() if value else None


def serialize_handoff(h: Handoff) -> dict:
    return {
        "id": h.id,
        "conversation_id": h.conversation_id,
        "type": h.type.value,
        "status": h.status.value,
        "priority": h.priority.value,
        "from_team_id": h.from_team_id,
        "from_user_id": h.from_user_id,
        "to_team_id": h.to_team_id,
        "to_user_id": h.to_user_id,
        "reason": h.reason,
        "rejection_reason": h.rejection_reason,
        "classification": h.classification_snapshot.to_dict() if h.classification_snapshot else None,
        "metadata": metadata_to_dict(h.metadata) if h.metadata else None,
        "created_at": _iso(h.created_at),
        "accepted_at": _iso(h.accepted_at),
        "completed_at": _iso(h.completed_at),
    }


def serialize_recommendation(r: HandoffRecommendation) -> dict:
    return {
        "team_id": r.team_id,
        "team_name": r.team_name,
        "agent_id": r.agent_id,
        "agent_name": r.agent_name,
        "confidence": r.confidence,
        "priority": r.priority.value,
        "reason": r.reason,
        "estimated_wait_minutes": r.estimated_wait_minutes,
        "routing_version": r.routing_version,
        "degraded": r.degraded,
        "alternatives": [
            {
                "team_id": a.team_id,
                "team_name": a.team_name,
                "team_type": a.team_type.value,
                "utilization_rate": a.utilization_rate,
                "confidence": a.confidence,
                "reason": a.reason,
            }
            for a in r.alternatives
        ],
    }


def serialize_result(result: AssignmentResult) -> dict:
    return {
        "success": result.success,
        "conversation_id": result.conversation_id,
        "team_id": result.team_id,
        "agent_id": result.agent_id,
        "handoff_id": result.handoff_id,
        "failure": result.failure.value if result.failure else None,
        "reason": result.reason,
        "degraded": result.degraded,
        "recommendation": (
            serialize_recommendation(result.recommendation) if result.recommendation else None
        ),
    }


def serialize_capacity(c: TeamCapacity) -> dict:
    return {
        "team_id": c.team_id,
        "team_name": c.team_name,
        "team_type": c.team_type.value,
        "priority": c.priority,
        "active_agents": c.active_agents,
        "online_agents": c.online_agents,
        "current_load": c.current_load,
        "max_capacity": c.max_capacity,
        "utilization_rate": round(c.utilization_rate, 2),
        "is_eligible": c.is_eligible,
    }
