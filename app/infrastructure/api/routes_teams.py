"""Team observability endpoints — capacity and equity."""

from fastapi import APIRouter, Depends

from app.application.use_cases.assignment_service import AssignmentService
from app.infrastructure.api.dependencies import get_assignment_service
from app.infrastructure.api.serializers import serialize_capacity

router = APIRouter(prefix="/teams", tags=["teams"])


@router.get("/capacity")
async def team_capacity(service: AssignmentService = Depends(get_assignment_service)):
    capacities = await service.get_team_capacities()
    return {
        "total": len(capacities),
        "teams": [serialize_capacity(c) for c in capacities],
    }


@router.get("/{team_id}/equity")
async def team_equity(team_id: int, service: AssignmentService = Depends(get_assignment_service)):
    """How evenly the team's assignments are spread over the history window."""
    report = await service.get_equity_stats(team_id)
    return {
        "team_id": report.team_id,
        "total_agents": report.total_agents,
        "online_agents": report.online_agents,
        "average_assignments": report.average_assignments,
        "standard_deviation": report.standard_deviation,
        "equity_level": report.equity_level.value,
        "agents": [
            {
                "agent_id": a.agent_id,
                "name": a.name,
                "is_online": a.is_online,
                "total_assignments": a.total_assignments,
                "active_conversations": a.active_conversations,
                "distribution_score": a.distribution_score,
                "equity_ratio": a.equity_ratio,
            }
            for a in report.agents
        ],
    }
