"""CapacityAnalyzer and AgentLoadCalculator — read-only load snapshots."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from app.application.ports.agent_repo import AgentRepository
from app.application.ports.team_repo import TeamLoadRow, TeamRepository
from app.domain.policies.equity_scoring import AgentLoad
from app.domain.value_objects.capacity import TeamCapacity

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DAYS = 30


def _to_capacity(row: TeamLoadRow) -> TeamCapacity:
    team = row.team
    return TeamCapacity(
        team_id=team.id,
        team_name=team.name,
        team_type=team.team_type,
        priority=team.priority,
        active_agents=row.active_agents,
        online_agents=row.online_agents,
        current_load=row.current_load,
        max_capacity=team.effective_capacity(row.roster_capacity),
        is_active=team.is_active,
        auto_assignment_enabled=team.auto_assignment_enabled,
    )


class CapacityAnalyzer:
    """Current load and utilization of every active team."""

    def __init__(self, team_repo: TeamRepository):
        self._teams = team_repo

    async def snapshot(self) -> list[TeamCapacity]:
        rows = await self._teams.get_load_snapshot()
        capacities = [_to_capacity(row) for row in rows if row.team.is_active]
        logger.debug("Capacity snapshot: %d active teams", len(capacities))
        return capacities


class AgentLoadCalculator:
    """Per-agent workload of a team, with assignments counted over a rolling window."""

    def __init__(
        self,
        agent_repo: AgentRepository,
        clock: Callable[[], datetime],
        history_days: int = DEFAULT_HISTORY_DAYS,
    ):
        if history_days <= 0:
            raise ValueError(f"history_days must be positive, got {history_days}")
        self._agents = agent_repo
        self._clock = clock
        self._history = timedelta(days=history_days)

    async def team_loads(self, team_id: int) -> list[AgentLoad]:
        since = self._clock() - self._history
        rows = await self._agents.get_roster_workload(team_id, since)
        return [
            AgentLoad(
                agent_id=row.agent.id,
                name=row.agent.name,
                is_online=row.agent.is_online,
                is_active=row.agent.is_active,
                role_capacity=row.agent.role_capacity,
                active_conversations=row.active_conversations,
                total_assignments=row.total_assignments,
                last_assigned_at=row.last_assigned_at,
            )
            for row in rows
            if row.agent.is_active
        ]
