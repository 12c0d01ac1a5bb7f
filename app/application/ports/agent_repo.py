"""Port interface for agent (user) persistence."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from app.domain.entities.agent import Agent


@dataclass(frozen=True)
class AgentWorkloadRow:
    agent: Agent
    active_conversations: int
    total_assignments: int  # completed handoffs to the agent since the window start
    last_assigned_at: datetime | None


class AgentRepository(ABC):
    @abstractmethod
    async def get_by_id(self, agent_id: int) -> Agent | None:
        ...

    @abstractmethod
    async def get_roster_workload(self, team_id: int, since: datetime) -> list[AgentWorkloadRow]:
        """Active agents with an active membership in the team, with their workload.

        Must be a single consistent read.
        """
        ...
