"""TeamCapacity value object — one team's load at a single instant."""

from dataclasses import dataclass

from app.domain.value_objects.enums import TeamType


@dataclass(frozen=True)
class TeamCapacity:
    team_id: int
    team_name: str
    team_type: TeamType
    priority: int
    active_agents: int
    online_agents: int
    current_load: int
    max_capacity: int
    is_active: bool
    auto_assignment_enabled: bool

    @property
    def utilization_rate(self) -> float:
        """Percentage 0..100+ of capacity in use; 0 when the team has no capacity."""
        if self.max_capacity <= 0:
            return 0.0
        return self.current_load / self.max_capacity * 100

    @property
    def is_eligible(self) -> bool:
        """Whether automatic routing may pick this team."""
        return self.is_active and self.auto_assignment_enabled
