"""Team entity — a group of agents that owns conversations of one kind."""

from dataclasses import dataclass

from app.domain.value_objects.enums import TeamType


@dataclass
class Team:
    id: int | None
    name: str
    team_type: TeamType
    max_capacity: int | None = None  # None = derived from the members' role capacity
    priority: int = 0
    is_active: bool = True
    auto_assignment_enabled: bool = True

    def __post_init__(self) -> None:
        if self.max_capacity is not None and self.max_capacity < 0:
            raise ValueError(f"max_capacity must be >= 0, got {self.max_capacity}")

    def effective_capacity(self, roster_capacity: int) -> int:
        """Explicit ceiling when configured, otherwise the sum of member capacities."""
        if self.max_capacity is not None:
            return self.max_capacity
        return max(0, roster_capacity)

    def accepts_automatic_routing(self) -> bool:
        return self.is_active and self.auto_assignment_enabled
