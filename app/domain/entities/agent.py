"""Agent entity — a human who handles conversations."""

from dataclasses import dataclass, field

from app.domain.value_objects.enums import AgentRole

# Roles allowed to place an agent outside the target team's roster
OVERRIDE_ROLES = frozenset({AgentRole.SUPERVISOR, AgentRole.MANAGER, AgentRole.ADMIN})


@dataclass(frozen=True)
class TeamMembership:
    team_id: int
    is_active: bool = True


@dataclass
class Agent:
    id: int | None
    name: str
    role: AgentRole = AgentRole.AGENT
    is_online: bool = False
    is_active: bool = True
    role_capacity: int = 10
    memberships: list[TeamMembership] = field(default_factory=list)

    def active_team_ids(self) -> list[int]:
        return sorted(m.team_id for m in self.memberships if m.is_active)

    def is_member_of(self, team_id: int) -> bool:
        return team_id in self.active_team_ids()

    def primary_team_id(self) -> int | None:
        teams = self.active_team_ids()
        return teams[0] if teams else None

    def can_override_membership(self) -> bool:
        return self.is_active and self.role in OVERRIDE_ROLES
