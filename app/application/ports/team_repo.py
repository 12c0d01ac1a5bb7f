"""Port interface for team persistence."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.domain.entities.team import Team


@dataclass(frozen=True)
class TeamLoadRow:
    """One team with its roster and load, read in a single statement."""

    team: Team
    active_agents: int
    online_agents: int
    roster_capacity: int  # sum of active members' role capacity
    current_load: int  # open + pending conversations owned by the team


class TeamRepository(ABC):
    @abstractmethod
    async def get_by_id(self, team_id: int) -> Team | None:
        ...

    @abstractmethod
    async def get_load_snapshot(self) -> list[TeamLoadRow]:
        """Return every active team with its load.

        Must be a single consistent read so loads of different teams are
        comparable.
        """
        ...
