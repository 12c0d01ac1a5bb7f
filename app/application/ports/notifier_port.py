"""Port interface for assignment notifications (fire-and-forget)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from app.domain.value_objects.enums import HandoffType


@dataclass(frozen=True)
class AssignmentEvent:
    handoff_id: int
    conversation_id: int
    handoff_type: HandoffType
    team_id: int | None
    user_id: int | None
    previous_team_id: int | None
    previous_user_id: int | None
    completed_at: datetime


class AssignmentNotifier(ABC):
    @abstractmethod
    async def assignment_completed(self, event: AssignmentEvent) -> None:
        ...
