"""Port interface for conversation persistence."""

from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.entities.conversation import Conversation
from app.domain.value_objects.enums import AssignmentMethod, ConversationPriority


class ConversationRepository(ABC):
    @abstractmethod
    async def get_by_id(self, conversation_id: int) -> Conversation | None:
        ...

    @abstractmethod
    async def apply_assignment(
        self,
        conversation_id: int,
        expected_version: int,
        team_id: int | None,
        user_id: int | None,
        method: AssignmentMethod | None,
        priority: ConversationPriority,
        assigned_at: datetime | None,
        handoff_id: int | None,
    ) -> bool:
        """Compare-and-swap the ownership fields, record ``handoff_id`` and bump the version.

        Returns False (and writes nothing) when the stored version no longer
        equals ``expected_version``.
        """
        ...
