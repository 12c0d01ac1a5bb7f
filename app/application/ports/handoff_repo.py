"""Port interface for handoff persistence."""

from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.entities.handoff import Handoff
from app.domain.value_objects.enums import HandoffStatus


class HandoffRepository(ABC):
    @abstractmethod
    async def save(self, handoff: Handoff) -> Handoff:
        """Insert a new handoff and set its id."""
        ...

    @abstractmethod
    async def get_by_id(self, handoff_id: int) -> Handoff | None:
        ...

    @abstractmethod
    async def mark_accepted(
        self, handoff_id: int, accepted_at: datetime, to_user_id: int, to_team_id: int | None
    ) -> bool:
        """pending → accepted. Returns False if the handoff was not pending."""
        ...

    @abstractmethod
    async def mark_completed(self, handoff_id: int, completed_at: datetime) -> bool:
        """pending|accepted → completed. Returns False if it was already terminal."""
        ...

    @abstractmethod
    async def mark_rejected(
        self,
        handoff_id: int,
        reason: str | None,
        from_statuses: tuple[HandoffStatus, ...] = (HandoffStatus.PENDING,),
    ) -> bool:
        """Move to rejected from one of ``from_statuses``. Returns False otherwise."""
        ...

    @abstractmethod
    async def get_pending_for_user(self, user_id: int) -> list[Handoff]:
        """Most urgent first, then oldest first."""
        ...

    @abstractmethod
    async def get_pending_for_team(self, team_id: int) -> list[Handoff]:
        """Most urgent first, then oldest first."""
        ...

    @abstractmethod
    async def count_for_conversation_since(self, conversation_id: int, since: datetime) -> int:
        ...

    @abstractmethod
    async def get_for_conversation(
        self, conversation_id: int, since: datetime | None = None
    ) -> list[Handoff]:
        """Handoff history of one conversation, newest first."""
        ...

    @abstractmethod
    async def get_created_since(self, since: datetime) -> list[Handoff]:
        ...
