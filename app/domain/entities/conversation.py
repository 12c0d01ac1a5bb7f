"""Conversation entity — one customer thread on one channel."""

from dataclasses import dataclass
from datetime import datetime

from app.domain.value_objects.enums import (
    ACTIVE_CONVERSATION_STATUSES,
    AssignmentMethod,
    ConversationPriority,
    ConversationStatus,
)


@dataclass
class Conversation:
    id: int | None
    contact_id: int
    channel: str
    status: ConversationStatus = ConversationStatus.OPEN
    assigned_team_id: int | None = None
    assigned_user_id: int | None = None
    assignment_method: AssignmentMethod | None = None
    assigned_at: datetime | None = None
    priority: ConversationPriority = ConversationPriority.NORMAL
    version: int = 0
    last_handoff_id: int | None = None  # handoff that produced the current ownership

    def is_active(self) -> bool:
        return self.status in ACTIVE_CONVERSATION_STATUSES

    def is_assigned(self) -> bool:
        return self.assigned_team_id is not None and self.assigned_user_id is not None
