"""Handoff entity — a request (and, once executed, a record) of an ownership transfer."""

from dataclasses import dataclass
from datetime import datetime

from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import ConversationPriority, HandoffStatus, HandoffType
from app.domain.value_objects.handoff_metadata import HandoffMetadata, ManualTransferMetadata


@dataclass
class Handoff:
    id: int | None
    conversation_id: int
    type: HandoffType
    to_team_id: int | None = None
    to_user_id: int | None = None
    from_team_id: int | None = None
    from_user_id: int | None = None
    reason: str | None = None
    priority: ConversationPriority = ConversationPriority.NORMAL
    status: HandoffStatus = HandoffStatus.PENDING
    classification_snapshot: Classification | None = None
    metadata: HandoffMetadata | None = None
    conversation_version: int = 0
    rejection_reason: str | None = None
    created_at: datetime | None = None
    accepted_at: datetime | None = None
    completed_at: datetime | None = None

    def is_open(self) -> bool:
        """Pending or accepted, i.e. still executable."""
        return self.status in (HandoffStatus.PENDING, HandoffStatus.ACCEPTED)

    def is_unassign(self) -> bool:
        return isinstance(self.metadata, ManualTransferMetadata) and self.metadata.unassign

    def requires_confirmation(self) -> bool:
        """Escalations wait for an explicit accept/reject; other kinds execute at once."""
        return self.type == HandoffType.ESCALATION
