"""HandoffStats — counts handoffs by status, type and priority."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from app.domain.entities.handoff import Handoff
from app.domain.value_objects.enums import HandoffStatus


@dataclass(frozen=True)
class HandoffStats:
    total: int
    pending: int
    accepted: int
    completed: int
    rejected: int
    by_type: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)


def summarize_handoffs(handoffs: list[Handoff]) -> HandoffStats:
    statuses = Counter(h.status for h in handoffs)
    return HandoffStats(
        total=len(handoffs),
        pending=statuses[HandoffStatus.PENDING],
        accepted=statuses[HandoffStatus.ACCEPTED],
        completed=statuses[HandoffStatus.COMPLETED],
        rejected=statuses[HandoffStatus.REJECTED],
        by_type=dict(Counter(h.type.value for h in handoffs)),
        by_priority=dict(Counter(h.priority.value for h in handoffs)),
    )
