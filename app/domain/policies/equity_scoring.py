"""EquityScorer — turns an agent's load metrics into a sortable distribution score."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

WEIGHT_HISTORY = 10
WEIGHT_ACTIVE = 1
RECENCY_WINDOW_HOURS = 10.0


@dataclass(frozen=True)
class AgentLoad:
    """Workload of one roster member, as read from a single snapshot."""

    agent_id: int
    name: str
    is_online: bool
    is_active: bool
    role_capacity: int
    active_conversations: int
    total_assignments: int  # within the rolling history window
    last_assigned_at: datetime | None

    def has_capacity(self) -> bool:
        return self.active_conversations < self.role_capacity


@dataclass(frozen=True)
class AssignmentScore:
    """Derived, never persisted."""

    load: AgentLoad
    recency_penalty: float
    distribution_score: float

    @property
    def agent_id(self) -> int:
        return self.load.agent_id


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def recency_penalty(last_assigned_at: datetime | None, now: datetime) -> float:
    """Up to 10 points for a very recent assignment, decaying linearly to 0 after 10 h."""
    if last_assigned_at is None:
        return 0.0
    hours = (_as_utc(now) - _as_utc(last_assigned_at)).total_seconds() / 3600
    return max(0.0, min(RECENCY_WINDOW_HOURS, RECENCY_WINDOW_HOURS - hours))


def distribution_score(
    total_assignments: int,
    active_conversations: int,
    penalty: float,
) -> float:
    """Lower is more deserving of the next assignment.

    score = total_assignments * 10 + active_conversations * 1 + penalty
    """
    return total_assignments * WEIGHT_HISTORY + active_conversations * WEIGHT_ACTIVE + penalty


def score_agent(load: AgentLoad, now: datetime) -> AssignmentScore:
    penalty = recency_penalty(load.last_assigned_at, now)
    return AssignmentScore(
        load=load,
        recency_penalty=penalty,
        distribution_score=distribution_score(
            load.total_assignments, load.active_conversations, penalty
        ),
    )
