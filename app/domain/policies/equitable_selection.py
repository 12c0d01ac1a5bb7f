"""EquitableSelector — picks the next agent of a team by distribution score."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from app.domain.policies.equity_scoring import AgentLoad, AssignmentScore, score_agent

# Sorts never-assigned agents ahead of everyone else
_NEVER_ASSIGNED = datetime.min.replace(tzinfo=timezone.utc)


class CandidateTier(str, Enum):
    ONLINE_AVAILABLE = "online_available"
    ONLINE_AT_CAPACITY = "online_at_capacity"
    ACTIVE_AVAILABLE = "active_available"
    ANY_ACTIVE = "any_active"


@dataclass(frozen=True)
class AgentSelection:
    """Result of the selector."""

    score: AssignmentScore
    tier: CandidateTier
    business_hours: bool
    pool_size: int
    tied_candidates: int

    @property
    def agent_id(self) -> int:
        return self.score.load.agent_id

    @property
    def agent_name(self) -> str:
        return self.score.load.name


def build_candidate_pool(
    loads: list[AgentLoad],
    business_hours: bool,
) -> tuple[list[AgentLoad], CandidateTier | None]:
    """Narrow the roster to the agents allowed to receive the next conversation.

    During business hours online agents under capacity come first, then online
    agents at capacity, then every active agent. Outside business hours online
    status is ignored: active agents under capacity, else every active agent.
    """
    active = [a for a in loads if a.is_active]
    if not active:
        return [], None

    if business_hours:
        online = [a for a in active if a.is_online]
        online_available = [a for a in online if a.has_capacity()]
        if online_available:
            return online_available, CandidateTier.ONLINE_AVAILABLE
        if online:
            return online, CandidateTier.ONLINE_AT_CAPACITY
        return active, CandidateTier.ANY_ACTIVE

    available = [a for a in active if a.has_capacity()]
    if available:
        return available, CandidateTier.ACTIVE_AVAILABLE
    return active, CandidateTier.ANY_ACTIVE


def _sort_key(score: AssignmentScore) -> tuple:
    last = score.load.last_assigned_at
    if last is None:
        last = _NEVER_ASSIGNED
    elif last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return (score.distribution_score, score.load.active_conversations, last)


def rank_candidates(pool: list[AgentLoad], now: datetime) -> list[AssignmentScore]:
    """Ascending by (distribution score, active conversations, last assignment)."""
    scores = [score_agent(load, now) for load in pool]
    return sorted(scores, key=lambda s: (_sort_key(s), s.load.agent_id))


def select_agent(
    loads: list[AgentLoad],
    *,
    now: datetime,
    business_hours: bool,
    rng: random.Random,
) -> AgentSelection | None:
    """Return the most deserving agent, or None when the roster has no active member.

    Candidates tied on all three sort keys are broken uniformly at random
    with the injected ``rng``.
    """
    pool, tier = build_candidate_pool(loads, business_hours)
    if not pool:
        return None

    ranked = rank_candidates(pool, now)
    best_key = _sort_key(ranked[0])
    tied = [s for s in ranked if _sort_key(s) == best_key]
    chosen = tied[0] if len(tied) == 1 else rng.choice(tied)

    return AgentSelection(
        score=chosen,
        tier=tier,
        business_hours=business_hours,
        pool_size=len(pool),
        tied_candidates=len(tied),
    )
