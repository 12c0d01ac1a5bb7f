"""TeamRouter — classification → team + agent recommendation (no side effects)."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from app.application.use_cases.capacity_analysis import AgentLoadCalculator, CapacityAnalyzer
from app.domain.exceptions import NoEligibleTeam
from app.domain.policies.business_hours import BusinessHoursPolicy
from app.domain.policies.equitable_selection import AgentSelection, select_agent
from app.domain.policies.team_routing import (
    AlternativeTeam,
    RoutingTable,
    choose_fallback_team,
    choose_team,
    derive_priority,
    describe_choice,
    estimate_wait_minutes,
    list_alternatives,
    recommendation_confidence,
)
from app.domain.value_objects.capacity import TeamCapacity
from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import ConversationPriority

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutingContext:
    """What the router knows about the conversation besides its classification."""

    current_team_id: int | None = None
    current_user_id: int | None = None
    channel: str | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class HandoffRecommendation:
    team_id: int
    team_name: str
    agent_id: int | None
    agent_name: str | None
    confidence: float
    priority: ConversationPriority
    reason: str
    estimated_wait_minutes: int
    routing_version: str
    alternatives: list[AlternativeTeam] = field(default_factory=list)
    degraded: bool = False  # routed without a classification


class TeamRouter:
    """Recommends a team and agent for a conversation.

    Capacities are read once per call, so the chosen team, its alternatives
    and the wait estimate all come from the same snapshot.
    """

    def __init__(
        self,
        capacity_analyzer: CapacityAnalyzer,
        load_calculator: AgentLoadCalculator,
        routing_table: RoutingTable,
        business_hours: BusinessHoursPolicy,
        clock: Callable[[], datetime],
        rng: random.Random | None = None,
    ):
        self._capacity = capacity_analyzer
        self._loads = load_calculator
        self._table = routing_table
        self._business_hours = business_hours
        self._clock = clock
        self._rng = rng or random.Random()

    @property
    def routing_table(self) -> RoutingTable:
        return self._table

    async def recommend(
        self,
        classification: Classification,
        context: RoutingContext | None = None,
    ) -> HandoffRecommendation:
        """Recommend a team and agent for a classified conversation.

        Raises:
            NoEligibleTeam: no active team accepts automatic routing.
        """
        context = context or RoutingContext()
        capacities = await self._capacity.snapshot()

        choice = choose_team(classification, capacities, self._table, context.current_team_id)
        if choice is None:
            raise NoEligibleTeam(
                f"No eligible team for intent '{classification.intent}'"
            )
        if not choice.matched_preferred:
            logger.warning(
                "No %s team under %.0f%% utilization for intent '%s', widened to %s",
                choice.preferred_type.value, self._table.overload_threshold,
                classification.intent, choice.capacity.team_name,
            )

        team = choice.capacity
        selection = await self.select_agent(team.team_id)
        recommendation = HandoffRecommendation(
            team_id=team.team_id,
            team_name=team.team_name,
            agent_id=selection.agent_id if selection else None,
            agent_name=selection.agent_name if selection else None,
            confidence=recommendation_confidence(classification, choice, self._table),
            priority=derive_priority(classification),
            reason=describe_choice(classification, choice),
            estimated_wait_minutes=estimate_wait_minutes(team),
            routing_version=self._table.version,
            alternatives=list_alternatives(
                classification, capacities, team.team_id, self._table
            ),
        )
        logger.info(
            "Intent '%s' → team %s, agent %s (confidence %.1f, priority %s)",
            classification.intent, team.team_name, recommendation.agent_name,
            recommendation.confidence, recommendation.priority.value,
        )
        return recommendation

    async def recommend_unclassified(
        self,
        context: RoutingContext | None = None,
    ) -> HandoffRecommendation:
        """Degraded routing: least-utilized eligible team, no specialization weighting.

        Raises:
            NoEligibleTeam: no active team accepts automatic routing.
        """
        capacities = await self._capacity.snapshot()
        team = choose_fallback_team(capacities)
        if team is None:
            raise NoEligibleTeam("No eligible team for unclassified conversation")

        selection = await self.select_agent(team.team_id)
        logger.warning(
            "Classification unavailable, routing to least-utilized team %s", team.team_name
        )
        return HandoffRecommendation(
            team_id=team.team_id,
            team_name=team.team_name,
            agent_id=selection.agent_id if selection else None,
            agent_name=selection.agent_name if selection else None,
            confidence=self._table.fallback_confidence,
            priority=ConversationPriority.NORMAL,
            reason=(
                f"Classification unavailable; routed to least-utilized team "
                f"{team.team_name} at {round(team.utilization_rate)}% utilization"
            ),
            estimated_wait_minutes=estimate_wait_minutes(team),
            routing_version=self._table.version,
            alternatives=list_alternatives(None, capacities, team.team_id, self._table),
            degraded=True,
        )

    async def select_agent(self, team_id: int) -> AgentSelection | None:
        """Run the equitable selector on one team's current roster."""
        now = self._clock()
        loads = await self._loads.team_loads(team_id)
        selection = select_agent(
            loads,
            now=now,
            business_hours=self._business_hours.is_open(now),
            rng=self._rng,
        )
        if selection is None:
            logger.warning("Team %s has no active agent to select", team_id)
        return selection

    async def capacities(self) -> list[TeamCapacity]:
        return await self._capacity.snapshot()
