"""AssignmentService — façade over routing and the handoff lifecycle.

Automatic routing failures come back as ``AssignmentResult`` values so the
caller can leave the conversation in the triage queue; input errors on manual
operations raise before anything is written.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from app.application.ports.agent_repo import AgentRepository
from app.application.ports.classifier_port import ClassifierPort
from app.application.ports.conversation_repo import ConversationRepository
from app.application.ports.handoff_repo import HandoffRepository
from app.application.ports.team_repo import TeamRepository
from app.application.use_cases.capacity_analysis import AgentLoadCalculator
from app.application.use_cases.handoff_state_machine import (
    HandoffExecution,
    HandoffRequest,
    HandoffStateMachine,
)
from app.application.use_cases.team_router import (
    HandoffRecommendation,
    RoutingContext,
    TeamRouter,
)
from app.domain.entities.conversation import Conversation
from app.domain.entities.handoff import Handoff
from app.domain.exceptions import (
    ClassificationUnavailable,
    ConversationNotFound,
    HandoffNotFound,
    NoAvailableAgent,
    NoEligibleTeam,
    TeamNotFound,
)
from app.domain.policies.equity_report import EquityReport, build_equity_report
from app.domain.policies.escalation import (
    EscalationCriteria,
    EscalationDecision,
    evaluate_escalation,
)
from app.domain.policies.handoff_stats import HandoffStats, summarize_handoffs
from app.domain.value_objects.capacity import TeamCapacity
from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import HandoffType
from app.domain.value_objects.handoff_metadata import (
    EscalationMetadata,
    ManualTransferMetadata,
    RoutingMetadata,
)

logger = logging.getLogger(__name__)

ESCALATION_WINDOW = timedelta(hours=24)


class AssignmentFailure(str, Enum):
    NO_ELIGIBLE_TEAM = "no eligible team"
    NO_AVAILABLE_AGENT = "team has no available agent"
    ALREADY_PROCESSED = "handoff already processed"


@dataclass(frozen=True)
class AssignmentResult:
    conversation_id: int
    team_id: int | None = None
    agent_id: int | None = None
    handoff_id: int | None = None
    failure: AssignmentFailure | None = None
    reason: str | None = None
    recommendation: HandoffRecommendation | None = None

    @property
    def success(self) -> bool:
        return self.failure is None

    @property
    def degraded(self) -> bool:
        return self.recommendation is not None and self.recommendation.degraded


@dataclass(frozen=True)
class ManualTarget:
    team_id: int | None = None
    user_id: int | None = None

    @property
    def is_unassign(self) -> bool:
        return self.team_id is None and self.user_id is None


class AssignmentService:
    """Entry points used by the route layer."""

    def __init__(
        self,
        router: TeamRouter,
        state_machine: HandoffStateMachine,
        conversation_repo: ConversationRepository,
        handoff_repo: HandoffRepository,
        team_repo: TeamRepository,
        agent_repo: AgentRepository,
        load_calculator: AgentLoadCalculator,
        clock: Callable[[], datetime],
        classifier: ClassifierPort | None = None,
        escalation_criteria: EscalationCriteria | None = None,
    ):
        self._router = router
        self._machine = state_machine
        self._conversations = conversation_repo
        self._handoffs = handoff_repo
        self._teams = team_repo
        self._agents = agent_repo
        self._loads = load_calculator
        self._clock = clock
        self._classifier = classifier
        self._escalation = escalation_criteria or EscalationCriteria()

    # ── Assignment ──────────────────────────────────────────────────

    async def assign_automatically(
        self,
        conversation_id: int,
        classification: Classification | None,
    ) -> AssignmentResult:
        """Route, create an automatic handoff and execute it.

        ``classification=None`` routes to the least-utilized eligible team.

        Raises:
            ConversationNotFound: unknown conversation.
        """
        conversation = await self._get_conversation(conversation_id)
        if conversation.is_assigned():
            logger.info(
                "Conversation %s already assigned to team %s / user %s, skipping",
                conversation_id, conversation.assigned_team_id, conversation.assigned_user_id,
            )
            return AssignmentResult(
                conversation_id=conversation_id,
                team_id=conversation.assigned_team_id,
                agent_id=conversation.assigned_user_id,
                reason="already assigned",
            )

        try:
            recommendation = await self._route(conversation, classification)
        except NoEligibleTeam as e:
            logger.warning("Conversation %s left unassigned: %s", conversation_id, e)
            return AssignmentResult(
                conversation_id=conversation_id,
                failure=AssignmentFailure.NO_ELIGIBLE_TEAM,
                reason=str(e),
            )
        except NoAvailableAgent as e:
            logger.warning("Conversation %s left unassigned: %s", conversation_id, e)
            return AssignmentResult(
                conversation_id=conversation_id,
                team_id=e.team_id,
                failure=AssignmentFailure.NO_AVAILABLE_AGENT,
                reason=str(e),
            )

        handoff = await self._machine.create(
            HandoffRequest(
                conversation_id=conversation_id,
                type=HandoffType.AUTOMATIC,
                to_team_id=recommendation.team_id,
                to_user_id=recommendation.agent_id,
                reason=recommendation.reason,
                priority=recommendation.priority,
                classification=classification,
                metadata=RoutingMetadata(
                    confidence=recommendation.confidence,
                    estimated_wait_minutes=recommendation.estimated_wait_minutes,
                    routing_version=recommendation.routing_version,
                    alternative_team_ids=tuple(a.team_id for a in recommendation.alternatives),
                    degraded=recommendation.degraded,
                ),
            )
        )
        execution = await self._machine.execute(handoff.id)
        return _result_from_execution(conversation_id, execution, recommendation)

    async def _route(
        self,
        conversation: Conversation,
        classification: Classification | None,
    ) -> HandoffRecommendation:
        context = _context_for(conversation)
        if classification is None:
            recommendation = await self._router.recommend_unclassified(context)
        else:
            recommendation = await self._router.recommend(classification, context)
        if recommendation.agent_id is None:
            raise NoAvailableAgent(recommendation.team_id)
        return recommendation

    async def assign_from_message(self, conversation_id: int, message_text: str) -> AssignmentResult:
        """Classify the message, then assign; a classifier outage degrades routing."""
        classification = None
        if self._classifier is None:
            logger.warning("No classifier configured, conversation %s routed unclassified", conversation_id)
        else:
            try:
                classification = await self._classifier.classify(conversation_id, message_text)
            except ClassificationUnavailable as e:
                logger.warning("Classifier unavailable for conversation %s: %s", conversation_id, e)
        return await self.assign_automatically(conversation_id, classification)

    async def assign_manually(
        self,
        conversation_id: int,
        target: ManualTarget,
        actor_id: int | None = None,
        reason: str | None = None,
    ) -> AssignmentResult:
        """Create and execute a manual handoff; an empty target unassigns.

        Raises:
            ConversationNotFound, InvalidHandoffTarget
        """
        handoff = await self._machine.create(
            HandoffRequest(
                conversation_id=conversation_id,
                type=HandoffType.MANUAL,
                to_team_id=target.team_id,
                to_user_id=target.user_id,
                reason=reason,
                metadata=ManualTransferMetadata(actor_id=actor_id),
                unassign=target.is_unassign,
                allow_membership_override=await self._can_override(actor_id),
            )
        )
        execution = await self._machine.execute(handoff.id)
        return _result_from_execution(conversation_id, execution)

    async def recommend(
        self,
        conversation_id: int,
        classification: Classification,
    ) -> HandoffRecommendation:
        """Preview routing without writing anything.

        Raises:
            ConversationNotFound, NoEligibleTeam
        """
        conversation = await self._get_conversation(conversation_id)
        return await self._router.recommend(classification, _context_for(conversation))

    # ── Observability ───────────────────────────────────────────────

    async def get_team_capacities(self) -> list[TeamCapacity]:
        return await self._router.capacities()

    async def get_equity_stats(self, team_id: int) -> EquityReport:
        team = await self._teams.get_by_id(team_id)
        if team is None:
            raise TeamNotFound(team_id)
        loads = await self._loads.team_loads(team_id)
        return build_equity_report(team_id, loads, self._clock())

    async def get_handoff_stats(self, days: int = 7) -> HandoffStats:
        if days <= 0:
            raise ValueError(f"days must be positive, got {days}")
        handoffs = await self._handoffs.get_created_since(self._clock() - timedelta(days=days))
        return summarize_handoffs(handoffs)

    async def evaluate_escalation(
        self,
        conversation_id: int,
        classification: Classification,
    ) -> EscalationDecision:
        await self._get_conversation(conversation_id)
        recent = await self._handoffs.count_for_conversation_since(
            conversation_id, self._clock() - ESCALATION_WINDOW
        )
        decision = evaluate_escalation(classification, recent, self._escalation)
        if decision.should_escalate:
            logger.info(
                "Conversation %s should escalate: %s", conversation_id, ", ".join(decision.reasons)
            )
        return decision

    # ── Handoff lifecycle ───────────────────────────────────────────

    async def create_handoff(self, request: HandoffRequest) -> Handoff:
        """Create a handoff; everything except escalations executes right away."""
        if isinstance(request.metadata, ManualTransferMetadata):
            request = dataclasses.replace(
                request,
                allow_membership_override=await self._can_override(request.metadata.actor_id),
            )
        if isinstance(request.metadata, EscalationMetadata):
            recent = await self._handoffs.count_for_conversation_since(
                request.conversation_id, self._clock() - ESCALATION_WINDOW
            )
            request = dataclasses.replace(
                request, metadata=dataclasses.replace(request.metadata, previous_handoffs=recent)
            )
        handoff = await self._machine.create(request)
        if handoff.requires_confirmation():
            return handoff
        execution = await self._machine.execute(handoff.id)
        return execution.handoff

    async def accept_handoff(self, handoff_id: int, agent_id: int) -> HandoffExecution:
        return await self._machine.accept(handoff_id, agent_id)

    async def reject_handoff(self, handoff_id: int, reason: str | None = None) -> Handoff:
        return await self._machine.reject(handoff_id, reason)

    async def get_handoff(self, handoff_id: int) -> Handoff:
        handoff = await self._handoffs.get_by_id(handoff_id)
        if handoff is None:
            raise HandoffNotFound(handoff_id)
        return handoff

    async def get_conversation_handoffs(
        self,
        conversation_id: int,
        days: int | None = None,
    ) -> list[Handoff]:
        """Handoff history of a conversation, newest first; ``days`` limits the window.

        Raises:
            ConversationNotFound, ValueError
        """
        if days is not None and days <= 0:
            raise ValueError(f"days must be positive, got {days}")
        await self._get_conversation(conversation_id)
        since = self._clock() - timedelta(days=days) if days is not None else None
        return await self._handoffs.get_for_conversation(conversation_id, since)

    async def get_pending_handoffs(
        self,
        agent_id: int | None = None,
        team_id: int | None = None,
    ) -> list[Handoff]:
        if (agent_id is None) == (team_id is None):
            raise ValueError("Pass exactly one of agent_id or team_id")
        if agent_id is not None:
            return await self._handoffs.get_pending_for_user(agent_id)
        return await self._handoffs.get_pending_for_team(team_id)

    async def _can_override(self, actor_id: int | None) -> bool:
        if actor_id is None:
            return False
        actor = await self._agents.get_by_id(actor_id)
        return actor is not None and actor.can_override_membership()

    async def _get_conversation(self, conversation_id: int) -> Conversation:
        conversation = await self._conversations.get_by_id(conversation_id)
        if conversation is None:
            raise ConversationNotFound(conversation_id)
        return conversation


def _context_for(conversation: Conversation) -> RoutingContext:
    return RoutingContext(
        current_team_id=conversation.assigned_team_id,
        current_user_id=conversation.assigned_user_id,
        channel=conversation.channel,
    )


def _result_from_execution(
    conversation_id: int,
    execution: HandoffExecution,
    recommendation: HandoffRecommendation | None = None,
) -> AssignmentResult:
    handoff = execution.handoff
    if not execution.completed:
        return AssignmentResult(
            conversation_id=conversation_id,
            handoff_id=handoff.id,
            failure=AssignmentFailure.ALREADY_PROCESSED,
            reason=handoff.rejection_reason,
            recommendation=recommendation,
        )
    return AssignmentResult(
        conversation_id=conversation_id,
        team_id=handoff.to_team_id,
        agent_id=handoff.to_user_id,
        handoff_id=handoff.id,
        reason=handoff.reason,
        recommendation=recommendation,
    )
