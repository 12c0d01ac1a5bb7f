"""HandoffStateMachine — creates handoffs and moves them through their lifecycle.

``execute`` is the only place where conversation ownership changes. It does a
compare-and-swap on the conversation version plus a conditional status update
on the handoff, both inside the caller's transaction, so two concurrent
executes for the same conversation cannot both win.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from app.application.ports.agent_repo import AgentRepository
from app.application.ports.conversation_repo import ConversationRepository
from app.application.ports.handoff_repo import HandoffRepository
from app.application.ports.notifier_port import AssignmentEvent, AssignmentNotifier
from app.application.ports.team_repo import TeamRepository
from app.domain.entities.handoff import Handoff
from app.domain.exceptions import (
    ConversationNotFound,
    HandoffAlreadyProcessed,
    HandoffNotFound,
    InvalidHandoffTarget,
)
from app.domain.policies.handoff_lifecycle import (
    SUPERSEDED_REASON,
    assignment_method_for,
    resolve_target,
)
from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import ConversationPriority, HandoffStatus, HandoffType
from app.domain.value_objects.handoff_metadata import HandoffMetadata, ManualTransferMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandoffRequest:
    conversation_id: int
    type: HandoffType
    to_team_id: int | None = None
    to_user_id: int | None = None
    reason: str | None = None
    priority: ConversationPriority | None = None  # None = keep the conversation's priority
    classification: Classification | None = None
    metadata: HandoffMetadata | None = None
    unassign: bool = False
    allow_membership_override: bool = False


class ExecutionOutcome(str, Enum):
    COMPLETED = "completed"
    ALREADY_PROCESSED = "already_processed"


@dataclass(frozen=True)
class HandoffExecution:
    handoff: Handoff
    outcome: ExecutionOutcome

    @property
    def completed(self) -> bool:
        return self.outcome == ExecutionOutcome.COMPLETED


class HandoffStateMachine:
    def __init__(
        self,
        handoff_repo: HandoffRepository,
        conversation_repo: ConversationRepository,
        agent_repo: AgentRepository,
        team_repo: TeamRepository,
        notifier: AssignmentNotifier,
        clock: Callable[[], datetime],
    ):
        self._handoffs = handoff_repo
        self._conversations = conversation_repo
        self._agents = agent_repo
        self._teams = team_repo
        self._notifier = notifier
        self._clock = clock

    async def create(self, request: HandoffRequest) -> Handoff:
        """Validate the target and persist a pending handoff.

        Raises:
            ConversationNotFound: the conversation does not exist.
            InvalidHandoffTarget: no target, unknown team/user, or a user outside the team.
        """
        conversation = await self._conversations.get_by_id(request.conversation_id)
        if conversation is None:
            raise ConversationNotFound(request.conversation_id)

        if request.to_team_id is not None:
            team = await self._teams.get_by_id(request.to_team_id)
            if team is None:
                raise InvalidHandoffTarget(f"Target team {request.to_team_id} does not exist")

        agent = None
        if request.to_user_id is not None:
            agent = await self._agents.get_by_id(request.to_user_id)

        target = resolve_target(
            conversation,
            request.to_team_id,
            request.to_user_id,
            agent,
            unassign=request.unassign,
            allow_override=request.allow_membership_override,
        )

        metadata = request.metadata
        if request.type == HandoffType.MANUAL:
            if metadata is None:
                metadata = ManualTransferMetadata()
            if isinstance(metadata, ManualTransferMetadata):
                metadata = dataclasses.replace(
                    metadata,
                    unassign=request.unassign,
                    membership_override=target.membership_override,
                )

        handoff = Handoff(
            id=None,
            conversation_id=conversation.id,
            type=request.type,
            to_team_id=target.team_id,
            to_user_id=target.user_id,
            from_team_id=conversation.assigned_team_id,
            from_user_id=conversation.assigned_user_id,
            reason=request.reason,
            priority=request.priority or conversation.priority,
            status=HandoffStatus.PENDING,
            classification_snapshot=request.classification,
            metadata=metadata,
            conversation_version=conversation.version,
            created_at=self._clock(),
        )
        handoff = await self._handoffs.save(handoff)
        logger.info(
            "Handoff %s created: %s, conversation %s → team %s / user %s",
            handoff.id, handoff.type.value, handoff.conversation_id,
            handoff.to_team_id, handoff.to_user_id,
        )
        return handoff

    async def execute(self, handoff_id: int) -> HandoffExecution:
        """Apply the handoff to its conversation.

        A handoff that is no longer pending/accepted is a no-op. A handoff whose
        conversation changed owner after it was created is closed as superseded.

        Raises:
            HandoffNotFound: unknown handoff.
            ConversationNotFound: the conversation was deleted.
            HandoffAlreadyProcessed: the handoff was closed concurrently after the
                conversation write; the caller must roll back.
        """
        handoff = await self._get(handoff_id)
        if not handoff.is_open():
            logger.info(
                "Handoff %s already %s, skipping execute", handoff_id, handoff.status.value
            )
            return HandoffExecution(handoff=handoff, outcome=ExecutionOutcome.ALREADY_PROCESSED)

        conversation = await self._conversations.get_by_id(handoff.conversation_id)
        if conversation is None:
            raise ConversationNotFound(handoff.conversation_id)

        now = self._clock()
        unassign = handoff.is_unassign()
        swapped = await self._conversations.apply_assignment(
            conversation_id=conversation.id,
            expected_version=handoff.conversation_version,
            team_id=handoff.to_team_id,
            user_id=handoff.to_user_id,
            method=None if unassign else assignment_method_for(handoff.type, handoff.to_user_id),
            priority=handoff.priority,
            assigned_at=None if unassign else now,
            handoff_id=handoff.id,
        )
        if not swapped:
            return await self._close_superseded(handoff)

        if not await self._handoffs.mark_completed(handoff.id, now):
            raise HandoffAlreadyProcessed(handoff.id, "closed during execute")

        completed = dataclasses.replace(handoff, status=HandoffStatus.COMPLETED, completed_at=now)
        logger.info(
            "Handoff %s completed: conversation %s now team %s / user %s",
            handoff.id, conversation.id, handoff.to_team_id, handoff.to_user_id,
        )
        await self._notify(completed)
        return HandoffExecution(handoff=completed, outcome=ExecutionOutcome.COMPLETED)

    async def accept(self, handoff_id: int, agent_id: int) -> HandoffExecution:
        """pending → accepted, then execute.

        Accepting a team-only handoff claims it for the accepting agent.

        Raises:
            HandoffNotFound, HandoffAlreadyProcessed, InvalidHandoffTarget
        """
        handoff = await self._get(handoff_id)
        if handoff.status != HandoffStatus.PENDING:
            raise HandoffAlreadyProcessed(handoff.id, handoff.status.value)

        agent = await self._agents.get_by_id(agent_id)
        if agent is None or not agent.is_active:
            raise InvalidHandoffTarget(f"User {agent_id} cannot accept handoffs")
        if handoff.to_user_id is not None and handoff.to_user_id != agent_id:
            raise InvalidHandoffTarget(
                f"Handoff {handoff.id} is addressed to user {handoff.to_user_id}"
            )
        if (
            handoff.to_user_id is None
            and handoff.to_team_id is not None
            and not agent.is_member_of(handoff.to_team_id)
            and not agent.can_override_membership()
        ):
            raise InvalidHandoffTarget(
                f"User {agent_id} is not a member of team {handoff.to_team_id}"
            )

        team_id = handoff.to_team_id if handoff.to_team_id is not None else agent.primary_team_id()
        if not await self._handoffs.mark_accepted(handoff.id, self._clock(), agent_id, team_id):
            raise HandoffAlreadyProcessed(handoff.id, "no longer pending")
        logger.info("Handoff %s accepted by user %s", handoff.id, agent_id)
        return await self.execute(handoff.id)

    async def reject(self, handoff_id: int, reason: str | None = None) -> Handoff:
        """pending → rejected. The conversation is not touched.

        Raises:
            HandoffNotFound, HandoffAlreadyProcessed
        """
        handoff = await self._get(handoff_id)
        if handoff.status != HandoffStatus.PENDING:
            raise HandoffAlreadyProcessed(handoff.id, handoff.status.value)
        if not await self._handoffs.mark_rejected(handoff.id, reason):
            raise HandoffAlreadyProcessed(handoff.id, "no longer pending")
        logger.info("Handoff %s rejected: %s", handoff.id, reason)
        return dataclasses.replace(handoff, status=HandoffStatus.REJECTED, rejection_reason=reason)

    async def _get(self, handoff_id: int) -> Handoff:
        handoff = await self._handoffs.get_by_id(handoff_id)
        if handoff is None:
            raise HandoffNotFound(handoff_id)
        return handoff

    async def _close_superseded(self, handoff: Handoff) -> HandoffExecution:
        current = await self._conversations.get_by_id(handoff.conversation_id)
        if current is not None and current.last_handoff_id == handoff.id:
            # A concurrent execute of this same handoff already won the swap
            logger.info("Handoff %s applied by a concurrent execute", handoff.id)
        else:
            await self._handoffs.mark_rejected(
                handoff.id,
                SUPERSEDED_REASON,
                from_statuses=(HandoffStatus.PENDING, HandoffStatus.ACCEPTED),
            )
            logger.info(
                "Handoff %s superseded: conversation %s changed owner since it was created",
                handoff.id, handoff.conversation_id,
            )
        refreshed = await self._handoffs.get_by_id(handoff.id) or handoff
        return HandoffExecution(handoff=refreshed, outcome=ExecutionOutcome.ALREADY_PROCESSED)

    async def _notify(self, handoff: Handoff) -> None:
        event = AssignmentEvent(
            handoff_id=handoff.id,
            conversation_id=handoff.conversation_id,
            handoff_type=handoff.type,
            team_id=handoff.to_team_id,
            user_id=handoff.to_user_id,
            previous_team_id=handoff.from_team_id,
            previous_user_id=handoff.from_user_id,
            completed_at=handoff.completed_at,
        )
        try:
            await self._notifier.assignment_completed(event)
        except Exception:
            logger.exception("Notifier failed for handoff %s", handoff.id)
