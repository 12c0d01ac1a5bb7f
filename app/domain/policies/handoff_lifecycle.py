"""HandoffLifecyclePolicy — allowed status transitions and target resolution."""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.entities.agent import Agent
from app.domain.entities.conversation import Conversation
from app.domain.exceptions import InvalidHandoffTarget
from app.domain.value_objects.enums import AssignmentMethod, HandoffStatus, HandoffType

ALLOWED_TRANSITIONS: dict[HandoffStatus, frozenset[HandoffStatus]] = {
    HandoffStatus.PENDING: frozenset(
        {HandoffStatus.ACCEPTED, HandoffStatus.REJECTED, HandoffStatus.COMPLETED}
    ),
    # accepted → rejected only happens when the handoff is superseded
    HandoffStatus.ACCEPTED: frozenset({HandoffStatus.COMPLETED, HandoffStatus.REJECTED}),
    HandoffStatus.REJECTED: frozenset(),
    HandoffStatus.COMPLETED: frozenset(),
}

SUPERSEDED_REASON = "superseded"


def can_transition(current: HandoffStatus, target: HandoffStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class ResolvedTarget:
    team_id: int | None
    user_id: int | None
    membership_override: bool = False


def resolve_target(
    conversation: Conversation,
    to_team_id: int | None,
    to_user_id: int | None,
    agent: Agent | None,
    *,
    unassign: bool = False,
    allow_override: bool = False,
) -> ResolvedTarget:
    """Validate a requested target and fill in the missing half.

    - neither set: only valid as an explicit unassign.
    - user only: keep the conversation's team when the agent belongs to it,
      else the agent's lowest-id active team.
    - team only: the conversation goes to the team queue without an agent.
    - both: the agent must belong to the team unless ``allow_override``.

    Raises:
        InvalidHandoffTarget: when the target is missing or inconsistent.
    """
    if to_team_id is None and to_user_id is None:
        if unassign:
            return ResolvedTarget(team_id=None, user_id=None)
        raise InvalidHandoffTarget("A handoff needs a target team or a target user")
    if unassign:
        raise InvalidHandoffTarget("An unassign handoff cannot name a target")

    if to_user_id is None:
        return ResolvedTarget(team_id=to_team_id, user_id=None)

    if agent is None or agent.id != to_user_id:
        raise InvalidHandoffTarget(f"Target user {to_user_id} does not exist")
    if not agent.is_active:
        raise InvalidHandoffTarget(f"Target user {to_user_id} is not active")

    if to_team_id is None:
        current = conversation.assigned_team_id
        if current is not None and agent.is_member_of(current):
            return ResolvedTarget(team_id=current, user_id=to_user_id)
        primary = agent.primary_team_id()
        if primary is None:
            raise InvalidHandoffTarget(f"Target user {to_user_id} belongs to no active team")
        return ResolvedTarget(team_id=primary, user_id=to_user_id)

    if agent.is_member_of(to_team_id):
        return ResolvedTarget(team_id=to_team_id, user_id=to_user_id)
    if allow_override:
        return ResolvedTarget(team_id=to_team_id, user_id=to_user_id, membership_override=True)
    raise InvalidHandoffTarget(
        f"User {to_user_id} is not a member of team {to_team_id}"
    )


def assignment_method_for(handoff_type: HandoffType, to_user_id: int | None) -> AssignmentMethod:
    if handoff_type == HandoffType.MANUAL:
        return AssignmentMethod.MANUAL
    if handoff_type == HandoffType.AUTOMATIC and to_user_id is not None:
        return AssignmentMethod.AUTOMATIC_EQUITABLE
    return AssignmentMethod.AUTOMATIC
