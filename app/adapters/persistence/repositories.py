"""SQLAlchemy repository implementations."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.persistence.models import (
    ConversationModel,
    HandoffModel,
    TeamMembershipModel,
    TeamModel,
    UserModel,
)
from app.application.ports.agent_repo import AgentRepository, AgentWorkloadRow
from app.application.ports.conversation_repo import ConversationRepository
from app.application.ports.handoff_repo import HandoffRepository
from app.application.ports.team_repo import TeamLoadRow, TeamRepository
from app.domain.entities.agent import Agent, TeamMembership
from app.domain.entities.conversation import Conversation
from app.domain.entities.handoff import Handoff
from app.domain.entities.team import Team
from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import (
    ACTIVE_CONVERSATION_STATUSES,
    AgentRole,
    AssignmentMethod,
    ConversationPriority,
    ConversationStatus,
    HandoffStatus,
    HandoffType,
    TeamType,
)
from app.domain.value_objects.handoff_metadata import metadata_from_dict, metadata_to_dict

_ACTIVE_STATUSES = [s.value for s in ACTIVE_CONVERSATION_STATUSES]
_PRIORITY_RANK = {p.value: p.rank for p in ConversationPriority}
DEFAULT_ROLE_CAPACITY = 10

# ─── Mappers ─────────────────────────────────────────────────────────


def _team_to_domain(m: TeamModel) -> Team:
    return Team(
        id=m.id,
        name=m.name,
        team_type=TeamType(m.team_type),
        max_capacity=m.max_capacity,
        priority=m.priority,
        is_active=m.is_active,
        auto_assignment_enabled=m.auto_assignment_enabled,
    )


def _agent_to_domain(m: UserModel, default_capacity: int) -> Agent:
    return Agent(
        id=m.id,
        name=m.name,
        role=AgentRole(m.role),
        is_online=m.is_online,
        is_active=m.is_active,
        role_capacity=m.role_capacity if m.role_capacity is not None else default_capacity,
        memberships=[
            TeamMembership(team_id=ms.team_id, is_active=ms.is_active) for ms in m.memberships
        ],
    )


def _conversation_to_domain(m: ConversationModel) -> Conversation:
    return Conversation(
        id=m.id,
        contact_id=m.contact_id,
        channel=m.channel,
        status=ConversationStatus(m.status),
        assigned_team_id=m.assigned_team_id,
        assigned_user_id=m.assigned_user_id,
        assignment_method=AssignmentMethod(m.assignment_method) if m.assignment_method else None,
        assigned_at=m.assigned_at,
        priority=ConversationPriority(m.priority),
        version=m.version,
        last_handoff_id=m.last_handoff_id,
    )


def _handoff_to_domain(m: HandoffModel) -> Handoff:
    return Handoff(
        id=m.id,
        conversation_id=m.conversation_id,
        type=HandoffType(m.type),
        to_team_id=m.to_team_id,
        to_user_id=m.to_user_id,
        from_team_id=m.from_team_id,
        from_user_id=m.from_user_id,
        reason=m.reason,
        priority=ConversationPriority(m.priority),
        status=HandoffStatus(m.status),
        classification_snapshot=(
            Classification.from_dict(m.classification_snapshot)
            if m.classification_snapshot else None
        ),
        metadata=metadata_from_dict(m.details) if m.details else None,
        conversation_version=m.conversation_version,
        rejection_reason=m.rejection_reason,
        created_at=m.created_at,
        accepted_at=m.accepted_at,
        completed_at=m.completed_at,
    )


# ─── Repositories ────────────────────────────────────────────────────


class SqlTeamRepository(TeamRepository):
    def __init__(self, session: AsyncSession, default_role_capacity: int = DEFAULT_ROLE_CAPACITY):
        self._s = session
        self._default_capacity = default_role_capacity

    async def get_by_id(self, team_id: int) -> Team | None:
        m = await self._s.get(TeamModel, team_id)
        return _team_to_domain(m) if m else None

    async def get_load_snapshot(self) -> list[TeamLoadRow]:
        member = and_(
            TeamMembershipModel.user_id == UserModel.id,
            TeamMembershipModel.team_id == TeamModel.id,
            TeamMembershipModel.is_active.is_(True),
            UserModel.is_active.is_(True),
        )
        active_agents = (
            select(func.count(UserModel.id))
            .join(TeamMembershipModel, member)
            .correlate(TeamModel)
            .scalar_subquery()
        )
        online_agents = (
            select(func.count(UserModel.id))
            .join(TeamMembershipModel, member)
            .where(UserModel.is_online.is_(True))
            .correlate(TeamModel)
            .scalar_subquery()
        )
        roster_capacity = (
            select(
                func.coalesce(
                    func.sum(func.coalesce(UserModel.role_capacity, self._default_capacity)), 0
                )
            )
            .join(TeamMembershipModel, member)
            .correlate(TeamModel)
            .scalar_subquery()
        )
        current_load = (
            select(func.count(ConversationModel.id))
            .where(
                ConversationModel.assigned_team_id == TeamModel.id,
                ConversationModel.status.in_(_ACTIVE_STATUSES),
            )
            .correlate(TeamModel)
            .scalar_subquery()
        )
        result = await self._s.execute(
            select(TeamModel, active_agents, online_agents, roster_capacity, current_load)
            .where(TeamModel.is_active.is_(True))
            .order_by(TeamModel.id)
        )
        return [
            TeamLoadRow(
                team=_team_to_domain(m),
                active_agents=active or 0,
                online_agents=online or 0,
                roster_capacity=int(capacity or 0),
                current_load=load or 0,
            )
            for m, active, online, capacity, load in result.all()
        ]


class SqlAgentRepository(AgentRepository):
    def __init__(self, session: AsyncSession, default_role_capacity: int = DEFAULT_ROLE_CAPACITY):
        self._s = session
        self._default_capacity = default_role_capacity

    async def get_by_id(self, agent_id: int) -> Agent | None:
        m = await self._s.get(UserModel, agent_id)
        return _agent_to_domain(m, self._default_capacity) if m else None

    async def get_roster_workload(self, team_id: int, since: datetime) -> list[AgentWorkloadRow]:
        active_conversations = (
            select(func.count(ConversationModel.id))
            .where(
                ConversationModel.assigned_user_id == UserModel.id,
                ConversationModel.status.in_(_ACTIVE_STATUSES),
            )
            .correlate(UserModel)
            .scalar_subquery()
        )
        completed_to_user = and_(
            HandoffModel.to_user_id == UserModel.id,
            HandoffModel.status == HandoffStatus.COMPLETED.value,
        )
        total_assignments = (
            select(func.count(HandoffModel.id))
            .where(completed_to_user, HandoffModel.completed_at >= since)
            .correlate(UserModel)
            .scalar_subquery()
        )
        last_assigned_at = (
            select(func.max(HandoffModel.completed_at))
            .where(completed_to_user)
            .correlate(UserModel)
            .scalar_subquery()
        )
        result = await self._s.execute(
            select(UserModel, active_conversations, total_assignments, last_assigned_at)
            .join(TeamMembershipModel, TeamMembershipModel.user_id == UserModel.id)
            .where(
                TeamMembershipModel.team_id == team_id,
                TeamMembershipModel.is_active.is_(True),
                UserModel.is_active.is_(True),
            )
            .order_by(UserModel.id)
        )
        return [
            AgentWorkloadRow(
                agent=_agent_to_domain(m, self._default_capacity),
                active_conversations=active or 0,
                total_assignments=total or 0,
                last_assigned_at=last,
            )
            for m, active, total, last in result.all()
        ]


class SqlConversationRepository(ConversationRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get_by_id(self, conversation_id: int) -> Conversation | None:
        # populate_existing: the identity map may hold a row changed by apply_assignment
        result = await self._s.execute(
            select(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _conversation_to_domain(m) if m else None

    async def apply_assignment(
        self,
        conversation_id: int,
        expected_version: int,
        team_id: int | None,
        user_id: int | None,
        method: AssignmentMethod | None,
        priority: ConversationPriority,
        assigned_at: datetime | None,
        handoff_id: int | None,
    ) -> bool:
        result = await self._s.execute(
            update(ConversationModel)
            .where(
                ConversationModel.id == conversation_id,
                ConversationModel.version == expected_version,
            )
            .values(
                assigned_team_id=team_id,
                assigned_user_id=user_id,
                assignment_method=method.value if method else None,
                assigned_at=assigned_at,
                priority=priority.value,
                last_handoff_id=handoff_id,
                version=ConversationModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await self._s.flush()
        return result.rowcount == 1


class SqlHandoffRepository(HandoffRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, handoff: Handoff) -> Handoff:
        m = HandoffModel(
            conversation_id=handoff.conversation_id,
            type=handoff.type.value,
            from_team_id=handoff.from_team_id,
            from_user_id=handoff.from_user_id,
            to_team_id=handoff.to_team_id,
            to_user_id=handoff.to_user_id,
            reason=handoff.reason,
            priority=handoff.priority.value,
            status=handoff.status.value,
            classification_snapshot=(
                handoff.classification_snapshot.to_dict()
                if handoff.classification_snapshot else None
            ),
            details=metadata_to_dict(handoff.metadata) if handoff.metadata else None,
            conversation_version=handoff.conversation_version,
        )
        if handoff.created_at is not None:
            m.created_at = handoff.created_at
        self._s.add(m)
        await self._s.flush()
        handoff.id = m.id
        return handoff

    async def get_by_id(self, handoff_id: int) -> Handoff | None:
        result = await self._s.execute(
            select(HandoffModel)
            .where(HandoffModel.id == handoff_id)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _handoff_to_domain(m) if m else None

    async def _transition(
        self,
        handoff_id: int,
        from_statuses: tuple[HandoffStatus, ...],
        **values,
    ) -> bool:
        result = await self._s.execute(
            update(HandoffModel)
            .where(
                HandoffModel.id == handoff_id,
                HandoffModel.status.in_([s.value for s in from_statuses]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self._s.flush()
        return result.rowcount == 1

    async def mark_accepted(
        self, handoff_id: int, accepted_at: datetime, to_user_id: int, to_team_id: int | None
    ) -> bool:
        return await self._transition(
            handoff_id,
            (HandoffStatus.PENDING,),
            status=HandoffStatus.ACCEPTED.value,
            accepted_at=accepted_at,
            to_user_id=to_user_id,
            to_team_id=to_team_id,
        )

    async def mark_completed(self, handoff_id: int, completed_at: datetime) -> bool:
        return await self._transition(
            handoff_id,
            (HandoffStatus.PENDING, HandoffStatus.ACCEPTED),
            status=HandoffStatus.COMPLETED.value,
            completed_at=completed_at,
        )

    async def mark_rejected(
        self,
        handoff_id: int,
        reason: str | None,
        from_statuses: tuple[HandoffStatus, ...] = (HandoffStatus.PENDING,),
    ) -> bool:
        return await self._transition(
            handoff_id,
            from_statuses,
            status=HandoffStatus.REJECTED.value,
            rejection_reason=reason,
        )

    async def _pending(self, *criteria) -> list[Handoff]:
        result = await self._s.execute(
            select(HandoffModel)
            .where(HandoffModel.status == HandoffStatus.PENDING.value, *criteria)
            .order_by(
                case(_PRIORITY_RANK, value=HandoffModel.priority, else_=len(_PRIORITY_RANK)),
                HandoffModel.created_at,
                HandoffModel.id,
            )
        )
        return [_handoff_to_domain(m) for m in result.scalars()]

    async def get_pending_for_user(self, user_id: int) -> list[Handoff]:
        return await self._pending(HandoffModel.to_user_id == user_id)

    async def get_pending_for_team(self, team_id: int) -> list[Handoff]:
        return await self._pending(HandoffModel.to_team_id == team_id)

    async def count_for_conversation_since(self, conversation_id: int, since: datetime) -> int:
        result = await self._s.execute(
            select(func.count(HandoffModel.id)).where(
                HandoffModel.conversation_id == conversation_id,
                HandoffModel.created_at >= since,
            )
        )
        return result.scalar_one()

    async def get_for_conversation(
        self, conversation_id: int, since: datetime | None = None
    ) -> list[Handoff]:
        stmt = select(HandoffModel).where(HandoffModel.conversation_id == conversation_id)
        if since is not None:
            stmt = stmt.where(HandoffModel.created_at >= since)
        result = await self._s.execute(
            stmt.order_by(HandoffModel.created_at.desc(), HandoffModel.id.desc())
        )
        return [_handoff_to_domain(m) for m in result.scalars()]

    async def get_created_since(self, since: datetime) -> list[Handoff]:
        result = await self._s.execute(
            select(HandoffModel)
            .where(HandoffModel.created_at >= since)
            .order_by(HandoffModel.id)
        )
        return [_handoff_to_domain(m) for m in result.scalars()]
