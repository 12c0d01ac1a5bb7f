"""Pytest configuration, in-memory fakes and shared fixtures."""

from __future__ import annotations

import asyncio
import dataclasses
import random
from datetime import datetime, timedelta, timezone

import pytest

from app.application.ports.agent_repo import AgentRepository, AgentWorkloadRow
from app.application.ports.conversation_repo import ConversationRepository
from app.application.ports.handoff_repo import HandoffRepository
from app.application.ports.notifier_port import AssignmentNotifier
from app.application.ports.team_repo import TeamLoadRow, TeamRepository
from app.application.use_cases.assignment_service import AssignmentService
from app.application.use_cases.capacity_analysis import AgentLoadCalculator, CapacityAnalyzer
from app.application.use_cases.handoff_state_machine import HandoffStateMachine
from app.application.use_cases.team_router import TeamRouter
from app.domain.entities.agent import Agent, TeamMembership
from app.domain.entities.conversation import Conversation
from app.domain.entities.team import Team
from app.domain.policies.business_hours import BusinessHoursPolicy
from app.domain.policies.team_routing import RoutingTable
from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import HandoffStatus, TeamType, Urgency

# Wednesday 14:00 in São Paulo
BUSINESS_TIME = datetime(2026, 10, 14, 17, 0, tzinfo=timezone.utc)
# Sunday
WEEKEND_TIME = datetime(2026, 10, 18, 15, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = BUSINESS_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ─── In-memory store and fakes ──────────────────────────────────────


class InMemoryStore:
    """Rows shared by the fake repositories; every read returns a copy."""

    def __init__(self):
        self.teams: dict[int, Team] = {}
        self.agents: dict[int, Agent] = {}
        self.conversations: dict[int, Conversation] = {}
        self.handoffs: dict = {}

    def add_team(self, name, team_type=TeamType.SUPPORT, **kwargs) -> Team:
        team = Team(id=len(self.teams) + 1, name=name, team_type=team_type, **kwargs)
        self.teams[team.id] = team
        return team

    def add_agent(self, name, team_ids=(), **kwargs) -> Agent:
        agent = Agent(
            id=100 + len(self.agents) + 1,
            name=name,
            memberships=[TeamMembership(team_id=t) for t in team_ids],
            **kwargs,
        )
        self.agents[agent.id] = agent
        return agent

    def add_conversation(self, **kwargs) -> Conversation:
        kwargs.setdefault("contact_id", 1)
        kwargs.setdefault("channel", "whatsapp")
        conversation = Conversation(id=len(self.conversations) + 1, **kwargs)
        self.conversations[conversation.id] = conversation
        return conversation

    def fill_team(self, team_id: int, count: int) -> None:
        """Open ``count`` unassigned-agent conversations owned by the team."""
        for _ in range(count):
            self.add_conversation(assigned_team_id=team_id)


async def _yield():
    # Lets asyncio.gather interleave concurrent callers at every repository call
    await asyncio.sleep(0)


class FakeTeamRepo(TeamRepository):
    def __init__(self, store: InMemoryStore):
        self._db = store

    async def get_by_id(self, team_id):
        await _yield()
        team = self._db.teams.get(team_id)
        return dataclasses.replace(team) if team else None

    async def get_load_snapshot(self):
        await _yield()
        rows = []
        for team in self._db.teams.values():
            if not team.is_active:
                continue
            members = [
                a for a in self._db.agents.values() if a.is_active and a.is_member_of(team.id)
            ]
            rows.append(
                TeamLoadRow(
                    team=dataclasses.replace(team),
                    active_agents=len(members),
                    online_agents=sum(1 for a in members if a.is_online),
                    roster_capacity=sum(a.role_capacity for a in members),
                    current_load=sum(
                        1 for c in self._db.conversations.values()
                        if c.assigned_team_id == team.id and c.is_active()
                    ),
                )
            )
        return rows


class FakeAgentRepo(AgentRepository):
    def __init__(self, store: InMemoryStore):
        self._db = store

    async def get_by_id(self, agent_id):
        await _yield()
        agent = self._db.agents.get(agent_id)
        return dataclasses.replace(agent, memberships=list(agent.memberships)) if agent else None

    async def get_roster_workload(self, team_id, since):
        await _yield()
        rows = []
        for agent in sorted(self._db.agents.values(), key=lambda a: a.id):
            if not agent.is_active or not agent.is_member_of(team_id):
                continue
            completed = [
                h.completed_at for h in self._db.handoffs.values()
                if h.to_user_id == agent.id and h.status == HandoffStatus.COMPLETED
            ]
            rows.append(
                AgentWorkloadRow(
                    agent=dataclasses.replace(agent),
                    active_conversations=sum(
                        1 for c in self._db.conversations.values()
                        if c.assigned_user_id == agent.id and c.is_active()
                    ),
                    total_assignments=sum(1 for t in completed if t >= since),
                    last_assigned_at=max(completed) if completed else None,
                )
            )
        return rows


class FakeConversationRepo(ConversationRepository):
    def __init__(self, store: InMemoryStore):
        self._db = store

    async def get_by_id(self, conversation_id):
        await _yield()
        conversation = self._db.conversations.get(conversation_id)
        return dataclasses.replace(conversation) if conversation else None

    async def apply_assignment(
        self, conversation_id, expected_version, team_id, user_id, method, priority,
        assigned_at, handoff_id,
    ):
        await _yield()
        current = self._db.conversations.get(conversation_id)
        if current is None or current.version != expected_version:
            return False
        self._db.conversations[conversation_id] = dataclasses.replace(
            current,
            assigned_team_id=team_id,
            assigned_user_id=user_id,
            assignment_method=method,
            priority=priority,
            assigned_at=assigned_at,
            last_handoff_id=handoff_id,
            version=current.version + 1,
        )
        return True


class FakeHandoffRepo(HandoffRepository):
    def __init__(self, store: InMemoryStore):
        self._db = store

    async def save(self, handoff):
        await _yield()
        handoff.id = len(self._db.handoffs) + 1
        self._db.handoffs[handoff.id] = dataclasses.replace(handoff)
        return handoff

    async def get_by_id(self, handoff_id):
        await _yield()
        handoff = self._db.handoffs.get(handoff_id)
        return dataclasses.replace(handoff) if handoff else None

    def _transition(self, handoff_id, from_statuses, **changes):
        current = self._db.handoffs.get(handoff_id)
        if current is None or current.status not in from_statuses:
            return False
        self._db.handoffs[handoff_id] = dataclasses.replace(current, **changes)
        return True

    async def mark_accepted(self, handoff_id, accepted_at, to_user_id, to_team_id):
        await _yield()
        return self._transition(
            handoff_id, (HandoffStatus.PENDING,),
            status=HandoffStatus.ACCEPTED, accepted_at=accepted_at,
            to_user_id=to_user_id, to_team_id=to_team_id,
        )

    async def mark_completed(self, handoff_id, completed_at):
        await _yield()
        return self._transition(
            handoff_id, (HandoffStatus.PENDING, HandoffStatus.ACCEPTED),
            status=HandoffStatus.COMPLETED, completed_at=completed_at,
        )

    async def mark_rejected(self, handoff_id, reason, from_statuses=(HandoffStatus.PENDING,)):
        await _yield()
        return self._transition(
            handoff_id, from_statuses, status=HandoffStatus.REJECTED, rejection_reason=reason
        )

    def _pending(self, predicate):
        pending = [
            dataclasses.replace(h) for h in self._db.handoffs.values()
            if h.status == HandoffStatus.PENDING and predicate(h)
        ]
        return sorted(pending, key=lambda h: (h.priority.rank, h.created_at, h.id))

    async def get_pending_for_user(self, user_id):
        return self._pending(lambda h: h.to_user_id == user_id)

    async def get_pending_for_team(self, team_id):
        return self._pending(lambda h: h.to_team_id == team_id)

    async def count_for_conversation_since(self, conversation_id, since):
        return sum(
            1 for h in self._db.handoffs.values()
            if h.conversation_id == conversation_id and h.created_at >= since
        )

    async def get_for_conversation(self, conversation_id, since=None):
        await _yield()
        history = [
            dataclasses.replace(h) for h in self._db.handoffs.values()
            if h.conversation_id == conversation_id and (since is None or h.created_at >= since)
        ]
        return sorted(history, key=lambda h: (h.created_at, h.id), reverse=True)

    async def get_created_since(self, since):
        return [dataclasses.replace(h) for h in self._db.handoffs.values() if h.created_at >= since]


class RecordingNotifier(AssignmentNotifier):
    def __init__(self):
        self.events = []

    async def assignment_completed(self, event):
        self.events.append(event)


class Engine:
    """Everything a use-case test needs, wired over one store."""

    def __init__(
        self,
        store: InMemoryStore,
        clock: FakeClock,
        seed: int = 7,
        table: RoutingTable | None = None,
        classifier=None,
        notifier: AssignmentNotifier | None = None,
    ):
        self.store = store
        self.clock = clock
        self.teams = FakeTeamRepo(store)
        self.agents = FakeAgentRepo(store)
        self.conversations = FakeConversationRepo(store)
        self.handoffs = FakeHandoffRepo(store)
        self.notifier = notifier or RecordingNotifier()
        self.load_calculator = AgentLoadCalculator(self.agents, clock=clock)
        self.router = TeamRouter(
            capacity_analyzer=CapacityAnalyzer(self.teams),
            load_calculator=self.load_calculator,
            routing_table=table or RoutingTable(),
            business_hours=BusinessHoursPolicy(),
            clock=clock,
            rng=random.Random(seed),
        )
        self.machine = HandoffStateMachine(
            handoff_repo=self.handoffs,
            conversation_repo=self.conversations,
            agent_repo=self.agents,
            team_repo=self.teams,
            notifier=self.notifier,
            clock=clock,
        )
        self.service = AssignmentService(
            router=self.router,
            state_machine=self.machine,
            conversation_repo=self.conversations,
            handoff_repo=self.handoffs,
            team_repo=self.teams,
            agent_repo=self.agents,
            load_calculator=self.load_calculator,
            clock=clock,
            classifier=classifier,
        )


# ─── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(store, clock):
    return Engine(store, clock)


@pytest.fixture
def billing_classification():
    return Classification(
        intent="billing_inquiry", urgency=Urgency.NORMAL, frustration_level=2, confidence=70
    )


@pytest.fixture
def angry_classification():
    return Classification(
        intent="technical_support", urgency=Urgency.CRITICAL, frustration_level=9, confidence=85
    )


@pytest.fixture
def make_engine(store, clock):
    """Build an Engine with non-default seed, routing table, classifier or notifier."""

    def factory(**kwargs) -> Engine:
        return Engine(store, clock, **kwargs)

    return factory


@pytest.fixture
def weekend(clock):
    clock.now = WEEKEND_TIME
    return clock
