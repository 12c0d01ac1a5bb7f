"""Tests for AssignmentService with in-memory fakes."""

from __future__ import annotations

import pytest

from app.application.ports.classifier_port import ClassifierPort
from app.application.use_cases.assignment_service import AssignmentFailure, ManualTarget
from app.application.use_cases.handoff_state_machine import HandoffRequest
from app.domain.exceptions import (
    ClassificationUnavailable,
    ConversationNotFound,
    HandoffNotFound,
    InvalidHandoffTarget,
    TeamNotFound,
)
from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import (
    AgentRole,
    AssignmentMethod,
    ConversationPriority,
    ConversationStatus,
    EquityLevel,
    HandoffStatus,
    HandoffType,
    TeamType,
    Urgency,
)
from app.domain.value_objects.handoff_metadata import EscalationMetadata, ManualTransferMetadata

# ─── Classifier fakes ───────────────────────────────────────────────


class FixedClassifier(ClassifierPort):
    def __init__(self, classification: Classification):
        self._classification = classification
        self.calls = []

    async def classify(self, conversation_id, message_text):
        self.calls.append((conversation_id, message_text))
        return self._classification


class DownClassifier(ClassifierPort):
    async def classify(self, conversation_id, message_text):
        raise ClassificationUnavailable("timeout after 5s")


@pytest.fixture
def teams(store):
    """Finance and support, two online agents each."""
    finance = store.add_team("Finance", TeamType.FINANCE, max_capacity=10)
    support = store.add_team("Support", TeamType.SUPPORT, max_capacity=10)
    store.add_agent("Fernanda", [finance.id], is_online=True)
    store.add_agent("Fabio", [finance.id], is_online=True)
    store.add_agent("Sara", [support.id], is_online=True)
    store.add_agent("Sergio", [support.id], is_online=True)
    return finance, support


# ─── Automatic assignment ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_assigns_to_specialized_team(engine, store, teams, billing_classification):
    finance, _ = teams
    conversation = store.add_conversation()

    result = await engine.service.assign_automatically(conversation.id, billing_classification)

    assert result.success
    assert result.team_id == finance.id
    assert result.agent_id in {101, 102}
    stored = store.conversations[conversation.id]
    assert stored.assigned_user_id == result.agent_id
    assert stored.assignment_method == AssignmentMethod.AUTOMATIC_EQUITABLE
    handoff = store.handoffs[result.handoff_id]
    assert handoff.type == HandoffType.AUTOMATIC
    assert handoff.status == HandoffStatus.COMPLETED
    assert handoff.classification_snapshot == billing_classification
    assert handoff.metadata.routing_version == "2025.1"
    assert handoff.metadata.confidence == 100.0


@pytest.mark.asyncio
async def test_urgent_classification_raises_priority(engine, store, teams, angry_classification):
    _, support = teams
    conversation = store.add_conversation()

    result = await engine.service.assign_automatically(conversation.id, angry_classification)

    assert result.team_id == support.id
    assert store.conversations[conversation.id].priority == ConversationPriority.URGENT


@pytest.mark.asyncio
async def test_already_assigned_conversation_is_left_alone(engine, store, teams, billing_classification):
    _, support = teams
    conversation = store.add_conversation(assigned_team_id=support.id, assigned_user_id=103)

    result = await engine.service.assign_automatically(conversation.id, billing_classification)

    assert result.success
    assert (result.team_id, result.agent_id) == (support.id, 103)
    assert result.reason == "already assigned"
    assert store.handoffs == {}


@pytest.mark.asyncio
async def test_no_eligible_team_leaves_conversation_in_triage(engine, store, billing_classification):
    conversation = store.add_conversation()

    result = await engine.service.assign_automatically(conversation.id, billing_classification)

    assert not result.success
    assert result.failure == AssignmentFailure.NO_ELIGIBLE_TEAM
    assert store.conversations[conversation.id].assigned_team_id is None
    assert store.handoffs == {}


@pytest.mark.asyncio
async def test_team_without_agents_is_reported(engine, store, billing_classification):
    finance = store.add_team("Finance", TeamType.FINANCE, max_capacity=10)
    conversation = store.add_conversation()

    result = await engine.service.assign_automatically(conversation.id, billing_classification)

    assert result.failure == AssignmentFailure.NO_AVAILABLE_AGENT
    assert result.team_id == finance.id
    assert result.reason == f"Team {finance.id} has no available agent"
    assert store.handoffs == {}


@pytest.mark.asyncio
async def test_unknown_conversation(engine, billing_classification):
    with pytest.raises(ConversationNotFound):
        await engine.service.assign_automatically(77, billing_classification)


@pytest.mark.asyncio
async def test_assignments_spread_evenly(engine, store, clock):
    """After every assignment no agent is more than one ahead of another."""
    team = store.add_team("Support", TeamType.SUPPORT)
    for name in ("Ana", "Bia", "Caio"):
        store.add_agent(name, [team.id], is_online=True)
    classification = Classification(intent="technical_support", urgency=Urgency.NORMAL)

    for _ in range(30):
        conversation = store.add_conversation()
        result = await engine.service.assign_automatically(conversation.id, classification)
        assert result.success
        store.conversations[conversation.id].status = ConversationStatus.RESOLVED
        clock.advance(minutes=5)

        totals = [load.total_assignments for load in await engine.load_calculator.team_loads(team.id)]
        assert max(totals) - min(totals) <= 1

    report = await engine.service.get_equity_stats(team.id)
    assert report.equity_level == EquityLevel.EXCELLENT
    assert [a.total_assignments for a in report.agents] == [10, 10, 10]


# ─── Classification and degraded routing ────────────────────────────


@pytest.mark.asyncio
async def test_message_is_classified_before_routing(make_engine, store, teams, billing_classification):
    finance, _ = teams
    classifier = FixedClassifier(billing_classification)
    engine = make_engine(classifier=classifier)
    conversation = store.add_conversation()

    result = await engine.service.assign_from_message(conversation.id, "where is my invoice?")

    assert classifier.calls == [(conversation.id, "where is my invoice?")]
    assert result.team_id == finance.id
    assert not result.degraded


@pytest.mark.asyncio
async def test_classifier_outage_degrades_routing(make_engine, store, teams):
    finance, support = teams
    store.fill_team(finance.id, 6)
    store.fill_team(support.id, 2)
    engine = make_engine(classifier=DownClassifier())
    conversation = store.add_conversation()

    result = await engine.service.assign_from_message(conversation.id, "hello?")

    assert result.success
    assert result.degraded
    assert result.team_id == support.id
    assert store.handoffs[result.handoff_id].metadata.degraded


@pytest.mark.asyncio
async def test_missing_classifier_routes_unclassified(engine, store, teams):
    conversation = store.add_conversation()
    result = await engine.service.assign_from_message(conversation.id, "hi")
    assert result.success
    assert result.degraded


# ─── Manual assignment ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_manual_assignment_to_agent(engine, store, teams):
    _, support = teams
    conversation = store.add_conversation()

    result = await engine.service.assign_manually(
        conversation.id, ManualTarget(user_id=103), actor_id=101, reason="asked for Sara"
    )

    assert result.success
    assert (result.team_id, result.agent_id) == (support.id, 103)
    stored = store.conversations[conversation.id]
    assert stored.assignment_method == AssignmentMethod.MANUAL
    assert store.handoffs[result.handoff_id].metadata == ManualTransferMetadata(actor_id=101)


@pytest.mark.asyncio
async def test_manual_unassign(engine, store, teams):
    finance, _ = teams
    conversation = store.add_conversation(assigned_team_id=finance.id, assigned_user_id=101)

    result = await engine.service.assign_manually(conversation.id, ManualTarget())

    assert result.success
    assert (result.team_id, result.agent_id) == (None, None)
    assert store.conversations[conversation.id].assigned_team_id is None


@pytest.mark.asyncio
async def test_cross_team_assignment_needs_supervisor(engine, store, teams):
    finance, _ = teams
    boss = store.add_agent("Boss", [], role=AgentRole.SUPERVISOR)
    conversation = store.add_conversation()
    target = ManualTarget(team_id=finance.id, user_id=103)

    with pytest.raises(InvalidHandoffTarget):
        await engine.service.assign_manually(conversation.id, target, actor_id=101)

    result = await engine.service.assign_manually(conversation.id, target, actor_id=boss.id)
    assert (result.team_id, result.agent_id) == (finance.id, 103)
    assert store.handoffs[result.handoff_id].metadata.membership_override


@pytest.mark.asyncio
async def test_recommend_writes_nothing(engine, store, teams, billing_classification):
    finance, _ = teams
    conversation = store.add_conversation()

    recommendation = await engine.service.recommend(conversation.id, billing_classification)

    assert recommendation.team_id == finance.id
    assert store.handoffs == {}
    assert store.conversations[conversation.id].version == 0


# ─── Escalation and the handoff queue ───────────────────────────────


def _escalation(conversation_id, team_id, priority=None) -> HandoffRequest:
    return HandoffRequest(
        conversation_id=conversation_id,
        type=HandoffType.ESCALATION,
        to_team_id=team_id,
        priority=priority,
        metadata=EscalationMetadata(trigger_event="frustration_spike"),
    )


@pytest.mark.asyncio
async def test_escalation_waits_for_acceptance(engine, store, teams):
    _, support = teams
    conversation = store.add_conversation()
    await engine.service.assign_manually(conversation.id, ManualTarget(user_id=101))

    handoff = await engine.service.create_handoff(_escalation(conversation.id, support.id))

    assert handoff.status == HandoffStatus.PENDING
    assert handoff.metadata.previous_handoffs == 1
    assert store.conversations[conversation.id].assigned_user_id == 101

    execution = await engine.service.accept_handoff(handoff.id, 104)
    assert execution.completed
    assert store.conversations[conversation.id].assigned_user_id == 104


@pytest.mark.asyncio
async def test_non_escalation_handoff_executes_immediately(engine, store, teams):
    _, support = teams
    conversation = store.add_conversation()

    handoff = await engine.service.create_handoff(
        HandoffRequest(conversation_id=conversation.id, type=HandoffType.MANUAL, to_team_id=support.id)
    )

    assert handoff.status == HandoffStatus.COMPLETED
    assert store.conversations[conversation.id].assigned_team_id == support.id


@pytest.mark.asyncio
async def test_pending_queue_is_most_urgent_first(engine, store, teams, clock):
    _, support = teams
    created = []
    for priority in (ConversationPriority.NORMAL, ConversationPriority.URGENT,
                     ConversationPriority.HIGH, ConversationPriority.URGENT):
        conversation = store.add_conversation()
        created.append(await engine.service.create_handoff(
            _escalation(conversation.id, support.id, priority)
        ))
        clock.advance(minutes=1)

    pending = await engine.service.get_pending_handoffs(team_id=support.id)

    assert [h.id for h in pending] == [created[1].id, created[3].id, created[2].id, created[0].id]


@pytest.mark.asyncio
async def test_pending_for_agent(engine, store, teams):
    conversation = store.add_conversation()
    handoff = await engine.service.create_handoff(
        HandoffRequest(conversation_id=conversation.id, type=HandoffType.ESCALATION, to_user_id=103)
    )
    assert [h.id for h in await engine.service.get_pending_handoffs(agent_id=103)] == [handoff.id]
    assert await engine.service.get_pending_handoffs(agent_id=101) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("kwargs", [{}, {"agent_id": 1, "team_id": 1}])
async def test_pending_needs_exactly_one_filter(engine, kwargs):
    with pytest.raises(ValueError):
        await engine.service.get_pending_handoffs(**kwargs)


@pytest.mark.asyncio
async def test_reject_handoff(engine, store, teams):
    _, support = teams
    conversation = store.add_conversation()
    handoff = await engine.service.create_handoff(_escalation(conversation.id, support.id))

    rejected = await engine.service.reject_handoff(handoff.id, "wrong team")

    assert rejected.status == HandoffStatus.REJECTED
    assert await engine.service.get_pending_handoffs(team_id=support.id) == []


@pytest.mark.asyncio
async def test_escalation_evaluation_counts_recent_handoffs(engine, store, teams, clock, angry_classification):
    _, support = teams
    conversation = store.add_conversation()
    for _ in range(3):
        await engine.service.create_handoff(_escalation(conversation.id, support.id))

    capped = await engine.service.evaluate_escalation(conversation.id, angry_classification)
    clock.advance(hours=25)
    fresh = await engine.service.evaluate_escalation(conversation.id, angry_classification)

    assert not capped.should_escalate
    assert capped.handoffs_last_day == 3
    assert fresh.should_escalate
    assert fresh.handoffs_last_day == 0


# ─── Observability ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_capacities_cover_active_teams(engine, store, teams):
    finance, _ = teams
    store.fill_team(finance.id, 3)
    capacities = {c.team_id: c for c in await engine.service.get_team_capacities()}
    assert capacities[finance.id].utilization_rate == pytest.approx(30.0)


@pytest.mark.asyncio
async def test_equity_stats_for_unknown_team(engine):
    with pytest.raises(TeamNotFound):
        await engine.service.get_equity_stats(9)


@pytest.mark.asyncio
async def test_handoff_stats_window(engine, store, teams, clock, billing_classification):
    _, support = teams
    first = store.add_conversation()
    second = store.add_conversation()
    await engine.service.assign_automatically(first.id, billing_classification)
    await engine.service.create_handoff(_escalation(second.id, support.id))

    stats = await engine.service.get_handoff_stats(days=7)
    assert (stats.total, stats.completed, stats.pending) == (2, 1, 1)
    assert stats.by_type == {"automatic": 1, "escalation": 1}

    clock.advance(days=8)
    assert (await engine.service.get_handoff_stats(days=7)).total == 0
    with pytest.raises(ValueError):
        await engine.service.get_handoff_stats(days=0)


# ─── Handoff history ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_conversation_history_is_newest_first(engine, store, teams, clock):
    finance, support = teams
    conversation = store.add_conversation()
    first = await engine.service.assign_manually(conversation.id, ManualTarget(team_id=finance.id))
    clock.advance(days=2)
    second = await engine.service.assign_manually(conversation.id, ManualTarget(team_id=support.id))
    other = store.add_conversation()
    await engine.service.assign_manually(other.id, ManualTarget(team_id=support.id))

    history = await engine.service.get_conversation_handoffs(conversation.id)
    recent = await engine.service.get_conversation_handoffs(conversation.id, days=1)

    assert [h.id for h in history] == [second.handoff_id, first.handoff_id]
    assert [h.id for h in recent] == [second.handoff_id]


@pytest.mark.asyncio
async def test_history_of_unknown_conversation(engine):
    with pytest.raises(ConversationNotFound):
        await engine.service.get_conversation_handoffs(999)


@pytest.mark.asyncio
async def test_history_window_must_be_positive(engine, store):
    conversation = store.add_conversation()
    with pytest.raises(ValueError):
        await engine.service.get_conversation_handoffs(conversation.id, days=0)


@pytest.mark.asyncio
async def test_get_handoff(engine, store, teams):
    finance, _ = teams
    conversation = store.add_conversation()
    result = await engine.service.assign_manually(conversation.id, ManualTarget(team_id=finance.id))

    handoff = await engine.service.get_handoff(result.handoff_id)

    assert handoff.conversation_id == conversation.id
    assert handoff.status == HandoffStatus.COMPLETED
    with pytest.raises(HandoffNotFound):
        await engine.service.get_handoff(999)


@pytest.mark.asyncio
async def test_manual_handoff_by_supervisor_may_cross_teams(engine, store, teams):
    finance, _ = teams
    boss = store.add_agent("Boss", [], role=AgentRole.SUPERVISOR)
    conversation = store.add_conversation()

    def transfer(actor_id):
        return HandoffRequest(
            conversation_id=conversation.id,
            type=HandoffType.MANUAL,
            to_team_id=finance.id,
            to_user_id=103,
            metadata=ManualTransferMetadata(actor_id=actor_id),
        )

    with pytest.raises(InvalidHandoffTarget):
        await engine.service.create_handoff(transfer(101))

    handoff = await engine.service.create_handoff(transfer(boss.id))

    assert handoff.status == HandoffStatus.COMPLETED
    assert handoff.metadata.membership_override
    assert store.conversations[conversation.id].assigned_user_id == 103
