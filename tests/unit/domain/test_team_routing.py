"""Tests for the team routing policy."""

import pytest

from app.domain.policies.team_routing import (
    RoutingTable,
    choose_fallback_team,
    choose_team,
    compute_confidence,
    derive_priority,
    estimate_wait_minutes,
    list_alternatives,
    recommendation_confidence,
)
from app.domain.value_objects.capacity import TeamCapacity
from app.domain.value_objects.classification import Classification
from app.domain.value_objects.enums import ConversationPriority, TeamType, Urgency

TABLE = RoutingTable()


def _team(team_id, team_type, load, max_capacity=10, *, active=True, auto=True,
          priority=0, agents=3) -> TeamCapacity:
    return TeamCapacity(
        team_id=team_id,
        team_name=f"{team_type.value}-{team_id}",
        team_type=team_type,
        priority=priority,
        active_agents=agents,
        online_agents=agents,
        current_load=load,
        max_capacity=max_capacity,
        is_active=active,
        auto_assignment_enabled=auto,
    )


def _billing(**kwargs) -> Classification:
    defaults = dict(intent="billing_inquiry", urgency=Urgency.NORMAL,
                    frustration_level=2, confidence=70)
    defaults.update(kwargs)
    return Classification(**defaults)


# ─── Team choice ────────────────────────────────────────────────────


def test_specialized_team_under_threshold_wins():
    finance = _team(1, TeamType.FINANCE, load=4)
    support = _team(2, TeamType.SUPPORT, load=9)
    classification = _billing()

    choice = choose_team(classification, [support, finance], TABLE)

    assert choice.capacity.team_id == 1
    assert choice.matched_preferred
    assert recommendation_confidence(classification, choice, TABLE) == 100.0
    assert derive_priority(classification) == ConversationPriority.NORMAL


def test_widens_when_preferred_type_is_not_eligible():
    finance = _team(1, TeamType.FINANCE, load=0, active=False)
    support = _team(2, TeamType.SUPPORT, load=2)
    commercial = _team(3, TeamType.COMMERCIAL, load=5)
    classification = _billing()
    capacities = [finance, support, commercial]

    choice = choose_team(classification, capacities, TABLE)

    assert choice.capacity.team_id == 2
    assert not choice.matched_preferred
    assert choice.preferred_type == TeamType.FINANCE
    # (70 + 15 for low utilization) * 0.7
    assert recommendation_confidence(classification, choice, TABLE) == pytest.approx(59.5)
    alternatives = list_alternatives(classification, capacities, 2, TABLE)
    assert [a.team_id for a in alternatives] == [3]


def test_overloaded_specialist_is_skipped():
    finance = _team(1, TeamType.FINANCE, load=8)
    support = _team(2, TeamType.SUPPORT, load=6)
    choice = choose_team(_billing(), [finance, support], TABLE)
    assert choice.capacity.team_id == 2
    assert not choice.matched_preferred


def test_everyone_overloaded_picks_least_utilized():
    teams = [_team(1, TeamType.FINANCE, load=10), _team(2, TeamType.SUPPORT, load=9)]
    assert choose_team(_billing(), teams, TABLE).capacity.team_id == 2


def test_no_eligible_team():
    teams = [_team(1, TeamType.FINANCE, load=0, auto=False), _team(2, TeamType.SUPPORT, 0, active=False)]
    assert choose_team(_billing(), teams, TABLE) is None
    assert choose_fallback_team(teams) is None


def test_equal_utilization_prefers_current_team_then_priority():
    a = _team(1, TeamType.FINANCE, load=2, priority=1)
    b = _team(2, TeamType.FINANCE, load=2, priority=5)
    assert choose_team(_billing(), [a, b], TABLE).capacity.team_id == 2
    assert choose_team(_billing(), [a, b], TABLE, current_team_id=1).capacity.team_id == 1


def test_intent_table_beats_classifier_hint():
    team_type, known = TABLE.preferred_team_type(_billing(suggested_team="support"))
    assert team_type == TeamType.FINANCE
    assert known


def test_hint_used_for_unknown_intent():
    team_type, known = TABLE.preferred_team_type(
        Classification(intent="mystery", suggested_team=" Tutoring ")
    )
    assert team_type == TeamType.TUTORING
    assert known


def test_unknown_intent_without_hint_uses_fallback_type():
    team_type, known = TABLE.preferred_team_type(Classification(intent="mystery", suggested_team="nope"))
    assert team_type == TeamType.COMMERCIAL
    assert not known


def test_custom_table_changes_routing():
    table = RoutingTable(version="custom", intent_team_types={"billing_inquiry": TeamType.SUPPORT})
    teams = [_team(1, TeamType.FINANCE, load=0), _team(2, TeamType.SUPPORT, load=3)]
    assert choose_team(_billing(), teams, table).capacity.team_id == 2


@pytest.mark.parametrize("kwargs", [
    {"overload_threshold": 0},
    {"overload_threshold": 120},
    {"mismatch_penalty": 1.5},
])
def test_routing_table_rejects_bad_values(kwargs):
    with pytest.raises(ValueError):
        RoutingTable(**kwargs)


# ─── Confidence ─────────────────────────────────────────────────────


def test_confidence_bonuses():
    support = _team(1, TeamType.SUPPORT, load=6)  # 60%: +5
    classification = Classification(intent="technical_support", urgency=Urgency.HIGH, confidence=40)
    assert compute_confidence(classification, support, TABLE) == 40 + 30 + 5 + 10


def test_frustrated_customer_on_non_specialist_is_penalized():
    commercial = _team(1, TeamType.COMMERCIAL, load=9)
    classification = Classification(intent="complaint", frustration_level=9, confidence=50)
    assert compute_confidence(classification, commercial, TABLE) == 30


@pytest.mark.parametrize("confidence, frustration, load", [(0, 10, 10), (100, 0, 0), (5, 8, 9)])
def test_confidence_stays_in_range(confidence, frustration, load):
    classification = Classification(intent="complaint", urgency=Urgency.CRITICAL,
                                    frustration_level=frustration, confidence=confidence)
    for team in (_team(1, TeamType.SUPPORT, load), _team(2, TeamType.FINANCE, load)):
        assert 0 <= compute_confidence(classification, team, TABLE) <= 100


# ─── Priority / wait / alternatives ─────────────────────────────────


@pytest.mark.parametrize("urgency, frustration, expected", [
    (Urgency.CRITICAL, 0, ConversationPriority.URGENT),
    (Urgency.NORMAL, 8, ConversationPriority.URGENT),
    (Urgency.HIGH, 1, ConversationPriority.HIGH),
    (Urgency.NORMAL, 6, ConversationPriority.HIGH),
    (Urgency.LOW, 2, ConversationPriority.LOW),
    (Urgency.LOW, 3, ConversationPriority.NORMAL),
    (Urgency.NORMAL, 0, ConversationPriority.NORMAL),
])
def test_derive_priority(urgency, frustration, expected):
    classification = Classification(intent="x", urgency=urgency, frustration_level=frustration)
    assert derive_priority(classification) == expected


@pytest.mark.parametrize("load, agents, expected", [
    (2, 3, 2),
    (5, 3, 5),
    (9, 3, 6),
    (9, 10, 15),
])
def test_wait_estimate(load, agents, expected):
    assert estimate_wait_minutes(_team(1, TeamType.SUPPORT, load, agents=agents)) == expected


def test_alternatives_are_capped_and_sorted():
    teams = [
        _team(1, TeamType.FINANCE, load=1),
        _team(2, TeamType.SUPPORT, load=7),
        _team(3, TeamType.COMMERCIAL, load=3),
        _team(4, TeamType.TUTORING, load=5),
        _team(5, TeamType.REGISTRAR, load=0, auto=False),
    ]
    alternatives = list_alternatives(_billing(), teams, 1, TABLE)
    assert [a.team_id for a in alternatives] == [3, 4]
    assert alternatives[0].utilization_rate == 30.0
    assert alternatives[0].reason.endswith("30% utilization")


def test_unclassified_alternatives_use_fallback_confidence():
    teams = [_team(1, TeamType.FINANCE, load=0), _team(2, TeamType.SUPPORT, load=4)]
    (alternative,) = list_alternatives(None, teams, 1, TABLE)
    assert alternative.confidence == 30.0


def test_alternatives_skip_nearly_full_teams():
    teams = [
        _team(1, TeamType.FINANCE, load=1),
        _team(2, TeamType.SUPPORT, load=9),
        _team(3, TeamType.COMMERCIAL, load=12),
        _team(4, TeamType.TUTORING, load=8),
    ]
    alternatives = list_alternatives(_billing(), teams, 1, TABLE)
    assert [a.team_id for a in alternatives] == [4]


def test_alternative_cap_is_configurable():
    teams = [_team(1, TeamType.FINANCE, load=1), _team(2, TeamType.SUPPORT, load=6)]
    table = RoutingTable(alternative_utilization_cap=50)
    assert list_alternatives(_billing(), teams, 1, table) == []
