"""Tests for the equity report and handoff statistics."""

from datetime import datetime, timezone

import pytest

from app.domain.entities.handoff import Handoff
from app.domain.policies.equity_report import build_equity_report, classify_equity
from app.domain.policies.equity_scoring import AgentLoad
from app.domain.policies.handoff_stats import summarize_handoffs
from app.domain.value_objects.enums import (
    ConversationPriority,
    EquityLevel,
    HandoffStatus,
    HandoffType,
)

NOW = datetime(2026, 10, 14, 17, 0, tzinfo=timezone.utc)


def _loads(*totals):
    return [
        AgentLoad(agent_id=i, name=f"a{i}", is_online=i % 2 == 0, is_active=True,
                  role_capacity=10, active_conversations=1, total_assignments=t,
                  last_assigned_at=None)
        for i, t in enumerate(totals, start=1)
    ]


def test_empty_team_is_poor():
    report = build_equity_report(3, [], NOW)
    assert report.equity_level == EquityLevel.POOR
    assert report.total_agents == 0
    assert report.agents == []


@pytest.mark.parametrize("totals, level", [
    ((4, 4, 4), EquityLevel.EXCELLENT),
    ((2, 4), EquityLevel.EXCELLENT),
    ((1, 5), EquityLevel.GOOD),
    ((0, 10), EquityLevel.MODERATE),
    ((0, 12), EquityLevel.POOR),
])
def test_level_follows_standard_deviation(totals, level):
    assert build_equity_report(1, _loads(*totals), NOW).equity_level == level


def test_report_details():
    report = build_equity_report(1, _loads(1, 5), NOW)
    assert report.average_assignments == 3.0
    assert report.standard_deviation == 2.0
    assert report.online_agents == 1
    assert [a.equity_ratio for a in report.agents] == [0.33, 1.67]
    assert report.agents[0].distribution_score == 11.0


def test_ratio_is_one_when_nobody_has_work():
    report = build_equity_report(1, _loads(0, 0), NOW)
    assert all(a.equity_ratio == 1.0 for a in report.agents)


def test_thresholds_are_exclusive():
    assert classify_equity(1.5) == EquityLevel.EXCELLENT
    assert classify_equity(3.0) == EquityLevel.GOOD
    assert classify_equity(5.0) == EquityLevel.MODERATE


def test_handoff_stats():
    handoffs = [
        Handoff(id=1, conversation_id=1, type=HandoffType.AUTOMATIC, status=HandoffStatus.COMPLETED),
        Handoff(id=2, conversation_id=1, type=HandoffType.MANUAL, status=HandoffStatus.REJECTED,
                priority=ConversationPriority.HIGH),
        Handoff(id=3, conversation_id=2, type=HandoffType.ESCALATION),
    ]
    stats = summarize_handoffs(handoffs)
    assert (stats.total, stats.pending, stats.completed, stats.rejected, stats.accepted) == (3, 1, 1, 1, 0)
    assert stats.by_type == {"automatic": 1, "manual": 1, "escalation": 1}
    assert stats.by_priority == {"normal": 2, "high": 1}
