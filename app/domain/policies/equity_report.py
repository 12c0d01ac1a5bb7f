"""EquityReportPolicy — summarizes how evenly a team's work is spread."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from app.domain.policies.equity_scoring import AgentLoad, score_agent
from app.domain.value_objects.enums import EquityLevel


@dataclass(frozen=True)
class AgentEquity:
    agent_id: int
    name: str
    is_online: bool
    total_assignments: int
    active_conversations: int
    distribution_score: float
    equity_ratio: float


@dataclass(frozen=True)
class EquityReport:
    team_id: int
    total_agents: int
    online_agents: int
    average_assignments: float
    standard_deviation: float
    equity_level: EquityLevel
    agents: list[AgentEquity]


def classify_equity(standard_deviation: float) -> EquityLevel:
    if standard_deviation > 5:
        return EquityLevel.POOR
    if standard_deviation > 3:
        return EquityLevel.MODERATE
    if standard_deviation > 1.5:
        return EquityLevel.GOOD
    return EquityLevel.EXCELLENT


def build_equity_report(team_id: int, loads: list[AgentLoad], now: datetime) -> EquityReport:
    if not loads:
        return EquityReport(
            team_id=team_id,
            total_agents=0,
            online_agents=0,
            average_assignments=0.0,
            standard_deviation=0.0,
            equity_level=EquityLevel.POOR,
            agents=[],
        )

    totals = [load.total_assignments for load in loads]
    average = sum(totals) / len(totals)
    variance = sum((t - average) ** 2 for t in totals) / len(totals)
    std_dev = math.sqrt(variance)

    agents = []
    for load in sorted(loads, key=lambda a: a.agent_id):
        agents.append(
            AgentEquity(
                agent_id=load.agent_id,
                name=load.name,
                is_online=load.is_online,
                total_assignments=load.total_assignments,
                active_conversations=load.active_conversations,
                distribution_score=round(score_agent(load, now).distribution_score, 2),
                equity_ratio=round(load.total_assignments / average, 2) if average > 0 else 1.0,
            )
        )

    return EquityReport(
        team_id=team_id,
        total_agents=len(loads),
        online_agents=sum(1 for load in loads if load.is_online),
        average_assignments=round(average, 2),
        standard_deviation=round(std_dev, 2),
        equity_level=classify_equity(std_dev),
        agents=agents,
    )
