"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from fastapi import Depends, Request
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.notifications.logging_notifier import LoggingNotifier
from app.adapters.persistence.database import get_session
from app.adapters.persistence.repositories import (
    SqlAgentRepository,
    SqlConversationRepository,
    SqlHandoffRepository,
    SqlTeamRepository,
)
from app.adapters.routing_config.loader import utc_now
from app.application.ports.classifier_port import ClassifierPort
from app.application.use_cases.assignment_service import AssignmentService
from app.application.use_cases.capacity_analysis import AgentLoadCalculator, CapacityAnalyzer
from app.application.use_cases.handoff_state_machine import HandoffStateMachine
from app.application.use_cases.team_router import TeamRouter
from app.config import settings
from app.domain.policies.business_hours import BusinessHoursPolicy
from app.domain.policies.team_routing import RoutingTable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Re-export session dependency
get_db_session = get_session

# Singleton adapters (stateless)
_business_hours = BusinessHoursPolicy(
    timezone_name=settings.business_timezone,
    start_hour=settings.business_hours_start,
    end_hour=settings.business_hours_end,
    weekdays=frozenset(settings.business_days),
)
_notifier = LoggingNotifier()


def get_routing_table(request: Request) -> RoutingTable:
    return request.app.state.routing_loader.load()


def get_classifier() -> ClassifierPort | None:
    """No classifier is bundled; automatic assignment without one routes unclassified."""
    return None


def get_assignment_service(
    session: AsyncSession = Depends(get_session),
    routing_table: RoutingTable = Depends(get_routing_table),
    classifier: ClassifierPort | None = Depends(get_classifier),
) -> AssignmentService:
    team_repo = SqlTeamRepository(session, settings.default_role_capacity)
    agent_repo = SqlAgentRepository(session, settings.default_role_capacity)
    conversation_repo = SqlConversationRepository(session)
    handoff_repo = SqlHandoffRepository(session)
    load_calculator = AgentLoadCalculator(
        agent_repo, clock=utc_now, history_days=settings.assignment_history_days
    )
    router = TeamRouter(
        capacity_analyzer=CapacityAnalyzer(team_repo),
        load_calculator=load_calculator,
        routing_table=routing_table,
        business_hours=_business_hours,
        clock=utc_now,
    )
    state_machine = HandoffStateMachine(
        handoff_repo=handoff_repo,
        conversation_repo=conversation_repo,
        agent_repo=agent_repo,
        team_repo=team_repo,
        notifier=_notifier,
        clock=utc_now,
    )
    return AssignmentService(
        router=router,
        state_machine=state_machine,
        conversation_repo=conversation_repo,
        handoff_repo=handoff_repo,
        team_repo=team_repo,
        agent_repo=agent_repo,
        load_calculator=load_calculator,
        clock=utc_now,
        classifier=classifier,
    )


async def _attempt(session: AsyncSession, operation: Callable[[], Awaitable[T]]) -> T:
    try:
        result = await operation()
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return result


async def run_in_transaction(session: AsyncSession, operation: Callable[[], Awaitable[T]]) -> T:
    """Run ``operation`` and commit; a database error is retried once after the rollback."""
    try:
        return await _attempt(session, operation)
    except DBAPIError as e:
        logger.warning("Database error, retrying unit of work once: %s", e)
    return await _attempt(session, operation)
