"""Conversation Assignment Engine — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from app.adapters.persistence.database import engine
from app.adapters.routing_config.loader import RoutingTableLoader, TtlCache
from app.config import Settings, settings
from app.domain.policies.team_routing import RoutingTable
from app.domain.value_objects.enums import TeamType
from app.infrastructure.api.errors import register_error_handlers
from app.infrastructure.api.routes_assignments import router as assignments_router
from app.infrastructure.api.routes_handoffs import router as handoffs_router
from app.infrastructure.api.routes_health import router as health_router
from app.infrastructure.api.routes_teams import router as teams_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database not available on startup: %s", e)
    yield
    await engine.dispose()


def build_routing_loader(config: Settings) -> RoutingTableLoader:
    base_table = RoutingTable(
        fallback_team_type=TeamType(config.fallback_team_type),
        overload_threshold=config.overload_threshold,
        mismatch_penalty=config.mismatch_penalty,
    )
    return RoutingTableLoader(
        cache=TtlCache(config.routing_cache_ttl_seconds),
        base_table=base_table,
        path=config.routing_table_path or None,
    )


def create_app(config: Settings = settings) -> FastAPI:
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Conversation Assignment Engine",
        description="Team routing, equitable agent selection and handoff lifecycle",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.routing_loader = build_routing_loader(config)
    register_error_handlers(app)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(assignments_router, prefix="/api")
    app.include_router(teams_router, prefix="/api")
    app.include_router(handoffs_router, prefix="/api")

    return app


app = create_app()
