"""Seed teams and agents from a roster JSON file.

Usage:
    python -m app.tools.seed_db
    python -m app.tools.seed_db --roster data/roster.json
    python -m app.tools.seed_db --drop  # drop existing data first

Roster format::

    {
      "teams": [{"name": "Finance", "team_type": "finance", "max_capacity": 20}],
      "agents": [{"name": "Ana", "role": "agent", "teams": ["Finance"], "is_online": true}]
    }
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.adapters.persistence.database import async_session_factory
from app.adapters.persistence.models import (
    ConversationModel,
    HandoffModel,
    TeamMembershipModel,
    TeamModel,
    UserModel,
)
from app.domain.value_objects.enums import AgentRole, TeamType

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


@dataclass
class Roster:
    teams: list[dict] = field(default_factory=list)
    agents: list[dict] = field(default_factory=list)


def parse_roster(data: dict) -> Roster:
    """Validate a roster document and normalize its values.

    Raises:
        ValueError: unknown team type or role, duplicate team, or an agent
            pointing at a team the roster does not define.
    """
    roster = Roster()
    names: set[str] = set()
    for raw in data.get("teams", []):
        name = raw["name"].strip()
        if name in names:
            raise ValueError(f"Duplicate team '{name}'")
        names.add(name)
        max_capacity = raw.get("max_capacity")
        roster.teams.append({
            "name": name,
            "team_type": TeamType(raw["team_type"].strip().lower()).value,
            "max_capacity": int(max_capacity) if max_capacity is not None else None,
            "priority": int(raw.get("priority", 0)),
            "is_active": bool(raw.get("is_active", True)),
            "auto_assignment_enabled": bool(raw.get("auto_assignment_enabled", True)),
        })

    for raw in data.get("agents", []):
        teams = [t.strip() for t in raw.get("teams", [])]
        unknown = [t for t in teams if t not in names]
        if unknown:
            raise ValueError(f"Agent '{raw['name']}' references unknown teams: {unknown}")
        capacity = raw.get("role_capacity")
        roster.agents.append({
            "name": raw["name"].strip(),
            "role": AgentRole(raw.get("role", AgentRole.AGENT.value)).value,
            "is_online": bool(raw.get("is_online", False)),
            "is_active": bool(raw.get("is_active", True)),
            "role_capacity": int(capacity) if capacity is not None else None,
            "teams": teams,
        })
    return roster


def load_roster(path: Path) -> Roster:
    with open(path, encoding="utf-8") as f:
        return parse_roster(json.load(f))


async def _drop_data(session: AsyncSession) -> None:
    """Delete all data in correct order (respecting FK constraints)."""
    for model in [
        HandoffModel,
        ConversationModel,
        TeamMembershipModel,
        UserModel,
        TeamModel,
    ]:
        await session.execute(delete(model))
    await session.commit()
    logger.info("Dropped all existing data")


async def seed(roster_path: Path, drop: bool = False) -> dict[str, int]:
    """Main seed function. Returns counts of seeded records."""
    counts = {"teams": 0, "agents": 0, "memberships": 0}
    roster = load_roster(roster_path)

    async with async_session_factory() as session:
        if drop:
            await _drop_data(session)

        # 1. Teams
        team_name_to_id: dict[str, int] = {}
        for td in roster.teams:
            existing = await session.execute(select(TeamModel).where(TeamModel.name == td["name"]))
            team = existing.scalar_one_or_none()
            if team is not None:
                logger.debug("Team '%s' already exists, skipping", td["name"])
            else:
                team = TeamModel(**td)
                session.add(team)
                await session.flush()
                counts["teams"] += 1
            team_name_to_id[td["name"]] = team.id

        await session.commit()

        # 2. Agents and their memberships
        for ad in roster.agents:
            existing = await session.execute(select(UserModel).where(UserModel.name == ad["name"]))
            if existing.scalar_one_or_none():
                logger.debug("Agent '%s' already exists, skipping", ad["name"])
                continue

            user = UserModel(
                name=ad["name"],
                role=ad["role"],
                is_online=ad["is_online"],
                is_active=ad["is_active"],
                role_capacity=ad["role_capacity"],
            )
            session.add(user)
            await session.flush()
            counts["agents"] += 1

            for team_name in ad["teams"]:
                session.add(TeamMembershipModel(team_id=team_name_to_id[team_name], user_id=user.id))
                counts["memberships"] += 1

        await session.commit()

    logger.info(
        "Seed complete: %d teams, %d agents, %d memberships",
        counts["teams"], counts["agents"], counts["memberships"],
    )
    return counts


async def _verify_data() -> None:
    """Print sanity checks after seeding."""
    async with async_session_factory() as session:
        teams = (await session.execute(select(TeamModel))).scalars().all()
        users = (await session.execute(select(UserModel))).scalars().all()
        rows = await session.execute(
            select(TeamMembershipModel.team_id, func.count())
            .where(TeamMembershipModel.is_active.is_(True))
            .group_by(TeamMembershipModel.team_id)
        )
        roster_sizes = dict(rows.all())

        print(f"\n{'='*50}")
        print("SEED VERIFICATION")
        print(f"{'='*50}")
        print(f"Teams:  {len(teams)}")
        print(f"Agents: {len(users)}")

        types = {}
        for t in teams:
            types[t.team_type] = types.get(t.team_type, 0) + 1
        print(f"Team type distribution: {types}")

        empty = [t.name for t in teams if not roster_sizes.get(t.id)]
        print(f"Teams without agents: {empty}")

        roles = {}
        for u in users:
            roles[u.role] = roles.get(u.role, 0) + 1
        print(f"Role distribution: {roles}")
        print(f"{'='*50}\n")


def main():
    parser = argparse.ArgumentParser(description="Seed the assignment database from a roster file")
    parser.add_argument(
        "--roster", type=str, default="data/roster.json",
        help="Roster JSON file (default: data/roster.json)",
    )
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop existing data before seeding",
    )
    parser.add_argument(
        "--verify-only", action="store_true",
        help="Only run verification, don't seed",
    )
    args = parser.parse_args()

    roster_path = Path(args.roster)
    if not args.verify_only and not roster_path.exists():
        logger.error("Roster file not found: %s", roster_path)
        sys.exit(1)

    if args.verify_only:
        asyncio.run(_verify_data())
    else:
        async def run_all():
            await seed(roster_path, drop=args.drop)
            await _verify_data()
        asyncio.run(run_all())


if __name__ == "__main__":
    main()
