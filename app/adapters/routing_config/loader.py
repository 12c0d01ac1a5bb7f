"""Routing-table loader — built-in table, or a JSON override file, behind a TTL cache.

File format::

    {
      "version": "2025.2",
      "fallback_team_type": "commercial",
      "overload_threshold": 80,
      "mismatch_penalty": 0.7,
      "alternative_utilization_cap": 90,
      "intents": {"billing_inquiry": "finance", "schedule_request": "registrar"}
    }

``intents`` replaces the built-in intent map entirely when present. Keys that
are absent keep the built-in values; an explicit null is rejected.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel

from app.domain.policies.team_routing import RoutingTable
from app.domain.value_objects.enums import TeamType

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Entry(Generic[T]):
    value: T
    expires_at: datetime


class TtlCache(Generic[T]):
    """Holds one value until ``expires_at``; the clock is injected."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], datetime] = utc_now):
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._entry: _Entry[T] | None = None

    def get(self) -> T | None:
        if self._entry is None or self._clock() >= self._entry.expires_at:
            return None
        return self._entry.value

    def put(self, value: T) -> None:
        self._entry = _Entry(value=value, expires_at=self._clock() + self._ttl)

    def clear(self) -> None:
        self._entry = None


class RoutingTableDocument(BaseModel):
    """Shape of the override file; every key is optional."""

    version: str | None = None
    intents: dict[str, TeamType] | None = None
    fallback_team_type: TeamType | None = None
    overload_threshold: float | None = None
    mismatch_penalty: float | None = None
    low_utilization: float | None = None
    max_alternatives: int | None = None
    alternative_utilization_cap: float | None = None
    fallback_confidence: float | None = None

    def overrides(self) -> dict:
        nulls = sorted(k for k in self.model_fields_set if getattr(self, k) is None)
        if nulls:
            raise ValueError(f"null values are not allowed: {nulls}")
        return self.model_dump(exclude_unset=True)


class RoutingTableLoader:
    """Builds the active ``RoutingTable`` and caches it."""

    def __init__(
        self,
        cache: TtlCache[RoutingTable],
        base_table: RoutingTable | None = None,
        path: str | Path | None = None,
    ):
        self._cache = cache
        self._base = base_table or RoutingTable()
        self._path = Path(path) if path else None

    def load(self) -> RoutingTable:
        table = self._cache.get()
        if table is not None:
            return table

        table = self._base
        if self._path is not None:
            try:
                table = self._read_file(self._path)
                logger.info("Loaded routing table %s from %s", table.version, self._path)
            except (OSError, ValueError, KeyError) as e:
                logger.error(
                    "Invalid routing table file %s, using built-in table %s: %s",
                    self._path, self._base.version, e,
                )
        self._cache.put(table)
        return table

    def invalidate(self) -> None:
        self._cache.clear()

    def _read_file(self, path: Path) -> RoutingTable:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        # ValidationError is a ValueError
        overrides = RoutingTableDocument.model_validate(data).overrides()
        intents = overrides.pop("intents", None)
        if intents is not None:
            overrides["intent_team_types"] = intents
        return dataclasses.replace(self._base, **overrides)
