"""BusinessHoursPolicy — decides whether online status gates agent selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class BusinessHoursPolicy:
    """Weekly window in a fixed timezone.

    Args:
        timezone_name: IANA zone the window is expressed in.
        start_hour: first hour inside the window (inclusive).
        end_hour: hour the window closes (exclusive).
        weekdays: Python weekday numbers (Monday = 0) that are working days.
    """

    timezone_name: str = "America/Sao_Paulo"
    start_hour: int = 8
    end_hour: int = 18
    weekdays: frozenset[int] = field(default_factory=lambda: frozenset({0, 1, 2, 3, 4}))

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError(
                f"Invalid business hours window {self.start_hour}..{self.end_hour}"
            )
        if not self.weekdays or not set(self.weekdays) <= set(range(7)):
            raise ValueError(f"Invalid business weekdays: {sorted(self.weekdays)}")

    def is_open(self, now: datetime) -> bool:
        """Naive datetimes are taken to be UTC."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local = now.astimezone(ZoneInfo(self.timezone_name))
        return local.weekday() in self.weekdays and self.start_hour <= local.hour < self.end_hour
