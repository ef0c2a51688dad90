"""
Reminder schedules and the "HH:MM" time-of-day helpers they rely on.
"""

from __future__ import annotations

import re
import threading
from typing import Iterable, Optional, Protocol, Sequence

from meal_notify.errors import ScheduleValidationError
from meal_notify.models import MAX_SNAPSHOT_FOODS, FoodItem, Schedule

MINUTES_PER_DAY = 24 * 60

TIME_PATTERN = re.compile(r"^(?P<hour>[01]\d|2[0-3]):(?P<minute>[0-5]\d)$")


def minute_of_day(value: str) -> int:
    """Convert a validated "HH:MM" string to minutes since midnight."""
    match = TIME_PATTERN.match(value)
    if not match:
        raise ScheduleValidationError(f"Invalid time {value!r}, expected HH:MM")
    return int(match.group("hour")) * 60 + int(match.group("minute"))


def minute_distance(a: int, b: int) -> int:
    """Distance between two minutes-of-day, wrapping around midnight."""
    diff = abs(a - b) % MINUTES_PER_DAY
    return min(diff, MINUTES_PER_DAY - diff)


def validate_times(times: Optional[Sequence[str]]) -> tuple[str, ...]:
    """
    Validate reminder times and collapse duplicates, keeping first occurrence.

    Raises ScheduleValidationError for a missing/empty list or any entry that
    is not a zero-padded 24h "HH:MM" string.
    """
    if not times:
        raise ScheduleValidationError("Notification times required")
    invalid = [t for t in times if not isinstance(t, str) or not TIME_PATTERN.match(t)]
    if invalid:
        raise ScheduleValidationError(
            f"Invalid notification times {invalid!r}, expected HH:MM (00:00-23:59)"
        )
    return tuple(dict.fromkeys(times))


class ScheduleStore(Protocol):
    def replace(
        self, identifier: str, times: Sequence[str], foods: Iterable[FoodItem]
    ) -> Schedule:
        ...

    def get(self, identifier: str) -> Optional[Schedule]:
        ...

    def remove(self, identifier: str) -> bool:
        ...

    def all(self) -> list[Schedule]:
        ...

    def __len__(self) -> int:
        ...


class InMemoryScheduleStore:
    """Volatile per-identifier schedules; each update replaces the old one."""

    def __init__(self):
        self.schedules: dict[str, Schedule] = {}
        self._lock = threading.RLock()

    def replace(
        self, identifier: str, times: Sequence[str], foods: Iterable[FoodItem]
    ) -> Schedule:
        schedule = Schedule(
            identifier=identifier,
            times=tuple(times),
            foods=tuple(foods)[:MAX_SNAPSHOT_FOODS],
        )
        with self._lock:
            self.schedules[identifier] = schedule
        return schedule

    def get(self, identifier: str) -> Optional[Schedule]:
        with self._lock:
            return self.schedules.get(identifier)

    def remove(self, identifier: str) -> bool:
        with self._lock:
            return self.schedules.pop(identifier, None) is not None

    def all(self) -> list[Schedule]:
        with self._lock:
            return list(self.schedules.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self.schedules)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.schedules.clear()
