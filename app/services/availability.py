"""
Availability resolution – the bookable slots of one resource on one day.

Pipeline (all pure, no I/O):

1.  Classify the resource and look up its reservation rules.
2.  Generate every candidate (start, duration) slot for the day.
3.  Merge reservations and unavailabilities into a busy timeline.
4.  Subtract the busy timeline from the operating window → free intervals.
5.  Keep candidates that fit inside a single free interval and, for today,
    start strictly after ``now``.

Fetching the raw rows is the caller's job; see ``app.routers.availability``.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable

from app.models import AvailableSlot
from app.services.busy_intervals import BusyInterval, TimedRow, ensure_aware, merge_busy
from app.services.equipment import Describable, EquipmentCategory, classify
from app.services.pricing import format_duration
from app.services.reservation_rules import (
    ReservationRules,
    RulesTable,
    default_rules_table,
)
from app.services.slot_generator import CandidateSlot, generate_candidates, operating_window


@dataclass(frozen=True)
class FreeInterval:
    start: datetime
    end: datetime

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end


def free_intervals(
    window: tuple[datetime, datetime],
    busy: Iterable[BusyInterval],
) -> list[FreeInterval]:
    """Gaps of ``window`` not covered by the (sorted, merged) ``busy`` timeline."""
    open_at, close_at = window
    free: list[FreeInterval] = []
    cursor = open_at
    for interval in busy:
        if cursor < interval.start:
            free.append(FreeInterval(cursor, interval.start))
        if cursor < interval.end:
            cursor = interval.end
    if cursor < close_at:
        free.append(FreeInterval(cursor, close_at))
    return free


def _fits(candidate: CandidateSlot, free: list[FreeInterval], starts: list[datetime]) -> bool:
    # The only free interval that can hold the candidate is the last one
    # starting at or before it.
    idx = bisect.bisect_right(starts, candidate.start) - 1
    return idx >= 0 and free[idx].contains(candidate.start, candidate.end)


@dataclass(frozen=True)
class DayAvailability:
    """Everything computed for one resource-day."""
    category: EquipmentCategory
    rules: ReservationRules
    window: tuple[datetime, datetime]
    busy: list[BusyInterval]
    free: list[FreeInterval]
    slots: list[AvailableSlot]


class AvailabilityResolver:
    """
    Resolves bookable slots with an explicit business timezone and rules
    table.  Instances hold no per-call state and can be shared freely.
    """

    def __init__(
        self,
        tz: tzinfo = timezone.utc,
        rules_table: RulesTable = default_rules_table,
    ) -> None:
        self._tz = tz
        self._rules = rules_table

    @property
    def timezone(self) -> tzinfo:
        return self._tz

    def rules_for(self, resource: Describable) -> tuple[EquipmentCategory, ReservationRules]:
        category = classify(resource)
        return category, self._rules.rules_for(category)

    def compute(
        self,
        day: date,
        resource: Describable,
        reservations: Iterable[TimedRow],
        unavailabilities: Iterable[TimedRow],
        now: datetime,
    ) -> DayAvailability:
        category, rules = self.rules_for(resource)
        window = operating_window(day, rules, self._tz)
        busy = merge_busy(reservations, unavailabilities, window)
        free = free_intervals(window, busy)

        now = ensure_aware(now, self._tz)
        is_today = now.date() == day
        starts = [f.start for f in free]

        slots = [
            AvailableSlot(
                start_time=candidate.start,
                end_time=candidate.end,
                duration_minutes=candidate.duration_minutes,
                duration_label=format_duration(candidate.duration_minutes),
            )
            for candidate in generate_candidates(day, rules, self._tz)
            if _fits(candidate, free, starts)
            and not (is_today and candidate.start <= now)
        ]
        return DayAvailability(
            category=category,
            rules=rules,
            window=window,
            busy=busy,
            free=free,
            slots=slots,
        )

    def resolve(
        self,
        day: date,
        resource: Describable,
        reservations: Iterable[TimedRow],
        unavailabilities: Iterable[TimedRow],
        now: datetime,
    ) -> list[AvailableSlot]:
        """Bookable slots for ``resource`` on ``day``; empty when nothing is free."""
        return self.compute(day, resource, reservations, unavailabilities, now).slots


def resolve(
    day: date,
    resource: Describable,
    reservations: Iterable[TimedRow],
    unavailabilities: Iterable[TimedRow],
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> list[AvailableSlot]:
    """Module-level shortcut using the built-in rules table."""
    return AvailabilityResolver(tz).resolve(day, resource, reservations, unavailabilities, now)
