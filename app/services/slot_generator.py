"""
Candidate slot generation.

For one resource-day, enumerates every (start, duration) pair allowed by
the reservation rules:

  • starts every ``increment_minutes`` from opening time, while start < close
  • durations from minimum to maximum in ``increment_minutes`` steps
  • only pairs that end at or before closing time

Output is ordered by start time, then duration.  Nothing is cached – every
call walks the grid again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterator

from app.services.reservation_rules import ReservationRules


@dataclass(frozen=True)
class CandidateSlot:
    start: datetime
    end: datetime
    duration_minutes: int


def operating_window(day: date, rules: ReservationRules, tz: tzinfo) -> tuple[datetime, datetime]:
    """Opening and closing instants of ``day`` in ``tz``."""
    return (
        datetime.combine(day, rules.opens_at, tzinfo=tz),
        datetime.combine(day, rules.closes_at, tzinfo=tz),
    )


def generate_candidates(
    day: date,
    rules: ReservationRules,
    tz: tzinfo = timezone.utc,
) -> Iterator[CandidateSlot]:
    durations = rules.durations
    if not durations:
        return

    open_at, close_at = operating_window(day, rules, tz)
    # Step on absolute time so a DST transition never stretches a slot.
    open_utc = open_at.astimezone(timezone.utc)
    close_utc = close_at.astimezone(timezone.utc)
    step = timedelta(minutes=rules.increment_minutes)

    start = open_utc
    while start < close_utc:
        for minutes in durations:
            end = start + timedelta(minutes=minutes)
            if end > close_utc:
                break
            yield CandidateSlot(
                start=start.astimezone(tz),
                end=end.astimezone(tz),
                duration_minutes=minutes,
            )
        start += step
