"""Busy-interval merging for one resource-day."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Iterable, Protocol

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


class TimedRow(Protocol):
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"Busy interval must have start < end, got {self.start} - {self.end}")

    # Row-shaped aliases so a merged timeline can be fed back into merge_busy.
    @property
    def start_time(self) -> datetime:
        return self.start

    @property
    def end_time(self) -> datetime:
        return self.end

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


def ensure_aware(value: datetime, tz: tzinfo) -> datetime:
    """Attach ``tz`` to naive datetimes; convert aware ones into ``tz``."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def _is_cancelled(row: object) -> bool:
    status = getattr(row, "status", None)
    if status is None:
        return False
    # Accept both plain strings and str-based enums.
    return str(getattr(status, "value", status)).strip().lower() == CANCELLED


def _clip(
    row: TimedRow,
    open_at: datetime,
    close_at: datetime,
    kind: str,
) -> BusyInterval | None:
    tz = open_at.tzinfo
    start = ensure_aware(row.start_time, tz)
    end = ensure_aware(row.end_time, tz)
    if start >= end:
        logger.warning("Dropping %s row with start %s not before end %s", kind, start, end)
        return None

    start = max(start, open_at)
    end = min(end, close_at)
    if start >= end:
        # Entirely outside the operating window.
        return None
    return BusyInterval(start, end)


def merge_busy(
    reservations: Iterable[TimedRow],
    unavailabilities: Iterable[TimedRow],
    window: tuple[datetime, datetime],
) -> list[BusyInterval]:
    """
    Build the busy timeline of a resource-day.

    Cancelled reservations are ignored; every other reservation and every
    unavailability is clipped to ``window``, then overlapping or touching
    intervals are coalesced.  The result is sorted and non-overlapping.
    """
    open_at, close_at = window
    clipped: list[BusyInterval] = []

    for row in reservations:
        if _is_cancelled(row):
            continue
        interval = _clip(row, open_at, close_at, "reservation")
        if interval is not None:
            clipped.append(interval)

    for row in unavailabilities:
        interval = _clip(row, open_at, close_at, "unavailability")
        if interval is not None:
            clipped.append(interval)

    return coalesce(clipped)


def coalesce(intervals: Iterable[BusyInterval]) -> list[BusyInterval]:
    """Sort by start and merge overlapping or touching intervals."""
    ordered = sorted(intervals, key=lambda i: (i.start, i.end))
    if not ordered:
        return []

    merged: list[BusyInterval] = []
    current_start, current_end = ordered[0].start, ordered[0].end
    for interval in ordered[1:]:
        if interval.start <= current_end:
            current_end = max(current_end, interval.end)
        else:
            merged.append(BusyInterval(current_start, current_end))
            current_start, current_end = interval.start, interval.end
    merged.append(BusyInterval(current_start, current_end))
    return merged
