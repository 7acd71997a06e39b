"""
SQLite database layer using aiosqlite.

Stores bookable resources, reservations and unavailability windows.
Tables are created automatically on first connect, and the demo
resources are seeded into an empty database.

Timestamps are stored as ISO-8601 strings in UTC so that lexical
comparison in SQL matches chronological order.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator
from uuid import UUID, uuid4

import aiosqlite

from app.config import BUSINESS_TIMEZONE, DB_PATH, SEED_RESOURCES
from app.models import (
    Reservation,
    ReservationRow,
    ReservationStatus,
    Resource,
    ResourceStatus,
    Unavailability,
    UnavailabilityRow,
)

logger = logging.getLogger(__name__)


class OverlapError(Exception):
    """A write would overlap a blackout window or another active reservation."""


# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None
# Serializes write transactions on the shared connection.
_write_lock: asyncio.Lock | None = None


async def init_db() -> None:
    """Open the database, create tables and seed resources if needed."""
    global _db, _write_lock
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _write_lock = asyncio.Lock()
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")

    await _db.executescript(_SCHEMA)
    await _db.commit()
    if SEED_RESOURCES:
        await _seed_resources()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    assert _db is not None, "Database not initialized, call init_db() first"
    return _db


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS resources (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    description     TEXT,
    hourly_rate     REAL NOT NULL CHECK (hourly_rate >= 0),
    status          TEXT NOT NULL DEFAULT 'available',
    image_url       TEXT,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS reservations (
    id              TEXT PRIMARY KEY,
    resource_id     TEXT NOT NULL,
    start_time      TEXT NOT NULL,   -- UTC ISO-8601
    end_time        TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'pending',
    total_price     INTEGER NOT NULL CHECK (total_price >= 0),
    customer_name   TEXT,
    customer_email  TEXT,
    customer_phone  TEXT,
    created_at      TEXT NOT NULL,
    CHECK (end_time > start_time),
    FOREIGN KEY (resource_id) REFERENCES resources(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_resv_resource_time
    ON reservations(resource_id, start_time, end_time);

CREATE TABLE IF NOT EXISTS unavailabilities (
    id              TEXT PRIMARY KEY,
    resource_id     TEXT NOT NULL,
    start_time      TEXT NOT NULL,   -- UTC ISO-8601
    end_time        TEXT NOT NULL,
    reason          TEXT,
    created_by      TEXT,
    created_at      TEXT NOT NULL,
    CHECK (end_time > start_time),
    FOREIGN KEY (resource_id) REFERENCES resources(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_unavail_resource_time
    ON unavailabilities(resource_id, start_time, end_time);
"""

# name, description, hourly rate
_SEED_RESOURCES: list[tuple[str, str, int]] = [
    ("Padel Court A", "Outdoor court with night lighting", 8000),
    ("Padel Court B", "Training court for beginners", 6000),
    ("Padel Court C", "Premium indoor court with AC", 12000),
    ("Padel Court D", "Outdoor clay court", 7000),
    ("Padel Court E", "Covered court for rainy days", 9000),
    ("Padel Court F", "Night play court", 8500),
    ("Vélo spinning", "Salle cardio, vélo connecté", 2000),
    ("Tapis de course", "Salle cardio", 2000),
    ("Elliptique", "Salle cardio", 2000),
]


# ── Helpers ───────────────────────────────────────────────────────────────


def _utc_iso(dt: datetime) -> str:
    """Normalize to UTC; naive values are taken as business-local time."""
    if dt.tzinfo is None or dt.utcoffset() is None:
        dt = dt.replace(tzinfo=BUSINESS_TIMEZONE)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_iso(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _row_to_resource(row: aiosqlite.Row) -> Resource:
    return Resource(
        id=UUID(row["id"]),
        name=row["name"],
        description=row["description"],
        hourly_rate=row["hourly_rate"],
        status=ResourceStatus(row["status"]),
        image_url=row["image_url"],
    )


def _row_to_reservation(row: aiosqlite.Row) -> Reservation:
    return Reservation(
        id=UUID(row["id"]),
        resource_id=UUID(row["resource_id"]),
        start_time=_from_iso(row["start_time"]),
        end_time=_from_iso(row["end_time"]),
        status=ReservationStatus(row["status"]),
        total_price=row["total_price"],
        customer_name=row["customer_name"],
        customer_email=row["customer_email"],
        customer_phone=row["customer_phone"],
        created_at=_from_iso(row["created_at"]),
    )


def _row_to_unavailability(row: aiosqlite.Row) -> Unavailability:
    return Unavailability(
        id=UUID(row["id"]),
        resource_id=UUID(row["resource_id"]),
        start_time=_from_iso(row["start_time"]),
        end_time=_from_iso(row["end_time"]),
        reason=row["reason"],
        created_by=row["created_by"],
        created_at=_from_iso(row["created_at"]),
    )


async def _seed_resources() -> None:
    db = get_db()
    async with db.execute("SELECT COUNT(*) FROM resources") as cur:
        (count,) = await cur.fetchone()
    if count:
        return

    now = _now_iso()
    async with _transaction() as db:
        await db.executemany(
            """
            INSERT INTO resources (id, name, description, hourly_rate, status, image_url, created_at)
            VALUES (?, ?, ?, ?, 'available', NULL, ?)
            """,
            [(str(uuid4()), name, desc, rate, now) for name, desc, rate in _SEED_RESOURCES],
        )
    logger.info("Seeded %d resources", len(_SEED_RESOURCES))


@asynccontextmanager
async def _transaction() -> AsyncIterator[aiosqlite.Connection]:
    """
    Run a block as one write transaction.

    Writers queue on the module lock, then take SQLite's write lock up front
    with BEGIN IMMEDIATE, so an overlap check and the write that depends on
    it cannot interleave with another writer. Commits on success, rolls back
    on any exception.
    """
    db = get_db()
    assert _write_lock is not None
    async with _write_lock:
        await db.execute("BEGIN IMMEDIATE")
        try:
            yield db
        except BaseException:
            await db.rollback()
            raise
        else:
            await db.commit()


async def _blackout_overlaps(
    resource_id: str,
    start_iso: str,
    end_iso: str,
) -> bool:
    """Half-open overlap test against the resource's unavailability windows."""
    db = get_db()
    async with db.execute(
        """
        SELECT 1 FROM unavailabilities
        WHERE resource_id = ? AND start_time < ? AND end_time > ?
        LIMIT 1
        """,
        (resource_id, end_iso, start_iso),
    ) as cur:
        return await cur.fetchone() is not None


async def _reservation_overlaps(
    resource_id: str,
    start_iso: str,
    end_iso: str,
    *,
    exclude_id: str | None = None,
) -> bool:
    """Half-open overlap test against the resource's non-cancelled reservations."""
    db = get_db()
    sql = """
        SELECT 1 FROM reservations
        WHERE resource_id = ? AND status <> ?
          AND start_time < ? AND end_time > ?
    """
    params: list = [resource_id, ReservationStatus.CANCELLED.value, end_iso, start_iso]
    if exclude_id is not None:
        sql += " AND id <> ?"
        params.append(exclude_id)
    sql += " LIMIT 1"
    async with db.execute(sql, params) as cur:
        return await cur.fetchone() is not None


async def _check_slot_free(
    resource_id: str,
    start_iso: str,
    end_iso: str,
    *,
    exclude_id: str | None = None,
) -> None:
    if await _blackout_overlaps(resource_id, start_iso, end_iso):
        raise OverlapError("Resource is unavailable during the selected time window")
    if await _reservation_overlaps(resource_id, start_iso, end_iso, exclude_id=exclude_id):
        raise OverlapError("Resource is already reserved during the selected time window")


# ══════════════════════════════════════════════════════════════════════════
#                    RESOURCE REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def get_resource(resource_id: str) -> Resource | None:
    """Fetch a single resource by ID."""
    db = get_db()
    async with db.execute(
        "SELECT * FROM resources WHERE id = ?", (resource_id,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_resource(row) if row else None


async def list_resources(*, status: ResourceStatus | None = None) -> list[Resource]:
    """List resources ordered by name, optionally filtered by status."""
    db = get_db()
    sql = "SELECT * FROM resources"
    params: list = []
    if status is not None:
        sql += " WHERE status = ?"
        params.append(status.value)
    sql += " ORDER BY name"

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_resource(r) for r in rows]


async def set_resource_status(resource_id: str, status: ResourceStatus) -> Resource | None:
    async with _transaction() as db:
        await db.execute(
            "UPDATE resources SET status = ? WHERE id = ?",
            (status.value, resource_id),
        )
    return await get_resource(resource_id)


# ══════════════════════════════════════════════════════════════════════════
#                    RESERVATION REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_reservation(
    resource_id: str,
    start_time: datetime,
    end_time: datetime,
    total_price: int,
    *,
    status: ReservationStatus = ReservationStatus.PENDING,
    customer_name: str | None = None,
    customer_email: str | None = None,
    customer_phone: str | None = None,
) -> Reservation:
    """
    Insert a reservation.

    Raises OverlapError when the time range hits an unavailability window
    or a non-cancelled reservation of the same resource. The check and the
    insert share one transaction.
    """
    start_iso, end_iso = _utc_iso(start_time), _utc_iso(end_time)
    reservation_id = str(uuid4())
    async with _transaction() as db:
        if status != ReservationStatus.CANCELLED:
            await _check_slot_free(resource_id, start_iso, end_iso)
        await db.execute(
            """
            INSERT INTO reservations (
                id, resource_id, start_time, end_time, status, total_price,
                customer_name, customer_email, customer_phone, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                reservation_id, resource_id, start_iso, end_iso, status.value, total_price,
                customer_name, customer_email, customer_phone, _now_iso(),
            ),
        )
    logger.info(
        "Reservation %s created for resource %s (%s – %s, %s)",
        reservation_id, resource_id, start_iso, end_iso, status.value,
    )
    return await get_reservation(reservation_id)  # type: ignore[return-value]


async def get_reservation(reservation_id: str) -> Reservation | None:
    db = get_db()
    async with db.execute(
        "SELECT * FROM reservations WHERE id = ?", (reservation_id,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_reservation(row) if row else None


async def set_reservation_status(
    reservation_id: str, status: ReservationStatus
) -> Reservation | None:
    """
    Move a reservation to a new status. Returns None if it does not exist.

    Moving to pending or confirmed re-runs the overlap checks, so a
    cancelled booking cannot come back over a slot taken in the meantime.
    """
    async with _transaction() as db:
        async with db.execute(
            "SELECT resource_id, start_time, end_time FROM reservations WHERE id = ?",
            (reservation_id,),
        ) as cur:
            row = await cur.fetchone()
        if row is None:
            return None
        if status != ReservationStatus.CANCELLED:
            await _check_slot_free(
                row["resource_id"], row["start_time"], row["end_time"],
                exclude_id=reservation_id,
            )
        await db.execute(
            "UPDATE reservations SET status = ? WHERE id = ?",
            (status.value, reservation_id),
        )
    return await get_reservation(reservation_id)


async def list_reservations(
    *,
    resource_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    status: ReservationStatus | None = None,
) -> list[Reservation]:
    """Reservations ordered by start time, optionally overlapping [start, end)."""
    db = get_db()
    sql = "SELECT * FROM reservations"
    clauses: list[str] = []
    params: list = []
    if resource_id is not None:
        clauses.append("resource_id = ?")
        params.append(resource_id)
    if start is not None:
        clauses.append("end_time > ?")
        params.append(_utc_iso(start))
    if end is not None:
        clauses.append("start_time < ?")
        params.append(_utc_iso(end))
    if status is not None:
        clauses.append("status = ?")
        params.append(status.value)
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY start_time, created_at"

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_reservation(r) for r in rows]


async def list_day_reservations(
    resource_id: str,
    window_start: datetime,
    window_end: datetime,
) -> list[ReservationRow]:
    """Non-cancelled reservations overlapping [window_start, window_end)."""
    db = get_db()
    async with db.execute(
        """
        SELECT start_time, end_time, status FROM reservations
        WHERE resource_id = ? AND status <> ?
          AND start_time < ? AND end_time > ?
        ORDER BY start_time
        """,
        (
            resource_id,
            ReservationStatus.CANCELLED.value,
            _utc_iso(window_end),
            _utc_iso(window_start),
        ),
    ) as cur:
        rows = await cur.fetchall()
    return [
        ReservationRow(
            start_time=_from_iso(r["start_time"]),
            end_time=_from_iso(r["end_time"]),
            status=r["status"],
        )
        for r in rows
    ]


# ══════════════════════════════════════════════════════════════════════════
#                    UNAVAILABILITY REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_unavailability(
    resource_id: str,
    start_time: datetime,
    end_time: datetime,
    *,
    reason: str | None = None,
    created_by: str | None = None,
) -> Unavailability:
    """
    Insert an unavailability window.

    Raises OverlapError when it overlaps another window of the same resource.
    """
    start_iso, end_iso = _utc_iso(start_time), _utc_iso(end_time)
    unavailability_id = str(uuid4())
    async with _transaction() as db:
        if await _blackout_overlaps(resource_id, start_iso, end_iso):
            raise OverlapError("Overlapping unavailability exists for this resource")
        await db.execute(
            """
            INSERT INTO unavailabilities
                (id, resource_id, start_time, end_time, reason, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (unavailability_id, resource_id, start_iso, end_iso, reason, created_by, _now_iso()),
        )
    logger.info(
        "Unavailability %s added to resource %s (%s – %s)",
        unavailability_id, resource_id, start_iso, end_iso,
    )
    return await get_unavailability(unavailability_id)  # type: ignore[return-value]


async def get_unavailability(unavailability_id: str) -> Unavailability | None:
    db = get_db()
    async with db.execute(
        "SELECT * FROM unavailabilities WHERE id = ?", (unavailability_id,)
    ) as cur:
        row = await cur.fetchone()
    return _row_to_unavailability(row) if row else None


async def list_unavailabilities(
    resource_id: str,
    *,
    ending_after: datetime | None = None,
) -> list[Unavailability]:
    """All windows of a resource, optionally only those still running after a point in time."""
    db = get_db()
    sql = "SELECT * FROM unavailabilities WHERE resource_id = ?"
    params: list = [resource_id]
    if ending_after is not None:
        sql += " AND end_time > ?"
        params.append(_utc_iso(ending_after))
    sql += " ORDER BY start_time"

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_unavailability(r) for r in rows]


async def list_day_unavailabilities(
    resource_id: str,
    window_start: datetime,
    window_end: datetime,
) -> list[UnavailabilityRow]:
    """Unavailability windows overlapping [window_start, window_end)."""
    db = get_db()
    async with db.execute(
        """
        SELECT start_time, end_time, reason FROM unavailabilities
        WHERE resource_id = ? AND start_time < ? AND end_time > ?
        ORDER BY start_time
        """,
        (resource_id, _utc_iso(window_end), _utc_iso(window_start)),
    ) as cur:
        rows = await cur.fetchall()
    return [
        UnavailabilityRow(
            start_time=_from_iso(r["start_time"]),
            end_time=_from_iso(r["end_time"]),
            reason=r["reason"],
        )
        for r in rows
    ]


async def delete_unavailability(unavailability_id: str) -> bool:
    """Delete a window. Returns True if a row was actually deleted."""
    async with _transaction() as db:
        cur = await db.execute(
            "DELETE FROM unavailabilities WHERE id = ?", (unavailability_id,)
        )
    return cur.rowcount > 0
