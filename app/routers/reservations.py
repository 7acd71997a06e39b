"""
Reservation endpoints.

Creating a reservation re-runs the availability resolver for the requested
day and only accepts a (start, end) pair that is currently offered.  The
store re-checks blackouts and active reservations inside the insert
transaction, so two concurrent requests for the same slot cannot both win.
"""

import logging
from datetime import date, datetime, time, timedelta
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status

from app import db
from app.config import LONG_BOOKING_DISCOUNT
from app.dependencies import AdminUser, ExistingResource, Now, PaginationParams, Resolver, paginate
from app.models import Reservation, ReservationCreate, ReservationListResponse, ReservationStatus
from app.rate_limit import BOOKING, limiter
from app.routers.availability import compute_day_availability
from app.services.busy_intervals import ensure_aware
from app.services.pricing import price

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reservations"])


@router.post(
    "/api/resources/{resource_id}/reservations",
    response_model=Reservation,
    status_code=status.HTTP_201_CREATED,
    operation_id="createReservation",
    summary="Request a reservation for one of the offered slots",
)
@limiter.limit(BOOKING)
async def create_reservation(
    request: Request,
    body: ReservationCreate,
    resource: ExistingResource,
    resolver: Resolver,
    now: Now,
) -> Reservation:
    tz = resolver.timezone
    start = ensure_aware(body.start_time, tz)
    end = ensure_aware(body.end_time, tz)
    if start <= now:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Requested time slot has already started",
        )

    availability = await compute_day_availability(resolver, resource, start.date(), now)
    offered = any(
        slot.start_time == start and slot.end_time == end
        for slot in availability.slots
    )
    if not offered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Requested time slot is not available",
        )

    duration_minutes = int((end - start).total_seconds() // 60)
    total_price = price(resource.hourly_rate, duration_minutes, LONG_BOOKING_DISCOUNT)

    try:
        return await db.create_reservation(
            str(resource.id),
            start,
            end,
            total_price,
            customer_name=body.customer_name,
            customer_email=body.customer_email,
            customer_phone=body.customer_phone,
        )
    except db.OverlapError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from None


@router.get(
    "/api/reservations",
    response_model=ReservationListResponse,
    operation_id="listReservations",
    summary="List reservations (admin)",
)
async def list_reservations(
    admin: AdminUser,
    resolver: Resolver,
    pagination: PaginationParams = Depends(PaginationParams),
    resource_id: UUID | None = Query(None, description="Only this resource"),
    date_from: date | None = Query(None, description="First day, inclusive (business timezone)"),
    date_to: date | None = Query(None, description="Last day, inclusive (business timezone)"),
    reservation_status: ReservationStatus | None = Query(
        None, alias="status", description="Only reservations in this status"
    ),
) -> ReservationListResponse:
    if date_from is not None and date_to is not None and date_to < date_from:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_to must not be before date_from",
        )
    tz = resolver.timezone
    start = datetime.combine(date_from, time.min, tzinfo=tz) if date_from else None
    end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=tz) if date_to else None

    items = await db.list_reservations(
        resource_id=str(resource_id) if resource_id else None,
        start=start,
        end=end,
        status=reservation_status,
    )
    return paginate(items, pagination, ReservationListResponse)


@router.get(
    "/api/reservations/{reservation_id}",
    response_model=Reservation,
    operation_id="getReservation",
    summary="Get a reservation (admin)",
)
async def get_reservation(reservation_id: UUID, admin: AdminUser) -> Reservation:
    reservation = await db.get_reservation(str(reservation_id))
    if reservation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reservation {reservation_id} not found",
        )
    return reservation


@router.patch(
    "/api/reservations/{reservation_id}/status",
    response_model=Reservation,
    operation_id="setReservationStatus",
    summary="Confirm or cancel a reservation (admin)",
)
async def set_reservation_status(
    reservation_id: UUID,
    admin: AdminUser,
    new_status: ReservationStatus = Body(..., embed=True, alias="status"),
) -> Reservation:
    try:
        reservation = await db.set_reservation_status(str(reservation_id), new_status)
    except db.OverlapError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from None
    if reservation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reservation {reservation_id} not found",
        )
    logger.info("Reservation %s set to %s by %s", reservation_id, new_status.value, admin.subject)
    return reservation
