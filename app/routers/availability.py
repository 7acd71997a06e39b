"""
Availability and pricing endpoints for a single resource.
"""

import logging
from datetime import date, datetime

from fastapi import APIRouter, HTTPException, Query, status

from app import db
from app.config import BUSINESS_TIMEZONE_NAME, CURRENCY, LONG_BOOKING_DISCOUNT
from app.dependencies import ExistingResource, Now, Resolver
from app.models import AvailabilityResponse, PriceQuote, Resource, ResourceStatus, TimeRange
from app.services.availability import AvailabilityResolver, DayAvailability
from app.services.pricing import quote
from app.services.slot_generator import operating_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/resources/{resource_id}", tags=["availability"])


async def compute_day_availability(
    resolver: AvailabilityResolver,
    resource: Resource,
    day: date,
    now: datetime,
) -> DayAvailability:
    """Fetch the resource-day's rows from the store and run the resolver."""
    _, rules = resolver.rules_for(resource)
    window_start, window_end = operating_window(day, rules, resolver.timezone)
    resource_id = str(resource.id)

    reservations = await db.list_day_reservations(resource_id, window_start, window_end)
    unavailabilities = await db.list_day_unavailabilities(resource_id, window_start, window_end)

    result = resolver.compute(day, resource, reservations, unavailabilities, now)
    if resource.status == ResourceStatus.MAINTENANCE:
        # Whole resource is out of service; nothing is bookable.
        result = DayAvailability(
            category=result.category,
            rules=result.rules,
            window=result.window,
            busy=result.busy,
            free=[],
            slots=[],
        )

    logger.debug(
        "Resource %s on %s: %d busy, %d free, %d slots",
        resource_id, day, len(result.busy), len(result.free), len(result.slots),
    )
    return result


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    operation_id="getAvailability",
    summary="List bookable slots of a resource for one day",
)
async def get_availability(
    resource: ExistingResource,
    resolver: Resolver,
    now: Now,
    day: date | None = Query(None, description="Day to check (YYYY-MM-DD, defaults to today)"),
) -> AvailabilityResponse:
    today = now.astimezone(resolver.timezone).date()
    day = day or today
    if day < today:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot book in the past ({day.isoformat()})",
        )

    result = await compute_day_availability(resolver, resource, day, now)
    return AvailabilityResponse(
        resource_id=resource.id,
        day=day,
        timezone=BUSINESS_TIMEZONE_NAME,
        category=result.category,
        free_intervals=[TimeRange(start_time=f.start, end_time=f.end) for f in result.free],
        slots=result.slots,
    )


@router.get(
    "/quote",
    response_model=PriceQuote,
    operation_id="getQuote",
    summary="Price a booking of the given duration",
)
async def get_quote(
    resource: ExistingResource,
    resolver: Resolver,
    duration_minutes: int = Query(..., ge=1, description="Booking length in minutes"),
) -> PriceQuote:
    _, rules = resolver.rules_for(resource)
    if not rules.allows_duration(duration_minutes):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Duration must be between {rules.minimum_duration_minutes} and "
                f"{rules.maximum_duration_minutes} minutes in steps of "
                f"{rules.increment_minutes}"
            ),
        )
    return quote(
        resource.hourly_rate,
        duration_minutes,
        apply_discount=LONG_BOOKING_DISCOUNT,
        currency=CURRENCY,
    )
