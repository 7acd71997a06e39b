"""
Unavailability (blackout) management – admin only.

Blackouts block bookings for maintenance, private events and the like.
Two windows of the same resource may not overlap.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app import db
from app.dependencies import AdminUser, ExistingResource, Now, PaginationParams, paginate
from app.models import Unavailability, UnavailabilityCreate, UnavailabilityListResponse
from app.rate_limit import DEFAULT, limiter

router = APIRouter(tags=["unavailabilities"])


@router.get(
    "/api/resources/{resource_id}/unavailabilities",
    response_model=UnavailabilityListResponse,
    operation_id="listUnavailabilities",
    summary="List a resource's unavailability windows (admin)",
)
async def list_unavailabilities(
    resource: ExistingResource,
    admin: AdminUser,
    now: Now,
    pagination: PaginationParams = Depends(PaginationParams),
    include_past: bool = Query(False, description="Also list windows that have already ended"),
) -> UnavailabilityListResponse:
    items = await db.list_unavailabilities(
        str(resource.id),
        ending_after=None if include_past else now,
    )
    return paginate(items, pagination, UnavailabilityListResponse)


@router.post(
    "/api/resources/{resource_id}/unavailabilities",
    response_model=Unavailability,
    status_code=status.HTTP_201_CREATED,
    operation_id="createUnavailability",
    summary="Block a resource for a time window (admin)",
)
@limiter.limit(DEFAULT)
async def create_unavailability(
    request: Request,
    body: UnavailabilityCreate,
    resource: ExistingResource,
    admin: AdminUser,
) -> Unavailability:
    try:
        return await db.create_unavailability(
            str(resource.id),
            body.start_time,
            body.end_time,
            reason=body.reason,
            created_by=admin.subject,
        )
    except db.OverlapError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from None


@router.delete(
    "/api/unavailabilities/{unavailability_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="deleteUnavailability",
    summary="Remove an unavailability window (admin)",
)
async def delete_unavailability(unavailability_id: UUID, admin: AdminUser) -> None:
    deleted = await db.delete_unavailability(str(unavailability_id))
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unavailability {unavailability_id} not found",
        )
