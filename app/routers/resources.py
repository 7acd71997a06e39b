"""
Resource endpoints – courts and gym equipment.
"""

from fastapi import APIRouter, Body, Depends, Query

from app import db
from app.dependencies import (
    AdminUser,
    ExistingResource,
    PaginationParams,
    Resolver,
    paginate,
)
from app.models import (
    Resource,
    ResourceDetail,
    ResourceListResponse,
    ResourceStatus,
    RulesInfo,
)
from app.services.availability import AvailabilityResolver
from app.services.equipment import EquipmentCategory

router = APIRouter(prefix="/api/resources", tags=["resources"])


def to_detail(resource: Resource, resolver: AvailabilityResolver) -> ResourceDetail:
    category, rules = resolver.rules_for(resource)
    return ResourceDetail(
        **resource.model_dump(),
        category=category,
        rules=RulesInfo(
            minimum_duration_minutes=rules.minimum_duration_minutes,
            increment_minutes=rules.increment_minutes,
            maximum_duration_minutes=rules.maximum_duration_minutes,
            opens_at=rules.opens_at.strftime("%H:%M"),
            closes_at=rules.closes_at.strftime("%H:%M"),
        ),
    )


@router.get(
    "",
    response_model=ResourceListResponse,
    operation_id="listResources",
    summary="List bookable courts and gym equipment",
)
async def list_resources(
    resolver: Resolver,
    pagination: PaginationParams = Depends(PaginationParams),
    category: EquipmentCategory | None = Query(None, description="Filter by equipment category"),
    status: ResourceStatus | None = Query(None, description="Filter by operational status"),
    q: str | None = Query(None, description="Search name and description (case-insensitive)"),
) -> ResourceListResponse:
    resources = await db.list_resources(status=status)
    if q:
        needle = q.lower()
        resources = [
            r for r in resources
            if needle in r.name.lower() or needle in (r.description or "").lower()
        ]
    details = [to_detail(r, resolver) for r in resources]
    if category is not None:
        details = [d for d in details if d.category == category]
    return paginate(details, pagination, ResourceListResponse)


@router.get(
    "/{resource_id}",
    response_model=ResourceDetail,
    operation_id="getResource",
    summary="Get a resource with its booking rules",
)
async def get_resource(resource: ExistingResource, resolver: Resolver) -> ResourceDetail:
    return to_detail(resource, resolver)


@router.patch(
    "/{resource_id}/status",
    response_model=ResourceDetail,
    operation_id="setResourceStatus",
    summary="Change a resource's operational status (admin)",
)
async def set_resource_status(
    resource: ExistingResource,
    resolver: Resolver,
    admin: AdminUser,
    status: ResourceStatus = Body(..., embed=True),
) -> ResourceDetail:
    updated = await db.set_resource_status(str(resource.id), status)
    return to_detail(updated, resolver)
