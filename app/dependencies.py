import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Cookie, Depends, Header, HTTPException, Query, status

from app import db
from app.config import ADMIN_ROLE, BUSINESS_TIMEZONE, JWT_ALGORITHM, JWT_AUDIENCE, JWT_SECRET
from app.models import PaginationMeta, Resource, UserInfo
from app.services.availability import AvailabilityResolver
from app.services.reservation_rules import default_rules_table

logger = logging.getLogger(__name__)


# ── Pagination ─────────────────────────────────────────────────────────────


class PaginationParams:
    def __init__(
        self,
        page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
        page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
    ):
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def paginate(items: list, pagination: PaginationParams, response_cls: type):
    total = len(items)
    start = pagination.offset
    end = start + pagination.page_size
    return response_cls(
        items=items[start:end],
        meta=PaginationMeta(
            page=pagination.page,
            page_size=pagination.page_size,
            total_items=total,
            total_pages=max(1, -(-total // pagination.page_size)),
        ),
    )


# ── Availability core ──────────────────────────────────────────────────────

_resolver = AvailabilityResolver(BUSINESS_TIMEZONE, default_rules_table)


def get_resolver() -> AvailabilityResolver:
    return _resolver


def business_now() -> datetime:
    return datetime.now(BUSINESS_TIMEZONE)


Resolver = Annotated[AvailabilityResolver, Depends(get_resolver)]
Now = Annotated[datetime, Depends(business_now)]


async def get_resource_or_404(resource_id: UUID) -> Resource:
    resource = await db.get_resource(str(resource_id))
    if resource is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Resource {resource_id} not found",
        )
    return resource


ExistingResource = Annotated[Resource, Depends(get_resource_or_404)]


# ── JWT / Session ──────────────────────────────────────────────────────────
# Tokens come from the identity provider; this service only verifies them.


def _extract_token(authorization: str | None, session: str | None) -> str | None:
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token.strip()
    return session


def _role_from_claims(payload: dict) -> str | None:
    app_metadata = payload.get("app_metadata") or {}
    return app_metadata.get("role") or payload.get("user_role") or payload.get("role")


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    session: Annotated[str | None, Cookie()] = None,
) -> UserInfo:
    token = _extract_token(authorization, session)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )

    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            options={"verify_aud": JWT_AUDIENCE is not None},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please log in again.",
        ) from None
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session. Please log in again.",
        ) from None

    subject: str | None = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload.",
        )

    return UserInfo(
        subject=subject,
        email=payload.get("email"),
        role=_role_from_claims(payload),
    )


CurrentUser = Annotated[UserInfo, Depends(get_current_user)]


async def require_admin(user: CurrentUser) -> UserInfo:
    if user.role != ADMIN_ROLE:
        logger.info("Rejected non-admin %s (role=%s)", user.subject, user.role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required.",
        )
    return user


AdminUser = Annotated[UserInfo, Depends(require_admin)]