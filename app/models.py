"""Pydantic models for the Padel Booking API."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.services.equipment import EquipmentCategory


class ResourceStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class _TimeRangeMixin(BaseModel):
    """Rejects ranges whose end is not after their start."""

    @model_validator(mode="after")
    def _check_range(self):
        if (self.start_time.tzinfo is None) != (self.end_time.tzinfo is None):
            raise ValueError("start_time and end_time must both have a UTC offset, or neither")
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


# ── Resources ─────────────────────────────────────────────────────────────


class Resource(BaseModel):
    """A bookable court or piece of gym equipment."""
    id: UUID = Field(..., description="Unique resource identifier")
    name: str = Field(..., description="Display name")
    description: str | None = Field(None, description="Free-text description")
    hourly_rate: float = Field(..., ge=0, description="Price per hour, in whole currency units")
    status: ResourceStatus = Field(default=ResourceStatus.AVAILABLE, description="Operational status")
    image_url: str | None = Field(None, description="Picture shown in the booking flow")


class RulesInfo(BaseModel):
    """Booking policy applied to a resource."""
    minimum_duration_minutes: int
    increment_minutes: int
    maximum_duration_minutes: int
    opens_at: str = Field(..., description="Opening time (HH:MM, business timezone)")
    closes_at: str = Field(..., description="Closing time (HH:MM, business timezone)")


class ResourceDetail(Resource):
    category: EquipmentCategory
    rules: RulesInfo


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


class ResourceListResponse(BaseModel):
    items: list[ResourceDetail]
    meta: PaginationMeta


# ── Raw rows fed to the availability core ─────────────────────────────────


class ReservationRow(BaseModel):
    """Reservation as delivered by the data store (only what the core needs)."""
    start_time: datetime
    end_time: datetime
    status: str = ReservationStatus.PENDING.value


class UnavailabilityRow(BaseModel):
    """Blackout window (maintenance, private event, ...)."""
    start_time: datetime
    end_time: datetime
    reason: str | None = None


# ── Availability ──────────────────────────────────────────────────────────


class TimeRange(BaseModel):
    start_time: datetime
    end_time: datetime


class AvailableSlot(BaseModel):
    """A candidate slot confirmed free and bookable."""
    start_time: datetime = Field(..., description="Slot start (business timezone)")
    end_time: datetime = Field(..., description="Slot end (business timezone)")
    duration_minutes: int = Field(..., description="Slot length in minutes")
    duration_label: str = Field(..., description="Human-readable duration, e.g. 1h30")


class AvailabilityResponse(BaseModel):
    resource_id: UUID
    day: date
    timezone: str
    category: EquipmentCategory
    free_intervals: list[TimeRange]
    slots: list[AvailableSlot]


# ── Pricing ───────────────────────────────────────────────────────────────


class PriceQuote(BaseModel):
    hourly_rate: float
    duration_minutes: int
    base_price: float = Field(..., description="Rate times duration, before discount and rounding")
    discount_rate: float = Field(..., description="Fraction taken off the base price")
    total_price: int = Field(..., description="Amount to charge, whole currency units")
    currency: str
    formatted: str


# ── Reservations ──────────────────────────────────────────────────────────


class ReservationCreate(_TimeRangeMixin):
    start_time: datetime
    end_time: datetime
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: EmailStr
    customer_phone: str | None = Field(None, max_length=40)


class Reservation(BaseModel):
    id: UUID
    resource_id: UUID
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    total_price: int
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    created_at: datetime


class ReservationListResponse(BaseModel):
    items: list[Reservation]
    meta: PaginationMeta


# ── Unavailabilities ──────────────────────────────────────────────────────


class UnavailabilityCreate(_TimeRangeMixin):
    start_time: datetime
    end_time: datetime
    reason: str | None = Field(None, max_length=500)


class Unavailability(BaseModel):
    id: UUID
    resource_id: UUID
    start_time: datetime
    end_time: datetime
    reason: str | None = None
    created_by: str | None = None
    created_at: datetime


class UnavailabilityListResponse(BaseModel):
    items: list[Unavailability]
    meta: PaginationMeta


# ── Misc ──────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime


class UserInfo(BaseModel):
    """Caller identity, as asserted by the identity provider's token."""
    subject: str
    email: str | None = None
    role: str | None = None
