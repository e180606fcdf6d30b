# app/schemas/scheduler.py
"""
Pydantic schemas for availability, busy blocks, settings, services,
public links and slots
"""
from datetime import date, datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.models.availability import ExceptionType
from app.models.booking_settings import BookingMode
from app.schemas.booking import ensure_utc
from app.utils.time_utils import is_valid_timezone

HHMM = r"^([01][0-9]|2[0-3]):([0-5][0-9])$"
# End times may also be 24:00, the following midnight
END_HHMM = r"^(([01][0-9]|2[0-3]):([0-5][0-9])|24:00)$"


# ============================================================================
# Availability
# ============================================================================

class AvailabilityWindowSchema(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday, 6=Saturday")
    start_time: str = Field(..., pattern=HHMM)
    end_time: str = Field(..., pattern=END_HHMM)
    is_enabled: bool = True

    @model_validator(mode="after")
    def start_before_end(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityExceptionSchema(BaseModel):
    date: date
    start_time: Optional[str] = Field(None, pattern=HHMM)
    end_time: Optional[str] = Field(None, pattern=END_HHMM)
    type: ExceptionType = ExceptionType.BLOCKED
    reason: Optional[str] = Field(None, max_length=200)

    @model_validator(mode="after")
    def times_together(self):
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be given together")
        if self.start_time and self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityUpdateRequest(BaseModel):
    """Omitted collections are left untouched; an empty list clears one"""
    windows: Optional[List[AvailabilityWindowSchema]] = None
    exceptions: Optional[List[AvailabilityExceptionSchema]] = None


class AvailabilityResponse(BaseModel):
    timezone: str
    windows: List[AvailabilityWindowSchema]
    exceptions: List[AvailabilityExceptionSchema]


# ============================================================================
# Busy blocks
# ============================================================================

class BusyBlockCreateRequest(BaseModel):
    start: datetime
    end: datetime
    reason: Optional[str] = Field(None, max_length=200)

    @field_validator("start", "end")
    @classmethod
    def to_utc(cls, v):
        return ensure_utc(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class BusyBlockUpdateRequest(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    reason: Optional[str] = Field(None, max_length=200)

    @field_validator("start", "end")
    @classmethod
    def to_utc(cls, v):
        return ensure_utc(v)


class BusyBlockResponse(BaseModel):
    id: UUID
    start: datetime
    end: datetime
    reason: Optional[str] = None
    source: str
    read_only: bool

    @classmethod
    def from_model(cls, block) -> "BusyBlockResponse":
        return cls(
            id=block.id,
            start=block.start,
            end=block.end,
            reason=block.reason,
            source=block.source,
            read_only=not block.is_manual,
        )


# ============================================================================
# Booking settings
# ============================================================================

class BookingSettingsUpdateRequest(BaseModel):
    """All fields are optional - only send what you want to update."""
    timezone: Optional[str] = Field(None, max_length=64)
    buffer_minutes: Optional[int] = Field(None, ge=0, le=1440)
    min_notice_hours: Optional[int] = Field(None, ge=0, le=168)
    max_days_out: Optional[int] = Field(None, ge=1, le=365)
    default_duration_minutes: Optional[int] = Field(None, ge=5, le=1440)
    booking_mode: Optional[BookingMode] = None
    notification_email: Optional[EmailStr] = None
    policy_text: Optional[str] = Field(None, max_length=5000)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v):
        if v is not None and not is_valid_timezone(v):
            raise ValueError(f"Unknown timezone: {v}")
        return v


class BookingSettingsResponse(BaseModel):
    business_id: UUID
    timezone: str
    buffer_minutes: int
    min_notice_hours: int
    max_days_out: int
    default_duration_minutes: int
    booking_mode: BookingMode
    notification_email: Optional[str] = None
    policy_text: Optional[str] = None


# ============================================================================
# Services
# ============================================================================

class ServiceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    duration_minutes: int = Field(..., ge=5, le=1440)
    is_active: bool = True
    display_order: int = 0


class ServiceUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    duration_minutes: Optional[int] = Field(None, ge=5, le=1440)
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class ServiceResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    duration_minutes: int
    is_active: bool
    display_order: int


# ============================================================================
# Public link
# ============================================================================

class PublicLinkResponse(BaseModel):
    code: str
    slug: Optional[str] = None
    url: str


class SlugUpdateRequest(BaseModel):
    slug: Optional[str] = Field(None, max_length=100)


# ============================================================================
# Slots
# ============================================================================

class SlotResponse(BaseModel):
    start: datetime
    end: datetime
    local_start: str
    display_time: str


class SlotListResponse(BaseModel):
    date: date
    timezone: str
    duration_minutes: int
    slots: List[SlotResponse]


class PublicServiceSummary(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    duration_minutes: int


class PublicBookingContext(BaseModel):
    business_id: UUID
    business_name: str
    timezone: str
    booking_mode: BookingMode
    default_duration_minutes: int
    policy_text: Optional[str] = None
    services: List[PublicServiceSummary]
