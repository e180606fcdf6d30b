# app/schemas/booking.py
"""
Pydantic schemas for booking requests and their status actions
"""
import re
from datetime import datetime, timezone
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.models.booking_request import BookingAction, BookingStatus

PHONE_FORMAT = re.compile(r"^[\d\s()+\-.]+$")


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC, convert aware ones to UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ============================================================================
# Request Schemas (for incoming data)
# ============================================================================

class BookingRequestCreate(BaseModel):
    """Public booking submission"""
    service_id: Optional[UUID] = None
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: EmailStr
    customer_phone: Optional[str] = Field(None, max_length=50)
    message: Optional[str] = Field(None, max_length=2000)
    preferred_start: Optional[datetime] = None
    preferred_end: Optional[datetime] = None
    instant: bool = False

    @field_validator("customer_name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("customer_email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("customer_email")
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()

    @field_validator("customer_phone", "message", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return _blank_to_none(v)

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v):
        if v is None:
            return v
        digits = re.sub(r"\D", "", v)
        if not PHONE_FORMAT.match(v) or not 10 <= len(digits) <= 15:
            raise ValueError("Phone must contain 10-15 digits and only formatting characters")
        return v

    @field_validator("preferred_start", "preferred_end")
    @classmethod
    def to_utc(cls, v):
        return ensure_utc(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.preferred_end is not None:
            if self.preferred_start is None:
                raise ValueError("preferred_end requires preferred_start")
            if self.preferred_end <= self.preferred_start:
                raise ValueError("preferred_end must be after preferred_start")
        return self


class BookingActionRequest(BaseModel):
    """Status change on an existing request"""
    action: BookingAction
    proposed_start: Optional[datetime] = None
    proposed_end: Optional[datetime] = None
    internal_notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("proposed_start", "proposed_end")
    @classmethod
    def to_utc(cls, v):
        return ensure_utc(v)

    @field_validator("action")
    @classmethod
    def not_system_action(cls, v):
        if v in (BookingAction.CREATE, BookingAction.EXPIRE):
            raise ValueError(f"Action '{v.value}' cannot be requested")
        return v


# ============================================================================
# Response Schemas (for outgoing data)
# ============================================================================

class BookingRequestResponse(BaseModel):
    id: UUID
    business_id: UUID
    service_id: Optional[UUID] = None
    service_name: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    message: Optional[str] = None
    status: BookingStatus
    preferred_start: Optional[datetime] = None
    preferred_end: Optional[datetime] = None
    proposed_start: Optional[datetime] = None
    proposed_end: Optional[datetime] = None
    proposal_expires_at: Optional[datetime] = None
    internal_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, request, include_internal: bool = True) -> "BookingRequestResponse":
        return cls(
            id=request.id,
            business_id=request.business_id,
            service_id=request.service_id,
            service_name=request.service.name if request.service else None,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            message=request.message,
            status=request.status,
            preferred_start=request.preferred_start,
            preferred_end=request.preferred_end,
            proposed_start=request.proposed_start,
            proposed_end=request.proposed_end,
            proposal_expires_at=request.proposal_expires_at,
            internal_notes=request.internal_notes if include_internal else None,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )


class BookingWarning(BaseModel):
    code: str
    message: str


class BookingSubmissionResponse(BaseModel):
    request: BookingRequestResponse
    is_duplicate: bool
    warnings: List[BookingWarning] = Field(default_factory=list)


class BookingRequestListResponse(BaseModel):
    total: int
    skip: int
    limit: int
    requests: List[BookingRequestResponse]
