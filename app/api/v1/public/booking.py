# app/api/v1/public/booking.py
"""
Public booking endpoints (no authentication, rate limited by client)
The {token} path segment is a public link code, slug-code or legacy key.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.api.dependencies import get_public_business_id
from app.api.v1.slot_listing import build_slot_list
from app.config.database import get_db
from app.models.business import Business
from app.schemas.booking import (
    BookingRequestCreate,
    BookingRequestResponse,
    BookingSubmissionResponse,
    BookingWarning,
)
from app.schemas.scheduler import PublicBookingContext, PublicServiceSummary, SlotListResponse
from app.services.booking.booking_settings_service import BookingSettingsService
from app.services.booking.request_intake import RequestIntakeService
from app.services.booking.service_catalog_service import ServiceCatalogService

router = APIRouter()


@router.get("/{token}", response_model=PublicBookingContext)
def get_booking_context(
        business_id: UUID = Depends(get_public_business_id),
        db: Session = Depends(get_db),
):
    """Business name, timezone, mode and active services for the booking page"""
    business = db.get(Business, business_id)
    settings = BookingSettingsService.get_or_create(db, business_id)
    services = ServiceCatalogService.list_services(db, business_id, active_only=True)

    return PublicBookingContext(
        business_id=business_id,
        business_name=business.name,
        timezone=settings.timezone,
        booking_mode=settings.booking_mode,
        default_duration_minutes=settings.default_duration_minutes,
        policy_text=settings.policy_text,
        services=[
            PublicServiceSummary(
                id=s.id,
                name=s.name,
                description=s.description,
                duration_minutes=s.duration_minutes,
            )
            for s in services
        ],
    )


@router.get("/{token}/slots", response_model=SlotListResponse)
def get_public_slots(
        date: str = Query(..., description="YYYY-MM-DD in the business's timezone"),
        service_id: Optional[UUID] = Query(None),
        business_id: UUID = Depends(get_public_business_id),
        db: Session = Depends(get_db),
):
    return build_slot_list(db, business_id, date, service_id)


@router.post("/{token}/requests", response_model=BookingSubmissionResponse)
def submit_booking_request(
        body: BookingRequestCreate,
        business_id: UUID = Depends(get_public_business_id),
        db: Session = Depends(get_db),
):
    """
    Submit a booking request. Re-submitting the same email and time within
    the duplicate window returns the original request with is_duplicate=true.
    """
    result = RequestIntakeService.create_request(db, business_id, body)
    return BookingSubmissionResponse(
        request=BookingRequestResponse.from_model(result.request, include_internal=False),
        is_duplicate=result.is_duplicate,
        warnings=[BookingWarning(code=w.code, message=w.message) for w in result.warnings],
    )
