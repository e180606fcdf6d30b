# app/api/v1/dashboard/availability.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from app.api.dependencies import get_current_business_id
from app.config.database import get_db
from app.schemas.scheduler import (
    AvailabilityUpdateRequest,
    AvailabilityResponse,
    AvailabilityWindowSchema,
    AvailabilityExceptionSchema,
)
from app.services.availability.availability_store import AvailabilityStore
from app.services.booking.booking_settings_service import BookingSettingsService

router = APIRouter()


def _availability_response(db: Session, business_id: UUID) -> AvailabilityResponse:
    settings = BookingSettingsService.get_or_create(db, business_id)
    windows = AvailabilityStore.get_windows(db, business_id)
    exceptions = AvailabilityStore.list_all_exceptions(db, business_id)
    return AvailabilityResponse(
        timezone=settings.timezone,
        windows=[
            AvailabilityWindowSchema(
                day_of_week=w.day_of_week,
                start_time=w.start_time,
                end_time=w.end_time,
                is_enabled=w.is_enabled,
            )
            for w in windows
        ],
        exceptions=[
            AvailabilityExceptionSchema(
                date=e.date,
                start_time=e.start_time,
                end_time=e.end_time,
                type=e.type,
                reason=e.reason,
            )
            for e in exceptions
        ],
    )


@router.get("", response_model=AvailabilityResponse)
def get_availability(
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    """Weekly windows and every date exception"""
    return _availability_response(db, business_id)


@router.put("", response_model=AvailabilityResponse)
def replace_availability(
        body: AvailabilityUpdateRequest,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    """Replace windows and/or exceptions wholesale"""
    BookingSettingsService.get_or_create(db, business_id)
    AvailabilityStore.replace_availability(
        db,
        business_id,
        windows=[w.model_dump() for w in body.windows] if body.windows is not None else None,
        exceptions=(
            [e.model_dump(mode="python") | {"type": e.type.value} for e in body.exceptions]
            if body.exceptions is not None else None
        ),
    )
    return _availability_response(db, business_id)
