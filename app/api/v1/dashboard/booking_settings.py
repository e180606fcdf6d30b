# app/api/v1/dashboard/booking_settings.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from app.api.dependencies import get_current_business_id
from app.config.database import get_db
from app.schemas.scheduler import BookingSettingsUpdateRequest, BookingSettingsResponse
from app.services.booking.booking_settings_service import BookingSettingsService

router = APIRouter()


@router.get("", response_model=BookingSettingsResponse)
def get_booking_settings(
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    settings = BookingSettingsService.get_or_create(db, business_id)
    return BookingSettingsResponse(**settings.to_dict())


@router.patch("", response_model=BookingSettingsResponse)
def update_booking_settings(
        body: BookingSettingsUpdateRequest,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True)
    if changes.get("booking_mode") is not None:
        changes["booking_mode"] = changes["booking_mode"].value
    settings = BookingSettingsService.update(db, business_id, changes)
    return BookingSettingsResponse(**settings.to_dict())
