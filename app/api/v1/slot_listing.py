# app/api/v1/slot_listing.py
"""Shared slot listing for the public page and the dashboard preview"""
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import BookingValidationError
from app.schemas.scheduler import SlotListResponse, SlotResponse
from app.services.availability.availability_service import AvailabilityService
from app.services.booking.booking_settings_service import BookingSettingsService
from app.utils.time_utils import get_zone, parse_date


def build_slot_list(
        db: Session,
        business_id: UUID,
        date_str: str,
        service_id: Optional[UUID],
) -> SlotListResponse:
    try:
        target_date = parse_date(date_str)
    except ValueError as e:
        raise BookingValidationError(str(e)) from e

    settings = BookingSettingsService.get_or_create(db, business_id)
    duration = AvailabilityService.resolve_duration(db, settings, service_id)
    slots = AvailabilityService.slots_for_settings(db, settings, target_date, duration)
    tz = get_zone(settings.timezone)

    return SlotListResponse(
        date=target_date,
        timezone=settings.timezone,
        duration_minutes=duration,
        slots=[SlotResponse(**slot.to_dict(tz)) for slot in slots],
    )
