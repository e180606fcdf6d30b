# app/services/availability/availability_service.py
from typing import List, Optional
from datetime import date, datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidServiceError, UpstreamUnavailableError
from app.models.booking_settings import BookingSettings
from app.models.service import Service
from app.services.availability.availability_store import AvailabilityStore
from app.services.availability.busy_interval_resolver import BusyIntervalResolver
from app.services.availability.slot_generator import Slot, generate_slots
from app.services.booking.booking_settings_service import BookingSettingsService
from app.utils.time_utils import utcnow
import logging

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Bookable slots for a business: store + busy resolver + generator"""

    @staticmethod
    def get_active_service(db: Session, business_id: UUID, service_id: UUID) -> Service:
        """The tenant's active service, else INVALID_SERVICE"""
        try:
            service = db.query(Service).filter(
                Service.id == service_id,
                Service.business_id == business_id,
                Service.is_active.is_(True),
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load service {service_id} for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

        if not service:
            raise InvalidServiceError()
        return service

    @staticmethod
    def resolve_duration(
            db: Session,
            settings: BookingSettings,
            service_id: Optional[UUID],
    ) -> int:
        if service_id is None:
            return settings.default_duration_minutes
        service = AvailabilityService.get_active_service(db, settings.business_id, service_id)
        return service.duration_minutes or settings.default_duration_minutes

    @staticmethod
    def slots_for_settings(
            db: Session,
            settings: BookingSettings,
            target_date: date,
            duration_minutes: int,
            now: Optional[datetime] = None,
            exclude_request_id: Optional[UUID] = None,
    ) -> List[Slot]:
        now = now or utcnow()
        business_id = settings.business_id

        windows = AvailabilityStore.get_windows(db, business_id)
        exceptions = AvailabilityStore.get_exceptions(db, business_id, target_date)
        busy = BusyIntervalResolver.for_date(
            db, settings, target_date, now=now, exclude_request_id=exclude_request_id
        )

        slots = generate_slots(
            settings,
            windows,
            exceptions,
            busy,
            duration_minutes,
            target_date,
            now=now,
        )
        logger.info(f"Generated {len(slots)} slots for business {business_id} on {target_date}")
        return slots

    @staticmethod
    def list_slots(
            db: Session,
            business_id: UUID,
            target_date: date,
            service_id: Optional[UUID] = None,
            now: Optional[datetime] = None,
    ) -> List[Slot]:
        """
        Bookable slot starts for target_date in the business's timezone.

        An empty list means the business is truly closed or fully booked.
        Storage failures raise UpstreamUnavailableError instead.
        """
        settings = BookingSettingsService.get_or_create(db, business_id)
        duration = AvailabilityService.resolve_duration(db, settings, service_id)

        return AvailabilityService.slots_for_settings(db, settings, target_date, duration, now=now)
