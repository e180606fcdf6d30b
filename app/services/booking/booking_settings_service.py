# app/services/booking/booking_settings_service.py
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.core.exceptions import BookingValidationError, NotFoundError, UpstreamUnavailableError
from app.models.booking_settings import BookingSettings, BookingMode
from app.models.business import Business
from app.utils.time_utils import is_valid_timezone

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "timezone",
    "buffer_minutes",
    "min_notice_hours",
    "max_days_out",
    "default_duration_minutes",
    "booking_mode",
    "notification_email",
    "policy_text",
)


class BookingSettingsService:

    @staticmethod
    def _defaults() -> dict:
        config = get_settings()
        return {
            "timezone": config.DEFAULT_TIMEZONE,
            "buffer_minutes": config.DEFAULT_BUFFER_MINUTES,
            "min_notice_hours": config.DEFAULT_MIN_NOTICE_HOURS,
            "max_days_out": config.DEFAULT_MAX_DAYS_OUT,
            "default_duration_minutes": config.DEFAULT_SERVICE_DURATION_MINUTES,
            "booking_mode": BookingMode.REQUEST_ONLY.value,
        }

    @staticmethod
    def get_or_create(db: Session, business_id: UUID) -> BookingSettings:
        """Return the tenant's settings, creating the default row on first use"""
        try:
            settings = db.get(BookingSettings, business_id)
            if settings:
                return settings

            if not db.get(Business, business_id):
                raise NotFoundError("Business not found")

            settings = BookingSettings(business_id=business_id, **BookingSettingsService._defaults())
            db.add(settings)
            try:
                db.commit()
            except IntegrityError:
                # Created concurrently by another request
                db.rollback()
                settings = db.get(BookingSettings, business_id)
                if settings is None:
                    raise
            else:
                db.refresh(settings)
                logger.info(f"Created default booking settings for business {business_id}")
            return settings
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to load booking settings for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

    @staticmethod
    def lock(db: Session, business_id: UUID) -> Optional[BookingSettings]:
        """Re-read the settings row with a row lock held until commit"""
        return (
            db.query(BookingSettings)
            .filter(BookingSettings.business_id == business_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )

    @staticmethod
    def update(db: Session, business_id: UUID, changes: dict) -> BookingSettings:
        settings = BookingSettingsService.get_or_create(db, business_id)

        if "timezone" in changes and changes["timezone"] is not None:
            if not is_valid_timezone(changes["timezone"]):
                raise BookingValidationError(f"Unknown timezone: {changes['timezone']}")
        if "booking_mode" in changes and changes["booking_mode"] is not None:
            if changes["booking_mode"] not in {m.value for m in BookingMode}:
                raise BookingValidationError("booking_mode must be REQUEST_ONLY or INSTANT_ALLOWED")

        for field in UPDATABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            # Only the free-text fields can be cleared
            if value is None and field not in ("notification_email", "policy_text"):
                continue
            setattr(settings, field, value)

        try:
            db.commit()
            db.refresh(settings)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update booking settings for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

        logger.info(f"Updated booking settings for business {business_id}: {sorted(changes)}")
        return settings
