# app/services/booking/request_intake.py
"""
Request intake

Validates and persists new booking requests. The duplicate check, conflict
evaluation and insert run in one transaction that first locks the tenant's
booking settings row, so concurrent submissions for one business serialize.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.core.exceptions import (
    SchedulerError,
    BookingValidationError,
    InstantBookingDisabledError,
    SlotUnavailableError,
    UpstreamUnavailableError,
)
from app.models.booking_request import (
    BookingRequest,
    BookingRequestAuditLog,
    BookingStatus,
    BookingAction,
)
from app.schemas.booking import BookingRequestCreate
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.busy_interval_resolver import BusyIntervalResolver
from app.services.availability.intervals import Interval
from app.services.availability.slot_generator import check_start_in_range
from app.services.booking.booking_settings_service import BookingSettingsService
from app.services.booking.notifications import BookingNotifier
from app.utils.time_utils import get_zone, utcnow

logger = logging.getLogger(__name__)


@dataclass
class IntakeWarning:
    code: str
    message: str


@dataclass
class IntakeResult:
    request: BookingRequest
    is_duplicate: bool
    warnings: List[IntakeWarning] = field(default_factory=list)


DUPLICATE_WARNING = IntakeWarning(
    code="duplicate",
    message="A matching request was submitted recently; returning the existing request.",
)
CONFLICT_WARNING = IntakeWarning(
    code="time_conflict",
    message="The preferred time overlaps existing bookings; the business may propose another time.",
)


class RequestIntakeService:

    @staticmethod
    def find_duplicate(
            db: Session,
            business_id: UUID,
            email: str,
            preferred_start: Optional[datetime],
            now: datetime,
    ) -> Optional[BookingRequest]:
        """Same business, same email, same preferred start, created inside the window"""
        window = timedelta(minutes=get_settings().DUPLICATE_WINDOW_MINUTES)
        query = db.query(BookingRequest).filter(
            BookingRequest.business_id == business_id,
            func.lower(BookingRequest.customer_email) == email.lower(),
            BookingRequest.created_at >= now - window,
        )
        if preferred_start is None:
            query = query.filter(BookingRequest.preferred_start.is_(None))
        else:
            query = query.filter(BookingRequest.preferred_start == preferred_start)
        return query.order_by(BookingRequest.created_at.asc()).first()

    @staticmethod
    def create_request(
            db: Session,
            business_id: UUID,
            payload: BookingRequestCreate,
            now: Optional[datetime] = None,
            notify: bool = True,
    ) -> IntakeResult:
        now = now or utcnow()
        settings = BookingSettingsService.get_or_create(db, business_id)

        if payload.instant and not settings.instant_allowed:
            raise InstantBookingDisabledError()
        if payload.instant and payload.preferred_start is None:
            raise BookingValidationError("Instant booking requires a start time")

        duration = settings.default_duration_minutes
        if payload.service_id is not None:
            service = AvailabilityService.get_active_service(db, business_id, payload.service_id)
            duration = service.duration_minutes or duration

        preferred_start = payload.preferred_start
        preferred_end = payload.preferred_end
        if preferred_start is not None:
            check_start_in_range(preferred_start, settings, now)

        warnings: List[IntakeWarning] = []
        try:
            BookingSettingsService.lock(db, business_id)

            existing = RequestIntakeService.find_duplicate(
                db, business_id, payload.customer_email, preferred_start, now
            )
            if existing:
                db.commit()
                logger.info(
                    f"Duplicate booking submission for business {business_id} "
                    f"returned existing request {existing.id}"
                )
                return IntakeResult(request=existing, is_duplicate=True, warnings=[DUPLICATE_WARNING])

            status = BookingStatus.REQUESTED
            proposed_start = proposed_end = None

            if preferred_start is not None:
                local_date = preferred_start.astimezone(get_zone(settings.timezone)).date()
                requested = Interval(preferred_start, preferred_end or preferred_start + timedelta(minutes=duration))

                if payload.instant:
                    slots = AvailabilityService.slots_for_settings(db, settings, local_date, duration, now=now)
                    if not any(slot.start == preferred_start for slot in slots):
                        raise SlotUnavailableError()
                    status = BookingStatus.APPROVED
                    proposed_start = preferred_start
                    proposed_end = preferred_start + timedelta(minutes=duration)
                    preferred_end = proposed_end
                else:
                    busy = BusyIntervalResolver.for_date(db, settings, local_date, now=now)
                    if any(interval.overlaps(requested) for interval in busy):
                        warnings.append(CONFLICT_WARNING)

            request = BookingRequest(
                business_id=business_id,
                service_id=payload.service_id,
                customer_name=payload.customer_name,
                customer_email=payload.customer_email.strip().lower(),
                customer_phone=payload.customer_phone,
                message=payload.message,
                status=status.value,
                preferred_start=preferred_start,
                preferred_end=preferred_end,
                proposed_start=proposed_start,
                proposed_end=proposed_end,
                created_at=now,
                updated_at=now,
            )
            db.add(request)
            db.flush()

            db.add(BookingRequestAuditLog(
                booking_request_id=request.id,
                business_id=business_id,
                action=BookingAction.CREATE.value,
                from_status=None,
                to_status=status.value,
                created_at=now,
            ))
            db.commit()
            db.refresh(request)
        except SchedulerError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create booking request for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

        logger.info(
            f"Created booking request {request.id} for business {business_id} "
            f"(status={request.status}, warnings={[w.code for w in warnings]})"
        )

        if notify:
            BookingNotifier.request_created(request)

        return IntakeResult(request=request, is_duplicate=False, warnings=warnings)
