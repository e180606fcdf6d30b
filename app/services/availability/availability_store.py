# app/services/availability/availability_store.py
"""
Availability store

Tenant-scoped reads over weekly windows and date exceptions, plus the write
path that replaces them wholesale.
"""
import logging
from datetime import date
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import BookingValidationError, UpstreamUnavailableError
from app.models.availability import AvailabilityWindow, AvailabilityException, ExceptionType
from app.utils.time_utils import minutes_of_day

logger = logging.getLogger(__name__)


class AvailabilityStore:

    @staticmethod
    def get_windows(db: Session, business_id: UUID) -> List[AvailabilityWindow]:
        try:
            return (
                db.query(AvailabilityWindow)
                .filter(AvailabilityWindow.business_id == business_id)
                .order_by(AvailabilityWindow.day_of_week, AvailabilityWindow.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load availability windows for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

    @staticmethod
    def get_exceptions(db: Session, business_id: UUID, target_date: date) -> List[AvailabilityException]:
        try:
            return (
                db.query(AvailabilityException)
                .filter(
                    AvailabilityException.business_id == business_id,
                    AvailabilityException.date == target_date,
                )
                .order_by(AvailabilityException.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load availability exceptions for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

    @staticmethod
    def list_all_exceptions(db: Session, business_id: UUID) -> List[AvailabilityException]:
        try:
            return (
                db.query(AvailabilityException)
                .filter(AvailabilityException.business_id == business_id)
                .order_by(AvailabilityException.date, AvailabilityException.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to list availability exceptions for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

    @staticmethod
    def replace_availability(
            db: Session,
            business_id: UUID,
            windows: Optional[Sequence[dict]] = None,
            exceptions: Optional[Sequence[dict]] = None,
    ) -> None:
        """
        Delete and recreate each supplied collection in one transaction.
        A collection passed as None is left untouched; an empty list clears it.
        """
        if windows is not None:
            for window in windows:
                _validate_window(window)
        if exceptions is not None:
            for exception in exceptions:
                _validate_exception(exception)

        try:
            if windows is not None:
                db.query(AvailabilityWindow).filter(
                    AvailabilityWindow.business_id == business_id
                ).delete(synchronize_session=False)
                for window in windows:
                    db.add(AvailabilityWindow(
                        business_id=business_id,
                        day_of_week=window["day_of_week"],
                        start_time=window["start_time"],
                        end_time=window["end_time"],
                        is_enabled=window.get("is_enabled", True),
                    ))

            if exceptions is not None:
                db.query(AvailabilityException).filter(
                    AvailabilityException.business_id == business_id
                ).delete(synchronize_session=False)
                for exception in exceptions:
                    db.add(AvailabilityException(
                        business_id=business_id,
                        date=exception["date"],
                        start_time=exception.get("start_time"),
                        end_time=exception.get("end_time"),
                        type=exception.get("type", ExceptionType.BLOCKED.value),
                        reason=exception.get("reason"),
                    ))

            db.commit()
            logger.info(
                f"Replaced availability for business {business_id} "
                f"(windows={'kept' if windows is None else len(windows)}, "
                f"exceptions={'kept' if exceptions is None else len(exceptions)})"
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to replace availability for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e


def _validate_time_range(start: str, end: str) -> None:
    try:
        start_minutes = minutes_of_day(start)
        end_minutes = minutes_of_day(end, allow_end_of_day=True)
    except ValueError as e:
        raise BookingValidationError(str(e)) from e
    if start_minutes >= end_minutes:
        raise BookingValidationError("Start time must be before end time")


def _validate_window(window: dict) -> None:
    day = window.get("day_of_week")
    if not isinstance(day, int) or not 0 <= day <= 6:
        raise BookingValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    _validate_time_range(window.get("start_time"), window.get("end_time"))


def _validate_exception(exception: dict) -> None:
    if not isinstance(exception.get("date"), date):
        raise BookingValidationError("Exception date is required")

    start, end = exception.get("start_time"), exception.get("end_time")
    if bool(start) != bool(end):
        raise BookingValidationError("Exception start and end times must be given together")
    if start:
        _validate_time_range(start, end)

    if exception.get("type", ExceptionType.BLOCKED.value) not in {t.value for t in ExceptionType}:
        raise BookingValidationError("Exception type must be BLOCKED or OPEN")
