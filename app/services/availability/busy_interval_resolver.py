# app/services/availability/busy_interval_resolver.py
"""
Busy interval resolution

Flattens busy blocks and time-occupying booking requests for one local day
into an ordered, non-overlapping list of UTC intervals.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import UpstreamUnavailableError
from app.models.booking_request import BookingRequest, BookingStatus
from app.models.booking_settings import BookingSettings
from app.models.busy_block import BusyBlock
from app.models.service import Service
from app.services.availability.intervals import Interval, merge_intervals
from app.utils.time_utils import get_zone, local_day_bounds, utcnow

logger = logging.getLogger(__name__)

COMMITTED_STATUSES = (BookingStatus.APPROVED.value, BookingStatus.COMPLETED.value)
OCCUPYING_STATUSES = COMMITTED_STATUSES + (
    BookingStatus.REQUESTED.value,
    BookingStatus.PROPOSED.value,
)

# Longest booking we look back for when a request starts before the day
MAX_LOOKBACK = timedelta(days=1)


def request_interval(
        request: BookingRequest,
        duration_minutes: int,
        now: datetime,
) -> Optional[Interval]:
    """The interval a request holds on the calendar, or None"""
    duration = timedelta(minutes=duration_minutes)

    def preferred() -> Optional[Interval]:
        if not request.preferred_start:
            return None
        end = request.preferred_end or request.preferred_start + duration
        return Interval(request.preferred_start, end)

    def proposed() -> Optional[Interval]:
        if not request.proposed_start:
            return None
        end = request.proposed_end or request.proposed_start + duration
        return Interval(request.proposed_start, end)

    if request.status in COMMITTED_STATUSES:
        return proposed() or preferred()

    if request.status == BookingStatus.REQUESTED.value:
        return preferred()

    if request.status == BookingStatus.PROPOSED.value:
        if request.proposal_expires_at and request.proposal_expires_at <= now:
            return None
        return proposed()

    return None


def resolve_busy_intervals(
        blocks: Iterable[BusyBlock],
        requests: Iterable[BookingRequest],
        service_durations: Dict[UUID, int],
        default_duration_minutes: int,
        day_range: Optional[Interval] = None,
        now: Optional[datetime] = None,
        exclude_request_id: Optional[UUID] = None,
) -> List[Interval]:
    """Merge blocks and occupying requests, keeping those that touch day_range"""
    now = now or utcnow()
    intervals = [Interval(block.start, block.end) for block in blocks if block.end > block.start]

    for request in requests:
        if exclude_request_id is not None and request.id == exclude_request_id:
            continue
        duration = service_durations.get(request.service_id) or default_duration_minutes
        interval = request_interval(request, duration, now)
        if interval:
            intervals.append(interval)

    if day_range is not None:
        intervals = [i for i in intervals if i.overlaps(day_range)]

    return merge_intervals(intervals)


class BusyIntervalResolver:

    @staticmethod
    def load_requests_for_range(db: Session, business_id: UUID, day_range: Interval) -> List[BookingRequest]:
        window_start = day_range.start - MAX_LOOKBACK
        return (
            db.query(BookingRequest)
            .filter(
                BookingRequest.business_id == business_id,
                BookingRequest.status.in_(OCCUPYING_STATUSES),
                or_(
                    and_(
                        BookingRequest.preferred_start >= window_start,
                        BookingRequest.preferred_start < day_range.end,
                    ),
                    and_(
                        BookingRequest.proposed_start >= window_start,
                        BookingRequest.proposed_start < day_range.end,
                    ),
                ),
            )
            .all()
        )

    @staticmethod
    def for_date(
            db: Session,
            settings: BookingSettings,
            target_date: date,
            now: Optional[datetime] = None,
            exclude_request_id: Optional[UUID] = None,
    ) -> List[Interval]:
        """Merged busy intervals for target_date in the business's timezone"""
        business_id = settings.business_id
        day_range = Interval(*local_day_bounds(target_date, get_zone(settings.timezone)))

        try:
            blocks = (
                db.query(BusyBlock)
                .filter(
                    BusyBlock.business_id == business_id,
                    BusyBlock.start < day_range.end,
                    BusyBlock.end > day_range.start,
                )
                .all()
            )
            requests = BusyIntervalResolver.load_requests_for_range(db, business_id, day_range)

            service_ids = {r.service_id for r in requests if r.service_id}
            durations = {}
            if service_ids:
                durations = dict(
                    db.query(Service.id, Service.duration_minutes)
                    .filter(Service.id.in_(service_ids))
                    .all()
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load busy time for business {business_id} on {target_date}: {e}")
            raise UpstreamUnavailableError() from e

        return resolve_busy_intervals(
            blocks,
            requests,
            durations,
            settings.default_duration_minutes,
            day_range=day_range,
            now=now,
            exclude_request_id=exclude_request_id,
        )
