# app/services/metrics/booking_metrics_service.py
"""
Booking metrics

Rollups over the booking requests created in a trailing window. Requests and
their audit logs are loaded in one query; every figure is then derived from
that single in-memory set. Each sub-metric is computed independently, so a
failure in one leaves that field None and is listed under `errors`.
"""
import logging
import statistics
from collections import Counter
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import UpstreamUnavailableError
from app.models.booking_request import BookingRequest, BookingStatus, BookingAction
from app.services.booking.booking_settings_service import BookingSettingsService
from app.utils.time_utils import get_zone, local_day_bounds, local_today, sunday_based_weekday, utcnow

logger = logging.getLogger(__name__)

RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_RANGE = "30d"
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
UNSPECIFIED_SERVICE = "unspecified"


@dataclass
class BookingMetrics:
    range: str
    period_start: datetime
    period_end: datetime
    total_requests: Optional[int] = None
    requests_by_status: Optional[Dict[str, int]] = None
    conversion_rate: Optional[float] = None
    median_minutes_to_first_response: Optional[float] = None
    median_minutes_to_approval: Optional[float] = None
    service_popularity: Optional[List[dict]] = None
    peak_hours: Optional[List[dict]] = None
    peak_days: Optional[List[dict]] = None
    cancellation_count: Optional[int] = None
    reactivate_count: Optional[int] = None
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["period_start"] = self.period_start.isoformat()
        data["period_end"] = self.period_end.isoformat()
        return data


def normalize_range(value: Optional[str]) -> str:
    """Unknown ranges fall back to the default without complaint"""
    return value if value in RANGE_DAYS else DEFAULT_RANGE


def metrics_period(range_key: str, tz: ZoneInfo, now: datetime):
    """Start of (today - N) to end of today, in the business's timezone"""
    today = local_today(tz, now)
    start, _ = local_day_bounds(today - timedelta(days=RANGE_DAYS[range_key]), tz)
    _, end = local_day_bounds(today, tz)
    return start, end


def _median_minutes(samples: List[float]) -> Optional[float]:
    if not samples:
        return None
    return round(statistics.median(samples), 1)


def _minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def _status_counts(requests: Sequence[BookingRequest]) -> Dict[str, int]:
    counts = {status.value: 0 for status in BookingStatus}
    for request in requests:
        if request.status in counts:
            counts[request.status] += 1
    return counts


def _conversion_rate(requests: Sequence[BookingRequest]) -> float:
    if not requests:
        return 0
    approved = sum(1 for r in requests if r.status == BookingStatus.APPROVED.value)
    return round(approved / len(requests) * 100, 2)


def _first_response_minutes(requests: Sequence[BookingRequest]) -> Optional[float]:
    samples = []
    for request in requests:
        first = next(
            (
                log for log in request.audit_logs
                if log.from_status == BookingStatus.REQUESTED.value
                and log.action != BookingAction.REACTIVATE.value
            ),
            None,
        )
        if first and first.created_at >= request.created_at:
            samples.append(_minutes_between(request.created_at, first.created_at))
    return _median_minutes(samples)


def _approval_minutes(requests: Sequence[BookingRequest]) -> Optional[float]:
    samples = []
    for request in requests:
        approval = next(
            (
                log for log in request.audit_logs
                if log.to_status == BookingStatus.APPROVED.value
                and log.from_status is not None
            ),
            None,
        )
        if approval and approval.created_at >= request.created_at:
            samples.append(_minutes_between(request.created_at, approval.created_at))
    return _median_minutes(samples)


def _service_popularity(requests: Sequence[BookingRequest]) -> List[dict]:
    counts = Counter()
    names = {}
    for request in requests:
        if request.service_id:
            key = str(request.service_id)
            names[key] = request.service.name if request.service else "Unknown Service"
        else:
            key = UNSPECIFIED_SERVICE
            names[key] = "Unspecified"
        counts[key] += 1

    return [
        {
            "service_id": None if key == UNSPECIFIED_SERVICE else key,
            "service_name": names[key],
            "count": count,
        }
        for key, count in sorted(counts.items(), key=lambda item: (-item[1], names[item[0]]))
    ]


def _peak_hours(requests: Sequence[BookingRequest], tz: ZoneInfo) -> List[dict]:
    counts = [0] * 24
    for request in requests:
        counts[request.created_at.astimezone(tz).hour] += 1
    return [{"hour": hour, "count": count} for hour, count in enumerate(counts)]


def _peak_days(requests: Sequence[BookingRequest], tz: ZoneInfo) -> List[dict]:
    counts = [0] * 7
    for request in requests:
        counts[sunday_based_weekday(request.created_at.astimezone(tz).date())] += 1
    return [
        {"day": day, "day_name": DAY_NAMES[day], "count": count}
        for day, count in enumerate(counts)
    ]


def _cancellation_count(requests: Sequence[BookingRequest]) -> int:
    return sum(1 for r in requests if r.status == BookingStatus.CANCELLED.value)


def _reactivate_count(requests: Sequence[BookingRequest]) -> int:
    return sum(
        1
        for r in requests
        for log in r.audit_logs
        if log.action == BookingAction.REACTIVATE.value
    )


def compute_metrics(
        requests: Sequence[BookingRequest],
        tz: ZoneInfo,
        range_key: str,
        period_start: datetime,
        period_end: datetime,
) -> BookingMetrics:
    """Derive every figure from an already-loaded request set"""
    metrics = BookingMetrics(range=range_key, period_start=period_start, period_end=period_end)

    calculations: Dict[str, Callable[[], object]] = {
        "total_requests": lambda: len(requests),
        "requests_by_status": lambda: _status_counts(requests),
        "conversion_rate": lambda: _conversion_rate(requests),
        "median_minutes_to_first_response": lambda: _first_response_minutes(requests),
        "median_minutes_to_approval": lambda: _approval_minutes(requests),
        "service_popularity": lambda: _service_popularity(requests),
        "peak_hours": lambda: _peak_hours(requests, tz),
        "peak_days": lambda: _peak_days(requests, tz),
        "cancellation_count": lambda: _cancellation_count(requests),
        "reactivate_count": lambda: _reactivate_count(requests),
    }

    for name, calculate in calculations.items():
        try:
            setattr(metrics, name, calculate())
        except Exception as e:
            logger.warning(f"Metric {name} failed (non-blocking): {e}")
            metrics.errors.append(name)

    return metrics


class BookingMetricsService:

    @staticmethod
    def load_requests(
            db: Session,
            business_id: UUID,
            period_start: datetime,
            period_end: datetime,
    ) -> List[BookingRequest]:
        return (
            db.query(BookingRequest)
            .options(
                selectinload(BookingRequest.service),
                selectinload(BookingRequest.audit_logs),
            )
            .filter(
                BookingRequest.business_id == business_id,
                BookingRequest.created_at >= period_start,
                BookingRequest.created_at < period_end,
            )
            .order_by(BookingRequest.created_at.asc())
            .all()
        )

    @staticmethod
    def aggregate(
            db: Session,
            business_id: UUID,
            range_value: Optional[str] = None,
            now: Optional[datetime] = None,
    ) -> BookingMetrics:
        now = now or utcnow()
        range_key = normalize_range(range_value)
        settings = BookingSettingsService.get_or_create(db, business_id)
        tz = get_zone(settings.timezone)
        period_start, period_end = metrics_period(range_key, tz, now)

        try:
            requests = BookingMetricsService.load_requests(db, business_id, period_start, period_end)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load booking requests for metrics, business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

        metrics = compute_metrics(requests, tz, range_key, period_start, period_end)
        logger.info(
            f"Computed {range_key} booking metrics for business {business_id}: "
            f"{metrics.total_requests} requests, errors={metrics.errors}"
        )
        return metrics
