# app/services/availability/slot_generator.py
"""
Slot generation

Pure functions: no database access and no clock reads other than the `now`
default. Given a business's policy, its weekly windows, the exceptions for
the target date and the merged busy intervals, produce the ordered list of
bookable starts.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

from app.config.settings import get_settings
from app.core.exceptions import OutOfRangeError, BookingValidationError
from app.models.availability import AvailabilityWindow, AvailabilityException, ExceptionType
from app.models.booking_settings import BookingSettings
from app.services.availability.intervals import (
    Interval,
    merge_intervals,
    subtract_intervals,
    clip_before,
)
from app.utils.time_utils import (
    utcnow,
    get_zone,
    sunday_based_weekday,
    wall_clock_to_utc,
    local_day_bounds,
    local_today,
    ceil_to_minutes,
)


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime

    def to_dict(self, tz: Optional[ZoneInfo] = None) -> dict:
        data = {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }
        if tz is not None:
            data["local_start"] = self.start.astimezone(tz).isoformat()
            data["display_time"] = self.start.astimezone(tz).strftime("%H:%M")
        return data


def _wall_range(target_date: date, start: str, end: str, tz: ZoneInfo) -> Optional[Interval]:
    start_at = wall_clock_to_utc(target_date, start, tz)
    end_at = wall_clock_to_utc(target_date, end, tz)
    if end_at <= start_at:
        return None
    return Interval(start_at, end_at)


def resolve_open_intervals(
        target_date: date,
        tz: ZoneInfo,
        windows: Sequence[AvailabilityWindow],
        exceptions: Sequence[AvailabilityException],
) -> List[Interval]:
    """
    Resolve the day's open hours as UTC intervals.

    Weekly windows for the weekday form the base. Exceptions for the date
    then override the parts they cover: OPEN ranges are added first, then
    BLOCKED ranges are removed, so a blocked range always wins.
    """
    weekday = sunday_based_weekday(target_date)
    day_range = Interval(*local_day_bounds(target_date, tz))

    open_ranges = []
    for window in windows:
        if not window.is_enabled or window.day_of_week != weekday:
            continue
        interval = _wall_range(target_date, window.start_time, window.end_time, tz)
        if interval:
            open_ranges.append(interval)

    blocked_ranges = []
    for exception in exceptions:
        if exception.date != target_date:
            continue
        if exception.is_full_day:
            interval = day_range
        else:
            interval = _wall_range(target_date, exception.start_time, exception.end_time, tz)
            if interval is None:
                continue

        if exception.type == ExceptionType.OPEN.value:
            open_ranges.append(interval)
        else:
            blocked_ranges.append(interval)

    return subtract_intervals(merge_intervals(open_ranges), blocked_ranges)


def check_date_in_range(
        target_date: date,
        settings: BookingSettings,
        now: datetime,
) -> None:
    """Raise OutOfRangeError when nothing on target_date could ever be offered"""
    tz = get_zone(settings.timezone)
    today = local_today(tz, now)

    if target_date < today:
        raise OutOfRangeError("Date is in the past")

    if target_date > today + timedelta(days=settings.max_days_out):
        raise OutOfRangeError(
            f"Date is more than {settings.max_days_out} days in the future"
        )

    _, day_end = local_day_bounds(target_date, tz)
    if day_end <= now + timedelta(hours=settings.min_notice_hours):
        raise OutOfRangeError(
            f"Bookings require at least {settings.min_notice_hours} hours notice"
        )


def check_start_in_range(start: datetime, settings: BookingSettings, now: datetime) -> None:
    """Raise OutOfRangeError when a requested start breaks notice or look-ahead"""
    tz = get_zone(settings.timezone)

    if start < now + timedelta(hours=settings.min_notice_hours):
        raise OutOfRangeError(
            f"Bookings require at least {settings.min_notice_hours} hours notice"
        )

    last_day = local_today(tz, now) + timedelta(days=settings.max_days_out)
    if start.astimezone(tz).date() > last_day:
        raise OutOfRangeError(
            f"Bookings can be made at most {settings.max_days_out} days in advance"
        )


def generate_slots(
        settings: BookingSettings,
        windows: Sequence[AvailabilityWindow],
        exceptions: Sequence[AvailabilityException],
        busy_intervals: Sequence[Interval],
        service_duration_minutes: int,
        target_date: date,
        now: Optional[datetime] = None,
        granularity_minutes: Optional[int] = None,
) -> List[Slot]:
    """
    Produce the ascending, duplicate-free bookable starts for target_date.

    Raises OutOfRangeError for past dates, dates beyond max_days_out and
    dates that end before the minimum-notice boundary, so callers can tell
    "closed" apart from "not bookable".
    """
    if service_duration_minutes <= 0:
        raise BookingValidationError("Service duration must be positive")

    now = now or utcnow()
    if granularity_minutes is None:
        granularity_minutes = get_settings().SLOT_GRANULARITY_MINUTES

    check_date_in_range(target_date, settings, now)

    tz = get_zone(settings.timezone)
    duration = timedelta(minutes=service_duration_minutes)
    step = timedelta(minutes=service_duration_minutes + (settings.buffer_minutes or 0))
    notice_boundary = now + timedelta(hours=settings.min_notice_hours)

    open_intervals = resolve_open_intervals(target_date, tz, windows, exceptions)
    free = subtract_intervals(open_intervals, busy_intervals)
    free = clip_before(free, notice_boundary)

    slots: List[Slot] = []
    cursor: Optional[datetime] = None
    for interval in free:
        start = ceil_to_minutes(interval.start, granularity_minutes)
        if cursor is not None and start < cursor:
            start = cursor

        while start + duration <= interval.end:
            slots.append(Slot(start=start, end=start + duration))
            cursor = start + step
            start = cursor

    return slots
