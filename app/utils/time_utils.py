# app/utils/time_utils.py
"""
Timezone helpers.

All engine arithmetic happens on aware UTC datetimes. Local wall-clock
values (HH:MM strings, calendar dates) are converted exactly once, here.
"""
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):([0-5][0-9])$")
# Only valid as the end of a range: the following local midnight
END_OF_DAY = "24:00"
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA zone name, raising ValueError for unknown names"""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def is_valid_timezone(name: str) -> bool:
    try:
        get_zone(name)
        return True
    except ValueError:
        return False


def parse_hhmm(value: str) -> time:
    """Parse a 'HH:MM' string (00:00 - 23:59)"""
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Time must be in HH:MM format, got {value!r}")
    return time(int(match.group(1)), int(match.group(2)))


def minutes_of_day(value: str, allow_end_of_day: bool = False) -> int:
    """Minutes since local midnight; '24:00' is 1440 when allowed"""
    if allow_end_of_day and value == END_OF_DAY:
        return 24 * 60
    parsed = parse_hhmm(value)
    return parsed.hour * 60 + parsed.minute


def parse_date(value: str) -> date:
    """Parse a 'YYYY-MM-DD' string"""
    if not DATE_PATTERN.match(value or ""):
        raise ValueError("Date must be in YYYY-MM-DD format")
    return date.fromisoformat(value)


def sunday_based_weekday(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def local_to_utc(day: date, wall_time: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, wall_time, tzinfo=tz).astimezone(timezone.utc)


def wall_clock_to_utc(day: date, value: str, tz: ZoneInfo) -> datetime:
    """An HH:MM string on `day` as a UTC instant; '24:00' is the next local midnight"""
    if value == END_OF_DAY:
        return local_to_utc(day + timedelta(days=1), time.min, tz)
    return local_to_utc(day, parse_hhmm(value), tz)


def local_day_bounds(day: date, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    """UTC instants of local midnight and the following local midnight"""
    start = local_to_utc(day, time.min, tz)
    end = local_to_utc(day + timedelta(days=1), time.min, tz)
    return start, end


def local_today(tz: ZoneInfo, now: datetime) -> date:
    return now.astimezone(tz).date()


def ceil_to_minutes(value: datetime, minutes: int) -> datetime:
    """Round an aware datetime up to the next multiple of `minutes` since the epoch"""
    if minutes <= 1:
        if value.second or value.microsecond:
            return value.replace(second=0, microsecond=0) + timedelta(minutes=1)
        return value
    step = minutes * 60
    epoch_seconds = value.timestamp()
    remainder = epoch_seconds % step
    if remainder == 0:
        return value
    return value + timedelta(seconds=step - remainder)
