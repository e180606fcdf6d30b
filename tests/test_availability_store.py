import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from app.core.exceptions import BookingValidationError, InvalidServiceError
from app.models import AvailabilityWindow, BusyBlock, Service
from app.schemas.scheduler import AvailabilityWindowSchema
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.availability_store import AvailabilityStore

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
MONDAY = date(2026, 1, 5)


def test_replace_availability_swaps_windows_and_exceptions(db, business) -> None:
    AvailabilityStore.replace_availability(
        db,
        business.id,
        windows=[{'day_of_week': 1, 'start_time': '09:00', 'end_time': '17:00'}],
        exceptions=[{'date': MONDAY, 'type': 'BLOCKED', 'reason': 'Holiday'}],
    )
    AvailabilityStore.replace_availability(
        db,
        business.id,
        windows=[
            {'day_of_week': 2, 'start_time': '10:00', 'end_time': '14:00'},
            {'day_of_week': 1, 'start_time': '08:00', 'end_time': '12:00'},
        ],
    )

    windows = AvailabilityStore.get_windows(db, business.id)
    exceptions = AvailabilityStore.get_exceptions(db, business.id, MONDAY)

    assert [(w.day_of_week, w.start_time) for w in windows] == [(1, '08:00'), (2, '10:00')]
    assert len(exceptions) == 1
    assert exceptions[0].is_full_day
    assert exceptions[0].reason == 'Holiday'


def test_empty_list_clears_a_collection(db, business) -> None:
    AvailabilityStore.replace_availability(
        db, business.id, exceptions=[{'date': MONDAY, 'start_time': '12:00', 'end_time': '13:00'}]
    )
    AvailabilityStore.replace_availability(db, business.id, exceptions=[])

    assert AvailabilityStore.list_all_exceptions(db, business.id) == []


def test_reads_are_scoped_to_the_business(db, business) -> None:
    db.add(AvailabilityWindow(business_id=uuid.uuid4(), day_of_week=1, start_time='09:00', end_time='17:00'))
    db.commit()

    assert AvailabilityStore.get_windows(db, business.id) == []


@pytest.mark.parametrize(
    'window',
    [
        {'day_of_week': 7, 'start_time': '09:00', 'end_time': '17:00'},
        {'day_of_week': 1, 'start_time': '9am', 'end_time': '17:00'},
        {'day_of_week': 1, 'start_time': '17:00', 'end_time': '09:00'},
        {'day_of_week': 1, 'start_time': '24:00', 'end_time': '24:00'},
        {'day_of_week': 1, 'start_time': '09:00', 'end_time': '24:30'},
    ],
)
def test_invalid_windows_are_rejected(db, business, window: dict) -> None:
    with pytest.raises(BookingValidationError):
        AvailabilityStore.replace_availability(db, business.id, windows=[window])


def test_exception_with_only_one_time_is_rejected(db, business) -> None:
    with pytest.raises(BookingValidationError):
        AvailabilityStore.replace_availability(
            db, business.id, exceptions=[{'date': MONDAY, 'start_time': '12:00'}]
        )


def test_list_slots_combines_hours_and_busy_time(db, business, booking_settings, monday_hours) -> None:
    db.add(BusyBlock(
        business_id=business.id,
        start=datetime(2026, 1, 5, 14, 0, tzinfo=timezone.utc),
        end=datetime(2026, 1, 5, 20, 0, tzinfo=timezone.utc),
    ))
    db.commit()

    slots = AvailabilityService.list_slots(db, business.id, MONDAY, now=NOW)

    assert [slot.start for slot in slots] == [
        datetime(2026, 1, 5, 20, 0, tzinfo=timezone.utc),
        datetime(2026, 1, 5, 20, 45, tzinfo=timezone.utc),
        datetime(2026, 1, 5, 21, 30, tzinfo=timezone.utc),
    ]


def test_list_slots_uses_the_service_duration(db, business, booking_settings, monday_hours) -> None:
    long_service = Service(business_id=business.id, name='Colour', duration_minutes=240)
    db.add(long_service)
    db.commit()

    slots = AvailabilityService.list_slots(db, business.id, MONDAY, service_id=long_service.id, now=NOW)

    assert len(slots) == 1
    assert slots[0].end - slots[0].start == timedelta(hours=4)


def test_inactive_service_is_invalid(db, business, booking_settings, haircut) -> None:
    haircut.is_active = False
    db.commit()

    with pytest.raises(InvalidServiceError):
        AvailabilityService.list_slots(db, business.id, MONDAY, service_id=haircut.id, now=NOW)


def test_another_tenants_service_is_invalid(db, business, booking_settings) -> None:
    with pytest.raises(InvalidServiceError):
        AvailabilityService.list_slots(db, business.id, MONDAY, service_id=uuid.uuid4(), now=NOW)


def test_window_may_end_at_midnight(db, business) -> None:
    AvailabilityStore.replace_availability(
        db, business.id, windows=[{'day_of_week': 5, 'start_time': '18:00', 'end_time': '24:00'}]
    )

    assert [(w.start_time, w.end_time) for w in AvailabilityStore.get_windows(db, business.id)] == [('18:00', '24:00')]


def test_window_schema_accepts_midnight_only_as_an_end() -> None:
    assert AvailabilityWindowSchema(day_of_week=5, start_time='18:00', end_time='24:00').end_time == '24:00'

    with pytest.raises(ValidationError):
        AvailabilityWindowSchema(day_of_week=5, start_time='24:00', end_time='24:00')
