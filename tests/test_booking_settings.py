import uuid

import pytest

from app.core.exceptions import BookingValidationError, NotFoundError
from app.models import BookingSettings
from app.services.booking.booking_settings_service import BookingSettingsService


def test_get_or_create_applies_defaults_once(db, business) -> None:
    first = BookingSettingsService.get_or_create(db, business.id)
    second = BookingSettingsService.get_or_create(db, business.id)

    assert first.business_id == second.business_id
    assert first.timezone == 'America/New_York'
    assert first.buffer_minutes == 15
    assert first.min_notice_hours == 24
    assert first.max_days_out == 90
    assert first.booking_mode == 'REQUEST_ONLY'
    assert len(first.booking_key) == 64
    assert db.query(BookingSettings).count() == 1


def test_get_or_create_for_unknown_business(db) -> None:
    with pytest.raises(NotFoundError):
        BookingSettingsService.get_or_create(db, uuid.uuid4())


def test_update_changes_only_supplied_fields(db, business, booking_settings) -> None:
    updated = BookingSettingsService.update(
        db,
        business.id,
        {'timezone': 'Europe/London', 'buffer_minutes': None, 'policy_text': '24h cancellation'},
    )

    assert updated.timezone == 'Europe/London'
    assert updated.buffer_minutes == 15
    assert updated.policy_text == '24h cancellation'


def test_update_rejects_unknown_timezone(db, business, booking_settings) -> None:
    with pytest.raises(BookingValidationError):
        BookingSettingsService.update(db, business.id, {'timezone': 'Mars/Olympus_Mons'})


def test_update_rejects_unknown_mode(db, business, booking_settings) -> None:
    with pytest.raises(BookingValidationError):
        BookingSettingsService.update(db, business.id, {'booking_mode': 'WHENEVER'})
