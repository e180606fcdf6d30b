import time
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.config.settings import get_settings
from app.services.availability.availability_service import AvailabilityService
from app.services.booking.booking_settings_service import BookingSettingsService
from app.services.public_link.public_link_service import PublicLinkService
from app.tasks import booking_tasks

NEW_YORK = ZoneInfo('America/New_York')
WEEKDAYS = {'day_of_week': 1, 'start_time': '09:00', 'end_time': '17:00'}


def upcoming_monday():
    today = datetime.now(NEW_YORK).date()
    days = (7 - today.weekday()) % 7 or 7
    if days < 3:
        days += 7
    return today + timedelta(days=days)


def monday_at(hour: int) -> str:
    day = upcoming_monday()
    return datetime(day.year, day.month, day.day, hour, tzinfo=NEW_YORK).astimezone(timezone.utc).isoformat()


@pytest.fixture()
def open_mondays(client, auth_headers, booking_settings):
    response = client.put('/api/v1/dashboard/availability', json={'windows': [WEEKDAYS]}, headers=auth_headers)
    assert response.status_code == 200
    return response.json()


@pytest.fixture()
def link_token(db, business) -> str:
    return PublicLinkService.ensure_link(db, business.id).path_token


def submit(client, token, **overrides):
    body = {'customer_name': 'Ada Lovelace', 'customer_email': 'ada@example.com', 'preferred_start': monday_at(10)}
    body.update(overrides)
    return client.post(f'/api/v1/public/booking/{token}/requests', json=body)


def test_public_context_lists_active_services(client, link_token, booking_settings, haircut) -> None:
    response = client.get(f'/api/v1/public/booking/{link_token}')

    assert response.status_code == 200
    data = response.json()
    assert data['business_name'] == 'Main Street Barbers'
    assert data['timezone'] == 'America/New_York'
    assert [s['name'] for s in data['services']] == ['Haircut']


def test_unknown_link_is_not_found(client, business) -> None:
    response = client.get('/api/v1/public/booking/nothing-here-ABCDEFGH')

    assert response.status_code == 404
    assert response.json()['code'] == 'LINK_NOT_FOUND'


def test_public_slots_follow_the_weekly_hours(client, link_token, open_mondays) -> None:
    response = client.get(f'/api/v1/public/booking/{link_token}/slots', params={'date': upcoming_monday().isoformat()})

    assert response.status_code == 200
    data = response.json()
    assert data['duration_minutes'] == 30
    assert [s['display_time'] for s in data['slots']][:3] == ['09:00', '09:45', '10:30']


def test_malformed_date_is_a_validation_error(client, link_token, booking_settings) -> None:
    response = client.get(f'/api/v1/public/booking/{link_token}/slots', params={'date': '05/01/2026'})

    assert response.status_code == 400
    assert response.json()['code'] == 'VALIDATION_ERROR'


def test_past_date_is_out_of_range(client, link_token, booking_settings) -> None:
    response = client.get(f'/api/v1/public/booking/{link_token}/slots', params={'date': '2020-01-06'})

    assert response.status_code == 422
    assert response.json()['code'] == 'OUT_OF_RANGE'


def test_submission_and_duplicate_resubmission(client, link_token, open_mondays) -> None:
    first = submit(client, link_token)
    second = submit(client, link_token, customer_email='ADA@example.com')

    assert first.status_code == 200
    assert first.json()['request']['status'] == 'REQUESTED'
    assert first.json()['is_duplicate'] is False
    assert second.json()['is_duplicate'] is True
    assert second.json()['request']['id'] == first.json()['request']['id']


def test_submission_validation_errors_name_the_field(client, link_token, booking_settings) -> None:
    response = submit(client, link_token, customer_email='not-an-email')

    assert response.status_code == 400
    assert response.json()['code'] == 'VALIDATION_ERROR'
    assert [e['field'] for e in response.json()['errors']] == ['customer_email']


def test_booking_survives_a_notification_queue_outage(client, link_token, open_mondays, monkeypatch) -> None:
    class BrokenTask:
        def delay(self, *args):
            raise ConnectionError('broker down')

    monkeypatch.setattr(get_settings(), 'NOTIFICATIONS_ENABLED', True)
    monkeypatch.setattr(booking_tasks, 'send_booking_request_emails', BrokenTask())
    monkeypatch.setattr(booking_tasks, 'deliver_booking_webhook', BrokenTask())

    response = submit(client, link_token)

    assert response.status_code == 200
    assert response.json()['request']['status'] == 'REQUESTED'


def test_dashboard_requires_a_token(client, business) -> None:
    assert client.get('/api/v1/dashboard/settings').status_code in (401, 403)
    assert client.get(
        '/api/v1/dashboard/settings', headers={'Authorization': 'Bearer nonsense'}
    ).status_code == 401


def test_dashboard_request_actions(client, auth_headers, link_token, open_mondays) -> None:
    request_id = submit(client, link_token).json()['request']['id']

    approved = client.post(
        f'/api/v1/dashboard/requests/{request_id}/actions', json={'action': 'approve'}, headers=auth_headers
    )
    invalid = client.post(
        f'/api/v1/dashboard/requests/{request_id}/actions', json={'action': 'accept'}, headers=auth_headers
    )
    system_only = client.post(
        f'/api/v1/dashboard/requests/{request_id}/actions', json={'action': 'expire'}, headers=auth_headers
    )
    listing = client.get('/api/v1/dashboard/requests', params={'status': 'APPROVED'}, headers=auth_headers)

    assert approved.status_code == 200
    assert approved.json()['status'] == 'APPROVED'
    assert approved.json()['proposed_start'] is not None
    assert invalid.status_code == 409
    assert invalid.json()['code'] == 'INVALID_TRANSITION'
    assert system_only.status_code == 400
    assert listing.json()['total'] == 1


def test_approved_request_removes_its_slot(client, auth_headers, link_token, open_mondays) -> None:
    request_id = submit(client, link_token, preferred_start=monday_at(9)).json()['request']['id']
    client.post(f'/api/v1/dashboard/requests/{request_id}/actions', json={'action': 'approve'}, headers=auth_headers)

    response = client.get('/api/v1/dashboard/slots', params={'date': upcoming_monday().isoformat()},
                          headers=auth_headers)

    assert '09:00' not in [s['display_time'] for s in response.json()['slots']]


def test_settings_round_trip(client, auth_headers, booking_settings) -> None:
    patched = client.patch('/api/v1/dashboard/settings', json={'buffer_minutes': 0, 'booking_mode': 'INSTANT_ALLOWED'},
                           headers=auth_headers)
    rejected = client.patch('/api/v1/dashboard/settings', json={'timezone': 'Nowhere/Land'}, headers=auth_headers)

    assert patched.status_code == 200
    assert patched.json()['buffer_minutes'] == 0
    assert patched.json()['booking_mode'] == 'INSTANT_ALLOWED'
    assert rejected.status_code == 400


def test_busy_block_endpoints(client, auth_headers, booking_settings) -> None:
    created = client.post(
        '/api/v1/dashboard/busy-blocks',
        json={'start': monday_at(12), 'end': monday_at(13), 'reason': 'Lunch'},
        headers=auth_headers,
    )
    listed = client.get('/api/v1/dashboard/busy-blocks', headers=auth_headers)
    deleted = client.delete(f"/api/v1/dashboard/busy-blocks/{created.json()['id']}", headers=auth_headers)

    assert created.status_code == 201
    assert created.json()['read_only'] is False
    assert [b['reason'] for b in listed.json()] == ['Lunch']
    assert deleted.status_code == 204


def test_public_link_slug_update(client, auth_headers, business) -> None:
    issued = client.get('/api/v1/dashboard/public-link', headers=auth_headers).json()
    renamed = client.patch('/api/v1/dashboard/public-link', json={'slug': 'Fresh Cuts'}, headers=auth_headers).json()

    assert renamed['code'] == issued['code']
    assert renamed['url'].endswith(f"/book/fresh-cuts-{issued['code']}")


def test_metrics_fall_back_to_thirty_days(client, auth_headers, booking_settings) -> None:
    response = client.get('/api/v1/dashboard/metrics', params={'range': 'forever'}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()['range'] == '30d'
    assert response.json()['total_requests'] == 0


def test_public_endpoints_are_rate_limited(client, rate_limit_store, link_token) -> None:
    rate_limit_store.request_times['testclient'] = [time.time()] * get_settings().PUBLIC_RATE_LIMIT_PER_MINUTE

    limited = client.get(f'/api/v1/public/booking/{link_token}')

    assert limited.status_code == 429
    assert limited.json()['code'] == 'RATE_LIMITED'
    assert limited.headers['Retry-After'] == '60'


def test_rotating_forwarded_for_does_not_escape_the_limit(
        client, rate_limit_store, link_token, booking_settings
) -> None:
    limit = get_settings().PUBLIC_RATE_LIMIT_PER_MINUTE

    statuses = [
        client.get(f'/api/v1/public/booking/{link_token}', headers={'X-Forwarded-For': f'198.51.100.{n}'}).status_code
        for n in range(limit + 5)
    ]

    assert statuses[:limit] == [200] * limit
    assert statuses[limit:] == [429] * 5
    assert list(rate_limit_store.request_times) == ['testclient']


@pytest.mark.parametrize(
    ('method', 'suffix', 'kwargs'),
    [
        ('get', '', {}),
        ('get', '/slots', {'params': {'date': '2026-01-05'}}),
        ('post', '/requests', {'json': {'customer_name': 'Ada Lovelace', 'customer_email': 'ada@example.com'}}),
    ],
)
def test_deactivated_business_link_is_not_found_on_every_public_route(
        client, db, business, booking_settings, link_token, method, suffix, kwargs
) -> None:
    business.is_active = False
    db.commit()

    response = getattr(client, method)(f'/api/v1/public/booking/{link_token}{suffix}', **kwargs)

    assert response.status_code == 404
    assert response.json()['code'] == 'LINK_NOT_FOUND'


def test_slot_listing_loads_settings_and_service_once(client, link_token, open_mondays, haircut, monkeypatch) -> None:
    calls = {'settings': 0, 'duration': 0}
    real_get_or_create = BookingSettingsService.get_or_create
    real_resolve_duration = AvailabilityService.resolve_duration

    def counting_get_or_create(db, business_id):
        calls['settings'] += 1
        return real_get_or_create(db, business_id)

    def counting_resolve_duration(db, settings, service_id):
        calls['duration'] += 1
        return real_resolve_duration(db, settings, service_id)

    monkeypatch.setattr(BookingSettingsService, 'get_or_create', staticmethod(counting_get_or_create))
    monkeypatch.setattr(AvailabilityService, 'resolve_duration', staticmethod(counting_resolve_duration))

    response = client.get(
        f'/api/v1/public/booking/{link_token}/slots',
        params={'date': upcoming_monday().isoformat(), 'service_id': str(haircut.id)},
    )

    assert response.status_code == 200
    assert calls == {'settings': 1, 'duration': 1}
