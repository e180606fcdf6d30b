import hashlib
import hmac
import json
import uuid

import httpx
import pytest
from sqlalchemy.orm import sessionmaker

from app.config.settings import get_settings
from app.models import BookingRequest
from app.services.booking.notifications import BookingNotifier
from app.services.webhook import webhook_service
from app.services.webhook.webhook_service import WebhookDeliveryError, WebhookService
from app.tasks import booking_tasks


class RecordingTask:
    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    def delay(self, *args):
        if self.fail:
            raise ConnectionError('broker down')
        self.calls.append(args)


@pytest.fixture()
def notifications_on(monkeypatch):
    monkeypatch.setattr(get_settings(), 'NOTIFICATIONS_ENABLED', True)


@pytest.fixture()
def tasks(monkeypatch) -> dict:
    recorded = {
        'send_booking_request_emails': RecordingTask(),
        'send_booking_status_email': RecordingTask(),
        'deliver_booking_webhook': RecordingTask(),
    }
    for name, task in recorded.items():
        monkeypatch.setattr(booking_tasks, name, task)
    return recorded


def approved_request() -> BookingRequest:
    return BookingRequest(id=uuid.uuid4(), status='APPROVED')


def test_new_request_queues_emails_and_webhook(notifications_on, tasks) -> None:
    request = approved_request()

    BookingNotifier.request_created(request)

    assert tasks['send_booking_request_emails'].calls == [(str(request.id),)]
    assert tasks['deliver_booking_webhook'].calls == [(str(request.id), 'booking_request.created')]


def test_status_change_emails_only_for_customer_facing_actions(notifications_on, tasks) -> None:
    request = approved_request()

    BookingNotifier.status_changed(request, 'approve')
    BookingNotifier.status_changed(request, 'complete')

    assert tasks['send_booking_status_email'].calls == [(str(request.id), 'approve')]
    assert [call[1] for call in tasks['deliver_booking_webhook'].calls] == [
        'booking_request.approved',
        'booking_request.approved',
    ]


def test_queue_failures_are_swallowed(notifications_on, monkeypatch) -> None:
    monkeypatch.setattr(booking_tasks, 'send_booking_request_emails', RecordingTask(fail=True))
    monkeypatch.setattr(booking_tasks, 'deliver_booking_webhook', RecordingTask(fail=True))

    BookingNotifier.request_created(approved_request())


def test_disabled_notifications_queue_nothing(monkeypatch, tasks) -> None:
    monkeypatch.setattr(get_settings(), 'NOTIFICATIONS_ENABLED', False)

    BookingNotifier.request_created(approved_request())

    assert all(task.calls == [] for task in tasks.values())


def test_signature_is_hmac_sha256_of_the_body() -> None:
    signature = WebhookService.sign_payload('{"a": 1}', 'secret')

    expected = hmac.new(b'secret', b'{"a": 1}', hashlib.sha256).hexdigest()
    assert signature == f'sha256={expected}'


def test_deliver_posts_a_signed_event(monkeypatch) -> None:
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(200)

    real_client = httpx.Client
    monkeypatch.setattr(
        webhook_service.httpx, 'Client', lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs)
    )
    business_id = uuid.uuid4()

    delivered = WebhookService.deliver(
        ['https://crm.example.com/hook'], 'booking_request.created', business_id, {'request_id': 'abc'}
    )

    assert delivered == 1
    body = received[0].content.decode()
    assert json.loads(body)['business_id'] == str(business_id)
    assert received[0].headers['X-Webhook-Signature'] == WebhookService.sign_payload(
        body, get_settings().WEBHOOK_SIGNING_SECRET
    )


def test_deliver_raises_when_a_target_rejects(monkeypatch) -> None:
    real_client = httpx.Client
    monkeypatch.setattr(
        webhook_service.httpx,
        'Client',
        lambda **kwargs: real_client(transport=httpx.MockTransport(lambda r: httpx.Response(500)), **kwargs),
    )

    with pytest.raises(WebhookDeliveryError):
        WebhookService.deliver(['https://crm.example.com/hook'], 'booking_request.approved', uuid.uuid4(), {})


def test_deliver_rejects_unknown_events() -> None:
    with pytest.raises(ValueError):
        WebhookService.deliver(['https://crm.example.com/hook'], 'booking_request.teleported', uuid.uuid4(), {})


class RetryRequested(Exception):
    def __init__(self, kwargs):
        super().__init__('retry')
        self.kwargs = kwargs


@pytest.fixture()
def webhook_request(db, engine, business, monkeypatch) -> BookingRequest:
    business.webhook_urls = {'booking': ['https://crm.example.com/hook', 'https://flaky.example.com/hook']}
    request = BookingRequest(business_id=business.id, customer_name='Ada Lovelace', customer_email='ada@example.com')
    db.add(request)
    db.commit()
    monkeypatch.setattr(booking_tasks, 'SessionLocal', sessionmaker(autocommit=False, autoflush=False, bind=engine))
    return request


def test_webhook_retry_targets_only_the_urls_that_failed(webhook_request, monkeypatch) -> None:
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(str(request.url))
        return httpx.Response(503 if request.url.host == 'flaky.example.com' else 200)

    real_client = httpx.Client
    monkeypatch.setattr(
        webhook_service.httpx, 'Client', lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs)
    )

    def retry(exc=None, kwargs=None, countdown=None):
        raise RetryRequested(kwargs)

    monkeypatch.setattr(booking_tasks.deliver_booking_webhook, 'retry', retry)

    with pytest.raises(RetryRequested) as exception_info:
        booking_tasks.deliver_booking_webhook(str(webhook_request.id), 'booking_request.created')

    assert exception_info.value.kwargs == {'urls': ['https://flaky.example.com/hook']}

    received.clear()
    with pytest.raises(RetryRequested):
        booking_tasks.deliver_booking_webhook(
            str(webhook_request.id), 'booking_request.created', **exception_info.value.kwargs
        )

    assert received == ['https://flaky.example.com/hook']
