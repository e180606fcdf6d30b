# app/tasks/booking_tasks.py
import logging
from typing import List, Optional
from uuid import UUID

from app.config.celery_config import celery_app
from app.config.database import SessionLocal
from app.models.booking_request import BookingRequest
from app.models.booking_settings import BookingSettings
from app.models.business import Business
from app.services.booking.booking_request_service import BookingRequestService
from app.services.email.email_service import EmailService
from app.services.webhook.webhook_service import WebhookDeliveryError, WebhookService
from app.utils.time_utils import get_zone

logger = logging.getLogger(__name__)


def _load(db, request_id: str):
    """Request, its business and settings, or (None, None, None) when gone"""
    request = db.get(BookingRequest, UUID(request_id))
    if not request:
        return None, None, None
    return request, db.get(Business, request.business_id), db.get(BookingSettings, request.business_id)


@celery_app.task(bind=True, max_retries=3)
def send_booking_request_emails(self, request_id: str):
    """
    Acknowledge a new booking request to the customer and alert the business

    Args:
        request_id: BookingRequest id
    """
    db = SessionLocal()
    try:
        request, business, settings = _load(db, request_id)
        if not request:
            logger.warning(f"Booking request {request_id} no longer exists, skipping emails")
            return {"status": "skipped", "request_id": request_id}

        tz = get_zone(settings.timezone)
        business_name = business.name if business else "Business"

        EmailService.send_request_received_email(request, business_name, tz)
        if settings.notification_email:
            EmailService.send_new_request_alert(request, business_name, settings.notification_email, tz)

        logger.info(f"Booking emails sent for request {request_id}")
        return {"status": "success", "request_id": request_id}

    except Exception as exc:
        logger.error(f"Failed to send booking emails for request {request_id}: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3)
def send_booking_status_email(self, request_id: str, action: str):
    """
    Tell the customer about an approve, propose, decline or cancel

    Args:
        request_id: BookingRequest id
        action: the action that was applied
    """
    db = SessionLocal()
    try:
        request, business, settings = _load(db, request_id)
        if not request:
            logger.warning(f"Booking request {request_id} no longer exists, skipping {action} email")
            return {"status": "skipped", "request_id": request_id}

        EmailService.send_status_email(
            request,
            action,
            business.name if business else "Business",
            get_zone(settings.timezone),
        )
        return {"status": "success", "request_id": request_id, "action": action}

    except Exception as exc:
        logger.error(f"Failed to send {action} email for request {request_id}: {exc}")
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3)
def deliver_booking_webhook(self, request_id: str, event_type: str, urls: Optional[List[str]] = None):
    """
    POST a booking event to the business's CRM webhooks

    Args:
        request_id: BookingRequest id
        event_type: e.g. booking_request.created
        urls: targets still owed this event; None means every configured URL
    """
    db = SessionLocal()
    try:
        request, business, _ = _load(db, request_id)
        if not request or not business:
            return {"status": "skipped", "request_id": request_id}

        targets = business.booking_webhook_urls if urls is None else urls
        if not targets:
            return {"status": "skipped", "request_id": request_id, "reason": "no webhook urls"}

        event_data = {
            "request_id": str(request.id),
            "status": request.status,
            "service_id": str(request.service_id) if request.service_id else None,
            "customer_name": request.customer_name,
            "customer_email": request.customer_email,
            "customer_phone": request.customer_phone,
            "preferred_start": request.preferred_start.isoformat() if request.preferred_start else None,
            "proposed_start": request.proposed_start.isoformat() if request.proposed_start else None,
            "proposed_end": request.proposed_end.isoformat() if request.proposed_end else None,
        }
        delivered = WebhookService.deliver(targets, event_type, business.id, event_data)
        return {"status": "success", "request_id": request_id, "delivered": delivered}

    except WebhookDeliveryError as exc:
        logger.error(f"Failed to deliver {event_type} webhook for request {request_id}: {exc}")

        # Only the targets that rejected the event are retried: 1min, 5min, 25min
        raise self.retry(
            exc=exc,
            kwargs={"urls": exc.failed_urls},
            countdown=60 * (5 ** self.request.retries)
        )

    except Exception as exc:
        logger.error(f"Failed to deliver {event_type} webhook for request {request_id}: {exc}")
        raise self.retry(
            exc=exc,
            countdown=60 * (5 ** self.request.retries)
        )
    finally:
        db.close()


@celery_app.task
def expire_lapsed_proposals():
    """Periodic: PROPOSED requests past proposal_expires_at become EXPIRED"""
    db = SessionLocal()
    try:
        count = BookingRequestService.expire_lapsed_proposals(db)
        return {"status": "success", "expired": count}
    finally:
        db.close()
