# app/services/booking/notifications.py
"""
Fire-and-forget notification dispatch after a booking write.

A failure to enqueue is logged and swallowed: the booking is already
committed and must never be rolled back or failed by a notification.
"""
import logging

from app.config.settings import get_settings
from app.models.booking_request import BookingRequest, BookingAction

logger = logging.getLogger(__name__)

# Actions the customer hears about by email
CUSTOMER_EMAIL_ACTIONS = {
    BookingAction.APPROVE.value,
    BookingAction.PROPOSE.value,
    BookingAction.DECLINE.value,
    BookingAction.CANCEL.value,
}


class BookingNotifier:

    @staticmethod
    def _enabled() -> bool:
        return get_settings().NOTIFICATIONS_ENABLED

    @staticmethod
    def request_created(request: BookingRequest) -> None:
        if not BookingNotifier._enabled():
            return

        from app.tasks.booking_tasks import send_booking_request_emails, deliver_booking_webhook

        request_id = str(request.id)
        try:
            send_booking_request_emails.delay(request_id)
        except Exception as e:
            logger.warning(f"Failed to queue booking emails for request {request_id} (non-blocking): {e}")

        try:
            deliver_booking_webhook.delay(request_id, "booking_request.created")
        except Exception as e:
            logger.warning(f"Failed to queue booking webhook for request {request_id} (non-blocking): {e}")

    @staticmethod
    def status_changed(request: BookingRequest, action: str) -> None:
        if not BookingNotifier._enabled():
            return

        from app.tasks.booking_tasks import send_booking_status_email, deliver_booking_webhook

        request_id = str(request.id)
        if action in CUSTOMER_EMAIL_ACTIONS:
            try:
                send_booking_status_email.delay(request_id, action)
            except Exception as e:
                logger.warning(f"Failed to queue {action} email for request {request_id} (non-blocking): {e}")

        try:
            deliver_booking_webhook.delay(request_id, f"booking_request.{request.status.lower()}")
        except Exception as e:
            logger.warning(f"Failed to queue booking webhook for request {request_id} (non-blocking): {e}")
