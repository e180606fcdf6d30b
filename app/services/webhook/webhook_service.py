# app/services/webhook/webhook_service.py
import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

import httpx

from app.config.settings import get_settings

logger = logging.getLogger(__name__)


class WebhookDeliveryError(Exception):
    """One or more webhook targets did not accept the event"""

    def __init__(self, message: str, failed_urls: Optional[List[str]] = None):
        super().__init__(message)
        self.failed_urls = failed_urls or []


class WebhookService:
    """Delivers booking events to a business's CRM webhook URLs"""

    VALID_EVENT_TYPES = [
        "booking_request.created",
        "booking_request.requested",
        "booking_request.proposed",
        "booking_request.approved",
        "booking_request.declined",
        "booking_request.cancelled",
        "booking_request.completed",
        "booking_request.expired",
    ]

    @staticmethod
    def build_payload(
            event_type: str,
            business_id: UUID,
            event_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Build the webhook payload in a consistent format."""
        return {
            "id": str(uuid4()),
            "event": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "business_id": str(business_id),
            "data": event_data
        }

    @staticmethod
    def sign_payload(payload_json: str, secret: str) -> str:
        """HMAC-SHA256 signature receivers use to verify the sender"""
        signature = hmac.new(
            secret.encode(),
            payload_json.encode(),
            hashlib.sha256
        ).hexdigest()

        return f"sha256={signature}"

    @staticmethod
    def deliver(
            urls: List[str],
            event_type: str,
            business_id: UUID,
            event_data: Dict[str, Any],
    ) -> int:
        """
        POST the event to every URL. Returns the number delivered; raises
        WebhookDeliveryError naming the targets that failed, so a retry can
        skip the ones that already accepted the event.
        """
        if event_type not in WebhookService.VALID_EVENT_TYPES:
            raise ValueError(f"Invalid event type: {event_type}")
        if not urls:
            return 0

        settings = get_settings()
        payload = WebhookService.build_payload(event_type, business_id, event_data)
        payload_json = json.dumps(payload, default=str)

        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Signature": WebhookService.sign_payload(payload_json, settings.WEBHOOK_SIGNING_SECRET),
            "X-Webhook-Event": event_type,
            "X-Webhook-Id": payload["id"],
            "X-Webhook-Timestamp": payload["timestamp"],
            "User-Agent": "BookingEngine-Webhook/1.0"
        }

        delivered = 0
        failures = []
        failed_urls = []
        with httpx.Client(timeout=settings.WEBHOOK_TIMEOUT_SECONDS, follow_redirects=True) as client:
            for url in urls:
                try:
                    response = client.post(url, content=payload_json, headers=headers)
                    if 200 <= response.status_code < 300:
                        delivered += 1
                    else:
                        failures.append(f"{url}: HTTP {response.status_code}")
                        failed_urls.append(url)
                except httpx.TimeoutException:
                    failures.append(f"{url}: timeout")
                    failed_urls.append(url)
                except httpx.RequestError as e:
                    failures.append(f"{url}: {str(e)[:200]}")
                    failed_urls.append(url)

        if failures:
            logger.warning(f"Webhook {event_type} failed for {len(failures)} target(s): {failures}")
            raise WebhookDeliveryError("; ".join(failures), failed_urls)

        logger.info(f"Webhook {event_type} delivered to {delivered} target(s) for business {business_id}")
        return delivered
