# app/core/exceptions.py
"""
Error taxonomy for the booking engine.

Every error carries a stable machine-readable code, the HTTP status the API
layer should answer with, and whether the caller may simply retry.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SchedulerError(Exception):
    """Base class for all engine errors"""

    code = "INTERNAL_ERROR"
    status_code = 500
    retryable = False
    default_message = "Unexpected scheduler error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }


class BookingValidationError(SchedulerError):
    """Malformed input (date format, missing fields, bad ranges)"""
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request"


class InvalidServiceError(SchedulerError):
    code = "INVALID_SERVICE"
    status_code = 400
    default_message = "Service not found or inactive"


class OutOfRangeError(SchedulerError):
    """Date or time is outside the bookable horizon. Means 'no slots', not a fault."""
    code = "OUT_OF_RANGE"
    status_code = 422
    default_message = "Requested date is outside the bookable range"


class LinkNotFoundError(SchedulerError):
    # Same message for malformed and unassigned tokens
    code = "LINK_NOT_FOUND"
    status_code = 404
    default_message = "Booking link not found"


class UpstreamUnavailableError(SchedulerError):
    code = "UPSTREAM_UNAVAILABLE"
    status_code = 503
    retryable = True
    default_message = "Booking data is temporarily unavailable, please retry"


class SlotUnavailableError(SchedulerError):
    code = "SLOT_UNAVAILABLE"
    status_code = 409
    default_message = "The selected time slot is no longer available. Please choose another time."


class InstantBookingDisabledError(SchedulerError):
    code = "INSTANT_BOOKING_DISABLED"
    status_code = 403
    default_message = "Instant booking is not enabled for this business"


class InvalidTransitionError(SchedulerError):
    code = "INVALID_TRANSITION"
    status_code = 409
    default_message = "Action is not allowed for the current request status"


class NotFoundError(SchedulerError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class ReadOnlyBlockError(SchedulerError):
    code = "READ_ONLY_BLOCK"
    status_code = 403
    default_message = "Synced busy blocks are read-only"


def register_exception_handlers(app: FastAPI) -> None:
    """Render engine errors and request validation errors as JSON"""

    @app.exception_handler(SchedulerError)
    async def scheduler_error_handler(request: Request, exc: SchedulerError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

        headers = {"Retry-After": "5"} if exc.retryable else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", []) if part != "body"),
                "message": err.get("msg"),
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "detail": "Invalid request",
                "code": BookingValidationError.code,
                "retryable": False,
                "errors": errors,
            },
        )
