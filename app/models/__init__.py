# app/models/__init__.py
from .base import Base, UTCDateTime
from .business import Business
from .service import Service
from .availability import AvailabilityWindow, AvailabilityException, ExceptionType
from .busy_block import BusyBlock, MANUAL_SOURCE
from .booking_settings import BookingSettings, BookingMode, generate_booking_key
from .booking_request import BookingRequest, BookingRequestAuditLog, BookingStatus, BookingAction
from .public_link import PublicLink

__all__ = [
    "Base",
    "UTCDateTime",
    "Business",
    "Service",
    "AvailabilityWindow",
    "AvailabilityException",
    "ExceptionType",
    "BusyBlock",
    "MANUAL_SOURCE",
    "BookingSettings",
    "BookingMode",
    "generate_booking_key",
    "BookingRequest",
    "BookingRequestAuditLog",
    "BookingStatus",
    "BookingAction",
    "PublicLink",
]
