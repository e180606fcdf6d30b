# app/schemas/__init__.py
from .booking import (
    BookingRequestCreate,
    BookingActionRequest,
    BookingRequestResponse,
    BookingWarning,
    BookingSubmissionResponse,
    BookingRequestListResponse
)

from .scheduler import (
    AvailabilityWindowSchema,
    AvailabilityExceptionSchema,
    AvailabilityUpdateRequest,
    AvailabilityResponse,
    BusyBlockCreateRequest,
    BusyBlockUpdateRequest,
    BusyBlockResponse,
    BookingSettingsUpdateRequest,
    BookingSettingsResponse,
    ServiceCreateRequest,
    ServiceUpdateRequest,
    ServiceResponse,
    PublicLinkResponse,
    SlugUpdateRequest,
    SlotResponse,
    SlotListResponse,
    PublicServiceSummary,
    PublicBookingContext
)
