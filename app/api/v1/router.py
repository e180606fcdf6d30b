"""
API v1 router setup
Organized into: public booking (no auth) and dashboard (JWT) routes
"""
from fastapi import APIRouter

from app.api.v1.public import booking
from app.api.v1.dashboard import (
    availability,
    busy_blocks,
    booking_settings,
    services,
    public_link,
    requests,
    slots,
    metrics,
)

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required, rate limited)
# ============================================================================
api_v1_router.include_router(
    booking.router,
    prefix="/public/booking",
    tags=["Public"]
)

# ============================================================================
# DASHBOARD ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    availability.router,
    prefix="/dashboard/availability",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    busy_blocks.router,
    prefix="/dashboard/busy-blocks",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    booking_settings.router,
    prefix="/dashboard/settings",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    services.router,
    prefix="/dashboard/services",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    public_link.router,
    prefix="/dashboard/public-link",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    requests.router,
    prefix="/dashboard/requests",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    slots.router,
    prefix="/dashboard/slots",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    metrics.router,
    prefix="/dashboard/metrics",
    tags=["Dashboard"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """Shows the structure of all API routes organized by authentication type."""
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required (rate limited per client)",
            "dashboard": "JWT Bearer token with a business_id claim",
        }
    }
