# app/api/v1/dashboard/metrics.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID

from app.api.dependencies import get_current_business_id
from app.config.database import get_db
from app.services.metrics.booking_metrics_service import BookingMetricsService

router = APIRouter()


@router.get("")
def get_booking_metrics(
        range: str = Query("30d", description="7d, 30d or 90d"),
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    """
    Booking request rollups for the trailing range.

    Unknown ranges fall back to 30d. Fields that could not be computed are
    null and named under `errors`.
    """
    return BookingMetricsService.aggregate(db, business_id, range).to_dict()
