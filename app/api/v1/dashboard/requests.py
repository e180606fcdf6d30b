# app/api/v1/dashboard/requests.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.api.dependencies import get_current_business_id
from app.config.database import get_db
from app.models.booking_request import BookingStatus
from app.schemas.booking import (
    BookingActionRequest,
    BookingRequestResponse,
    BookingRequestListResponse,
)
from app.services.booking.booking_request_service import BookingRequestService

router = APIRouter()


@router.get("", response_model=BookingRequestListResponse)
def list_booking_requests(
        status: Optional[BookingStatus] = Query(None),
        skip: int = Query(0, ge=0),
        limit: int = Query(50, ge=1, le=200),
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    """Paginated booking requests, newest first"""
    result = BookingRequestService.list_requests(
        db, business_id, status=status.value if status else None, skip=skip, limit=limit
    )
    return BookingRequestListResponse(
        total=result["total"],
        skip=skip,
        limit=limit,
        requests=[BookingRequestResponse.from_model(r) for r in result["requests"]],
    )


@router.get("/{request_id}", response_model=BookingRequestResponse)
def get_booking_request(
        request_id: UUID,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    return BookingRequestResponse.from_model(
        BookingRequestService.get_request(db, business_id, request_id)
    )


@router.post("/{request_id}/actions", response_model=BookingRequestResponse)
def apply_booking_action(
        request_id: UUID,
        body: BookingActionRequest,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    """approve, decline, propose, accept, cancel, complete or reactivate"""
    request = BookingRequestService.apply_action(
        db,
        business_id,
        request_id,
        body.action,
        proposed_start=body.proposed_start,
        proposed_end=body.proposed_end,
        internal_notes=body.internal_notes,
    )
    return BookingRequestResponse.from_model(request)
