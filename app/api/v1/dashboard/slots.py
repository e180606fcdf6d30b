# app/api/v1/dashboard/slots.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.api.dependencies import get_current_business_id
from app.api.v1.slot_listing import build_slot_list
from app.config.database import get_db
from app.schemas.scheduler import SlotListResponse

router = APIRouter()


@router.get("", response_model=SlotListResponse)
def preview_slots(
        date: str = Query(..., description="YYYY-MM-DD in the business's timezone"),
        service_id: Optional[UUID] = Query(None),
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    """The slots a customer would see on the public page"""
    return build_slot_list(db, business_id, date, service_id)
