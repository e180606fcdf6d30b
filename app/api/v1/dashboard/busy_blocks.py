# app/api/v1/dashboard/busy_blocks.py
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.api.dependencies import get_current_business_id
from app.config.database import get_db
from app.schemas.booking import ensure_utc
from app.schemas.scheduler import BusyBlockCreateRequest, BusyBlockUpdateRequest, BusyBlockResponse
from app.services.booking.busy_block_service import BusyBlockService

router = APIRouter()


@router.get("", response_model=List[BusyBlockResponse])
def list_busy_blocks(
        start: Optional[datetime] = Query(None),
        end: Optional[datetime] = Query(None),
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    """Manual and synced blocks; synced ones are flagged read_only"""
    blocks = BusyBlockService.list_blocks(db, business_id, ensure_utc(start), ensure_utc(end))
    return [BusyBlockResponse.from_model(b) for b in blocks]


@router.post("", response_model=BusyBlockResponse, status_code=201)
def create_busy_block(
        body: BusyBlockCreateRequest,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    block = BusyBlockService.create_block(db, business_id, body.start, body.end, body.reason)
    return BusyBlockResponse.from_model(block)


@router.patch("/{block_id}", response_model=BusyBlockResponse)
def update_busy_block(
        block_id: UUID,
        body: BusyBlockUpdateRequest,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    block = BusyBlockService.update_block(db, business_id, block_id, body.model_dump(exclude_unset=True))
    return BusyBlockResponse.from_model(block)


@router.delete("/{block_id}", status_code=204)
def delete_busy_block(
        block_id: UUID,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    BusyBlockService.delete_block(db, business_id, block_id)
    return Response(status_code=204)
