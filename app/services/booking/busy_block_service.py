# app/services/booking/busy_block_service.py
"""
Busy blocks

Tenants create, edit and delete manual blocks. Calendar sync owns every
other source and replaces its snapshot wholesale for a time range.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    SchedulerError,
    BookingValidationError,
    NotFoundError,
    ReadOnlyBlockError,
    UpstreamUnavailableError,
)
from app.models.busy_block import BusyBlock, MANUAL_SOURCE
from app.services.availability.intervals import Interval

logger = logging.getLogger(__name__)


def _check_range(start: datetime, end: datetime) -> None:
    if start is None or end is None:
        raise BookingValidationError("Busy block start and end are required")
    if end <= start:
        raise BookingValidationError("Busy block end must be after start")


class BusyBlockService:

    @staticmethod
    def list_blocks(
            db: Session,
            business_id: UUID,
            start: Optional[datetime] = None,
            end: Optional[datetime] = None,
    ) -> List[BusyBlock]:
        try:
            query = db.query(BusyBlock).filter(BusyBlock.business_id == business_id)
            if start:
                query = query.filter(BusyBlock.end > start)
            if end:
                query = query.filter(BusyBlock.start < end)
            return query.order_by(BusyBlock.start).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list busy blocks for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

    @staticmethod
    def _get_manual(db: Session, business_id: UUID, block_id: UUID) -> BusyBlock:
        block = db.query(BusyBlock).filter(
            BusyBlock.id == block_id,
            BusyBlock.business_id == business_id,
        ).first()
        if not block:
            raise NotFoundError("Busy block not found")
        if not block.is_manual:
            raise ReadOnlyBlockError(f"Blocks synced from {block.source} cannot be changed")
        return block

    @staticmethod
    def create_block(
            db: Session,
            business_id: UUID,
            start: datetime,
            end: datetime,
            reason: Optional[str] = None,
    ) -> BusyBlock:
        _check_range(start, end)
        block = BusyBlock(
            business_id=business_id,
            start=start,
            end=end,
            reason=reason,
            source=MANUAL_SOURCE,
        )
        try:
            db.add(block)
            db.commit()
            db.refresh(block)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create busy block for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

        logger.info(f"Created manual busy block {block.id} for business {business_id}")
        return block

    @staticmethod
    def update_block(
            db: Session,
            business_id: UUID,
            block_id: UUID,
            changes: dict,
    ) -> BusyBlock:
        try:
            block = BusyBlockService._get_manual(db, business_id, block_id)

            start = changes.get("start") or block.start
            end = changes.get("end") or block.end
            _check_range(start, end)

            block.start = start
            block.end = end
            if "reason" in changes:
                block.reason = changes["reason"]

            db.commit()
            db.refresh(block)
            return block
        except SchedulerError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update busy block {block_id}: {e}")
            raise UpstreamUnavailableError() from e

    @staticmethod
    def delete_block(db: Session, business_id: UUID, block_id: UUID) -> None:
        try:
            block = BusyBlockService._get_manual(db, business_id, block_id)
            db.delete(block)
            db.commit()
        except SchedulerError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to delete busy block {block_id}: {e}")
            raise UpstreamUnavailableError() from e

        logger.info(f"Deleted manual busy block {block_id} for business {business_id}")

    @staticmethod
    def replace_synced_blocks(
            db: Session,
            business_id: UUID,
            source: str,
            blocks: Sequence[dict],
            sync_range: Interval,
    ) -> int:
        """
        Replace every block from `source` overlapping sync_range with `blocks`.

        Each block is a dict with start, end and optional reason and
        external_event_id. Manual blocks are never touched.
        """
        if not source or source == MANUAL_SOURCE:
            raise BookingValidationError("Synced blocks need a non-manual source")
        _check_range(sync_range.start, sync_range.end)
        for block in blocks:
            _check_range(block.get("start"), block.get("end"))

        try:
            db.query(BusyBlock).filter(
                BusyBlock.business_id == business_id,
                BusyBlock.source == source,
                BusyBlock.start < sync_range.end,
                BusyBlock.end > sync_range.start,
            ).delete(synchronize_session=False)

            for block in blocks:
                db.add(BusyBlock(
                    business_id=business_id,
                    start=block["start"],
                    end=block["end"],
                    reason=block.get("reason"),
                    external_event_id=block.get("external_event_id"),
                    source=source,
                ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to replace {source} busy blocks for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

        logger.info(f"Synced {len(blocks)} {source} busy blocks for business {business_id}")
        return len(blocks)
