# app/models/busy_block.py
import uuid

from sqlalchemy import Column, String, ForeignKey, Uuid, Index

from app.models.base import Base, UTCDateTime
from app.utils.time_utils import utcnow

MANUAL_SOURCE = "manual"


class BusyBlock(Base):
    """
    Occupied time that is not a booking.

    Manual blocks are entered by the tenant. Every other source (google,
    microsoft, ...) is a read-only snapshot written by calendar sync.
    """
    __tablename__ = "busy_blocks"
    __table_args__ = (
        Index("ix_busy_blocks_business_range", "business_id", "start", "end"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)

    start = Column(UTCDateTime, nullable=False)
    end = Column(UTCDateTime, nullable=False)
    reason = Column(String(200), nullable=True)
    source = Column(String(50), nullable=False, default=MANUAL_SOURCE)
    external_event_id = Column(String(255), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)

    @property
    def is_manual(self) -> bool:
        return self.source == MANUAL_SOURCE

    def __repr__(self):
        return f"<BusyBlock(source={self.source}, {self.start} - {self.end})>"
