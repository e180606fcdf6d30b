# app/models/booking_request.py
import enum
import uuid

from sqlalchemy import Column, String, Text, ForeignKey, Uuid, Index
from sqlalchemy.orm import relationship

from app.models.base import Base, UTCDateTime
from app.utils.time_utils import utcnow


class BookingStatus(str, enum.Enum):
    REQUESTED = "REQUESTED"
    PROPOSED = "PROPOSED"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


class BookingAction(str, enum.Enum):
    APPROVE = "approve"
    DECLINE = "decline"
    PROPOSE = "propose"
    ACCEPT = "accept"
    CANCEL = "cancel"
    COMPLETE = "complete"
    REACTIVATE = "reactivate"
    EXPIRE = "expire"
    CREATE = "create"


class BookingRequest(Base):
    __tablename__ = "booking_requests"
    __table_args__ = (
        Index("ix_booking_requests_business_created", "business_id", "created_at"),
        Index("ix_booking_requests_business_email", "business_id", "customer_email"),
        Index("ix_booking_requests_business_status", "business_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Uuid, ForeignKey("services.id", ondelete="SET NULL"), nullable=True)

    # Customer info
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False)  # trimmed + lower-cased
    customer_phone = Column(String(50), nullable=True)
    message = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.REQUESTED.value)

    # Customer's requested time
    preferred_start = Column(UTCDateTime, nullable=True)
    preferred_end = Column(UTCDateTime, nullable=True)

    # Business's confirmed or offered time
    proposed_start = Column(UTCDateTime, nullable=True)
    proposed_end = Column(UTCDateTime, nullable=True)
    proposal_expires_at = Column(UTCDateTime, nullable=True)

    internal_notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    service = relationship("Service")
    audit_logs = relationship(
        "BookingRequestAuditLog",
        back_populates="booking_request",
        order_by="BookingRequestAuditLog.created_at",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<BookingRequest(id={self.id}, status={self.status}, email={self.customer_email})>"


class BookingRequestAuditLog(Base):
    """One row per status transition"""
    __tablename__ = "booking_request_audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_request_id = Column(
        Uuid, ForeignKey("booking_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)

    action = Column(String(30), nullable=False)
    from_status = Column(String(20), nullable=True)  # null for the creation row
    to_status = Column(String(20), nullable=False)
    note = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    booking_request = relationship("BookingRequest", back_populates="audit_logs")
