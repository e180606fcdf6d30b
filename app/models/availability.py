# app/models/availability.py
import enum
import uuid

from sqlalchemy import Column, String, Integer, Boolean, Date, ForeignKey, Uuid, Index

from app.models.base import Base


class ExceptionType(str, enum.Enum):
    BLOCKED = "BLOCKED"
    OPEN = "OPEN"  # extra availability outside the weekly pattern


class AvailabilityWindow(Base):
    """Recurring weekly open hours, in the business's local wall time"""
    __tablename__ = "availability_windows"
    __table_args__ = (
        Index("ix_availability_windows_business_day", "business_id", "day_of_week"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    end_time = Column(String(5), nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<AvailabilityWindow(day={self.day_of_week}, {self.start_time}-{self.end_time})>"


class AvailabilityException(Base):
    """Date-specific override (holiday, time off, extra hours)"""
    __tablename__ = "availability_exceptions"
    __table_args__ = (
        Index("ix_availability_exceptions_business_date", "business_id", "date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)

    date = Column(Date, nullable=False)
    # Both missing = the whole day
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    type = Column(String(20), nullable=False, default=ExceptionType.BLOCKED.value)
    reason = Column(String(200), nullable=True)

    @property
    def is_full_day(self) -> bool:
        return not self.start_time or not self.end_time

    def __repr__(self):
        return f"<AvailabilityException(date={self.date}, type={self.type})>"
