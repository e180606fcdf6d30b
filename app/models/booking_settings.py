# app/models/booking_settings.py
import enum
import secrets

from sqlalchemy import Column, String, Integer, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from app.models.base import Base, UTCDateTime
from app.utils.time_utils import utcnow


class BookingMode(str, enum.Enum):
    REQUEST_ONLY = "REQUEST_ONLY"
    INSTANT_ALLOWED = "INSTANT_ALLOWED"


def generate_booking_key() -> str:
    """64 hex chars, the legacy public booking key"""
    return secrets.token_hex(32)


class BookingSettings(Base):
    """Tenant-wide booking policy, one row per business"""
    __tablename__ = "booking_settings"

    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), primary_key=True)

    timezone = Column(String(64), nullable=False)
    buffer_minutes = Column(Integer, nullable=False, default=15)
    min_notice_hours = Column(Integer, nullable=False, default=24)
    max_days_out = Column(Integer, nullable=False, default=90)
    default_duration_minutes = Column(Integer, nullable=False, default=60)
    booking_mode = Column(String(20), nullable=False, default=BookingMode.REQUEST_ONLY.value)

    booking_key = Column(String(64), nullable=False, unique=True, default=generate_booking_key)
    notification_email = Column(String(255), nullable=True)
    policy_text = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    business = relationship("Business", back_populates="booking_settings")

    @property
    def instant_allowed(self) -> bool:
        return self.booking_mode == BookingMode.INSTANT_ALLOWED.value

    def to_dict(self):
        return {
            "business_id": str(self.business_id),
            "timezone": self.timezone,
            "buffer_minutes": self.buffer_minutes,
            "min_notice_hours": self.min_notice_hours,
            "max_days_out": self.max_days_out,
            "default_duration_minutes": self.default_duration_minutes,
            "booking_mode": self.booking_mode,
            "notification_email": self.notification_email,
            "policy_text": self.policy_text,
        }
