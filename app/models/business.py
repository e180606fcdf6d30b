# app/models/business.py
"""
Business Model - the tenant record
Every scheduler row is scoped by businesses.id
"""
from sqlalchemy import Column, String, Boolean, JSON, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.models.base import Base, UTCDateTime
from app.utils.time_utils import utcnow


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)

    # Outbound CRM webhooks: {"booking": ["https://..."]}
    webhook_urls = Column(JSON, default=dict)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)
    is_active = Column(Boolean, default=True)

    services = relationship("Service", back_populates="business", cascade="all, delete-orphan")
    booking_settings = relationship(
        "BookingSettings", back_populates="business", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"

    @property
    def booking_webhook_urls(self) -> list:
        """Webhook targets for booking events, tolerating a flat list"""
        urls = self.webhook_urls or {}
        if isinstance(urls, list):
            return urls
        return list(urls.get("booking", []))
