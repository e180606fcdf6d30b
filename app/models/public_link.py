# app/models/public_link.py
import uuid

from sqlalchemy import Column, String, ForeignKey, Uuid

from app.models.base import Base, UTCDateTime
from app.utils.time_utils import utcnow


class PublicLink(Base):
    """
    Shareable booking link. The code is the one globally unique,
    tenant-discovering key and never changes once issued.
    """
    __tablename__ = "public_links"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    code = Column(String(12), nullable=False, unique=True)
    slug = Column(String(50), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    @property
    def path_token(self) -> str:
        return f"{self.slug}-{self.code}" if self.slug else self.code

    def __repr__(self):
        return f"<PublicLink(business_id={self.business_id}, code={self.code})>"
