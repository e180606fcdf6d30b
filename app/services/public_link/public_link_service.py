# app/services/public_link/public_link_service.py
"""
Public booking links

Maps an unauthenticated URL token to a business. Three token shapes are
recognized, most specific first:

    <64 hex chars>          legacy BookingSettings.booking_key
    <slug>-<8..10 alnum>    trailing code of a PublicLink
    <8..10 alnum>           bare PublicLink code

Every miss, whether the token is malformed or simply unassigned, raises
the same LinkNotFoundError.
"""
import logging
import re
import secrets
import string
import time
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.core.exceptions import (
    BookingValidationError,
    LinkNotFoundError,
    NotFoundError,
    UpstreamUnavailableError,
)
from app.models.booking_settings import BookingSettings
from app.models.business import Business
from app.models.public_link import PublicLink

logger = logging.getLogger(__name__)

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
BASE36_ALPHABET = string.digits + string.ascii_lowercase

LEGACY_KEY_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")
SLUG_CODE_PATTERN = re.compile(r"^(.+)-([a-zA-Z0-9]{8,10})$")
SHORT_CODE_PATTERN = re.compile(r"^[a-zA-Z0-9]{8,10}$")

CODE_ATTEMPTS_PER_LENGTH = 10
MIN_CODE_LENGTH = 8
MAX_CODE_LENGTH = 10
MAX_SLUG_LENGTH = 50


@dataclass(frozen=True)
class LinkResolution:
    business_id: UUID
    source: str  # short_code | slug_code | legacy_key


def generate_base62_code(length: int = MIN_CODE_LENGTH) -> str:
    return "".join(secrets.choice(BASE62_ALPHABET) for _ in range(length))


def _base36(value: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits)) or "0"


def normalize_slug(value: Optional[str], max_length: int = MAX_SLUG_LENGTH) -> Optional[str]:
    """Lowercase, hyphenate whitespace, keep [a-z0-9-], collapse and trim hyphens"""
    if not value:
        return None
    slug = value.lower().strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    slug = slug[:max_length]
    return slug or None


def is_valid_slug(value: Optional[str]) -> bool:
    slug = normalize_slug(value)
    return bool(slug) and 2 <= len(slug) <= MAX_SLUG_LENGTH


class PublicLinkService:

    @staticmethod
    def _code_taken(db: Session, code: str) -> bool:
        return db.query(PublicLink.id).filter(PublicLink.code == code).first() is not None

    @staticmethod
    def generate_unique_code(db: Session) -> str:
        """
        10 attempts at each length from 8 to 10, then an 8-char code with a
        2-char timestamp suffix so link issuance never fails outright.
        """
        for length in range(MIN_CODE_LENGTH, MAX_CODE_LENGTH + 1):
            for _ in range(CODE_ATTEMPTS_PER_LENGTH):
                code = generate_base62_code(length)
                if not PublicLinkService._code_taken(db, code):
                    return code
            logger.warning(f"Exhausted {CODE_ATTEMPTS_PER_LENGTH} attempts for {length}-char link codes")

        suffix = _base36(int(time.time() * 1000))[-2:]
        return generate_base62_code(MIN_CODE_LENGTH) + suffix

    @staticmethod
    def _lookup_code(db: Session, code: str) -> Optional[UUID]:
        return db.query(PublicLink.business_id).filter(PublicLink.code == code).scalar()

    @staticmethod
    def resolve(db: Session, token: str) -> LinkResolution:
        if not token or not isinstance(token, str):
            raise LinkNotFoundError()

        try:
            if LEGACY_KEY_PATTERN.match(token):
                business_id = (
                    db.query(BookingSettings.business_id)
                    .filter(BookingSettings.booking_key == token.lower())
                    .scalar()
                )
                if business_id:
                    return LinkResolution(business_id=business_id, source="legacy_key")

            match = SLUG_CODE_PATTERN.match(token)
            if match:
                business_id = PublicLinkService._lookup_code(db, match.group(2))
                if business_id:
                    return LinkResolution(business_id=business_id, source="slug_code")

            if SHORT_CODE_PATTERN.match(token):
                business_id = PublicLinkService._lookup_code(db, token)
                if business_id:
                    return LinkResolution(business_id=business_id, source="short_code")
        except SQLAlchemyError as e:
            logger.error(f"Failed to resolve booking link: {e}")
            raise UpstreamUnavailableError() from e

        raise LinkNotFoundError()

    @staticmethod
    def get_link(db: Session, business_id: UUID) -> Optional[PublicLink]:
        return db.query(PublicLink).filter(PublicLink.business_id == business_id).first()

    @staticmethod
    def ensure_link(db: Session, business_id: UUID) -> PublicLink:
        """Return the business's link, issuing one on first call"""
        try:
            link = PublicLinkService.get_link(db, business_id)
            if link:
                return link

            business = db.get(Business, business_id)
            if not business:
                raise NotFoundError("Business not found")

            slug = normalize_slug(business.name)
            link = PublicLink(
                business_id=business_id,
                code=PublicLinkService.generate_unique_code(db),
                slug=slug if is_valid_slug(slug) else None,
            )
            db.add(link)
            try:
                db.commit()
            except IntegrityError:
                # Lost a race: another request issued the link (or took the code)
                db.rollback()
                winner = PublicLinkService.get_link(db, business_id)
                if winner:
                    return winner
                link = PublicLink(
                    business_id=business_id,
                    code=PublicLinkService.generate_unique_code(db),
                    slug=slug if is_valid_slug(slug) else None,
                )
                db.add(link)
                db.commit()

            db.refresh(link)
            logger.info(f"Issued public booking link {link.code} for business {business_id}")
            return link
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to ensure public link for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

    @staticmethod
    def update_slug(db: Session, business_id: UUID, slug: Optional[str]) -> PublicLink:
        """Change only the cosmetic slug. None or empty clears it."""
        link = PublicLinkService.ensure_link(db, business_id)

        normalized = normalize_slug(slug)
        if slug and not is_valid_slug(normalized):
            raise BookingValidationError("Slug must have at least 2 letters, digits or hyphens")

        try:
            link.slug = normalized
            db.commit()
            db.refresh(link)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update slug for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e
        return link

    @staticmethod
    def build_public_url(link: PublicLink) -> str:
        base_url = get_settings().PUBLIC_BOOKING_BASE_URL.rstrip("/")
        return f"{base_url}/book/{link.path_token}"
