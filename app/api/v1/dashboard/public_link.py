# app/api/v1/dashboard/public_link.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from app.api.dependencies import get_current_business_id
from app.config.database import get_db
from app.schemas.scheduler import PublicLinkResponse, SlugUpdateRequest
from app.services.public_link.public_link_service import PublicLinkService

router = APIRouter()


def _link_response(link) -> PublicLinkResponse:
    return PublicLinkResponse(
        code=link.code,
        slug=link.slug,
        url=PublicLinkService.build_public_url(link),
    )


@router.get("", response_model=PublicLinkResponse)
def get_public_link(
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    """The business's shareable booking link, issued on first request"""
    return _link_response(PublicLinkService.ensure_link(db, business_id))


@router.patch("", response_model=PublicLinkResponse)
def update_public_link_slug(
        body: SlugUpdateRequest,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    return _link_response(PublicLinkService.update_slug(db, business_id, body.slug))
