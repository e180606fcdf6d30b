# app/services/booking/service_catalog_service.py
import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, UpstreamUnavailableError
from app.models.service import Service

logger = logging.getLogger(__name__)


class ServiceCatalogService:
    """Tenant-scoped CRUD over bookable services"""

    @staticmethod
    def list_services(db: Session, business_id: UUID, active_only: bool = False) -> List[Service]:
        try:
            query = db.query(Service).filter(Service.business_id == business_id)
            if active_only:
                query = query.filter(Service.is_active.is_(True))
            return query.order_by(Service.display_order, Service.name).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list services for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

    @staticmethod
    def create_service(db: Session, business_id: UUID, data: dict) -> Service:
        service = Service(business_id=business_id, **data)
        try:
            db.add(service)
            db.commit()
            db.refresh(service)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create service for business {business_id}: {e}")
            raise UpstreamUnavailableError() from e

        logger.info(f"Created service {service.id} ({service.name}) for business {business_id}")
        return service

    @staticmethod
    def update_service(db: Session, business_id: UUID, service_id: UUID, changes: dict) -> Service:
        service = db.query(Service).filter(
            Service.id == service_id,
            Service.business_id == business_id,
        ).first()
        if not service:
            raise NotFoundError("Service not found")

        for field, value in changes.items():
            if value is None and field != "description":
                continue
            setattr(service, field, value)

        try:
            db.commit()
            db.refresh(service)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update service {service_id}: {e}")
            raise UpstreamUnavailableError() from e
        return service
