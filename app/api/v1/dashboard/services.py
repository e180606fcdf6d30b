# app/api/v1/dashboard/services.py
"""
Service Management API Endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.api.dependencies import get_current_business_id
from app.config.database import get_db
from app.schemas.scheduler import ServiceCreateRequest, ServiceUpdateRequest, ServiceResponse
from app.services.booking.service_catalog_service import ServiceCatalogService

router = APIRouter()


def _service_to_response(service) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        name=service.name,
        description=service.description,
        duration_minutes=service.duration_minutes,
        is_active=service.is_active,
        display_order=service.display_order,
    )


@router.get("", response_model=List[ServiceResponse])
def list_services(
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    return [_service_to_response(s) for s in ServiceCatalogService.list_services(db, business_id)]


@router.post("", response_model=ServiceResponse, status_code=201)
def create_service(
        body: ServiceCreateRequest,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    service = ServiceCatalogService.create_service(db, business_id, body.model_dump())
    return _service_to_response(service)


@router.patch("/{service_id}", response_model=ServiceResponse)
def update_service(
        service_id: UUID,
        body: ServiceUpdateRequest,
        business_id: UUID = Depends(get_current_business_id),
        db: Session = Depends(get_db),
):
    service = ServiceCatalogService.update_service(
        db, business_id, service_id, body.model_dump(exclude_unset=True)
    )
    return _service_to_response(service)
