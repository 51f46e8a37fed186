from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lash_studio.core.database import get_db
from lash_studio.core.security import get_current_admin
from lash_studio.services import catalog_service
from lash_studio.schemas.schemas import (
    ServiceCatalogResponse, ServiceCreate, ServiceResponse, ServiceUpdate,
)

router = APIRouter()


@router.get("", response_model=List[ServiceResponse])
def get_services(
    location: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """All services, optionally for one location (public endpoint)"""
    return catalog_service.list_services(db, location)


@router.get("/catalog/{location}", response_model=ServiceCatalogResponse)
def get_catalog(location: str, db: Session = Depends(get_db)):
    """Services bookable at a location, grouped by category in display order"""
    resolved, groups = catalog_service.catalog_for_location(db, location)
    return {
        "location": resolved,
        "categories": [
            {"category": category, "services": services}
            for category, services in groups
        ],
    }


@router.get("/{service_id}", response_model=ServiceResponse)
def get_service(service_id: int, db: Session = Depends(get_db)):
    return catalog_service.get_service(db, service_id)


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    service_data: ServiceCreate,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    """Create a new service (admin only)"""
    return catalog_service.create_service(db, service_data)


@router.put("/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: int,
    service_data: ServiceUpdate,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    """Update a service (admin only). Booked appointments keep their price."""
    return catalog_service.update_service(db, service_id, service_data)


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: int,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    """Delete a service (admin only)"""
    catalog_service.delete_service(db, service_id)
    return None
