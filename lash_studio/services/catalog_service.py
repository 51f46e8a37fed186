"""Service catalog: admin CRUD plus the per-location booking catalog."""
import logging
from itertools import groupby
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from lash_studio.core.booking_policy import BookingPolicy, get_booking_policy, normalize
from lash_studio.core.exceptions import NotFoundError
from lash_studio.models.models import Service
from lash_studio.schemas.schemas import ServiceCreate, ServiceUpdate
from lash_studio.utils.slot_manager import require_location

logger = logging.getLogger(__name__)


def list_services(db: Session, location: Optional[str] = None) -> List[Service]:
    query = db.query(Service)
    if location:
        query = query.filter(func.lower(Service.location) == normalize(location))
    return query.order_by(Service.id).all()


def get_service(db: Session, service_id: int) -> Service:
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise NotFoundError("Service not found")
    return service


def create_service(db: Session, data: ServiceCreate, policy: Optional[BookingPolicy] = None) -> Service:
    policy = policy or get_booking_policy()
    service = Service(
        name=data.name.strip(),
        description=data.description or "",
        location=require_location(data.location, policy),
        category=normalize(data.category),
        price=data.price,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    logger.info(f"Created service {service.id} ({service.name}) at {service.location}")
    return service


def update_service(
    db: Session,
    service_id: int,
    data: ServiceUpdate,
    policy: Optional[BookingPolicy] = None,
) -> Service:
    """Partial update; existing appointments keep their price snapshot"""
    policy = policy or get_booking_policy()
    service = get_service(db, service_id)
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("location") is not None:
        update_data["location"] = require_location(update_data["location"], policy)
    if update_data.get("category") is not None:
        update_data["category"] = normalize(update_data["category"])
    for field, value in update_data.items():
        if value is not None:
            setattr(service, field, value)
    db.commit()
    db.refresh(service)
    return service


def delete_service(db: Session, service_id: int) -> None:
    service = get_service(db, service_id)
    db.delete(service)
    db.commit()
    logger.info(f"Deleted service {service_id}")


def catalog_for_location(
    db: Session,
    location: str,
    policy: Optional[BookingPolicy] = None,
) -> Tuple[str, List[Tuple[str, List[Service]]]]:
    """
    Services bookable at a location grouped by category. Preferred
    categories come first in configured order, the rest alphabetically;
    services keep insertion order inside their group.
    """
    policy = policy or get_booking_policy()
    resolved = require_location(location, policy)
    services = sorted(
        list_services(db, resolved),
        key=lambda s: (policy.category_rank(s.category), s.id),
    )
    groups = [
        (category, list(items))
        for category, items in groupby(services, key=lambda s: normalize(s.category))
    ]
    return resolved, groups
