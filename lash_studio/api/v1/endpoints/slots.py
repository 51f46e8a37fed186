"""
Slot endpoints

Public:
- open times for a date and location (with the booking lead time applied)

Admin:
- list a date's slots (elapsed slots are swept first)
- create single slots or a batch over a time range
- toggle availability, delete one slot or a whole date
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lash_studio.core.database import get_db
from lash_studio.core.security import get_current_admin
from lash_studio.schemas.schemas import (
    DeleteCountResponse, SlotAvailabilityUpdate, SlotBatchCreate, SlotBatchResponse,
    SlotCreate, SlotResponse,
)
from lash_studio.utils import slot_manager

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== PUBLIC ====================

@router.get("/available-times/{date}", response_model=List[str])
def get_available_times(
    date: str,
    location: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Open HH:MM times a client may still book"""
    return slot_manager.list_open_times(db, date, location)


# ==================== ADMIN ====================

@router.get("/admin/slots/{date}", response_model=List[SlotResponse])
def get_slots_for_date(
    date: str,
    location: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    """Every slot of a date, open or taken. Elapsed slots are deleted first."""
    slot_date = slot_manager.require_date(date)
    slot_manager.purge_elapsed_slots(db)
    return slot_manager.list_slots(db, slot_date, location)


@router.post("/admin/slots", response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
def create_slot(
    slot_data: SlotCreate,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    return slot_manager.create_slot(
        db,
        slot_data.date,
        slot_data.time,
        slot_data.location,
        is_available=slot_data.is_available,
        reject_past=True,
    )


@router.post("/admin/slots/batch", response_model=SlotBatchResponse, status_code=status.HTTP_201_CREATED)
def create_slot_batch(
    batch: SlotBatchCreate,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    """One slot per interval between start and end, lunch break excluded"""
    slots = slot_manager.create_slot_batch(
        db, batch.date, batch.start_time, batch.end_time, batch.location
    )
    return {"created": len(slots), "slots": slots}


@router.patch("/admin/slots/{slot_id}", response_model=SlotResponse)
def update_slot_availability(
    slot_id: int,
    update: SlotAvailabilityUpdate,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    return slot_manager.set_availability(db, slot_id, update.is_available)


@router.delete("/admin/slots/date/{date}", response_model=DeleteCountResponse)
def delete_slots_for_date(
    date: str,
    location: Optional[str] = Query(None),
    only_available: bool = Query(True),
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    """Bulk delete; booked slots are kept unless only_available=false"""
    slot_date = slot_manager.require_date(date)
    deleted = slot_manager.delete_slots_for_date(db, slot_date, location, only_available)
    return {"deleted": deleted}


@router.delete("/admin/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(
    slot_id: int,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    slot_manager.delete_slot(db, slot_id)
    return None
