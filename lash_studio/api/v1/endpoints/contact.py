from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lash_studio.core.database import get_db
from lash_studio.core.security import get_current_admin
from lash_studio.schemas.schemas import ContactMessageCreate, ContactMessageResponse, TestimonialResponse
from lash_studio.services import contact_service

router = APIRouter()


@router.post("/contact", response_model=ContactMessageResponse, status_code=status.HTTP_201_CREATED)
def create_contact_message(message: ContactMessageCreate, db: Session = Depends(get_db)):
    """Leave a message; a rating makes it a public testimonial"""
    return contact_service.create_message(db, message)


@router.get("/testimonials", response_model=List[TestimonialResponse])
def get_testimonials(
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return contact_service.list_testimonials(db, limit)


@router.get("/contact", response_model=List[ContactMessageResponse])
def list_contact_messages(
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    return contact_service.list_messages(db)


@router.put("/contact/{message_id}", response_model=ContactMessageResponse)
def update_contact_message(
    message_id: int,
    message: ContactMessageCreate,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    return contact_service.update_message(db, message_id, message)


@router.delete("/contact/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contact_message(
    message_id: int,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    contact_service.delete_message(db, message_id)
    return None
