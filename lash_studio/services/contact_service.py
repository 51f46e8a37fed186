"""
Contact messages and testimonials.

A testimonial is not a separate record: any contact message with a
rating is shown publicly as one.
"""
import logging
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from lash_studio.core.exceptions import NotFoundError, ValidationError
from lash_studio.models.models import ContactMessage
from lash_studio.schemas.schemas import ContactMessageCreate

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _check_message(data: ContactMessageCreate, current: Optional[ContactMessage] = None) -> dict:
    """
    Validate the submitted fields and return the cleaned values. When
    editing ``current``, only the fields that were sent are checked, over
    the stored ones.
    """
    partial = current is not None
    errors = {}
    values = {}
    fields = data.model_fields_set if partial else set(type(data).model_fields)

    if "name" in fields:
        name = (data.name or "").strip()
        if not name:
            errors["name"] = "Please enter your name"
        values["name"] = name

    if "message" in fields:
        message = (data.message or "").strip()
        if not message:
            errors["message"] = "Please enter a message"
        values["message"] = message

    if "email" in fields:
        email = (data.email or "").strip() or None
        if email:
            try:
                email = validate_email(email, check_deliverability=False).normalized
            except EmailNotValidError:
                errors["email"] = "Invalid email"
        values["email"] = email

    if "phone" in fields:
        values["phone"] = (data.phone or "").strip() or None

    email = values["email"] if "email" in values else getattr(current, "email", None)
    phone = values["phone"] if "phone" in values else getattr(current, "phone", None)
    if not email and not phone and "email" not in errors:
        errors["email"] = "Please provide an email or a phone number"

    if "rating" in fields:
        rating = data.rating or 0
        if rating and not MIN_RATING <= rating <= MAX_RATING:
            errors["rating"] = f"Rating must be between {MIN_RATING} and {MAX_RATING}"
        values["rating"] = rating

    if errors:
        raise ValidationError(errors, "Invalid contact message")
    return values


def create_message(db: Session, data: ContactMessageCreate) -> ContactMessage:
    message = ContactMessage(**_check_message(data))
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info(f"Contact message {message.id} received (rating={message.rating})")
    return message


def get_message(db: Session, message_id: int) -> ContactMessage:
    message = db.query(ContactMessage).filter(ContactMessage.id == message_id).first()
    if not message:
        raise NotFoundError("Message not found")
    return message


def list_messages(db: Session) -> List[ContactMessage]:
    return db.query(ContactMessage).order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc()).all()


def update_message(db: Session, message_id: int, data: ContactMessageCreate) -> ContactMessage:
    message = get_message(db, message_id)
    for key, value in _check_message(data, current=message).items():
        setattr(message, key, value)
    db.commit()
    db.refresh(message)
    return message


def delete_message(db: Session, message_id: int) -> None:
    message = get_message(db, message_id)
    db.delete(message)
    db.commit()


def list_testimonials(db: Session, limit: Optional[int] = None) -> List[ContactMessage]:
    """Rated messages, newest first"""
    query = db.query(ContactMessage).filter(ContactMessage.rating > 0).order_by(
        ContactMessage.created_at.desc(), ContactMessage.id.desc()
    )
    if limit:
        query = query.limit(limit)
    return query.all()
