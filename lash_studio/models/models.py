from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from lash_studio.core.database import Base


class Service(Base):
    """An offerable treatment at one of the studio locations"""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, index=True)  # lashes, eyebrows, hair-removal...
    price = Column(Integer, nullable=False)  # cents

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_services_price_positive"),
    )


class AvailableSlot(Base):
    """
    A bookable (date, time, location) unit created by the admin.
    Duplicates are tolerated; is_available is flipped when an appointment consumes the slot.
    """
    __tablename__ = "available_slots"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    time = Column(String(5), nullable=False)  # HH:MM
    location = Column(String, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    appointment = relationship("Appointment", back_populates="slot", uselist=False)

    __table_args__ = (
        Index("ix_available_slots_date_location", "date", "location"),
    )


class Appointment(Base):
    """
    A confirmed booking.
    service_name/service_price are a snapshot taken at booking time and are
    never re-read from the services table.
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    service_ids = Column(String, nullable=False, default="")  # comma-separated, booking order
    service_name = Column(String, nullable=False)
    service_price = Column(Integer, nullable=False)  # cents, sum of booked services
    service_categories = Column(String, nullable=False, default="")  # comma-separated snapshot
    date = Column(String(10), nullable=False, index=True)
    time = Column(String(5), nullable=False)
    location = Column(String, nullable=False)

    client_name = Column(String, nullable=False)
    client_phone = Column(String, nullable=False)
    client_email = Column(String, nullable=False, index=True)
    is_first_time = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)
    client_showed_up = Column(Boolean, nullable=True)

    # At most one appointment per slot
    slot_id = Column(Integer, ForeignKey("available_slots.id", ondelete="SET NULL"), nullable=True, unique=True)

    # Deposit
    deposit_paid = Column(Boolean, nullable=False, default=False)
    payment_reference = Column(String, nullable=True, unique=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    slot = relationship("AvailableSlot", back_populates="appointment")

    __table_args__ = (
        CheckConstraint("service_price > 0", name="ck_appointments_price_positive"),
    )


class PendingBooking(Base):
    """
    Booking form data parked while the client pays the deposit.
    Scoped to the browsing session via session_id and looked up on payment
    return/webhook via reference (the gateway's external_reference).
    """
    __tablename__ = "pending_bookings"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String, nullable=False, unique=True, index=True)
    session_id = Column(String, nullable=False, index=True)
    payload = Column(Text, nullable=False)  # JSON of the validated booking request
    deposit_amount = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="pending")  # pending, confirmed, failed
    preference_id = Column(String, nullable=True)
    payment_id = Column(String, nullable=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ContactMessage(Base):
    """
    A message left by a client. Messages with a rating double as public testimonials.
    """
    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    message = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False, default=0)  # 1-5
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class AdminPushSubscription(Base):
    """
    Browser push subscription registered from the admin panel.
    Removed automatically when the push service reports the endpoint gone.
    """
    __tablename__ = "admin_push_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    endpoint = Column(String, nullable=False, unique=True)
    p256dh_key = Column(String, nullable=False)  # Public key
    auth_key = Column(String, nullable=False)  # Auth secret
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
