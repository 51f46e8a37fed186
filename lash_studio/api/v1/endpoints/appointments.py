"""
Appointment endpoints

Clients book without an account; their email is the only key for looking
up, editing and cancelling their own bookings. The admin sees and manages
every booking.
"""
import logging
import uuid
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from lash_studio.core.booking_policy import normalize
from lash_studio.core.database import get_db
from lash_studio.core.exceptions import ValidationError
from lash_studio.core.payment import PaymentGateway, get_payment_gateway
from lash_studio.core.security import get_current_admin
from lash_studio.models.models import Appointment
from lash_studio.schemas.schemas import (
    AdminAppointmentUpdate, AppointmentResponse, BookingRequest, DepositCheckoutResponse,
)
from lash_studio.services.booking_service import BookingService, DepositCheckout
from lash_studio.services.report_service import MONTH_RE
from lash_studio.utils import slot_manager

logger = logging.getLogger(__name__)

router = APIRouter()

BOOKING_SESSION_COOKIE = "booking_session"
BOOKING_SESSION_MAX_AGE = 60 * 60 * 24


def get_booking_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> BookingService:
    return BookingService(db, gateway=gateway)


def booking_session_id(request: Request) -> str:
    return request.cookies.get(BOOKING_SESSION_COOKIE) or uuid.uuid4().hex


def checkout_response(checkout: DepositCheckout) -> dict:
    return {
        "status": "deposit_required",
        "reference": checkout.pending.reference,
        "deposit_amount": checkout.pending.deposit_amount,
        "total_price": checkout.total_price,
        "remaining_balance": checkout.remaining_balance,
        "currency": checkout.currency,
        "preference_id": checkout.intent.preference_id,
        "init_point": checkout.intent.init_point,
    }


# ==================== CLIENT ====================

@router.post(
    "/appointments",
    response_model=Union[AppointmentResponse, DepositCheckoutResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_appointment(
    booking: BookingRequest,
    request: Request,
    response: Response,
    service: BookingService = Depends(get_booking_service),
):
    """
    Book an appointment.

    201 with the appointment when no deposit is due. 202 with the checkout
    details when the deposit policy applies: the appointment is only created
    once the payment is confirmed.
    """
    session_id = booking_session_id(request)
    result = service.book(booking, session_id=session_id)
    if isinstance(result, DepositCheckout):
        response.status_code = status.HTTP_202_ACCEPTED
        response.set_cookie(
            BOOKING_SESSION_COOKIE, session_id,
            max_age=BOOKING_SESSION_MAX_AGE, httponly=True, samesite="lax",
        )
        return checkout_response(result)
    return result


@router.get("/appointments", response_model=List[AppointmentResponse])
def get_my_appointments(
    email: str = Query(..., min_length=3),
    service: BookingService = Depends(get_booking_service),
):
    """A client's bookings, looked up by email"""
    return service.list_for_email(email)


@router.put("/appointments/{appointment_id}", response_model=AppointmentResponse)
def update_my_appointment(
    appointment_id: int,
    booking: BookingRequest,
    email: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """Self-service edit; the email must match the one the booking was made with"""
    return service.update(appointment_id, booking, email=email or booking.client_email or "")


@router.delete("/appointments/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_my_appointment(
    appointment_id: int,
    email: str = Query(...),
    service: BookingService = Depends(get_booking_service),
):
    """Self-service cancellation. Deposit bookings get a 409 with a redirect_url instead."""
    service.cancel(appointment_id, email=email)
    return None


# ==================== ADMIN ====================

@router.get("/admin/appointments", response_model=List[AppointmentResponse])
def list_appointments(
    date: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    month: Optional[str] = Query(None, description="YYYY-MM"),
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    query = db.query(Appointment)
    if date:
        query = query.filter(Appointment.date == slot_manager.require_date(date))
    if month:
        if not MONTH_RE.match(month):
            raise ValidationError({"month": "Invalid month format. Use YYYY-MM"}, "Invalid filter parameters")
        query = query.filter(Appointment.date.like(f"{month}-%"))
    if location:
        query = query.filter(func.lower(Appointment.location) == normalize(location))
    return query.order_by(Appointment.date, Appointment.time, Appointment.id).all()


@router.post("/admin/appointments", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment_as_admin(
    booking: BookingRequest,
    service: BookingService = Depends(get_booking_service),
    admin: str = Depends(get_current_admin),
):
    """Book on a client's behalf: no deposit, the slot is used if one is published"""
    return service.admin_book(booking)


@router.get("/admin/appointments/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    service: BookingService = Depends(get_booking_service),
    admin: str = Depends(get_current_admin),
):
    return service.get_appointment(appointment_id)


@router.put("/admin/appointments/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    booking: AdminAppointmentUpdate,
    service: BookingService = Depends(get_booking_service),
    admin: str = Depends(get_current_admin),
):
    return service.update(appointment_id, booking, admin=True)


@router.delete("/admin/appointments/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    service: BookingService = Depends(get_booking_service),
    admin: str = Depends(get_current_admin),
):
    """Same cancellation rule as the client path"""
    service.cancel(appointment_id)
    return None
