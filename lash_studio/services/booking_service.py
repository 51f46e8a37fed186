"""
Booking workflow.

Turns a client's booking form into an Appointment:

    validate -> (deposit required?) -> checkout -> payment confirmed -> confirm
             `-> confirm

Confirming claims the slot and writes the appointment in one transaction,
then notifies the admin. Deposit bookings park their validated form in
``pending_bookings`` and are only confirmed once the payment gateway
reports the payment as approved; confirmation is idempotent per pending
booking.
"""
import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lash_studio.core.booking_policy import BookingPolicy, get_booking_policy, normalize
from lash_studio.core.exceptions import (
    BookingError,
    CancellationRefused,
    NotFoundError,
    SelectionLimitReached,
    SlotNotFoundError,
    SlotTakenError,
    ValidationError,
)
from lash_studio.core.payment import PaymentGateway, PaymentIntent, classify_payment_status
from lash_studio.models.models import Appointment, PendingBooking, Service
from lash_studio.schemas.schemas import AdminAppointmentUpdate, BookingRequest
from lash_studio.services.notification_service import NotificationService
from lash_studio.utils import slot_manager

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_PHONE_DIGITS = 10


class ServiceSelection:
    """
    The services picked for one appointment: at most one per category and
    at most ``limit`` in total. Picking a service of an already chosen
    category replaces it; picking a new category past the limit is refused
    and leaves the selection untouched.
    """

    def __init__(self, limit: int = 3):
        self.limit = limit
        self._by_category: Dict[str, Service] = {}

    def select(self, service: Service) -> None:
        key = normalize(service.category)
        if key not in self._by_category and len(self._by_category) >= self.limit:
            raise SelectionLimitReached(self.limit)
        self._by_category[key] = service

    def __len__(self) -> int:
        return len(self._by_category)

    @property
    def services(self) -> List[Service]:
        return list(self._by_category.values())

    @property
    def categories(self) -> List[str]:
        return [s.category for s in self.services]

    @property
    def total_price(self) -> int:
        return sum(s.price or 0 for s in self.services)


@dataclass
class ValidatedBooking:
    """A booking form that passed validation, with the service snapshot taken"""
    location: str
    service_ids: List[int]
    service_name: str
    service_price: int
    service_categories: List[str]
    date: str
    time: str
    client_name: str
    client_phone: str
    client_email: str
    is_first_time: bool = True
    notes: Optional[str] = None

    def to_payload(self) -> dict:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict) -> "ValidatedBooking":
        return cls(**payload)


@dataclass
class DepositCheckout:
    """Result of a booking that must be paid for before it is confirmed"""
    pending: PendingBooking
    intent: PaymentIntent
    total_price: int
    remaining_balance: int
    currency: str


@dataclass
class PaymentOutcome:
    status: str  # success, failure, pending
    message: str
    retry: bool = False
    appointment: Optional[Appointment] = None
    extra: dict = field(default_factory=dict)


def _normalize_email(value: Optional[str]) -> Optional[str]:
    try:
        return validate_email(value or "", check_deliverability=False).normalized
    except EmailNotValidError:
        return None


def check_booking(
    request: BookingRequest,
    services: Iterable[Optional[Service]],
    policy: BookingPolicy,
    locked_location: Optional[str] = None,
) -> ValidatedBooking:
    """
    Validate a booking form against the already-loaded services.

    ``services`` lines up with ``request.service_ids``; unknown ids are None.
    Every invalid field is reported in one ValidationError.
    """
    errors: Dict[str, str] = {}

    location = None
    if not (request.location or "").strip():
        errors["location"] = "Please select a location"
    else:
        location = policy.resolve_location(request.location)
        if location is None:
            errors["location"] = f"Location must be one of: {', '.join(policy.locations)}"
        elif locked_location is not None and normalize(location) != normalize(locked_location):
            errors["location"] = "The location of an existing booking cannot be changed"
            location = None

    selection = ServiceSelection(policy.max_services)
    services = list(services)
    if not request.service_ids:
        errors["service_ids"] = "Please select at least one service"
    else:
        missing = [sid for sid, svc in zip(request.service_ids, services) if svc is None]
        found = [svc for svc in services if svc is not None]
        categories = [normalize(svc.category) for svc in found]
        if missing:
            errors["service_ids"] = f"Service not found: {', '.join(str(m) for m in missing)}"
        elif len(set(categories)) != len(categories):
            errors["service_ids"] = "Select only one service per category"
        elif location and any(normalize(svc.location) != normalize(location) for svc in found):
            errors["service_ids"] = f"All services must be offered at {location}"
        else:
            try:
                for svc in found:
                    selection.select(svc)
            except SelectionLimitReached as e:
                errors.update(e.errors)
        if "service_ids" not in errors and selection.total_price <= 0:
            errors["service_price"] = "Total service price must be greater than zero"

    if not request.date:
        errors["date"] = "Please select a date"
    elif slot_manager.parse_date(request.date) is None:
        errors["date"] = "Invalid date format. Use YYYY-MM-DD"

    if not request.time:
        errors["time"] = "Please select a time"
    elif slot_manager.parse_time(request.time) is None:
        errors["time"] = "Invalid time format. Use HH:MM"

    client_name = (request.client_name or "").strip()
    if len(client_name) < MIN_NAME_LENGTH:
        errors["client_name"] = f"Name must be at least {MIN_NAME_LENGTH} characters"

    client_phone = (request.client_phone or "").strip()
    if sum(ch.isdigit() for ch in client_phone) < MIN_PHONE_DIGITS:
        errors["client_phone"] = f"Phone must have at least {MIN_PHONE_DIGITS} digits"

    client_email = _normalize_email(request.client_email)
    if not (request.client_email or "").strip():
        errors["client_email"] = "Please enter your email"
    elif client_email is None:
        errors["client_email"] = "Invalid email"

    if errors:
        raise ValidationError(errors)

    chosen = selection.services
    return ValidatedBooking(
        location=location,
        service_ids=[svc.id for svc in chosen],
        service_name=", ".join(svc.name for svc in chosen),
        service_price=selection.total_price,
        service_categories=[svc.category for svc in chosen],
        date=slot_manager.parse_date(request.date).isoformat(),
        time=slot_manager.format_time(slot_manager.parse_time(request.time)),
        client_name=client_name,
        client_phone=client_phone,
        client_email=client_email,
        is_first_time=request.is_first_time,
        notes=(request.notes or "").strip() or None,
    )


class BookingService:

    def __init__(
        self,
        db: Session,
        gateway: Optional[PaymentGateway] = None,
        policy: Optional[BookingPolicy] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.db = db
        self.gateway = gateway
        self.policy = policy or get_booking_policy()
        self.notifier = notifier or NotificationService(db)

    # ==================== VALIDATION ====================

    def validate(self, request: BookingRequest, locked_location: Optional[str] = None) -> ValidatedBooking:
        ids = list(request.service_ids or [])
        found = {}
        if ids:
            found = {s.id: s for s in self.db.query(Service).filter(Service.id.in_(ids)).all()}
        return check_booking(request, [found.get(i) for i in ids], self.policy, locked_location)

    def requires_deposit(self, booking: ValidatedBooking) -> bool:
        return self.policy.requires_deposit(booking.service_categories, booking.location)

    # ==================== BOOKING ====================

    def book(self, request: BookingRequest, session_id: Optional[str] = None):
        """
        Client booking. Returns the Appointment, or a DepositCheckout when
        the deposit policy applies and the appointment has to wait for payment.
        """
        booking = self.validate(request)
        if self.requires_deposit(booking):
            return self.start_deposit_checkout(booking, session_id or uuid.uuid4().hex)
        return self.confirm(booking)

    def admin_book(self, request: BookingRequest) -> Appointment:
        """Booking taken by the admin on a client's behalf: no deposit, slot optional"""
        booking = self.validate(request)
        return self.confirm(booking, require_slot=False)

    def confirm(
        self,
        booking: ValidatedBooking,
        deposit_paid: bool = False,
        payment_reference: Optional[str] = None,
        require_slot: bool = True,
    ) -> Appointment:
        """Claim the slot and write the appointment atomically, then notify the admin"""
        try:
            slot = None
            try:
                slot = slot_manager.reserve_slot(self.db, booking.date, booking.time, booking.location)
            except SlotNotFoundError:
                if require_slot:
                    raise

            appointment = Appointment(
                service_id=booking.service_ids[0] if booking.service_ids else None,
                service_ids=",".join(str(i) for i in booking.service_ids),
                service_name=booking.service_name,
                service_price=booking.service_price,
                service_categories=",".join(booking.service_categories),
                date=booking.date,
                time=booking.time,
                location=booking.location,
                client_name=booking.client_name,
                client_phone=booking.client_phone,
                client_email=booking.client_email,
                is_first_time=booking.is_first_time,
                notes=booking.notes,
                slot_id=slot.id if slot else None,
                deposit_paid=deposit_paid,
                payment_reference=payment_reference,
            )
            self.db.add(appointment)
            self.db.commit()
        except BookingError:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            if payment_reference:
                existing = self._appointment_for_reference(payment_reference)
                if existing:
                    return existing
            raise SlotTakenError()

        self.db.refresh(appointment)
        logger.info(
            f"Appointment {appointment.id} confirmed: {appointment.date} {appointment.time} "
            f"at {appointment.location} for {appointment.client_email}"
        )
        self._notify_admin(appointment)
        return appointment

    def _notify_admin(self, appointment: Appointment) -> None:
        try:
            self.notifier.notify_booking_created(appointment)
        except Exception:
            logger.exception(f"Failed to notify admin about appointment {appointment.id}")

    # ==================== LOOKUP / EDIT / CANCEL ====================

    def get_appointment(self, appointment_id: int, email: Optional[str] = None) -> Appointment:
        """Fetch an appointment; when email is given it must match the booking's email"""
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        if email is not None and normalize(appointment.client_email) != normalize(email):
            raise NotFoundError("Appointment not found")
        return appointment

    def list_for_email(self, email: str) -> List[Appointment]:
        return self.db.query(Appointment).filter(
            func.lower(Appointment.client_email) == normalize(email)
        ).order_by(Appointment.date, Appointment.time).all()

    def update(
        self,
        appointment_id: int,
        request: BookingRequest,
        email: Optional[str] = None,
        admin: bool = False,
    ) -> Appointment:
        """
        Re-validate and overwrite a booking. The location is locked and the
        consumed slot is left as it is. Clients cannot turn a booking into
        one that needs a deposit; the admin can, as with admin bookings.
        """
        appointment = self.get_appointment(appointment_id, email)
        if not request.location:
            request = request.model_copy(update={"location": appointment.location})
        booking = self.validate(request, locked_location=appointment.location)

        if not admin and self.requires_deposit(booking) and not appointment.deposit_paid:
            raise ValidationError({
                "service_ids": "These services require a deposit. Please make a new booking instead."
            })

        appointment.service_id = booking.service_ids[0]
        appointment.service_ids = ",".join(str(i) for i in booking.service_ids)
        appointment.service_name = booking.service_name
        appointment.service_price = booking.service_price
        appointment.service_categories = ",".join(booking.service_categories)
        appointment.date = booking.date
        appointment.time = booking.time
        appointment.client_name = booking.client_name
        appointment.client_phone = booking.client_phone
        appointment.client_email = booking.client_email
        appointment.is_first_time = booking.is_first_time
        appointment.notes = booking.notes
        if isinstance(request, AdminAppointmentUpdate) and "client_showed_up" in request.model_fields_set:
            appointment.client_showed_up = request.client_showed_up

        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def cancel(self, appointment_id: int, email: Optional[str] = None) -> None:
        """
        Delete a booking and reopen its slot. Deposit bookings are refused
        before anything is touched and redirected to the studio's contact channel.
        """
        appointment = self.get_appointment(appointment_id, email)
        if self.policy.blocks_cancellation(appointment):
            logger.info(f"Cancellation of appointment {appointment.id} refused: deposit booking")
            raise CancellationRefused(self.policy.cancellation_contact_url)

        slot_manager.release_slot(self.db, appointment.slot_id)
        self.db.query(PendingBooking).filter(
            PendingBooking.appointment_id == appointment.id
        ).update({PendingBooking.appointment_id: None}, synchronize_session=False)
        self.db.delete(appointment)
        self.db.commit()
        logger.info(f"Appointment {appointment_id} cancelled")

    # ==================== DEPOSIT ====================

    def start_deposit_checkout(self, booking: ValidatedBooking, session_id: str) -> DepositCheckout:
        """Park the booking and request a payment intent for the deposit"""
        if self.gateway is None:
            raise BookingError("Payment is not available")
        if not any(s.is_available for s in slot_manager.find_slots(self.db, booking.date, booking.time, booking.location)):
            if slot_manager.find_slots(self.db, booking.date, booking.time, booking.location):
                raise SlotTakenError()
            raise SlotNotFoundError()

        reference = uuid.uuid4().hex
        pending = PendingBooking(
            reference=reference,
            session_id=session_id,
            payload=json.dumps(booking.to_payload()),
            deposit_amount=self.policy.deposit_amount,
            status="pending",
        )
        self.db.add(pending)
        self.db.flush()

        try:
            intent = self.gateway.create_payment_intent(
                reference=reference,
                title=f"Booking deposit: {booking.service_name}",
                amount=self.policy.deposit_amount,
                payer_name=booking.client_name,
                payer_email=booking.client_email,
                metadata={
                    "reference": reference,
                    "location": booking.location,
                    "date": booking.date,
                    "time": booking.time,
                },
            )
        except BookingError:
            self.db.rollback()
            raise

        pending.preference_id = intent.preference_id
        self.db.commit()
        self.db.refresh(pending)
        logger.info(f"Deposit checkout {reference} started for {booking.client_email}")
        return DepositCheckout(
            pending=pending,
            intent=intent,
            total_price=booking.service_price,
            remaining_balance=self.policy.remaining_balance(booking.service_price),
            currency=self.policy.currency,
        )

    def get_pending(self, reference: str) -> PendingBooking:
        pending = self.db.query(PendingBooking).filter(PendingBooking.reference == reference).first()
        if not pending:
            raise NotFoundError("Pending booking not found")
        return pending

    def get_pending_for_session(self, session_id: str) -> Optional[PendingBooking]:
        return self.db.query(PendingBooking).filter(
            PendingBooking.session_id == session_id,
            PendingBooking.status == "pending",
        ).order_by(PendingBooking.created_at.desc(), PendingBooking.id.desc()).first()

    def _appointment_for_reference(self, reference: str) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.payment_reference == reference).first()

    def apply_payment_status(
        self,
        reference: str,
        gateway_status: Optional[str],
        payment_id: Optional[str] = None,
    ) -> PaymentOutcome:
        """
        Move a pending booking to its terminal state for a gateway status.
        Safe to call repeatedly with the same success signal.
        """
        pending = self.db.query(PendingBooking).filter(
            PendingBooking.reference == reference
        ).with_for_update().first()
        if not pending:
            raise NotFoundError("Pending booking not found")

        if pending.status == "confirmed":
            return PaymentOutcome(
                status="success",
                message="Payment approved. Your booking is confirmed.",
                appointment=self._appointment_for_reference(reference),
            )

        outcome = classify_payment_status(gateway_status)
        if payment_id:
            pending.payment_id = str(payment_id)

        if outcome == "success":
            booking = ValidatedBooking.from_payload(json.loads(pending.payload))
            try:
                appointment = self.confirm(booking, deposit_paid=True, payment_reference=reference)
            except (SlotTakenError, SlotNotFoundError):
                pending = self.get_pending(reference)
                pending.status = "slot_unavailable"
                if payment_id:
                    pending.payment_id = str(payment_id)
                self.db.commit()
                logger.error(
                    f"Deposit {reference} approved (payment {payment_id}) but slot "
                    f"{booking.date} {booking.time} at {booking.location} is gone"
                )
                return PaymentOutcome(
                    status="failure",
                    message=(
                        "Your payment was received but the chosen time is no longer available. "
                        "The studio will contact you to reschedule."
                    ),
                )
            pending = self.get_pending(reference)
            pending.status = "confirmed"
            pending.appointment_id = appointment.id
            if payment_id:
                pending.payment_id = str(payment_id)
            self.db.commit()
            return PaymentOutcome(
                status="success",
                message="Payment approved. Your booking is confirmed.",
                appointment=appointment,
            )

        if outcome == "failure":
            pending.status = "failed"
            self.db.commit()
            logger.info(f"Deposit {reference} failed with gateway status {gateway_status}")
            return PaymentOutcome(
                status="failure",
                message="The payment was not approved. Please try again.",
                retry=True,
            )

        self.db.commit()
        return PaymentOutcome(
            status="pending",
            message="Your payment is being processed. The booking is confirmed once it is approved.",
        )

    def handle_return(
        self,
        reference: str,
        reported_status: Optional[str] = None,
        payment_id: Optional[str] = None,
    ) -> PaymentOutcome:
        """
        Client came back from the hosted checkout. A success is only trusted
        after the gateway confirms the payment; without a payment id the
        booking stays pending unless the gateway reported a failure.
        """
        if payment_id and payment_id != "null":
            if self.gateway is None:
                raise BookingError("Payment is not available")
            info = self.gateway.get_payment(payment_id)
            if info.external_reference and info.external_reference != reference:
                raise ValidationError({"external_reference": "Payment does not belong to this booking"})
            return self.apply_payment_status(reference, info.status, info.payment_id)

        if classify_payment_status(reported_status) == "failure":
            return self.apply_payment_status(reference, reported_status)
        return self.apply_payment_status(reference, "pending")

    def handle_webhook(self, payment_id: str) -> Optional[PaymentOutcome]:
        """Gateway notification about a payment; unknown payments are ignored"""
        if self.gateway is None:
            raise BookingError("Payment is not available")
        info = self.gateway.get_payment(payment_id)
        if not info.external_reference:
            logger.warning(f"Payment {payment_id} has no external reference; ignoring")
            return None
        exists = self.db.query(PendingBooking.id).filter(
            PendingBooking.reference == info.external_reference
        ).first()
        if not exists:
            logger.warning(f"Payment {payment_id} references unknown booking {info.external_reference}")
            return None
        return self.apply_payment_status(info.external_reference, info.status, info.payment_id)
