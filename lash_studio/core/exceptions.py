"""
Booking error taxonomy.

Every failure the booking workflow can report to a client is one of these.
The HTTP mapping lives in ``lash_studio.main``.
"""
from typing import Dict, Optional


class BookingError(Exception):
    """Base class for errors surfaced to API clients"""

    status_code = 400
    default_detail = "Booking request failed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail}


class ValidationError(BookingError):
    """Malformed or missing input. Carries one message per offending field."""

    status_code = 400
    default_detail = "Invalid appointment data"

    def __init__(self, errors: Dict[str, str], detail: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "errors": self.errors}


class SelectionLimitReached(ValidationError):
    """A further service category was picked after the cap was reached"""

    default_detail = "Service selection limit reached"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            {"service_ids": f"You can select at most {limit} services per appointment"}
        )


class NotFoundError(BookingError):
    status_code = 404
    default_detail = "Resource not found"


class SlotNotFoundError(NotFoundError):
    default_detail = "This time is not offered for the selected date and location. Please choose another time."


class SlotTakenError(BookingError):
    status_code = 409
    default_detail = "This time slot is no longer available. Please choose another time."


class CancellationRefused(BookingError):
    """Policy redirect: the booking must be cancelled through the studio directly"""

    status_code = 409
    default_detail = (
        "Bookings with a paid deposit cannot be cancelled online. "
        "Please contact the studio to cancel."
    )

    def __init__(self, redirect_url: str, detail: Optional[str] = None):
        self.redirect_url = redirect_url
        super().__init__(detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "redirect_url": self.redirect_url}


class PaymentError(BookingError):
    """The payment gateway rejected the request or could not be reached"""

    status_code = 502
    default_detail = "Could not start the payment. Please try again."

    def __init__(self, detail: Optional[str] = None, gateway_detail: Optional[object] = None):
        self.gateway_detail = gateway_detail
        super().__init__(detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "retry": True}


class NotificationDeliveryError(Exception):
    """Admin push delivery failed. Logged only, never returned to a client."""
