"""
Deposit payment endpoints

- start a deposit checkout for a booking form
- read back the pending booking of the current browsing session
- return URL handler (client redirected back from the hosted checkout)
- gateway webhook
"""
import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from lash_studio.core.config import settings
from lash_studio.core.exceptions import NotFoundError, ValidationError
from lash_studio.core.payment import verify_webhook_signature
from lash_studio.schemas.schemas import (
    BookingRequest, DepositCheckoutResponse, PaymentOutcomeResponse, PendingBookingResponse,
)
from lash_studio.services.booking_service import BookingService, PaymentOutcome
from lash_studio.api.v1.endpoints.appointments import (
    BOOKING_SESSION_COOKIE, BOOKING_SESSION_MAX_AGE, booking_session_id, checkout_response,
    get_booking_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _outcome_response(outcome: PaymentOutcome) -> dict:
    return {
        "status": outcome.status,
        "message": outcome.message,
        "retry": outcome.retry,
        "appointment": outcome.appointment,
    }


@router.post("/payment-intent", response_model=DepositCheckoutResponse, status_code=status.HTTP_201_CREATED)
def create_payment_intent(
    booking: BookingRequest,
    request: Request,
    response: Response,
    service: BookingService = Depends(get_booking_service),
):
    """Start (or retry) the deposit checkout for a booking that requires one"""
    validated = service.validate(booking)
    if not service.requires_deposit(validated):
        raise ValidationError({"service_ids": "No deposit is required for this booking"})

    session_id = booking_session_id(request)
    checkout = service.start_deposit_checkout(validated, session_id)
    response.set_cookie(
        BOOKING_SESSION_COOKIE, session_id,
        max_age=BOOKING_SESSION_MAX_AGE, httponly=True, samesite="lax",
    )
    return checkout_response(checkout)


@router.get("/payments/pending", response_model=PendingBookingResponse)
def get_pending_booking(
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    """The booking this browser is currently paying a deposit for"""
    session_id = request.cookies.get(BOOKING_SESSION_COOKIE)
    pending = service.get_pending_for_session(session_id) if session_id else None
    if not pending:
        raise NotFoundError("No pending booking")
    return {
        "reference": pending.reference,
        "status": pending.status,
        "deposit_amount": pending.deposit_amount,
        "booking": json.loads(pending.payload),
        "created_at": pending.created_at,
    }


@router.get("/payments/return", response_model=PaymentOutcomeResponse)
def payment_return(
    response: Response,
    external_reference: Optional[str] = Query(None),
    reference: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None, alias="status"),
    collection_status: Optional[str] = Query(None),
    payment_id: Optional[str] = Query(None),
    collection_id: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    """
    Called by the frontend's success/failure/pending pages with the query
    string the gateway appended to the back URL.
    """
    ref = external_reference or reference
    if not ref:
        raise ValidationError({"external_reference": "Missing payment reference"}, "Invalid payment return")

    outcome = service.handle_return(
        ref,
        reported_status=collection_status or payment_status,
        payment_id=payment_id or collection_id,
    )
    if outcome.status != "pending":
        response.delete_cookie(BOOKING_SESSION_COOKIE)
    return _outcome_response(outcome)


@router.post("/payments/webhook")
async def payment_webhook(
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    """Gateway notification. Always acknowledged unless the signature is wrong."""
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    event_type = body.get("type") or request.query_params.get("type") or request.query_params.get("topic")
    data_id = (body.get("data") or {}).get("id") or request.query_params.get("data.id") or request.query_params.get("id")

    if settings.MERCADOPAGO_WEBHOOK_SECRET:
        valid = verify_webhook_signature(
            settings.MERCADOPAGO_WEBHOOK_SECRET,
            request.headers.get("x-signature"),
            request.headers.get("x-request-id"),
            str(data_id) if data_id is not None else None,
        )
        if not valid:
            logger.warning(f"Rejected webhook with invalid signature for payment {data_id}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    if event_type != "payment" or not data_id:
        logger.info(f"Ignoring webhook event type={event_type} id={data_id}")
        return {"status": "ignored"}

    # handle_webhook blocks on the gateway and the database
    outcome = await asyncio.to_thread(service.handle_webhook, str(data_id))
    if outcome is None:
        return {"status": "ignored"}
    logger.info(f"Webhook for payment {data_id} processed: {outcome.status}")
    return {"status": outcome.status}
