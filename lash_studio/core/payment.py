"""
Payment gateway for booking deposits (Mercado Pago Checkout Pro).

A "payment intent" is a checkout preference: the client is sent to the
hosted checkout (init_point) and the gateway later reports the outcome
through the return URLs and the webhook. Amounts are kept in cents
internally and converted to the gateway's decimal unit only here.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from lash_studio.core.config import settings
from lash_studio.core.exceptions import PaymentError

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = {"approved"}
FAILURE_STATUSES = {"rejected", "cancelled", "refunded", "charged_back", "failure"}


def classify_payment_status(gateway_status: Optional[str]) -> str:
    """Collapse gateway statuses into success / failure / pending"""
    value = (gateway_status or "").lower()
    if value in SUCCESS_STATUSES:
        return "success"
    if value in FAILURE_STATUSES:
        return "failure"
    return "pending"


@dataclass
class PaymentIntent:
    reference: str
    preference_id: Optional[str]
    init_point: Optional[str]


@dataclass
class PaymentInfo:
    payment_id: str
    status: str
    external_reference: Optional[str]
    amount: Optional[int] = None  # cents


class PaymentGateway:
    """Interface of the external payment collaborator"""

    def create_payment_intent(
        self,
        reference: str,
        title: str,
        amount: int,
        payer_name: str,
        payer_email: str,
        metadata: Optional[dict] = None,
    ) -> PaymentIntent:
        raise NotImplementedError

    def get_payment(self, payment_id: str) -> PaymentInfo:
        raise NotImplementedError


class MercadoPagoGateway(PaymentGateway):

    def __init__(
        self,
        access_token: str,
        api_url: str = "https://api.mercadopago.com",
        timeout: float = 15.0,
        public_base_url: str = "http://localhost:3000",
        notification_url: Optional[str] = None,
        currency: str = "BRL",
    ):
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.public_base_url = public_base_url.rstrip("/")
        self.notification_url = notification_url
        self.currency = currency

    def is_configured(self) -> bool:
        return bool(self.access_token)

    def _headers(self, idempotency_key: Optional[str] = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        return headers

    def _request(self, method: str, path: str, **kwargs) -> dict:
        if not self.is_configured():
            logger.error("Mercado Pago access token is not configured")
            raise PaymentError("Payment service is not configured")

        url = f"{self.api_url}{path}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Mercado Pago request timed out: {method} {path}: {e}")
            raise PaymentError("The payment service took too long to respond. Please try again.")
        except httpx.HTTPError as e:
            logger.error(f"Mercado Pago request failed: {method} {path}: {e}")
            raise PaymentError()

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            logger.error(f"Mercado Pago error {response.status_code} on {method} {path}: {body}")
            raise PaymentError(gateway_detail=body)

        return response.json()

    def create_payment_intent(
        self,
        reference: str,
        title: str,
        amount: int,
        payer_name: str,
        payer_email: str,
        metadata: Optional[dict] = None,
    ) -> PaymentIntent:
        payload = {
            "items": [{
                "id": reference,
                "title": title,
                "unit_price": amount / 100,
                "quantity": 1,
                "currency_id": self.currency,
            }],
            "payer": {
                "name": payer_name,
                "email": payer_email,
            },
            "back_urls": {
                "success": f"{self.public_base_url}/payment-success",
                "failure": f"{self.public_base_url}/payment-failure",
                "pending": f"{self.public_base_url}/payment-pending",
            },
            "auto_return": "approved",
            "external_reference": reference,
            "metadata": metadata or {},
        }
        if self.notification_url:
            payload["notification_url"] = self.notification_url

        result = self._request(
            "POST", "/checkout/preferences", json=payload, headers=self._headers(reference)
        )
        logger.info(f"Created Mercado Pago preference {result.get('id')} for {reference}")
        return PaymentIntent(
            reference=reference,
            preference_id=result.get("id"),
            init_point=result.get("init_point"),
        )

    def get_payment(self, payment_id: str) -> PaymentInfo:
        result = self._request("GET", f"/v1/payments/{payment_id}", headers=self._headers())
        amount = result.get("transaction_amount")
        return PaymentInfo(
            payment_id=str(result.get("id", payment_id)),
            status=result.get("status", ""),
            external_reference=result.get("external_reference"),
            amount=round(amount * 100) if amount is not None else None,
        )


def verify_webhook_signature(
    secret: str,
    signature_header: Optional[str],
    request_id: Optional[str],
    data_id: Optional[str],
) -> bool:
    """
    Check Mercado Pago's x-signature header ("ts=...,v1=...").
    The signed manifest is "id:{data.id};request-id:{x-request-id};ts:{ts};".
    """
    if not signature_header:
        return False
    parts = {}
    for item in signature_header.split(","):
        key, _, value = item.strip().partition("=")
        parts[key] = value
    ts = parts.get("ts")
    received = parts.get("v1")
    if not ts or not received:
        return False

    manifest = ""
    if data_id:
        manifest += f"id:{str(data_id).lower()};"
    if request_id:
        manifest += f"request-id:{request_id};"
    manifest += f"ts:{ts};"
    expected = hmac.new(secret.encode("utf-8"), manifest.encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, received)


def get_payment_gateway() -> PaymentGateway:
    """Dependency returning the configured gateway"""
    return MercadoPagoGateway(
        access_token=settings.MERCADOPAGO_ACCESS_TOKEN,
        api_url=settings.MERCADOPAGO_API_URL,
        timeout=settings.PAYMENT_TIMEOUT_SECONDS,
        public_base_url=settings.PUBLIC_BASE_URL,
        notification_url=f"{settings.API_BASE_URL}{settings.API_V1_STR}/payments/webhook",
        currency=settings.CURRENCY,
    )
