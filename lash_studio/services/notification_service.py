"""
Notification Service - Browser Push Notifications for the studio admin

Every browser where the admin granted notification permission registers a
push subscription. New bookings are fanned out to all of them. Delivery is
best-effort: failures are logged, and subscriptions the push service
reports as gone (HTTP 404/410) are deleted.
"""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

from pywebpush import webpush, WebPushException
from sqlalchemy.orm import Session

from lash_studio.core.config import settings
from lash_studio.core.exceptions import NotificationDeliveryError
from lash_studio.models.models import AdminPushSubscription, Appointment

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = (404, 410)


class SubscriptionGone(NotificationDeliveryError):
    """The push service no longer knows this endpoint"""


class NotificationService:
    """Admin push fan-out"""

    def __init__(
        self,
        db: Session,
        vapid_private_key: Optional[str] = None,
        vapid_claims_email: Optional[str] = None,
    ):
        self.db = db
        self.vapid_private_key = vapid_private_key if vapid_private_key is not None else settings.VAPID_PRIVATE_KEY
        self.vapid_claims_email = vapid_claims_email or settings.VAPID_CLAIMS_EMAIL

    def is_configured(self) -> bool:
        return bool(self.vapid_private_key)

    # ==================== SUBSCRIPTIONS ====================

    def register_subscription(self, username: str, endpoint: str, p256dh: str, auth: str) -> AdminPushSubscription:
        """Create or refresh the subscription for a browser endpoint"""
        subscription = self.db.query(AdminPushSubscription).filter(
            AdminPushSubscription.endpoint == endpoint
        ).first()
        if subscription:
            subscription.username = username
            subscription.p256dh_key = p256dh
            subscription.auth_key = auth
        else:
            subscription = AdminPushSubscription(
                username=username,
                endpoint=endpoint,
                p256dh_key=p256dh,
                auth_key=auth,
            )
            self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def remove_subscription(self, endpoint: str) -> bool:
        deleted = self.db.query(AdminPushSubscription).filter(
            AdminPushSubscription.endpoint == endpoint
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted > 0

    # ==================== PUSH ====================

    def _send_push(self, subscription: AdminPushSubscription, payload: dict) -> None:
        """Deliver one push message; raises NotificationDeliveryError on failure"""
        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {
                "p256dh": subscription.p256dh_key,
                "auth": subscription.auth_key,
            },
        }
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(payload),
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": f"mailto:{self.vapid_claims_email}"},
            )
        except WebPushException as e:
            response = getattr(e, "response", None)
            if response is not None and response.status_code in GONE_STATUS_CODES:
                raise SubscriptionGone(str(e)) from e
            raise NotificationDeliveryError(str(e)) from e

    def notify_admins(self, title: str, body: str, url: str = "/admin", data: Optional[dict] = None) -> Dict[str, int]:
        """
        Push to every admin subscription.
        Returns counts of sent, failed and removed subscriptions.
        """
        results = {"sent": 0, "failed": 0, "removed": 0}
        if not self.is_configured():
            logger.warning(f"[PUSH] VAPID keys not configured. Would push: {title}")
            return results

        payload = {
            "title": title,
            "body": body,
            "url": url,
            "data": data or {},
            "timestamp": datetime.utcnow().isoformat(),
        }

        gone: List[AdminPushSubscription] = []
        for subscription in self.db.query(AdminPushSubscription).all():
            try:
                self._send_push(subscription, payload)
                results["sent"] += 1
            except SubscriptionGone:
                logger.info(f"[PUSH] Removing expired subscription {subscription.id}")
                gone.append(subscription)
            except NotificationDeliveryError as e:
                logger.warning(f"[PUSH] Delivery to subscription {subscription.id} failed: {e}")
                results["failed"] += 1

        for subscription in gone:
            self.db.delete(subscription)
        if gone:
            self.db.commit()
        results["removed"] = len(gone)
        return results

    # ==================== BOOKING NOTIFICATIONS ====================

    def notify_booking_created(self, appointment: Appointment) -> Dict[str, int]:
        """Tell the admin(s) about a new booking"""
        day, month = appointment.date[8:10], appointment.date[5:7]
        title = "New booking"
        body = (
            f"{appointment.client_name} booked {appointment.service_name} "
            f"on {day}/{month} at {appointment.time} ({appointment.location})"
        )
        return self.notify_admins(
            title=title,
            body=body,
            url="/admin",
            data={"appointment_id": appointment.id, "deposit_paid": appointment.deposit_paid},
        )
