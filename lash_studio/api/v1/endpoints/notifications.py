"""
Admin push notification endpoints

- VAPID public key for the browser subscription
- register / remove the admin panel's push subscription
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from lash_studio.core.config import settings
from lash_studio.core.database import get_db
from lash_studio.core.exceptions import NotFoundError
from lash_studio.core.security import get_current_admin
from lash_studio.schemas.schemas import PushPublicKey, PushSubscriptionCreate, PushSubscriptionResponse
from lash_studio.services.notification_service import NotificationService

router = APIRouter()


@router.get("/push-public-key", response_model=PushPublicKey)
async def get_push_public_key():
    """VAPID public key the browser needs to subscribe"""
    if not settings.VAPID_PUBLIC_KEY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Push notifications are not configured",
        )
    return {"public_key": settings.VAPID_PUBLIC_KEY}


@router.post(
    "/admin-push-subscription",
    response_model=PushSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
def subscribe_admin_push(
    subscription: PushSubscriptionCreate,
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    """Register this browser for new-booking notifications"""
    return NotificationService(db).register_subscription(
        username=admin,
        endpoint=subscription.endpoint,
        p256dh=subscription.keys.p256dh,
        auth=subscription.keys.auth,
    )


@router.delete("/admin-push-subscription", status_code=status.HTTP_204_NO_CONTENT)
def unsubscribe_admin_push(
    endpoint: str = Query(...),
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    if not NotificationService(db).remove_subscription(endpoint):
        raise NotFoundError("Subscription not found")
    return None
