from fastapi import APIRouter

from lash_studio.api.v1.endpoints import (
    appointments, auth, contact, notifications, payments, reports, services, slots,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(services.router, prefix="/services", tags=["services"])
api_router.include_router(slots.router, tags=["slots"])
api_router.include_router(appointments.router, tags=["appointments"])
api_router.include_router(payments.router, tags=["payments"])
api_router.include_router(contact.router, tags=["contact"])
api_router.include_router(notifications.router, tags=["notifications"])
api_router.include_router(reports.router, prefix="/admin/reports", tags=["reports"])
