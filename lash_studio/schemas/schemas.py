from __future__ import annotations
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, Optional, List


# Auth schemas
class LoginRequest(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthStatus(BaseModel):
    authenticated: bool
    username: Optional[str] = None


# Service schemas
class ServiceBase(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    location: str = Field(min_length=1)
    category: str = Field(min_length=1)
    price: int = Field(gt=0, description="Price in cents")


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    price: Optional[int] = Field(default=None, gt=0)


class ServiceResponse(ServiceBase):
    id: int

    class Config:
        from_attributes = True


class CatalogCategory(BaseModel):
    category: str
    services: List[ServiceResponse]


class ServiceCatalogResponse(BaseModel):
    """Services bookable at one location, grouped by category in display order"""
    location: str
    categories: List[CatalogCategory]


# Slot schemas
class SlotCreate(BaseModel):
    date: str
    time: str
    location: str
    is_available: bool = True


class SlotBatchCreate(BaseModel):
    date: str
    start_time: str
    end_time: str
    location: str


class SlotAvailabilityUpdate(BaseModel):
    is_available: bool


class SlotResponse(BaseModel):
    id: int
    date: str
    time: str
    location: str
    is_available: bool
    created_at: datetime

    class Config:
        from_attributes = True


class SlotBatchResponse(BaseModel):
    created: int
    slots: List[SlotResponse]


class DeleteCountResponse(BaseModel):
    deleted: int


class MessageResponse(BaseModel):
    message: str


# Appointment schemas
class BookingRequest(BaseModel):
    """
    Booking form as submitted by the client.
    Fields are loosely typed on purpose; the booking workflow validates
    them together and reports every bad field at once.
    """
    location: Optional[str] = None
    service_ids: List[int] = []
    date: Optional[str] = None
    time: Optional[str] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    client_email: Optional[str] = None
    is_first_time: bool = True
    notes: Optional[str] = None


class AdminAppointmentUpdate(BookingRequest):
    client_showed_up: Optional[bool] = None


class AppointmentResponse(BaseModel):
    id: int
    service_id: Optional[int] = None
    service_ids: str
    service_name: str
    service_price: int
    service_categories: str
    date: str
    time: str
    location: str
    client_name: str
    client_phone: str
    client_email: str
    is_first_time: bool
    notes: Optional[str] = None
    client_showed_up: Optional[bool] = None
    slot_id: Optional[int] = None
    deposit_paid: bool
    created_at: datetime

    class Config:
        from_attributes = True


# Payment schemas
class DepositCheckoutResponse(BaseModel):
    """Returned instead of an appointment when the booking needs a deposit first"""
    status: str = "deposit_required"
    reference: str
    deposit_amount: int
    total_price: int
    remaining_balance: int
    currency: str
    preference_id: Optional[str] = None
    init_point: Optional[str] = None


class PendingBookingResponse(BaseModel):
    reference: str
    status: str
    deposit_amount: int
    booking: dict
    created_at: datetime


class PaymentOutcomeResponse(BaseModel):
    status: str  # success, failure, pending
    message: str
    retry: bool = False
    appointment: Optional[AppointmentResponse] = None


# Contact message schemas
class ContactMessageCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None
    rating: Optional[int] = None


class ContactMessageResponse(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    message: str
    rating: int
    created_at: datetime

    class Config:
        from_attributes = True


class TestimonialResponse(BaseModel):
    id: int
    name: str
    message: str
    rating: int
    created_at: datetime

    class Config:
        from_attributes = True


# Push subscription schemas
class PushKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscriptionCreate(BaseModel):
    """Browser PushSubscription.toJSON() shape"""
    endpoint: str
    keys: PushKeys


class PushSubscriptionResponse(BaseModel):
    id: int
    username: str
    endpoint: str
    created_at: datetime

    class Config:
        from_attributes = True


class PushPublicKey(BaseModel):
    public_key: str


# Report schemas
class LocationMetrics(BaseModel):
    appointments: int
    revenue: int  # cents
    no_shows: int
    showed_up: int
    no_show_rate: float
    show_up_rate: float
    first_time: int
    returning: int


class MonthlyReport(BaseModel):
    month: str
    locations: Dict[str, LocationMetrics]
    total: LocationMetrics


class AnnualReport(BaseModel):
    year: str
    months: List[MonthlyReport]
    total: LocationMetrics
