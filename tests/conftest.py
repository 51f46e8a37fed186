"""
Test configuration and fixtures
"""
import os

# Point the application at SQLite before anything imports the settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["VAPID_PRIVATE_KEY"] = ""
os.environ["MERCADOPAGO_WEBHOOK_SECRET"] = ""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lash_studio.main import app
from lash_studio.core.config import settings
from lash_studio.core.database import Base, get_db
from lash_studio.core.exceptions import PaymentError
from lash_studio.core.payment import PaymentGateway, PaymentInfo, PaymentIntent, get_payment_gateway
from lash_studio.models.models import AvailableSlot, Service


# Create an in-memory SQLite database for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeGateway(PaymentGateway):
    """Records payment intents and serves canned payment lookups"""

    def __init__(self):
        self.intents = []
        self.payments = {}
        self.fail = False

    def create_payment_intent(self, reference, title, amount, payer_name, payer_email, metadata=None):
        if self.fail:
            raise PaymentError(gateway_detail={"message": "invalid access token"})
        self.intents.append({
            "reference": reference,
            "title": title,
            "amount": amount,
            "payer_name": payer_name,
            "payer_email": payer_email,
            "metadata": metadata,
        })
        return PaymentIntent(
            reference=reference,
            preference_id=f"pref-{len(self.intents)}",
            init_point=f"https://checkout.example/{reference}",
        )

    def approve(self, payment_id, reference, status="approved"):
        self.payments[payment_id] = PaymentInfo(
            payment_id=payment_id, status=status, external_reference=reference, amount=3000
        )

    def get_payment(self, payment_id):
        if payment_id not in self.payments:
            raise PaymentError("Payment not found")
        return self.payments[payment_id]


def future_date(days=10):
    return (date.today() + timedelta(days=days)).isoformat()


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture(scope="function")
def client(db, fake_gateway):
    """Create a test client with overridden database and payment dependencies"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway
    with TestClient(app=app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_token(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"username": settings.ADMIN_USERNAME, "password": settings.ADMIN_PASSWORD},
    )
    return response.json()["access_token"]


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def lash_service_b(db):
    """Lash extension at the location where lashes need a deposit"""
    service = Service(
        name="Classic Lash Extensions",
        description="Full set",
        location="Location B",
        category="lashes",
        price=5000,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def brow_service_a(db):
    service = Service(
        name="Brow Design",
        description="Shaping with henna",
        location="Location A",
        category="eyebrows",
        price=4000,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def brow_service_b(db):
    service = Service(
        name="Brow Lamination",
        description="",
        location="Location B",
        category="eyebrows",
        price=6000,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def make_slot(db):
    """Factory inserting a slot directly"""
    def _make_slot(slot_date, slot_time, location="Location A", is_available=True):
        slot = AvailableSlot(date=slot_date, time=slot_time, location=location, is_available=is_available)
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot
    return _make_slot


@pytest.fixture
def booking_form():
    """Factory for a valid booking form body"""
    def _booking_form(service_ids, slot_date, slot_time="10:00", location="Location A", **overrides):
        form = {
            "location": location,
            "service_ids": service_ids,
            "date": slot_date,
            "time": slot_time,
            "client_name": "Maria Souza",
            "client_phone": "(74) 98811-7722",
            "client_email": "maria@example.com",
            "is_first_time": True,
            "notes": "",
        }
        form.update(overrides)
        return form
    return _booking_form


@pytest.fixture
def upcoming_date():
    """A date comfortably past the booking lead time"""
    return future_date(10)
