"""
Unit tests for database models
"""
import pytest
from sqlalchemy.exc import IntegrityError

from lash_studio.models.models import Appointment, AvailableSlot, ContactMessage, Service


def _appointment(slot_id=None, **overrides):
    values = dict(
        service_name="Brow Design",
        service_price=4000,
        service_categories="eyebrows",
        date="2030-01-15",
        time="10:00",
        location="Location A",
        client_name="Ana",
        client_phone="74988117722",
        client_email="ana@example.com",
        slot_id=slot_id,
    )
    values.update(overrides)
    return Appointment(**values)


@pytest.mark.unit
class TestServiceModel:

    def test_price_kept_as_integer_cents(self, db):
        service = Service(name="Lash Lifting", location="Location A", category="lashes", price=12990)
        db.add(service)
        db.commit()
        db.refresh(service)

        assert service.price == 12990
        assert service.description == ""

    def test_price_must_be_positive(self, db):
        db.add(Service(name="Free", location="Location A", category="lashes", price=0))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()


@pytest.mark.unit
class TestSlotModel:

    def test_slot_defaults_to_available(self, db):
        slot = AvailableSlot(date="2030-01-15", time="09:00", location="Location A")
        db.add(slot)
        db.commit()
        db.refresh(slot)

        assert slot.is_available is True
        assert slot.created_at is not None

    def test_duplicate_slots_are_allowed(self, db):
        db.add_all([
            AvailableSlot(date="2030-01-15", time="09:00", location="Location A"),
            AvailableSlot(date="2030-01-15", time="09:00", location="Location A"),
        ])
        db.commit()

        assert db.query(AvailableSlot).count() == 2


@pytest.mark.unit
class TestAppointmentModel:

    def test_one_appointment_per_slot(self, db, make_slot):
        slot = make_slot("2030-01-15", "10:00")
        db.add(_appointment(slot_id=slot.id))
        db.commit()

        db.add(_appointment(slot_id=slot.id, client_email="other@example.com"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_appointments_without_slot_do_not_collide(self, db):
        db.add_all([_appointment(), _appointment(client_email="b@example.com")])
        db.commit()

        assert db.query(Appointment).count() == 2

    def test_payment_reference_unique(self, db):
        db.add(_appointment(payment_reference="ref-1"))
        db.commit()

        db.add(_appointment(payment_reference="ref-1"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_slot_relationship(self, db, make_slot):
        slot = make_slot("2030-01-15", "11:00")
        appointment = _appointment(slot_id=slot.id)
        db.add(appointment)
        db.commit()
        db.refresh(slot)

        assert slot.appointment.id == appointment.id
        assert appointment.deposit_paid is False
        assert appointment.client_showed_up is None


@pytest.mark.unit
class TestContactMessageModel:

    def test_rating_defaults_to_zero(self, db):
        message = ContactMessage(name="Ana", email="ana@example.com", message="Hello")
        db.add(message)
        db.commit()
        db.refresh(message)

        assert message.rating == 0
