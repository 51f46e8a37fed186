"""
Unit tests for slot management
"""
from datetime import date, datetime, time, timedelta

import pytest
from fastapi import status

from lash_studio.core.exceptions import SlotNotFoundError, SlotTakenError, ValidationError
from lash_studio.models.models import Appointment, AvailableSlot
from lash_studio.utils import slot_manager

# Studio-local wall clock used by the lead-time tests
NOW = datetime(2024, 6, 9, 10, 30)


@pytest.mark.unit
class TestOpenTimes:
    """Lead time and ordering of the client-facing time list"""

    def test_far_future_date_returns_all_open_times_sorted(self, db, make_slot):
        for t in ["15:00", "09:00", "11:00"]:
            make_slot("2024-06-20", t)
        make_slot("2024-06-20", "10:00", is_available=False)

        assert slot_manager.list_open_times(db, "2024-06-20", now=NOW) == ["09:00", "11:00", "15:00"]

    def test_boundary_date_drops_times_before_cutoff(self, db, make_slot):
        for t in ["09:00", "10:00", "10:30", "11:00", "14:00"]:
            make_slot("2024-06-10", t)

        # cutoff is 2024-06-10 10:30
        assert slot_manager.list_open_times(db, "2024-06-10", now=NOW) == ["10:30", "11:00", "14:00"]

    def test_date_before_cutoff_is_empty(self, db, make_slot):
        make_slot("2024-06-09", "16:00")

        assert slot_manager.list_open_times(db, "2024-06-09", now=NOW) == []

    def test_filters_by_location(self, db, make_slot):
        make_slot("2024-06-20", "09:00", location="Location A")
        make_slot("2024-06-20", "10:00", location="Location B")

        assert slot_manager.list_open_times(db, "2024-06-20", "location b", now=NOW) == ["10:00"]

    def test_duplicate_slots_listed_once(self, db, make_slot):
        make_slot("2024-06-20", "09:00")
        make_slot("2024-06-20", "09:00")

        assert slot_manager.list_open_times(db, "2024-06-20", now=NOW) == ["09:00"]

    def test_invalid_date_rejected(self, db):
        with pytest.raises(ValidationError) as exc:
            slot_manager.list_open_times(db, "20-06-2024", now=NOW)
        assert "date" in exc.value.errors

    def test_public_endpoint(self, client, make_slot, upcoming_date):
        make_slot(upcoming_date, "14:00", location="Location B")
        make_slot(upcoming_date, "09:00", location="Location B")

        response = client.get(f"/api/v1/available-times/{upcoming_date}?location=Location B")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == ["09:00", "14:00"]


@pytest.mark.unit
class TestSlotCreation:

    def test_batch_times_skip_lunch(self):
        times = slot_manager.generate_batch_times(time(9, 0), time(17, 0), 60, (time(12, 0), time(13, 59)))
        assert times == ["09:00", "10:00", "11:00", "14:00", "15:00", "16:00", "17:00"]

    def test_batch_create(self, db):
        slots = slot_manager.create_slot_batch(db, "2024-06-10", "09:00", "17:00", "Location A")

        assert [s.time for s in slots] == ["09:00", "10:00", "11:00", "14:00", "15:00", "16:00", "17:00"]
        assert all(s.is_available and s.location == "Location A" for s in slots)
        assert db.query(AvailableSlot).count() == 7

    def test_batch_end_before_start(self, db):
        with pytest.raises(ValidationError) as exc:
            slot_manager.create_slot_batch(db, "2024-06-10", "17:00", "09:00", "Location A")
        assert "end_time" in exc.value.errors

    def test_create_slot_normalizes_values(self, db):
        slot = slot_manager.create_slot(db, "2024-06-10", "9:00", "location b")

        assert slot.time == "09:00"
        assert slot.location == "Location B"

    def test_create_slot_reports_every_bad_field(self, db):
        with pytest.raises(ValidationError) as exc:
            slot_manager.create_slot(db, "tomorrow", "25:00", "Nowhere")
        assert set(exc.value.errors) == {"date", "time", "location"}

    def test_reject_past_time(self, db):
        with pytest.raises(ValidationError):
            slot_manager.create_slot(db, "2024-06-09", "09:00", "Location A", reject_past=True, now=NOW)

    def test_admin_create_slot(self, client, admin_headers, upcoming_date):
        response = client.post(
            "/api/v1/admin/slots",
            headers=admin_headers,
            json={"date": upcoming_date, "time": "10:00", "location": "Location A"},
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["time"] == "10:00"
        assert data["is_available"] is True

    def test_admin_create_slot_in_past(self, client, admin_headers):
        past_date = (date.today() - timedelta(days=3)).isoformat()
        response = client.post(
            "/api/v1/admin/slots",
            headers=admin_headers,
            json={"date": past_date, "time": "10:00", "location": "Location A"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "time" in response.json()["errors"]

    def test_admin_batch_endpoint(self, client, admin_headers, upcoming_date):
        response = client.post(
            "/api/v1/admin/slots/batch",
            headers=admin_headers,
            json={"date": upcoming_date, "start_time": "09:00", "end_time": "17:00", "location": "Location B"},
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["created"] == 7

    def test_admin_routes_require_auth(self, client, upcoming_date):
        response = client.post(
            "/api/v1/admin/slots",
            json={"date": upcoming_date, "time": "10:00", "location": "Location A"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.unit
class TestSlotAvailability:

    def test_claim_slot_only_once(self, db, make_slot):
        slot = make_slot("2024-06-10", "10:00")

        assert slot_manager.claim_slot(db, slot.id) is True
        assert slot_manager.claim_slot(db, slot.id) is False
        db.commit()
        db.refresh(slot)
        assert slot.is_available is False

    def test_reserve_missing_slot(self, db):
        with pytest.raises(SlotNotFoundError):
            slot_manager.reserve_slot(db, "2024-06-10", "10:00", "Location A")

    def test_reserve_taken_slot(self, db, make_slot):
        make_slot("2024-06-10", "10:00", is_available=False)

        with pytest.raises(SlotTakenError):
            slot_manager.reserve_slot(db, "2024-06-10", "10:00", "Location A")

    def test_reserve_uses_open_duplicate(self, db, make_slot):
        make_slot("2024-06-10", "10:00", is_available=False)
        open_slot = make_slot("2024-06-10", "10:00")

        assert slot_manager.reserve_slot(db, "2024-06-10", "10:00", "Location A").id == open_slot.id

    def test_release_slot(self, db, make_slot):
        slot = make_slot("2024-06-10", "10:00", is_available=False)
        slot_manager.release_slot(db, slot.id)
        db.commit()
        db.refresh(slot)

        assert slot.is_available is True

    def test_toggle_endpoint(self, client, admin_headers, make_slot, upcoming_date):
        slot = make_slot(upcoming_date, "10:00")

        response = client.patch(
            f"/api/v1/admin/slots/{slot.id}", headers=admin_headers, json={"is_available": False}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["is_available"] is False

    def test_toggle_missing_slot(self, client, admin_headers):
        response = client.patch("/api/v1/admin/slots/999", headers=admin_headers, json={"is_available": False})

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.unit
class TestSlotDeletion:

    def test_bulk_delete_keeps_booked_slots_by_default(self, db, make_slot):
        make_slot("2024-06-10", "09:00")
        make_slot("2024-06-10", "10:00")
        booked = make_slot("2024-06-10", "11:00", is_available=False)

        assert slot_manager.delete_slots_for_date(db, "2024-06-10") == 2
        assert [s.id for s in db.query(AvailableSlot).all()] == [booked.id]

    def test_bulk_delete_everything(self, db, make_slot):
        make_slot("2024-06-10", "09:00")
        make_slot("2024-06-10", "11:00", is_available=False)
        make_slot("2024-06-11", "11:00")

        assert slot_manager.delete_slots_for_date(db, "2024-06-10", only_available=False) == 2
        assert db.query(AvailableSlot).count() == 1

    def test_deleting_booked_slot_detaches_appointment(self, db, make_slot):
        slot = make_slot("2024-06-10", "11:00", is_available=False)
        appointment = Appointment(
            service_name="Brow Design", service_price=4000, date="2024-06-10", time="11:00",
            location="Location A", client_name="Ana", client_phone="74988117722",
            client_email="ana@example.com", slot_id=slot.id,
        )
        db.add(appointment)
        db.commit()

        slot_manager.delete_slot(db, slot.id)

        db.refresh(appointment)
        assert appointment.slot_id is None

    def test_purge_elapsed_slots(self, db, make_slot):
        make_slot("2024-06-08", "16:00")
        make_slot("2024-06-09", "10:00")
        make_slot("2024-06-09", "10:35")  # inside the grace period
        kept = make_slot("2024-06-09", "10:45")

        assert slot_manager.purge_elapsed_slots(db, now=NOW) == 3
        assert [s.id for s in db.query(AvailableSlot).all()] == [kept.id]

    def test_admin_listing_sweeps_elapsed_slots(self, client, admin_headers, make_slot, db):
        past_date = (date.today() - timedelta(days=3)).isoformat()
        make_slot(past_date, "10:00")

        response = client.get(f"/api/v1/admin/slots/{past_date}", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []
        assert db.query(AvailableSlot).count() == 0

    def test_admin_listing_shows_taken_slots(self, client, admin_headers, make_slot, upcoming_date):
        make_slot(upcoming_date, "10:00")
        make_slot(upcoming_date, "09:00", is_available=False)

        response = client.get(f"/api/v1/admin/slots/{upcoming_date}", headers=admin_headers)

        assert [(s["time"], s["is_available"]) for s in response.json()] == [("09:00", False), ("10:00", True)]

    def test_admin_bulk_delete_endpoint(self, client, admin_headers, make_slot, upcoming_date):
        make_slot(upcoming_date, "09:00")
        make_slot(upcoming_date, "10:00", is_available=False)

        response = client.delete(f"/api/v1/admin/slots/date/{upcoming_date}", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"deleted": 1}

    def test_admin_delete_single_slot(self, client, admin_headers, make_slot, upcoming_date):
        slot = make_slot(upcoming_date, "09:00")

        response = client.delete(f"/api/v1/admin/slots/{slot.id}", headers=admin_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
