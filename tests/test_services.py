"""
Unit tests for service catalog endpoints
"""
import pytest
from fastapi import status

from lash_studio.models.models import Appointment, Service


@pytest.mark.unit
class TestServiceCRUD:
    """Tests for service CRUD operations"""

    def test_create_service(self, client, admin_headers):
        response = client.post(
            "/api/v1/services",
            headers=admin_headers,
            json={
                "name": "Volume Lashes",
                "description": "Russian volume",
                "location": "location b",
                "category": "Lashes",
                "price": 12990,
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["location"] == "Location B"
        assert data["category"] == "lashes"
        assert data["price"] == 12990

    def test_create_service_unknown_location(self, client, admin_headers):
        response = client.post(
            "/api/v1/services",
            headers=admin_headers,
            json={"name": "X", "location": "Downtown", "category": "lashes", "price": 1000},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "location" in response.json()["errors"]

    def test_create_service_zero_price(self, client, admin_headers):
        response = client.post(
            "/api/v1/services",
            headers=admin_headers,
            json={"name": "X", "location": "Location A", "category": "lashes", "price": 0},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_create_service_unauthorized(self, client):
        response = client.post(
            "/api/v1/services",
            json={"name": "X", "location": "Location A", "category": "lashes", "price": 1000},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_get_services_list(self, client, brow_service_a, lash_service_b):
        response = client.get("/api/v1/services")

        assert response.status_code == status.HTTP_200_OK
        assert [s["id"] for s in response.json()] == [brow_service_a.id, lash_service_b.id]

    def test_get_services_for_location(self, client, brow_service_a, lash_service_b):
        response = client.get("/api/v1/services?location=Location A")

        assert [s["id"] for s in response.json()] == [brow_service_a.id]

    def test_get_nonexistent_service(self, client):
        response = client.get("/api/v1/services/9999")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_service(self, client, admin_headers, brow_service_a):
        response = client.put(
            f"/api/v1/services/{brow_service_a.id}",
            headers=admin_headers,
            json={"price": 4500, "description": "With tint"},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["price"] == 4500
        assert data["description"] == "With tint"
        assert data["name"] == "Brow Design"

    def test_price_change_keeps_booked_snapshot(self, client, admin_headers, brow_service_a, db):
        appointment = Appointment(
            service_id=brow_service_a.id, service_ids=str(brow_service_a.id), service_name="Brow Design",
            service_price=4000, service_categories="eyebrows", date="2030-03-04", time="10:00",
            location="Location A", client_name="Ana", client_phone="74988117722", client_email="ana@example.com",
        )
        db.add(appointment)
        db.commit()

        client.put(f"/api/v1/services/{brow_service_a.id}", headers=admin_headers, json={"price": 9900})

        db.refresh(appointment)
        assert appointment.service_price == 4000

    def test_delete_service(self, client, admin_headers, brow_service_a, db):
        response = client.delete(f"/api/v1/services/{brow_service_a.id}", headers=admin_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert db.query(Service).count() == 0


@pytest.mark.unit
class TestCatalog:

    def test_catalog_groups_by_preferred_category_order(self, client, db):
        db.add_all([
            Service(name="Waxing", location="Location B", category="hair-removal", price=3000),
            Service(name="Nail Art", location="Location B", category="nails", price=2000),
            Service(name="Brow Design", location="Location B", category="eyebrows", price=4000),
            Service(name="Classic Set", location="Location B", category="lashes", price=5000),
            Service(name="Brow Tint", location="Location B", category="brow-tint", price=2500),
            Service(name="Volume Set", location="Location B", category="lashes", price=7000),
            Service(name="Elsewhere", location="Location A", category="lashes", price=5000),
        ])
        db.commit()

        response = client.get("/api/v1/services/catalog/location b")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["location"] == "Location B"
        assert [c["category"] for c in data["categories"]] == [
            "lashes", "eyebrows", "hair-removal", "brow-tint", "nails",
        ]
        assert [s["name"] for s in data["categories"][0]["services"]] == ["Classic Set", "Volume Set"]

    def test_catalog_round_trip_preserves_fields(self, client, admin_headers):
        created = client.post(
            "/api/v1/services",
            headers=admin_headers,
            json={"name": "Lash Lift", "description": "Keratin", "location": "Location A",
                  "category": "lashes", "price": 10999},
        ).json()

        catalog = client.get("/api/v1/services/catalog/Location A").json()

        assert catalog["categories"][0]["services"][0] == created

    def test_catalog_unknown_location(self, client):
        response = client.get("/api/v1/services/catalog/Downtown")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
