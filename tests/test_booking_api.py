"""
Booking API integration tests
"""

from typing import Dict
from fastapi.testclient import TestClient


class TestBookingAPI:
    """Test suite for /api/v1/booking endpoints"""

    def _booking(self, data: Dict[str, str], start: str, end: str, staff_id: str = None) -> Dict:
        return {
            "customer_id": data["customer_id"],
            "service_ids": [data["service_id"]],
            "start_time": start,
            "end_time": end,
            "staff_id": staff_id or data["staff_id"],
        }

    def test_create_booking_returns_envelope(self, client: TestClient, org_headers, scheduling_data):
        response = client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:00:00", "2025-06-02T10:30:00"),
            headers=org_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "scheduled"
        assert body["data"]["total_price"] == "50.00"
        assert body["data"]["services"][0]["name"] == "Oil change"
        assert body["data"]["staff"]["name"] == "Sam"

    def test_conflicting_booking_returns_409(self, client: TestClient, org_headers, scheduling_data):
        first = client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:00:00", "2025-06-02T10:30:00"),
            headers=org_headers,
        )
        assert first.status_code == 201

        clash = client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:15:00", "2025-06-02T10:45:00"),
            headers=org_headers,
        )
        assert clash.status_code == 409
        body = clash.json()
        assert body["success"] is False
        assert body["error"] == "Conflict"
        assert body["details"]["booking_id"] == first.json()["data"]["id"]

        other_staff = client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:15:00", "2025-06-02T10:45:00",
                               staff_id=scheduling_data["other_staff_id"]),
            headers=org_headers,
        )
        assert other_staff.status_code == 201

    def test_available_slots(self, client: TestClient, org_headers):
        response = client.get(
            "/api/v1/booking/available-slots",
            params={"date": "2025-06-02", "duration": 60},
            headers=org_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["available_slots"] == ["09:00", "10:15"]
        assert data["duration"] == 60

    def test_available_slots_defaults_to_org_slot_length(self, client: TestClient, org_headers):
        response = client.get("/api/v1/booking/available-slots", params={"date": "2025-06-02"},
                              headers=org_headers)

        assert response.status_code == 200
        assert response.json()["data"]["duration"] == 60

    def test_cancelled_booking_releases_slot(self, client: TestClient, org_headers, scheduling_data):
        created = client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:00:00", "2025-06-02T10:30:00"),
            headers=org_headers,
        )
        booking_id = created.json()["data"]["id"]

        cancelled = client.put(f"/api/v1/booking/bookings/{booking_id}/status",
                               json={"status": "cancelled"}, headers=org_headers)
        assert cancelled.status_code == 200
        assert cancelled.json()["data"]["status"] == "cancelled"

        again = client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:00:00", "2025-06-02T10:30:00"),
            headers=org_headers,
        )
        assert again.status_code == 201

    def test_update_booking_notes(self, client: TestClient, org_headers, scheduling_data):
        created = client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:00:00", "2025-06-02T10:30:00"),
            headers=org_headers,
        )
        booking_id = created.json()["data"]["id"]

        response = client.put(f"/api/v1/booking/bookings/{booking_id}",
                              json={"notes": "Customer will wait"}, headers=org_headers)

        assert response.status_code == 200
        assert response.json()["data"]["notes"] == "Customer will wait"
        assert response.json()["data"]["start_time"].startswith("2025-06-02T10:00")

    def test_update_with_zero_start_time_keeps_schedule(self, client: TestClient, org_headers, scheduling_data):
        created = client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:00:00", "2025-06-02T10:30:00"),
            headers=org_headers,
        )
        booking_id = created.json()["data"]["id"]

        response = client.put(f"/api/v1/booking/bookings/{booking_id}",
                              json={"start_time": "0001-01-01T00:00:00Z", "notes": "Moved?"},
                              headers=org_headers)

        assert response.status_code == 200
        assert response.json()["data"]["start_time"].startswith("2025-06-02T10:00")
        assert response.json()["data"]["notes"] == "Moved?"

    def test_out_of_range_time_is_invalid(self, client: TestClient, org_headers, scheduling_data):
        payload = self._booking(scheduling_data, "9999-12-31T23:00:00-05:00", "9999-12-31T23:30:00-05:00")

        response = client.post("/api/v1/booking/bookings", json=payload, headers=org_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid"

    def test_get_and_delete_booking(self, client: TestClient, org_headers, scheduling_data):
        created = client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:00:00", "2025-06-02T10:30:00"),
            headers=org_headers,
        )
        booking_id = created.json()["data"]["id"]

        assert client.get(f"/api/v1/booking/bookings/{booking_id}", headers=org_headers).status_code == 200
        assert client.delete(f"/api/v1/booking/bookings/{booking_id}", headers=org_headers).status_code == 200

        missing = client.get(f"/api/v1/booking/bookings/{booking_id}", headers=org_headers)
        assert missing.status_code == 404
        assert missing.json()["error"] == "NotFound"

    def test_missing_service_ids_is_invalid(self, client: TestClient, org_headers, scheduling_data):
        payload = self._booking(scheduling_data, "2025-06-02T10:00:00", "2025-06-02T10:30:00")
        payload["service_ids"] = []

        response = client.post("/api/v1/booking/bookings", json=payload, headers=org_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid"

    def test_list_bookings_by_status(self, client: TestClient, org_headers, scheduling_data):
        client.post(
            "/api/v1/booking/bookings",
            json=self._booking(scheduling_data, "2025-06-02T10:00:00", "2025-06-02T10:30:00"),
            headers=org_headers,
        )

        scheduled = client.get("/api/v1/booking/bookings", params={"status": "scheduled"}, headers=org_headers)
        completed = client.get("/api/v1/booking/bookings", params={"status": "completed"}, headers=org_headers)

        assert len(scheduled.json()["data"]) == 1
        assert completed.json()["data"] == []


class TestTenantIsolation:

    def test_booking_invisible_to_other_organization(self, client: TestClient, org_headers,
                                                     scheduling_data, other_organization):
        created = client.post(
            "/api/v1/booking/bookings",
            json={
                "customer_id": scheduling_data["customer_id"],
                "service_ids": [scheduling_data["service_id"]],
                "start_time": "2025-06-02T10:00:00",
                "end_time": "2025-06-02T10:30:00",
            },
            headers=org_headers,
        )
        booking_id = created.json()["data"]["id"]
        other_headers = {"X-Organization-ID": other_organization.id}

        response = client.get(f"/api/v1/booking/bookings/{booking_id}", headers=other_headers)
        assert response.status_code == 404

        listing = client.get("/api/v1/booking/bookings", headers=other_headers)
        assert listing.json()["data"] == []

    def test_other_organization_cannot_use_foreign_customer(self, client: TestClient, scheduling_data,
                                                            other_organization):
        response = client.post(
            "/api/v1/booking/bookings",
            json={
                "customer_id": scheduling_data["customer_id"],
                "service_ids": [scheduling_data["service_id"]],
                "start_time": "2025-06-02T10:00:00",
                "end_time": "2025-06-02T10:30:00",
            },
            headers={"X-Organization-ID": other_organization.id},
        )
        assert response.status_code == 404

    def test_missing_organization_is_unauthorized(self, client: TestClient):
        response = client.get("/api/v1/booking/bookings")

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Unauthorized", "details": "Organization not found"}

    def test_bearer_token_supplies_organization(self, client: TestClient, auth_headers):
        response = client.get("/api/v1/booking/settings", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Test Garage"

    def test_invalid_bearer_token_is_unauthorized(self, client: TestClient):
        response = client.get("/api/v1/booking/bookings", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401


class TestBookingMasterDataAPI:

    def test_create_organization_defaults_weekday_hours(self, client: TestClient):
        response = client.post("/api/v1/organizations", json={"name": "New Shop"})

        assert response.status_code == 201
        hours = response.json()["data"]["business_hours"]
        assert hours["monday"] == {"open": "09:00", "close": "17:00"}
        assert hours["sunday"] == {}

    def test_update_settings_merges_hours(self, client: TestClient, org_headers):
        response = client.put(
            "/api/v1/booking/settings",
            json={"buffer_minutes": 0, "business_hours": {"tuesday": {"open": "10:00", "close": "14:00"}}},
            headers=org_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["buffer_minutes"] == 0
        assert data["business_hours"]["monday"] == {"open": "09:00", "close": "12:00"}
        assert data["business_hours"]["tuesday"] == {"open": "10:00", "close": "14:00"}

    def test_bad_business_hours_format(self, client: TestClient, org_headers):
        response = client.put(
            "/api/v1/booking/settings",
            json={"business_hours": {"monday": {"open": "9am", "close": "17:00"}}},
            headers=org_headers,
        )
        assert response.status_code == 400

    def test_customer_vehicle_staff_service_round(self, client: TestClient, org_headers):
        customer = client.post("/api/v1/booking/customers", json={"first_name": "Lin"}, headers=org_headers)
        assert customer.status_code == 201
        customer_id = customer.json()["data"]["id"]

        vehicle = client.post("/api/v1/booking/vehicles",
                              json={"customer_id": customer_id, "make": "VW"}, headers=org_headers)
        staff = client.post("/api/v1/booking/staff", json={"name": "Pat"}, headers=org_headers)
        service = client.post("/api/v1/booking/services",
                              json={"name": "MOT", "price": "45.00", "duration_minutes": 45},
                              headers=org_headers)

        assert vehicle.status_code == 201
        assert staff.status_code == 201
        assert service.status_code == 201

        vehicles = client.get("/api/v1/booking/vehicles", params={"customer_id": customer_id},
                              headers=org_headers)
        assert [v["make"] for v in vehicles.json()["data"]] == ["VW"]

    def test_vehicle_for_unknown_customer(self, client: TestClient, org_headers):
        response = client.post("/api/v1/booking/vehicles", json={"customer_id": "nope"}, headers=org_headers)
        assert response.status_code == 404
