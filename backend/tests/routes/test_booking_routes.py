# backend/tests/routes/test_booking_routes.py
"""
Route tests for bookings, availability, storage extensions and overstays.

Requests run against a real SQLite database through the ``client`` fixture;
domain errors must come back as ``{"detail": {"message", "code", "details"}}``.
"""

from datetime import timedelta

from fastapi import status

from kitchen_booking.models.booking import StorageBooking
from tests.utils.booking_builders import BOOKING_DATE, add_storage_booking


def _booking_payload(kitchen_id, chef_id, **overrides):
    payload = {
        "kind": "kitchen_only",
        "kitchen_id": kitchen_id,
        "chef_id": chef_id,
        "booking_date": BOOKING_DATE.isoformat(),
        "start_time": "09:00",
        "end_time": "11:00",
    }
    payload.update(overrides)
    return payload


class TestAvailabilityRoutes:
    def test_list_slots(self, client, kitchen):
        response = client.get(f"/api/kitchens/{kitchen.id}/slots", params={"date": BOOKING_DATE.isoformat()})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["kitchen_id"] == kitchen.id
        assert len(data["slots"]) == 8
        assert data["slots"][0] == {
            "time": "09:00",
            "capacity": 2,
            "booked_count": 0,
            "available": 2,
            "is_fully_booked": False,
        }

    def test_available_slots(self, client, kitchen):
        response = client.get(
            f"/api/kitchens/{kitchen.id}/available-slots", params={"date": BOOKING_DATE.isoformat()}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()[0] == {"time": "09:00", "available": True}

    def test_unknown_kitchen_is_404(self, client):
        response = client.get("/api/kitchens/missing/slots", params={"date": BOOKING_DATE.isoformat()})
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["code"] == "KITCHEN_NOT_FOUND"

    def test_validate_range(self, client, kitchen):
        response = client.post(
            "/api/availability/validate",
            json={
                "kitchen_id": kitchen.id,
                "booking_date": BOOKING_DATE.isoformat(),
                "start_time": "09:30",
                "end_time": "11:00",
            },
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "valid": False,
            "error": "Bookings must start on an hourly slot, got 09:30",
            "code": "MISALIGNED_SLOT",
        }


class TestBookingRoutes:
    def test_create_booking_with_storage(self, client, kitchen, storage_listing, granted_chef):
        payload = _booking_payload(
            kitchen.id,
            granted_chef,
            kind="with_storage",
            storage=[storage_listing.id, "missing-listing"],
        )

        response = client.post("/api/bookings", json=payload)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        booking = data["booking"]
        assert booking["start_time"] == "09:00"
        assert booking["end_time"] == "11:00"
        assert booking["duration_hours"] == 2.0
        assert booking["total_price_cents"] == 12600
        assert booking["storage_items"][0]["storage_listing_id"] == storage_listing.id
        assert data["succeeded"][0]["addon_type"] == "storage"
        assert data["failed"] == [
            {
                "addon_type": "storage",
                "listing_id": "missing-listing",
                "code": "STORAGE_LISTING_NOT_FOUND",
                "reason": "Storage listing missing-listing not found",
            }
        ]

    def test_missing_chef_id(self, client, kitchen):
        response = client.post("/api/bookings", json=_booking_payload(kitchen.id, None))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["code"] == "CHEF_ID_REQUIRED"

    def test_access_denied(self, client, kitchen, chef_id):
        response = client.post("/api/bookings", json=_booking_payload(kitchen.id, chef_id))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"]["code"] == "ACCESS_DENIED"

    def test_unknown_kind_is_422(self, client, kitchen, granted_chef):
        response = client.post("/api/bookings", json=_booking_payload(kitchen.id, granted_chef, kind="catering"))
        assert response.status_code == 422

    def test_full_slot_is_409(self, client, kitchen, granted_chef):
        for _ in range(2):
            assert client.post("/api/bookings", json=_booking_payload(kitchen.id, granted_chef)).status_code == 201

        response = client.post("/api/bookings", json=_booking_payload(kitchen.id, granted_chef))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"]["code"] == "SLOT_NO_LONGER_AVAILABLE"

    def test_lifecycle(self, client, kitchen, granted_chef):
        booking_id = client.post("/api/bookings", json=_booking_payload(kitchen.id, granted_chef)).json()[
            "booking"
        ]["id"]

        assert client.get(f"/api/bookings/{booking_id}").json()["status"] == "pending"
        confirmed = client.post(f"/api/bookings/{booking_id}/confirm").json()
        assert confirmed["status"] == "confirmed"
        assert confirmed["payment_status"] == "paid"

        cancelled = client.post(f"/api/bookings/{booking_id}/cancel", json={"reason": "Closed"})
        assert cancelled.json()["status"] == "cancelled"

        again = client.post(f"/api/bookings/{booking_id}/cancel")
        assert again.status_code == 422
        assert again.json()["detail"]["code"] == "INVALID_STATUS_TRANSITION"

    def test_portal_booking(self, client, kitchen):
        response = client.post(
            "/api/bookings/portal",
            json={
                "kitchen_id": kitchen.id,
                "booking_date": BOOKING_DATE.isoformat(),
                "start_time": "12:00",
                "end_time": "13:00",
                "booking_type": "portal",
                "external_contact": {"name": "Market Stall"},
            },
        )
        assert response.status_code == status.HTTP_201_CREATED
        booking = response.json()["booking"]
        assert booking["status"] == "confirmed"
        assert booking["external_contact_name"] == "Market Stall"

    def test_get_unknown_booking(self, client):
        response = client.get("/api/bookings/missing")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["code"] == "BOOKING_NOT_FOUND"


class TestStorageAndOverstayRoutes:
    def test_extend_and_quote(self, client, db, storage_listing):
        end_date = BOOKING_DATE + timedelta(days=1)
        storage = add_storage_booking(db, storage_listing.id, BOOKING_DATE, end_date, unit_price_cents=2000)

        quote = client.get(
            f"/api/storage-bookings/{storage.id}/extension-quote",
            params={"new_end_date": (end_date + timedelta(days=2)).isoformat()},
        )
        assert quote.status_code == 200
        assert quote.json()["extension_total_price_cents"] == 4200

        response = client.post(
            f"/api/storage-bookings/{storage.id}/extend",
            json={"new_end_date": (end_date + timedelta(days=2)).isoformat()},
        )
        assert response.status_code == 200
        assert response.json()["storage_booking"]["total_price_cents"] == 6000

        rejected = client.post(
            f"/api/storage-bookings/{storage.id}/extend", json={"new_end_date": end_date.isoformat()}
        )
        assert rejected.status_code == 400
        assert rejected.json()["detail"]["code"] == "INVALID_EXTENSION"

    def test_pending_extension_flow(self, client, db, storage_listing):
        end_date = BOOKING_DATE + timedelta(days=1)
        storage = add_storage_booking(db, storage_listing.id, BOOKING_DATE, end_date)

        created = client.post(
            f"/api/storage-bookings/{storage.id}/pending-extensions",
            json={"new_end_date": (end_date + timedelta(days=1)).isoformat(), "payment_session_id": "cs_route"},
        )
        assert created.status_code == 201
        assert created.json()["status"] == "pending"

        completed = client.post(
            "/api/storage-bookings/pending-extensions/cs_route/complete", json={"payment_intent_id": "pi_route"}
        )
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

        db.expire_all()
        assert db.get(StorageBooking, storage.id).end_date == end_date + timedelta(days=1)

    def test_overstay_review_flow(self, client, db, storage_listing):
        end_date = BOOKING_DATE + timedelta(days=5)
        storage = add_storage_booking(db, storage_listing.id, BOOKING_DATE, end_date)

        detected = client.post(
            "/api/overstays/detect", json={"today": (end_date + timedelta(days=3)).isoformat()}
        ).json()
        assert detected["failed"] == []
        record = detected["succeeded"][0]
        assert record["calculated_penalty_cents"] == 6000

        listed = client.get("/api/overstays", params={"status": "pending_review"}).json()
        assert [r["id"] for r in listed] == [record["id"]]

        invalid = client.post(
            f"/api/overstays/{record['id']}/decision", json={"manager_id": "m1", "action": "waive"}
        )
        assert invalid.status_code == 422

        decided = client.post(
            f"/api/overstays/{record['id']}/decision",
            json={"manager_id": "m1", "action": "adjust", "final_penalty_cents": 3000},
        )
        assert decided.json()["status"] == "penalty_approved"

        applied = client.post(f"/api/overstays/{record['id']}/apply")
        assert applied.status_code == 200
        assert applied.json()["status"] == "charged"

        db.expire_all()
        charged = db.get(StorageBooking, storage.id)
        assert charged.end_date == end_date + timedelta(days=3)
        assert charged.total_price_cents == 5000 + 3000

        history = client.get(f"/api/overstays/{record['id']}/history").json()
        assert [(e["previous_status"], e["new_status"]) for e in history] == [
            ("penalty_approved", "charged"),
            ("pending_review", "penalty_approved"),
            (None, "pending_review"),
        ]
        assert history[1]["created_by"] == "m1"
        assert history[1]["event_metadata"]["final_penalty_cents"] == 3000

    def test_history_of_unknown_record_is_404(self, client):
        response = client.get("/api/overstays/missing/history")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["code"] == "OVERSTAY_NOT_FOUND"

    def test_unpaid_penalty_blocks_booking(self, client, db, kitchen, storage_listing, granted_chef):
        end_date = BOOKING_DATE - timedelta(days=10)
        add_storage_booking(db, storage_listing.id, end_date - timedelta(days=2), end_date, chef_id=granted_chef)
        client.post("/api/overstays/detect", json={"today": (end_date + timedelta(days=3)).isoformat()})

        unpaid = client.get(f"/api/overstays/chefs/{granted_chef}/unpaid").json()
        assert unpaid["has_unpaid_penalties"] is True
        assert unpaid["total_owed_cents"] == 6000
        assert unpaid["items"][0]["status"] == "pending_review"

        response = client.post("/api/bookings", json=_booking_payload(kitchen.id, granted_chef))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        detail = response.json()["detail"]
        assert detail["code"] == "UNPAID_OVERSTAY_PENALTIES"
        assert detail["details"]["total_count"] == 1


def test_prometheus_metrics_endpoint(client, kitchen):
    client.get(f"/api/kitchens/{kitchen.id}/slots", params={"date": BOOKING_DATE.isoformat()})

    response = client.get("/metrics/prometheus")

    assert response.status_code == 200
    assert "kitchen_booking_service_operations_total" in response.text


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
