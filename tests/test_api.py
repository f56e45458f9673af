import pytest
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient, ASGITransport

from src.api.dependencies import get_lock_registry, get_payment_gateway
from src.api import dependencies
from src.infrastructure.persistence.database import get_async_db
from src import main_api
from src.main_api import create_app


@pytest.fixture
async def client(test_db, locks, gateway):
    """API client wired to the per-test database."""
    app = create_app()

    async def override_get_async_db():
        async with test_db() as session:
            yield session

    app.dependency_overrides[get_async_db] = override_get_async_db
    app.dependency_overrides[get_lock_registry] = lambda: locks
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def window(start: datetime, hours: float = 2) -> dict:
    return {
        "startTime": start.isoformat(),
        "endTime": (start + timedelta(hours=hours)).isoformat(),
    }


class TestReservationEndpoints:

    async def test_create_reservation(self, client, spot, tomorrow_at):
        response = await client.post(
            "/reservations",
            json={"parkingSpotId": spot.id, "userId": "user_1", "price": 120, **window(tomorrow_at(14))},
        )

        assert response.status_code == 201
        reservation = response.json()["reservation"]
        assert reservation["parkingSpotId"] == spot.id
        assert reservation["status"] == "CONFIRMED"
        assert reservation["price"] == 120.0
        assert reservation["qrCode"]
        assert "parking_spot_id" not in reservation

    async def test_snake_case_body_is_accepted(self, client, spot, tomorrow_at):
        start = tomorrow_at(9)
        response = await client.post(
            "/reservations",
            json={
                "parking_spot_id": spot.id,
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=1)).isoformat(),
            },
        )

        assert response.status_code == 201
        assert response.json()["reservation"]["price"] == 100.0

    async def test_overlap_returns_conflict(self, client, spot, tomorrow_at):
        first = await client.post("/reservations", json={"parkingSpotId": spot.id, **window(tomorrow_at(14))})
        second = await client.post("/reservations", json={"parkingSpotId": spot.id, **window(tomorrow_at(16), 1)})

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["error"] == "CONFLICT"

    async def test_unknown_spot(self, client, location_with_spots, tomorrow_at):
        response = await client.post("/reservations", json={"parkingSpotId": 999, **window(tomorrow_at(14))})

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    async def test_invalid_window(self, client, spot, tomorrow_at):
        response = await client.post("/reservations", json={"parkingSpotId": spot.id, **window(tomorrow_at(14), -1)})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert "start time must be before end time" in body["message"]

    async def test_malformed_body(self, client):
        response = await client.post("/reservations", json={"startTime": "tomorrow"})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_get_confirm_and_cancel(self, client, spot, tomorrow_at):
        created = await client.post("/reservations", json={"parkingSpotId": spot.id, **window(tomorrow_at(10))})
        reservation_id = created.json()["reservation"]["id"]

        fetched = await client.get(f"/reservations/{reservation_id}")
        assert fetched.status_code == 200
        assert fetched.json()["reservation"]["id"] == reservation_id

        confirmed = await client.post(f"/reservations/{reservation_id}/confirm", json={"paymentId": "pi_123"})
        assert confirmed.status_code == 200
        assert confirmed.json()["reservation"]["paymentId"] == "pi_123"
        assert confirmed.json()["reservation"]["timerStartedAt"] is not None

        cancelled = await client.post(f"/reservations/{reservation_id}/cancel")
        assert cancelled.status_code == 200
        assert cancelled.json()["reservation"]["status"] == "CANCELLED"

        rebooked = await client.post("/reservations", json={"parkingSpotId": spot.id, **window(tomorrow_at(10))})
        assert rebooked.status_code == 201

    async def test_get_unknown_reservation(self, client):
        response = await client.get("/reservations/12345")

        assert response.status_code == 404
        assert response.json() == {"error": "NOT_FOUND", "message": "Reservation 12345 not found"}

    async def test_verify_qr(self, client, spot, make_reservation, tomorrow_at):
        now = datetime.now(timezone.utc)
        await make_reservation(spot.id, now - timedelta(hours=1), now + timedelta(hours=1), qr_code="qr-now")

        valid = await client.post("/reservations/verify-qr", json={"qrCode": "qr-now"})
        assert valid.status_code == 200
        assert valid.json()["valid"] is True
        assert valid.json()["reservation"]["qrCode"] == "qr-now"

        created = await client.post("/reservations", json={"parkingSpotId": spot.id, **window(tomorrow_at(10))})
        early = await client.post(
            "/reservations/verify-qr", json={"qrCode": created.json()["reservation"]["qrCode"]}
        )
        assert early.status_code == 200
        assert early.json()["valid"] is False

        unknown = await client.post("/reservations/verify-qr", json={"qrCode": "nope"})
        assert unknown.status_code == 404


class TestAdditionalChargeEndpoints:

    @pytest.fixture
    async def overdue(self, spot, make_reservation):
        end = datetime.now(timezone.utc) - timedelta(minutes=5)
        return await make_reservation(spot.id, end - timedelta(hours=2), end, payment_id="pi_original")

    async def test_overstay_status(self, client, overdue):
        response = await client.get(f"/reservations/{overdue.id}/overstay")

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "EXCEEDED"
        assert body["exceededMinutes"] >= 5
        assert body["additionalCharge"] == 20.0

    async def test_charge_once(self, client, overdue, gateway):
        first = await client.post(
            f"/reservations/{overdue.id}/additional-charge", json={"amount": 20, "exceededMinutes": 5}
        )
        second = await client.post(
            f"/reservations/{overdue.id}/additional-charge", json={"amount": 20, "exceededMinutes": 6}
        )

        assert first.status_code == 200
        assert first.json()["created"] is True
        assert first.json()["charge"]["status"] == "PAID"
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["message"] == "A paid additional charge already exists"
        assert second.json()["charge"]["id"] == first.json()["charge"]["id"]
        assert len(gateway.requests) == 1

        status = await client.get(f"/reservations/{overdue.id}/overstay")
        assert status.json()["state"] == "SETTLED"

    async def test_declined_charge_is_reported_and_retried(self, client, overdue, gateway):
        gateway.decline = True
        declined = await client.post(
            f"/reservations/{overdue.id}/additional-charge", json={"amount": 20, "exceededMinutes": 5}
        )

        assert declined.status_code == 200
        assert declined.json()["created"] is True
        assert declined.json()["charge"]["status"] == "FAILED"
        assert declined.json()["message"] == "Additional charge declined"

        gateway.decline = False
        retried = await client.post(
            f"/reservations/{overdue.id}/additional-charge", json={"amount": 20, "exceededMinutes": 5}
        )

        assert retried.json()["created"] is True
        assert retried.json()["charge"]["status"] == "PAID"
        assert retried.json()["message"] == "Additional charge processed"
        assert len(gateway.requests) == 2

    @pytest.mark.parametrize("amount", [0, -10])
    async def test_non_positive_amount(self, client, overdue, amount):
        response = await client.post(
            f"/reservations/{overdue.id}/additional-charge", json={"amount": amount, "exceededMinutes": 5}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_unknown_reservation(self, client):
        response = await client.post("/reservations/999/additional-charge", json={"amount": 20, "exceededMinutes": 5})

        assert response.status_code == 404


class TestLocationEndpoints:

    async def test_list_and_create(self, client):
        created = await client.post(
            "/locations", json={"name": "Estacionamiento Sur", "address": "Av. Revolución 900, Monterrey"}
        )
        assert created.status_code == 201

        listed = await client.get("/locations")
        assert [l["name"] for l in listed.json()] == ["Estacionamiento Sur"]

    async def test_spots_for_day(self, client, location_with_spots, spot, tomorrow_at):
        await client.post("/reservations", json={"parkingSpotId": spot.id, **window(tomorrow_at(14))})

        day = tomorrow_at(0).date().isoformat()
        response = await client.get(f"/locations/{location_with_spots.id}/spots", params={"date": day})

        assert response.status_code == 200
        body = response.json()
        assert body["date"] == day
        availability = {s["id"]: s["isAvailable"] for s in body["parkingSpots"]}
        assert availability[spot.id] is False
        assert sum(availability.values()) == 2

    async def test_admin_spot_management(self, client, location_with_spots):
        added = await client.post(
            f"/admin/locations/{location_with_spots.id}/parking-spots", json={"spotNumber": "9", "price": 30}
        )
        assert added.status_code == 201
        spot_id = added.json()["id"]

        priced = await client.patch(f"/admin/parking-spots/{spot_id}/price", json={"price": 45})
        assert priced.json()["price"] == 45.0

        toggled = await client.post(f"/admin/parking-spots/{spot_id}/toggle-availability")
        assert toggled.json()["isAvailable"] is False

        duplicate = await client.post(
            f"/admin/locations/{location_with_spots.id}/parking-spots", json={"spotNumber": "9", "price": 30}
        )
        assert duplicate.status_code == 400

    async def test_admin_reschedule(self, client, spot, tomorrow_at):
        created = await client.post("/reservations", json={"parkingSpotId": spot.id, **window(tomorrow_at(10))})
        reservation_id = created.json()["reservation"]["id"]

        moved = await client.put(f"/admin/reservations/{reservation_id}", json=window(tomorrow_at(15), 3))

        assert moved.status_code == 200
        assert moved.json()["reservation"]["price"] == 140.0


class TestCronEndpoint:

    async def test_requires_secret(self, client, monkeypatch):
        monkeypatch.setattr(dependencies.settings, "CRON_SECRET", "s3cret")

        missing = await client.get("/cron/check-expired-reservations")
        wrong = await client.get("/cron/check-expired-reservations", headers={"Authorization": "Bearer nope"})

        assert missing.status_code == 401
        assert missing.json()["error"] == "UNAUTHORIZED"
        assert wrong.status_code == 401

    async def test_runs_sweep(self, client, monkeypatch, spot, make_reservation):
        monkeypatch.setattr(dependencies.settings, "CRON_SECRET", "s3cret")
        now = datetime.now(timezone.utc)
        await make_reservation(spot.id, now - timedelta(hours=3), now - timedelta(hours=2))

        response = await client.get(
            "/cron/check-expired-reservations", headers={"Authorization": "Bearer s3cret"}
        )

        assert response.status_code == 200
        assert response.json() == {"expired": 0, "completed": 1, "spotsUpdated": 0}


class TestStartup:

    async def test_lifespan_seeds_outside_production(self, monkeypatch):
        calls = []
        monkeypatch.setattr(main_api, "init_db", lambda seed: calls.append(seed))

        async with main_api.lifespan(create_app()):
            pass
        monkeypatch.setattr(main_api.settings, "ENVIRONMENT", "production")
        async with main_api.lifespan(create_app()):
            pass

        assert calls == [True, False]
