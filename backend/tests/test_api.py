"""
Tests for the HTTP surface: routes, status codes and error bodies.
"""

import pytest
from httpx import AsyncClient

from booking_engine.core.config import get_settings
from booking_engine.services import offering_locks


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "booking_attempts_total" in response.text


@pytest.mark.asyncio
async def test_list_offerings(client: AsyncClient, test_offering, past_offering):
    response = await client.get("/api/v1/offerings/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["cached"] is False
    assert data["offerings"][0]["id"] == test_offering.id
    assert data["offerings"][0]["spots_left"] == 3

    everything = await client.get("/api/v1/offerings/", params={"upcoming_only": False})
    assert everything.json()["total"] == 2


@pytest.mark.asyncio
async def test_get_offering_not_found(client: AsyncClient):
    response = await client.get("/api/v1/offerings/9999")
    assert response.status_code == 404
    assert response.json()["error"] == "class_not_found"


@pytest.mark.asyncio
async def test_book_and_count(client: AsyncClient, participant_headers, test_offering):
    response = await client.post(
        "/api/v1/bookings/",
        json={"offering_id": test_offering.id, "payment_status": "completed"},
        headers=participant_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["offering_id"] == test_offering.id
    assert data["booking_status"] == "confirmed"
    assert data["payment_status"] == "completed"

    count = await client.get(f"/api/v1/offerings/{test_offering.id}/participants/count")
    assert count.json() == {"offering_id": test_offering.id, "paid_bookings": 1, "occupancy": 1, "capacity": 3}

    audit = await client.get(f"/api/v1/offerings/{test_offering.id}/audit")
    assert [row["action"] for row in audit.json()] == ["increment"]


@pytest.mark.asyncio
async def test_book_without_participant_header(client: AsyncClient, test_offering):
    response = await client.post("/api/v1/bookings/", json={"offering_id": test_offering.id})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_duplicate_booking(client: AsyncClient, participant_headers, test_offering):
    first = await client.post(
        "/api/v1/bookings/", json={"offering_id": test_offering.id}, headers=participant_headers
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/v1/bookings/", json={"offering_id": test_offering.id}, headers=participant_headers
    )
    assert second.status_code == 409
    assert second.json()["error"] == "already_booked"


@pytest.mark.asyncio
async def test_book_full_offering(client: AsyncClient, participant_headers, full_offering):
    response = await client.post(
        "/api/v1/bookings/",
        json={"offering_id": full_offering.id, "payment_status": "completed"},
        headers=participant_headers,
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "class_full"
    assert body["context"]["max_participants"] == 2


@pytest.mark.asyncio
async def test_book_past_offering(client: AsyncClient, participant_headers, past_offering):
    response = await client.post(
        "/api/v1/bookings/", json={"offering_id": past_offering.id}, headers=participant_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "class_past"


@pytest.mark.asyncio
async def test_cancel_booking(client: AsyncClient, participant_headers, other_participant_headers, test_offering):
    created = await client.post(
        "/api/v1/bookings/",
        json={"offering_id": test_offering.id, "payment_status": "completed"},
        headers=participant_headers,
    )
    booking_id = created.json()["id"]

    denied = await client.delete(f"/api/v1/bookings/{booking_id}", headers=other_participant_headers)
    assert denied.status_code == 404
    assert denied.json()["error"] == "booking_not_found_or_access_denied"

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=participant_headers)
    assert response.status_code == 200
    assert response.json()["booking_status"] == "cancelled"
    assert response.json()["payment_status"] == "refunded"

    offering = await client.get(f"/api/v1/offerings/{test_offering.id}")
    assert offering.json()["occupancy"] == 0


@pytest.mark.asyncio
async def test_payment_update_flow(client: AsyncClient, participant_headers, test_offering):
    created = await client.post(
        "/api/v1/bookings/", json={"offering_id": test_offering.id}, headers=participant_headers
    )
    booking_id = created.json()["id"]

    invalid = await client.patch(f"/api/v1/bookings/{booking_id}/payment", json={"payment_status": "refunded"})
    assert invalid.status_code == 409
    assert invalid.json()["context"] == {
        "from_status": "pending",
        "to_status": "refunded",
        "booking_status": "confirmed",
    }

    paid = await client.patch(f"/api/v1/bookings/{booking_id}/payment", json={"payment_status": "completed"})
    assert paid.status_code == 200
    assert paid.json()["payment_status"] == "completed"

    offering = await client.get(f"/api/v1/offerings/{test_offering.id}")
    assert offering.json()["occupancy"] == 1


@pytest.mark.asyncio
async def test_get_booking_access(client: AsyncClient, participant_headers, other_participant_headers, test_offering):
    created = await client.post(
        "/api/v1/bookings/", json={"offering_id": test_offering.id}, headers=participant_headers
    )
    booking_id = created.json()["id"]

    own = await client.get(f"/api/v1/bookings/{booking_id}", headers=participant_headers)
    assert own.status_code == 200

    other = await client.get(f"/api/v1/bookings/{booking_id}", headers=other_participant_headers)
    assert other.status_code == 403
    assert other.json()["error"] == "access_denied"

    listing = await client.get("/api/v1/bookings/", headers=participant_headers)
    assert [b["id"] for b in listing.json()] == [booking_id]


@pytest.mark.asyncio
async def test_booking_status_reactivation(client: AsyncClient, participant_headers, test_offering):
    created = await client.post(
        "/api/v1/bookings/", json={"offering_id": test_offering.id}, headers=participant_headers
    )
    booking_id = created.json()["id"]
    await client.delete(f"/api/v1/bookings/{booking_id}", headers=participant_headers)

    response = await client.patch(
        f"/api/v1/bookings/{booking_id}/status",
        json={"booking_status": "confirmed"},
        headers=participant_headers,
    )
    assert response.status_code == 200
    assert response.json()["booking_status"] == "confirmed"


@pytest.mark.asyncio
async def test_availability_and_validate(client: AsyncClient, participant_headers, test_offering):
    availability = await client.get(
        f"/api/v1/offerings/{test_offering.id}/availability", headers=participant_headers
    )
    assert availability.json()["can_book"] is True

    validation = await client.post(
        "/api/v1/bookings/validate",
        json={"operation": "create", "offering_id": test_offering.id},
        headers=participant_headers,
    )
    assert validation.status_code == 200
    assert validation.json()["valid"] is True


@pytest.mark.asyncio
async def test_system_busy_sets_retry_after(client: AsyncClient, participant_headers, test_offering, monkeypatch):
    monkeypatch.setattr(get_settings(), "LOCK_TIMEOUT_SECONDS", 0.05)
    lock = offering_locks.get_lock(test_offering.id)
    await lock.acquire()
    try:
        response = await client.post(
            "/api/v1/bookings/", json={"offering_id": test_offering.id}, headers=participant_headers
        )
    finally:
        lock.release()

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["error"] == "system_busy"


@pytest.mark.asyncio
async def test_reconciliation_endpoints(client: AsyncClient, participant_headers, test_offering):
    await client.post(
        "/api/v1/bookings/",
        json={"offering_id": test_offering.id, "payment_status": "completed"},
        headers=participant_headers,
    )

    row = await client.post(f"/api/v1/reconciliation/offerings/{test_offering.id}/sync")
    assert row.status_code == 200
    assert row.json()["was_fixed"] is False

    report = await client.post("/api/v1/reconciliation/validate-all")
    assert report.json()["checked"] == 1
    assert report.json()["fixed"] == 0


@pytest.mark.asyncio
async def test_occupancy_stats_route(client: AsyncClient, test_offering):
    response = await client.get("/api/v1/offerings/stats", params={"host_id": 1})
    assert response.status_code == 200
    assert response.json()["total_offerings"] == 1
