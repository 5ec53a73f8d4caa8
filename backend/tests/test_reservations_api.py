"""
Tests for reservation and provider endpoints, including error mapping.
"""

import pytest
from httpx import AsyncClient

RESERVATION = {
    "provider_id": 1,
    "slot_id": 1,
    "scheduled_start": "2030-01-02T10:00:00Z",
    "scheduled_end": "2030-01-02T10:30:00Z",
    "service_name": "Haircut",
    "service_price": "100.00",
    "discount_amount": "10.00",
    "tax_rate": "0.08",
    "customer_id": 42,
}

PROVIDER_ACTOR = {"role": "provider", "id": 7}


async def _create(client: AsyncClient, **overrides) -> dict:
    response = await client.post("/api/v1/reservations/", json={**RESERVATION, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_reservation(client: AsyncClient):
    data = await _create(client)
    assert data["status"] == "pending"
    assert data["payment_status"] == "pending"
    assert data["total_price"] == "97.20"
    assert data["tax_amount"] == "7.20"
    assert data["reference"].startswith("BK")


@pytest.mark.asyncio
async def test_overlapping_reservation_returns_409(client: AsyncClient):
    await _create(client)
    response = await client.post(
        "/api/v1/reservations/",
        json={
            **RESERVATION,
            "scheduled_start": "2030-01-02T10:15:00Z",
            "scheduled_end": "2030-01-02T10:45:00Z",
        },
        headers={"X-Request-ID": "req-123"},
    )
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "SLOT_CONFLICT"
    assert body["error"]["details"]["provider_id"] == 1
    assert body["error"]["request_id"] == "req-123"
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_validation_error_returns_400(client: AsyncClient):
    response = await client.post(
        "/api/v1/reservations/",
        json={**RESERVATION, "customer_id": None},
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "customer_name" in error["details"]["errors"]


@pytest.mark.asyncio
async def test_pricing_error_returns_400(client: AsyncClient):
    response = await client.post(
        "/api/v1/reservations/",
        json={**RESERVATION, "discount_amount": "120.00"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PRICING_INPUT"


@pytest.mark.asyncio
async def test_malformed_body_returns_422(client: AsyncClient):
    response = await client.post("/api/v1/reservations/", json={"provider_id": "abc"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_get_reservation(client: AsyncClient):
    created = await _create(client)

    response = await client.get(f"/api/v1/reservations/{created['id']}")
    assert response.status_code == 200
    assert response.json()["uuid"] == created["uuid"]

    by_reference = await client.get(f"/api/v1/reservations/by-reference/{created['reference']}")
    assert by_reference.json()["id"] == created["id"]

    by_uuid = await client.get(f"/api/v1/reservations/by-uuid/{created['uuid']}")
    assert by_uuid.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_get_missing_reservation_returns_404(client: AsyncClient):
    response = await client.get("/api/v1/reservations/999")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_status_flow_and_illegal_transition(client: AsyncClient):
    created = await _create(client)
    url = f"/api/v1/reservations/{created['id']}/status"

    response = await client.post(url, json={"status": "confirmed", "actor": PROVIDER_ACTOR})
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    response = await client.post(url, json={"status": "confirmed", "actor": PROVIDER_ACTOR})
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "ILLEGAL_TRANSITION"
    assert "in_progress" in error["details"]["allowed"]


@pytest.mark.asyncio
async def test_unknown_status_returns_400(client: AsyncClient):
    created = await _create(client)
    response = await client.post(
        f"/api/v1/reservations/{created['id']}/status",
        json={"status": "done", "actor": PROVIDER_ACTOR},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_STATUS"


@pytest.mark.asyncio
async def test_allowed_transitions_endpoint(client: AsyncClient):
    created = await _create(client)
    response = await client.get(f"/api/v1/reservations/{created['id']}/transitions")
    assert response.status_code == 200
    data = response.json()
    assert data["current_status"] == "pending"
    assert data["allowed"] == ["confirmed", "cancelled_by_customer", "cancelled_by_provider", "no_show"]
    assert data["is_terminal"] is False


@pytest.mark.asyncio
async def test_cancel_and_history(client: AsyncClient):
    created = await _create(client)
    response = await client.post(
        f"/api/v1/reservations/{created['id']}/cancel",
        json={"actor": {"role": "customer", "id": 42}, "reason": "sick", "fee": "5.00"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled_by_customer"
    assert data["cancellation_fee"] == "5.00"

    history = await client.get(f"/api/v1/reservations/{created['id']}/history")
    assert [h["change_type"] for h in history.json()] == ["cancelled", "created"]

    again = await client.post(
        f"/api/v1/reservations/{created['id']}/cancel",
        json={"actor": {"role": "customer", "id": 42}},
    )
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "CANCELLATION_NOT_ALLOWED"


@pytest.mark.asyncio
async def test_reschedule_endpoint(client: AsyncClient):
    created = await _create(client)
    response = await client.post(
        f"/api/v1/reservations/{created['id']}/reschedule",
        json={
            "scheduled_start": "2030-01-02T15:00:00Z",
            "scheduled_end": "2030-01-02T15:45:00Z",
            "actor": {"role": "customer", "id": 42},
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "pending"
    assert data["duration_minutes"] == 45


@pytest.mark.asyncio
async def test_reprice_and_payment_endpoints(client: AsyncClient):
    created = await _create(client)

    repriced = await client.post(
        f"/api/v1/reservations/{created['id']}/reprice",
        json={"actor": PROVIDER_ACTOR, "service_price": "50.00", "discount_amount": "0"},
    )
    assert repriced.status_code == 200
    assert repriced.json()["total_price"] == "54.00"

    paid = await client.post(
        f"/api/v1/reservations/{created['id']}/payment",
        json={"payment_status": "paid", "actor": PROVIDER_ACTOR, "payment_method": "cash"},
    )
    assert paid.status_code == 200
    assert paid.json()["payment_status"] == "paid"
    assert paid.json()["paid_at"] is not None


@pytest.mark.asyncio
async def test_conflict_preview(client: AsyncClient):
    await _create(client)

    busy = await client.get(
        "/api/v1/providers/1/conflicts",
        params={"start": "2030-01-02T10:15:00Z", "end": "2030-01-02T10:45:00Z"},
    )
    assert busy.status_code == 200
    assert busy.json()["conflict"] is True

    free = await client.get(
        "/api/v1/providers/1/conflicts",
        params={"start": "2030-01-02T10:30:00Z", "end": "2030-01-02T11:00:00Z"},
    )
    assert free.json()["available"] is True


@pytest.mark.asyncio
async def test_provider_schedule(client: AsyncClient):
    await _create(client)
    await _create(client, scheduled_start="2030-01-02T08:00:00Z", scheduled_end="2030-01-02T08:30:00Z")
    await _create(client, provider_id=2)

    response = await client.get("/api/v1/providers/1/schedule", params={"day": "2030-01-02"})
    assert response.status_code == 200
    data = response.json()
    assert data["cached"] is False
    assert [r["scheduled_start"][:16] for r in data["reservations"]] == [
        "2030-01-02T08:00",
        "2030-01-02T10:00",
    ]


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["cache"] == {"status": "disabled"}

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "reservation_attempts_total" in metrics.text


@pytest.mark.asyncio
async def test_customer_reservations_endpoint(client: AsyncClient):
    first = await _create(client)
    second = await _create(client, scheduled_start="2030-01-02T12:00:00Z", scheduled_end="2030-01-02T12:30:00Z")
    await _create(client, provider_id=2, customer_id=43)
    await client.post(
        f"/api/v1/reservations/{first['id']}/cancel",
        json={"actor": {"role": "customer", "id": 42}},
    )

    response = await client.get("/api/v1/customers/42/reservations")
    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == [second["id"], first["id"]]

    cancelled = await client.get(
        "/api/v1/customers/42/reservations", params=[("status", "cancelled"), ("status", "completed")]
    )
    assert [r["id"] for r in cancelled.json()] == [first["id"]]

    bad = await client.get("/api/v1/customers/42/reservations", params={"status": "archived"})
    assert bad.status_code == 400
    assert bad.json()["error"]["code"] == "INVALID_STATUS"

    too_many = await client.get("/api/v1/customers/42/reservations", params={"limit": 500})
    assert too_many.status_code == 422


@pytest.mark.asyncio
async def test_provider_stats_endpoint(client: AsyncClient):
    created = await _create(client)
    url = f"/api/v1/reservations/{created['id']}/status"
    for target in ("confirmed", "in_progress", "completed"):
        response = await client.post(url, json={"status": target, "actor": PROVIDER_ACTOR})
        assert response.status_code == 200
    await _create(client, scheduled_start="2030-01-02T12:00:00Z", scheduled_end="2030-01-02T12:30:00Z")

    response = await client.get(
        "/api/v1/providers/1/stats",
        params={"start": "2030-01-02T00:00:00Z", "end": "2030-01-03T00:00:00Z"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["completed"] == 1
    assert data["total_revenue"] == "97.20"
    assert data["average_price"] == "97.20"

    inverted = await client.get(
        "/api/v1/providers/1/stats",
        params={"start": "2030-01-03T00:00:00Z", "end": "2030-01-02T00:00:00Z"},
    )
    assert inverted.status_code == 400


@pytest.mark.asyncio
async def test_negative_discount_returns_pricing_error(client: AsyncClient):
    response = await client.post("/api/v1/reservations/", json={**RESERVATION, "discount_amount": "-1.00"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PRICING_INPUT"
