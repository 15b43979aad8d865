from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

pytestmark = pytest.mark.asyncio


async def test_healthz(client):
    resp = await client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_metrics_exposes_reservation_counters(client, seeded):
    item = {
        "id": str(uuid.uuid4()),
        "warehouseId": str(seeded.warehouses[0]),
        "productId": seeded.skus[0],
        "quantity": 1,
        "dueDate": (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
    }
    assert (await client.post("/api/v1/reservations", json=[item])).status_code == 201

    resp = await client.get("/metrics")
    assert resp.status_code == 200
    text = resp.text
    assert "stockhold_reservations_created_total" in text
    assert "stockhold_expiry_sweep_seconds" in text


async def test_unknown_route_is_problem_404(client):
    resp = await client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.json()["error_code"] == "http_error"
