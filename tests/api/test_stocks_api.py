from __future__ import annotations

import uuid

import pytest

from tests._problem import as_problem

pytestmark = pytest.mark.asyncio


async def test_list_stocks_shape_and_default_limit(client, seeded):
    resp = await client.get("/api/v1/stocks")
    assert resp.status_code == 200, resp.text
    rows = resp.json()
    assert len(rows) == 9
    assert set(rows[0]) == {
        "warehouseId",
        "productId",
        "quantity",
        "reservedQuantity",
        "createdAt",
        "modifiedAt",
    }
    assert all(r["quantity"] == 100 and r["reservedQuantity"] == 0 for r in rows)


async def test_list_stocks_paging_and_sorting(client, seeded):
    params = {"sorting": "productId", "descending": "true", "limit": 3}
    page1 = (await client.get("/api/v1/stocks", params=params)).json()
    page2 = (await client.get("/api/v1/stocks", params={**params, "offset": 3})).json()

    assert len(page1) == 3 and len(page2) == 3
    assert {r["productId"] for r in page1} == {seeded.skus[2]}
    assert {r["productId"] for r in page2} == {seeded.skus[1]}


@pytest.mark.parametrize(
    "params, status",
    [
        ({"sorting": "quantity desc"}, 400),
        ({"sorting": "nope"}, 400),
        ({"warehouseFilter": "not-a-uuid"}, 400),
        ({"productFilter": "X" * 13}, 400),
        ({"offset": -1}, 400),
        ({"limit": "ten"}, 400),
        ({"limit": 100000}, 400),
    ],
)
async def test_list_stocks_bad_params(client, seeded, params, status):
    resp = await client.get("/api/v1/stocks", params=params)
    as_problem(resp, status)


async def test_warehouse_stocks(client, seeded):
    wh = seeded.warehouses[0]
    resp = await client.get(f"/api/v1/warehouses/{wh}/stocks", params={"productFilter": seeded.skus[1]})
    assert resp.status_code == 200, resp.text
    rows = resp.json()
    assert [(r["warehouseId"], r["productId"]) for r in rows] == [(str(wh), seeded.skus[1])]


async def test_unknown_warehouse_has_no_stocks(client, seeded):
    resp = await client.get(f"/api/v1/warehouses/{uuid.uuid4()}/stocks")
    assert resp.status_code == 200
    assert resp.json() == []


async def test_malformed_warehouse_path_is_400(client, seeded):
    resp = await client.get("/api/v1/warehouses/not-a-uuid/stocks")
    as_problem(resp, 400)
