from __future__ import annotations

import asyncio
import uuid
from datetime import timedelta

import pytest

from stockhold.domain.errors import NotEnoughQuantity
from stockhold.domain.types import ReservationRequest, StockKey
from stockhold.services.consistency import find_mismatches
from stockhold.services.stock_ledger import StockLedger
from stockhold.utils.time import utc_now

pytestmark = pytest.mark.asyncio


async def test_concurrent_creates_never_oversell(async_session_maker, seeded, engine):
    """
    10 个并发建单，各要 20（总量 100）：
      - 成功的恰好 5 个，其余都是 NotEnoughQuantity
      - reserved_quantity == 成功数量之和，且 <= quantity
    """
    wh, sku = seeded.warehouses[0], seeded.skus[0]
    due = utc_now() + timedelta(days=1)

    async def _one():
        async with async_session_maker() as s:
            req = ReservationRequest(uuid.uuid4(), wh, sku, 20, due)
            return await engine.create_reservations(s, [req])

    results = await asyncio.gather(*[_one() for _ in range(10)], return_exceptions=True)

    ok = [r for r in results if not isinstance(r, BaseException)]
    errs = [r for r in results if isinstance(r, BaseException)]
    assert all(isinstance(e, NotEnoughQuantity) for e in errs), errs
    assert len(ok) == 5

    async with async_session_maker() as s:
        row = await StockLedger().get(s, StockKey(wh, sku))
        assert row.reserved_quantity == 100
        assert row.reserved_quantity <= row.quantity
        assert await find_mismatches(s) == []


async def test_concurrent_create_and_delete_conserve_quantity(async_session_maker, seeded, engine):
    wh, sku = seeded.warehouses[1], seeded.skus[1]
    due = utc_now() + timedelta(days=1)

    existing = [ReservationRequest(uuid.uuid4(), wh, sku, 10, due) for _ in range(5)]
    async with async_session_maker() as s:
        await engine.create_reservations(s, existing)

    async def _create():
        async with async_session_maker() as s:
            await engine.create_reservations(s, [ReservationRequest(uuid.uuid4(), wh, sku, 10, due)])

    async def _delete(rid):
        async with async_session_maker() as s:
            await engine.delete_reservations(s, [rid])

    tasks = [_create() for _ in range(5)] + [_delete(r.id) for r in existing]
    results = await asyncio.gather(*tasks, return_exceptions=True)
    assert not [r for r in results if isinstance(r, BaseException)], results

    async with async_session_maker() as s:
        row = await StockLedger().get(s, StockKey(wh, sku))
        # 5 张删掉、5 张新建
        assert row.reserved_quantity == 50
        assert row.quantity == 100
        assert await find_mismatches(s) == []
