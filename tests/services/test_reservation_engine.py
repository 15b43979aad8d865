from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.domain.errors import (
    DuplicateReservation,
    IncorrectDueDate,
    InvalidUUID,
    NotEnoughQuantity,
    ReservationNotFound,
    StockNotFound,
)
from stockhold.domain.types import ReservationRequest, StockKey
from stockhold.services.expiry_sweeper import sweep_expired_reservations
from stockhold.services.reservation_engine import ReservationEngine
from stockhold.utils.time import utc_now

pytestmark = pytest.mark.asyncio


def _req(wh, sku, qty, *, rid=None, due_in=timedelta(days=30)) -> ReservationRequest:
    return ReservationRequest(
        id=rid or uuid.uuid4(),
        warehouse_id=wh,
        product_id=sku,
        quantity=qty,
        due_date=utc_now() + due_in,
    )


async def _reserved(engine: ReservationEngine, session: AsyncSession, wh, sku) -> int:
    row = await engine.ledger.get(session, StockKey(wh, sku))
    await session.rollback()
    return row.reserved_quantity


async def test_create_batch_persists_and_reserves(session, seeded, engine):
    wh, sku_a, sku_b = seeded.warehouses[0], seeded.skus[0], seeded.skus[1]
    batch = [_req(wh, sku_a, 10), _req(wh, sku_b, 20), _req(wh, sku_a, 5)]

    records = await engine.create_reservations(session, batch)

    assert [r.id for r in records] == [b.id for b in batch]
    assert all(r.is_active for r in records)
    assert all(r.created_at is not None and r.created_at.tzinfo is not None for r in records)
    assert await _reserved(engine, session, wh, sku_a) == 15
    assert await _reserved(engine, session, wh, sku_b) == 20

    stored = await engine.store.get(session, batch[1].id)
    assert stored is not None and stored.quantity == 20 and stored.is_active


async def test_empty_batch_is_noop(session, seeded, engine):
    assert await engine.create_reservations(session, []) == []
    assert await engine.delete_reservations(session, []) == []


async def test_batch_is_all_or_nothing_on_capacity(session, seeded, engine):
    wh, sku_a, sku_b = seeded.warehouses[0], seeded.skus[0], seeded.skus[1]
    ok = _req(wh, sku_a, 10)
    too_big = _req(wh, sku_b, 101)

    with pytest.raises(NotEnoughQuantity) as ei:
        await engine.create_reservations(session, [ok, too_big])
    assert ei.value.sku == sku_b

    assert await _reserved(engine, session, wh, sku_a) == 0
    assert await engine.store.get(session, ok.id) is None


async def test_batch_fails_on_first_error_in_submission_order(session, seeded, engine):
    wh, sku = seeded.warehouses[0], seeded.skus[0]
    batch = [_req(wh, sku, 60), _req(wh, sku, 60), _req(uuid.uuid4(), sku, 1)]

    # 第二条先失败（可用量不足），第三条的 StockNotFound 不会被看到
    with pytest.raises(NotEnoughQuantity):
        await engine.create_reservations(session, batch)
    assert await _reserved(engine, session, wh, sku) == 0


async def test_unknown_stock_is_not_found(session, seeded, engine):
    with pytest.raises(StockNotFound):
        await engine.create_reservations(session, [_req(uuid.uuid4(), seeded.skus[0], 1)])


async def test_invalid_item_rejects_batch_before_store(session, seeded, engine):
    wh, sku = seeded.warehouses[0], seeded.skus[0]
    batch = [_req(wh, sku, 10), _req(wh, sku, 10, due_in=timedelta(seconds=-1))]

    with pytest.raises(IncorrectDueDate):
        await engine.create_reservations(session, batch)
    assert await _reserved(engine, session, wh, sku) == 0


async def test_duplicate_id_is_conflict_and_rolls_back(session, seeded, engine):
    wh, sku_a, sku_b = seeded.warehouses[0], seeded.skus[0], seeded.skus[1]
    first = _req(wh, sku_a, 10)
    await engine.create_reservations(session, [first])

    dup = _req(wh, sku_b, 5, rid=first.id)
    with pytest.raises(DuplicateReservation):
        await engine.create_reservations(session, [dup])

    # 失败批次对 sku_b 的预占已回滚
    assert await _reserved(engine, session, wh, sku_b) == 0
    assert await _reserved(engine, session, wh, sku_a) == 10


async def test_duplicate_id_within_one_batch(session, seeded, engine):
    wh, sku = seeded.warehouses[0], seeded.skus[0]
    rid = uuid.uuid4()
    with pytest.raises(DuplicateReservation):
        await engine.create_reservations(session, [_req(wh, sku, 1, rid=rid), _req(wh, sku, 1, rid=rid)])
    assert await _reserved(engine, session, wh, sku) == 0


async def test_delete_releases_and_deactivates(session, seeded, engine):
    wh, sku = seeded.warehouses[2], seeded.skus[2]
    a, b = _req(wh, sku, 30), _req(wh, sku, 20)
    await engine.create_reservations(session, [a, b])

    released = await engine.delete_reservations(session, [a.id])

    assert [r.id for r in released] == [a.id]
    assert await _reserved(engine, session, wh, sku) == 20
    stored = await engine.store.get(session, a.id)
    assert stored is not None and stored.is_active is False


async def test_delete_is_all_or_nothing(session, seeded, engine):
    wh, sku = seeded.warehouses[0], seeded.skus[0]
    a = _req(wh, sku, 30)
    await engine.create_reservations(session, [a])

    with pytest.raises(ReservationNotFound):
        await engine.delete_reservations(session, [a.id, uuid.uuid4()])

    assert await _reserved(engine, session, wh, sku) == 30
    assert (await engine.store.get(session, a.id)).is_active is True


async def test_delete_twice_is_not_found(session, seeded, engine):
    wh, sku = seeded.warehouses[0], seeded.skus[0]
    a = _req(wh, sku, 30)
    await engine.create_reservations(session, [a])
    await engine.delete_reservations(session, [a.id])

    with pytest.raises(ReservationNotFound):
        await engine.delete_reservations(session, [a.id])
    assert await _reserved(engine, session, wh, sku) == 0


async def test_delete_same_id_twice_in_one_batch(session, seeded, engine):
    wh, sku = seeded.warehouses[0], seeded.skus[0]
    a = _req(wh, sku, 30)
    await engine.create_reservations(session, [a])

    with pytest.raises(ReservationNotFound):
        await engine.delete_reservations(session, [a.id, a.id])
    assert await _reserved(engine, session, wh, sku) == 30


async def test_delete_nil_id_is_invalid(session, seeded, engine):
    with pytest.raises(InvalidUUID):
        await engine.delete_reservations(session, [uuid.UUID(int=0)])


async def test_create_runs_expiry_sweep_first(session, seeded, engine):
    wh, sku = seeded.warehouses[0], seeded.skus[0]
    t0 = utc_now()
    first = ReservationRequest(uuid.uuid4(), wh, sku, 100, t0 + timedelta(hours=1))
    await engine.create_reservations(session, [first], now=t0)

    # 两小时后：第一张已过期，建单前的同步回收把 100 还回来
    t1 = t0 + timedelta(hours=2)
    second = ReservationRequest(uuid.uuid4(), wh, sku, 100, t1 + timedelta(hours=1))
    records = await engine.create_reservations(session, [second], now=t1)

    assert records[0].created_at == t1
    assert await _reserved(engine, session, wh, sku) == 100
    assert (await engine.store.get(session, first.id)).is_active is False


async def test_injected_sweep_is_called_before_validation(session, seeded):
    calls = []

    async def fake_sweep(sess, **kwargs):
        calls.append(kwargs.get("now"))
        return 0

    engine = ReservationEngine(sweep=fake_sweep)
    with pytest.raises(InvalidUUID):
        await engine.create_reservations(
            session, [ReservationRequest(None, seeded.warehouses[0], seeded.skus[0], 1, utc_now() + timedelta(days=1))]
        )
    assert len(calls) == 1


async def test_delete_expired_but_unswept_is_not_found(session, seeded, engine):
    """
    到期但还没被回收的预占不再是 active：
      - 删除返回 ReservationNotFound，不动台账
      - 之后由过期回收把数量还回去（只还一次）
    """
    wh, sku = seeded.warehouses[1], seeded.skus[0]
    t0 = utc_now()
    a = ReservationRequest(uuid.uuid4(), wh, sku, 30, t0 + timedelta(hours=1))
    await engine.create_reservations(session, [a], now=t0)

    t1 = t0 + timedelta(hours=2)
    with pytest.raises(ReservationNotFound):
        await engine.delete_reservations(session, [a.id], now=t1)

    assert await _reserved(engine, session, wh, sku) == 30
    assert (await engine.store.get(session, a.id)).is_active is True
    await session.rollback()

    assert await sweep_expired_reservations(session, now=t1) == 1
    assert await _reserved(engine, session, wh, sku) == 0
