# stockhold/services/expiry_sweeper.py
from __future__ import annotations

import logging
import time
from collections import defaultdict
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.core.logging import get_logger
from stockhold.core.tx import run_in_tx
from stockhold.domain.errors import InventoryError
from stockhold.domain.types import StockKey
from stockhold.metrics import EXPIRY_SWEEP_SECONDS, RESERVATION_ERRORS, RESERVATIONS_RELEASED
from stockhold.services.reservation_store import ReservationStore
from stockhold.services.stock_ledger import StockLedger
from stockhold.utils.time import utc_now


async def sweep_expired_reservations(
    session: AsyncSession,
    *,
    now: Optional[datetime] = None,
    ledger: Optional[StockLedger] = None,
    store: Optional[ReservationStore] = None,
    logger: Optional[logging.Logger] = None,
    attempts: int = 5,
    base_delay: float = 0.03,
    max_delay: float = 0.35,
) -> int:
    """
    回收已过期的预占（幂等，一个事务）。

    语义：
      - 条件翻转：
          UPDATE reservations SET is_active = false
          WHERE is_active AND due_date < :now
          RETURNING warehouse_id, product_id, quantity
      - 同一事务内把翻转出来的数量按库存键聚合后释放回可用量，
        键按排序顺序处理（多个并发事务的加锁顺序一致）；
      - 没有过期行：空事务直接提交；
      - 并发扫描不会重复释放：一行只可能被一个事务翻转。

    参数：
      session : AsyncSession，由调用方提供；已在事务中时并入外层事务
      now     : 基准时间，便于测试中用固定时间；None 时取当前 UTC

    返回：
      int : 本次真正从 active -> inactive 的预占数量。
    """
    ledger = ledger or StockLedger()
    store = store or ReservationStore()
    log = logger or get_logger("expiry_sweeper")
    now = now or utc_now()

    async def _sweep() -> int:
        expired = await store.deactivate_expired(session, now=now)
        if not expired:
            return 0

        totals: Dict[StockKey, int] = defaultdict(int)
        for rec in expired:
            totals[rec.key] += rec.quantity

        for key in sorted(totals):
            await ledger.release(session, key, totals[key], now=now)
        return len(expired)

    started = time.perf_counter()
    try:
        released = await run_in_tx(
            session,
            _sweep,
            op="sweep_expired_reservations",
            attempts=attempts,
            base_delay=base_delay,
            max_delay=max_delay,
        )
    except InventoryError as e:
        RESERVATION_ERRORS.labels(op="sweep", kind=e.kind.value).inc()
        log.error("sweep failed: op=sweep now=%s kind=%s err=%s", now.isoformat(), e.kind.value, e)
        raise
    finally:
        EXPIRY_SWEEP_SECONDS.observe(time.perf_counter() - started)

    if released:
        RESERVATIONS_RELEASED.labels(reason="expired").inc(released)
        log.debug("sweep: released %d expired reservations", released)
    return released
