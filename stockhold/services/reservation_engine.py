# stockhold/services/reservation_engine.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.core.config import AppSettings
from stockhold.core.logging import get_logger
from stockhold.core.tx import run_in_tx
from stockhold.domain.errors import ErrorKind, InventoryError, ReservationNotFound
from stockhold.domain.types import ReservationRecord, ReservationRequest
from stockhold.metrics import RESERVATION_ERRORS, RESERVATIONS_CREATED, RESERVATIONS_RELEASED
from stockhold.services.expiry_sweeper import sweep_expired_reservations
from stockhold.services.reservation_store import ReservationStore
from stockhold.services.stock_ledger import StockLedger
from stockhold.services.validation import validate_delete_request, validate_reservation_request
from stockhold.utils.time import utc_now

SweepFn = Callable[..., Awaitable[int]]


class ReservationEngine:
    """
    预占引擎：批量建单 / 批量删除，整批一个事务，全有或全无。

    建单流程：
      1) 先同步跑一次过期回收（独立事务、已提交），让过期预占先把可用量还回来；
      2) 逐条校验，任何一条不合法整批拒绝（此时还未触达存储）；
      3) 单事务内按提交顺序：Ledger.reserve → 插入预占行；任一失败整体回滚；
      4) 提交后返回持久化结果（含 created_at）。

    删除流程：
      1) 逐条校验 id；
      2) 单事务内按顺序：条件翻转 active→inactive → Ledger.release；
         某条不存在 / 已失效 → ReservationNotFound，整体回滚。

    本身无状态，不做任何进程内加锁；并发一致性完全交给数据库事务隔离。
    """

    def __init__(
        self,
        *,
        ledger: Optional[StockLedger] = None,
        store: Optional[ReservationStore] = None,
        sweep: Optional[SweepFn] = None,
        logger: Optional[logging.Logger] = None,
        attempts: int = 5,
        base_delay: float = 0.03,
        max_delay: float = 0.35,
    ) -> None:
        self.ledger = ledger or StockLedger()
        self.store = store or ReservationStore()
        self._sweep = sweep or sweep_expired_reservations
        self._log = logger or get_logger("reservation_engine")
        self._attempts = attempts
        self._base_delay = base_delay
        self._max_delay = max_delay

    @classmethod
    def from_settings(cls, settings: AppSettings, **kwargs) -> "ReservationEngine":
        kwargs.setdefault("attempts", settings.TX_RETRY_ATTEMPTS)
        kwargs.setdefault("base_delay", settings.TX_RETRY_BASE_DELAY)
        kwargs.setdefault("max_delay", settings.TX_RETRY_MAX_DELAY)
        return cls(**kwargs)

    def _record_error(self, op: str, err: InventoryError) -> None:
        RESERVATION_ERRORS.labels(op=op, kind=err.kind.value).inc()
        if err.kind is ErrorKind.TRANSACTION:
            self._log.error(
                "%s failed: kind=%s code=%s context=%s cause=%r",
                op,
                err.kind.value,
                err.code,
                err.context,
                getattr(err, "cause", None),
            )
        else:
            self._log.info(
                "%s rejected: kind=%s code=%s context=%s", op, err.kind.value, err.code, err.context
            )

    async def create_reservations(
        self,
        session: AsyncSession,
        batch: Sequence[ReservationRequest],
        *,
        now: Optional[datetime] = None,
    ) -> List[ReservationRecord]:
        try:
            await self._sweep(
                session,
                now=now,
                ledger=self.ledger,
                store=self.store,
                attempts=self._attempts,
                base_delay=self._base_delay,
                max_delay=self._max_delay,
            )

            for req in batch:
                validate_reservation_request(req, now=now)

            if not batch:
                return []

            async def _create() -> List[ReservationRecord]:
                created_at = now or utc_now()
                out: List[ReservationRecord] = []
                for req in batch:
                    await self.ledger.reserve(session, req.key, req.quantity, now=created_at)
                    out.append(await self.store.insert(session, req, now=created_at))
                return out

            records = await run_in_tx(
                session,
                _create,
                op="create_reservations",
                attempts=self._attempts,
                base_delay=self._base_delay,
                max_delay=self._max_delay,
            )
        except InventoryError as e:
            self._record_error("create", e)
            raise

        RESERVATIONS_CREATED.inc(len(records))
        return records

    async def delete_reservations(
        self,
        session: AsyncSession,
        reservation_ids: Sequence[Optional[uuid.UUID]],
        *,
        now: Optional[datetime] = None,
    ) -> List[ReservationRecord]:
        try:
            for rid in reservation_ids:
                validate_delete_request(rid)

            if not reservation_ids:
                return []

            async def _delete() -> List[ReservationRecord]:
                ts = now or utc_now()
                out: List[ReservationRecord] = []
                for rid in reservation_ids:
                    rec = await self.store.deactivate_active(session, rid, now=ts)
                    if rec is None:
                        raise ReservationNotFound(rid)
                    await self.ledger.release(session, rec.key, rec.quantity, now=ts)
                    out.append(rec)
                return out

            released = await run_in_tx(
                session,
                _delete,
                op="delete_reservations",
                attempts=self._attempts,
                base_delay=self._base_delay,
                max_delay=self._max_delay,
            )
        except InventoryError as e:
            self._record_error("delete", e)
            raise

        RESERVATIONS_RELEASED.labels(reason="deleted").inc(len(released))
        return released
