# stockhold/services/reservation_store.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.core.logging import get_logger
from stockhold.domain.errors import DuplicateReservation, StockNotFound
from stockhold.domain.types import ReservationRecord, ReservationRequest
from stockhold.models.reservation import Reservation
from stockhold.services.constraint_errors import (
    is_foreign_key_violation,
    is_unique_violation,
)
from stockhold.utils.time import as_utc, utc_now

_COLUMNS = (
    Reservation.id,
    Reservation.warehouse_id,
    Reservation.product_id,
    Reservation.quantity,
    Reservation.created_at,
    Reservation.due_date,
    Reservation.is_active,
)


def _row_to_record(row) -> ReservationRecord:
    return ReservationRecord(
        id=row.id,
        warehouse_id=row.warehouse_id,
        product_id=row.product_id,
        quantity=int(row.quantity),
        created_at=as_utc(row.created_at),
        due_date=as_utc(row.due_date),
        is_active=bool(row.is_active),
    )


class ReservationStore:
    """
    reservations 表的持久化原语（不管理事务，由调用方开启）。

    - insert：插入一条 is_active=true 的预占；id 冲突翻译成 DuplicateReservation；
    - deactivate_active：按 id 条件翻转 active→inactive（due_date 未过），返回被翻转的行（没有则 None）；
    - deactivate_expired：批量翻转已过期的 active 行，返回被翻转的行；
    - 翻转都是条件 UPDATE，同一行只可能被一个事务翻转一次。
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or get_logger("reservation_store")

    async def insert(
        self,
        session: AsyncSession,
        req: ReservationRequest,
        *,
        now: Optional[datetime] = None,
    ) -> ReservationRecord:
        created_at = now or utc_now()
        stmt = (
            sa.insert(Reservation)
            .values(
                id=req.id,
                warehouse_id=req.warehouse_id,
                product_id=req.product_id,
                quantity=req.quantity,
                created_at=created_at,
                due_date=as_utc(req.due_date),
                is_active=True,
            )
            .returning(*_COLUMNS)
        )
        try:
            row = (await session.execute(stmt)).one()
        except IntegrityError as e:
            if is_unique_violation(e):
                self._log.info("insert: duplicate reservation id=%s", req.id)
                raise DuplicateReservation(req.id) from e
            if is_foreign_key_violation(e):
                raise StockNotFound(req.product_id, req.warehouse_id) from e
            raise
        return _row_to_record(row)

    async def get(self, session: AsyncSession, reservation_id: uuid.UUID) -> Optional[ReservationRecord]:
        res = await session.execute(sa.select(*_COLUMNS).where(Reservation.id == reservation_id))
        row = res.first()
        return _row_to_record(row) if row is not None else None

    async def deactivate_active(
        self,
        session: AsyncSession,
        reservation_id: uuid.UUID,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[ReservationRecord]:
        # 已过期但尚未回收的行不算 active，留给过期回收去释放
        now = now or utc_now()
        stmt = (
            sa.update(Reservation)
            .where(
                Reservation.id == reservation_id,
                Reservation.is_active.is_(True),
                Reservation.due_date >= now,
            )
            .values(is_active=False)
            .returning(*_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).first()
        return _row_to_record(row) if row is not None else None

    async def deactivate_expired(
        self, session: AsyncSession, *, now: Optional[datetime] = None
    ) -> List[ReservationRecord]:
        now = now or utc_now()
        stmt = (
            sa.update(Reservation)
            .where(Reservation.is_active.is_(True), Reservation.due_date < now)
            .values(is_active=False)
            .returning(*_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        rows = (await session.execute(stmt)).all()
        return [_row_to_record(r) for r in rows]
