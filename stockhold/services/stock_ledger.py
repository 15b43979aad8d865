# stockhold/services/stock_ledger.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.core.logging import get_logger
from stockhold.domain.errors import NotEnoughQuantity, StockNotFound
from stockhold.domain.types import StockKey, StockRow
from stockhold.models.stock import Stock
from stockhold.services.constraint_errors import is_check_violation
from stockhold.utils.time import utc_now

_RETURNING = (
    Stock.warehouse_id,
    Stock.product_id,
    Stock.quantity,
    Stock.reserved_quantity,
    Stock.created_at,
    Stock.modified_at,
)


def _row_to_stock(row) -> StockRow:
    return StockRow(
        warehouse_id=row.warehouse_id,
        product_id=row.product_id,
        quantity=int(row.quantity),
        reserved_quantity=int(row.reserved_quantity),
        created_at=row.created_at,
        modified_at=row.modified_at,
    )


class StockLedger:
    """
    库存台账（stocks 唯一真实来源）：只提供原子的 reserve / release 原语。

    重要约定：
      - 本服务自身不管理事务，调用方必须在外层开启事务；
      - 每个原语都是一条条件 UPDATE ... RETURNING（读改写在库内一次完成），
        绝不"先读后写"，否则并发下会丢更新；
      - release 不校验数量是否曾被预占，正确性依赖调用方对每张预占恰好调用一次。
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or get_logger("ledger")

    async def get(self, session: AsyncSession, key: StockKey) -> Optional[StockRow]:
        res = await session.execute(
            sa.select(*_RETURNING).where(
                Stock.warehouse_id == key.warehouse_id,
                Stock.product_id == key.product_id,
            )
        )
        row = res.first()
        return _row_to_stock(row) if row is not None else None

    async def reserve(
        self,
        session: AsyncSession,
        key: StockKey,
        quantity: int,
        *,
        now: Optional[datetime] = None,
    ) -> StockRow:
        """reserved_quantity += quantity，仅当结果仍 <= quantity。"""
        stmt = (
            sa.update(Stock)
            .where(
                Stock.warehouse_id == key.warehouse_id,
                Stock.product_id == key.product_id,
                Stock.reserved_quantity + quantity <= Stock.quantity,
            )
            .values(
                reserved_quantity=Stock.reserved_quantity + quantity,
                modified_at=now or utc_now(),
            )
            .returning(*_RETURNING)
            .execution_options(synchronize_session=False)
        )
        try:
            row = (await session.execute(stmt)).first()
        except IntegrityError as e:
            # CHECK 约束是最后一道防线：走到这里说明条件 UPDATE 之外有 bug
            if is_check_violation(e):
                self._log.error("reserve: check constraint hit key=%s qty=%s err=%s", key, quantity, e)
                raise NotEnoughQuantity(key.product_id, key.warehouse_id, quantity) from e
            raise

        if row is not None:
            return _row_to_stock(row)

        # 条件不满足：同一事务内区分"不存在"与"可用量不足"（此后不再写这一行）
        current = await self.get(session, key)
        if current is None:
            self._log.info("reserve: stock not found key=%s", key)
            raise StockNotFound(key.product_id, key.warehouse_id)

        self._log.info(
            "reserve: not enough quantity key=%s requested=%s free=%s",
            key,
            quantity,
            current.free_quantity,
        )
        raise NotEnoughQuantity(
            key.product_id, key.warehouse_id, quantity, available=current.free_quantity
        )

    async def release(
        self,
        session: AsyncSession,
        key: StockKey,
        quantity: int,
        *,
        now: Optional[datetime] = None,
    ) -> StockRow:
        """reserved_quantity -= quantity，并刷新 modified_at。"""
        stmt = (
            sa.update(Stock)
            .where(
                Stock.warehouse_id == key.warehouse_id,
                Stock.product_id == key.product_id,
            )
            .values(
                reserved_quantity=Stock.reserved_quantity - quantity,
                modified_at=now or utc_now(),
            )
            .returning(*_RETURNING)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).first()
        if row is None:
            self._log.error("release: stock not found key=%s qty=%s", key, quantity)
            raise StockNotFound(key.product_id, key.warehouse_id)
        return _row_to_stock(row)
