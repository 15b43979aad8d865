# stockhold/services/consistency.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List

import sqlalchemy as sa
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.domain.types import StockKey

# reserved_quantity 必须恰好等于该键上所有 active 预占之和，且落在 [0, quantity]
CONSISTENCY_SQL = """
WITH active_sum AS (
  SELECT warehouse_id, product_id, SUM(quantity) AS qty
  FROM reservations
  WHERE is_active
  GROUP BY warehouse_id, product_id
)
SELECT s.warehouse_id AS warehouse_id,
       s.product_id AS product_id,
       s.quantity AS quantity,
       s.reserved_quantity AS reserved_quantity,
       COALESCE(a.qty, 0) AS active_quantity
FROM stocks s
LEFT JOIN active_sum a
  ON a.warehouse_id = s.warehouse_id AND a.product_id = s.product_id
WHERE s.reserved_quantity <> COALESCE(a.qty, 0)
   OR s.reserved_quantity < 0
   OR s.reserved_quantity > s.quantity
ORDER BY s.warehouse_id, s.product_id
"""


@dataclass(frozen=True)
class Mismatch:
    key: StockKey
    quantity: int
    reserved_quantity: int
    active_quantity: int

    @property
    def diff(self) -> int:
        return self.reserved_quantity - self.active_quantity


async def find_mismatches(session: AsyncSession) -> List[Mismatch]:
    """只读巡检：列出 reserved_quantity 与 active 预占之和不一致（或越界）的库存键。"""
    stmt = text(CONSISTENCY_SQL).columns(
        warehouse_id=sa.Uuid,
        product_id=sa.String,
        quantity=sa.Integer,
        reserved_quantity=sa.Integer,
        active_quantity=sa.Integer,
    )
    rows = (await session.execute(stmt)).mappings().all()
    return [
        Mismatch(
            key=StockKey(r["warehouse_id"], r["product_id"]),
            quantity=int(r["quantity"]),
            reserved_quantity=int(r["reserved_quantity"]),
            active_quantity=int(r["active_quantity"]),
        )
        for r in rows
    ]
