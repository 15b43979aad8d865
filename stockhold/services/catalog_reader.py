# stockhold/services/catalog_reader.py
from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.core.logging import get_logger
from stockhold.domain.errors import InvalidGetParams
from stockhold.domain.types import GetParams, StockRow
from stockhold.models.stock import Stock
from stockhold.services.validation import validate_get_params
from stockhold.utils.time import as_utc

DEFAULT_PAGE_LIMIT = 10

# 排序白名单：列名本身 + camelCase 写法
SORTABLE_COLUMNS: Dict[str, sa.ColumnElement] = {
    "warehouse_id": Stock.warehouse_id,
    "warehouseId": Stock.warehouse_id,
    "product_id": Stock.product_id,
    "productId": Stock.product_id,
    "quantity": Stock.quantity,
    "reserved_quantity": Stock.reserved_quantity,
    "reservedQuantity": Stock.reserved_quantity,
    "created_at": Stock.created_at,
    "createdAt": Stock.created_at,
    "modified_at": Stock.modified_at,
    "modifiedAt": Stock.modified_at,
}


class CatalogReader:
    """
    库存只读列表（默认读一致性，不开显式事务、不加锁）。

    - 过滤：warehouse_filter（UUID 精确匹配）/ product_filter（SKU 精确匹配）
    - 排序：sorting 指定列，descending 控制方向；同值时按库存键兜底，保证分页稳定
    - 分页：offset / limit（limit=0 时取默认值）
    """

    def __init__(
        self,
        *,
        default_limit: int = DEFAULT_PAGE_LIMIT,
        max_limit: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.default_limit = default_limit
        self.max_limit = max_limit
        self._log = logger or get_logger("catalog_reader")

    async def get_stocks(self, session: AsyncSession, params: GetParams) -> List[StockRow]:
        validate_get_params(params, max_limit=self.max_limit)

        stmt = sa.select(
            Stock.warehouse_id,
            Stock.product_id,
            Stock.quantity,
            Stock.reserved_quantity,
            Stock.created_at,
            Stock.modified_at,
        )

        wf = (params.warehouse_filter or "").strip()
        if wf:
            stmt = stmt.where(Stock.warehouse_id == uuid.UUID(wf))
        pf = (params.product_filter or "").strip()
        if pf:
            stmt = stmt.where(Stock.product_id == pf)

        sorting = (params.sorting or "").strip()
        order: List[sa.ColumnElement] = []
        if sorting:
            col = SORTABLE_COLUMNS.get(sorting)
            if col is None:
                self._log.info("get_stocks: unknown sorting column %r", sorting)
                raise InvalidGetParams(f"unknown sorting column: {sorting}")
            order.append(col.desc() if params.descending else col.asc())
        for col in (Stock.warehouse_id, Stock.product_id):
            order.append(col.desc() if params.descending else col.asc())

        limit = params.limit or self.default_limit
        stmt = stmt.order_by(*order).offset(params.offset).limit(limit)

        rows = (await session.execute(stmt)).all()
        return [
            StockRow(
                warehouse_id=r.warehouse_id,
                product_id=r.product_id,
                quantity=int(r.quantity),
                reserved_quantity=int(r.reserved_quantity),
                created_at=as_utc(r.created_at),
                modified_at=as_utc(r.modified_at),
            )
            for r in rows
        ]

    async def get_warehouse_stocks(
        self, session: AsyncSession, warehouse_id: uuid.UUID, params: GetParams
    ) -> List[StockRow]:
        """同 get_stocks，范围限定在单个仓库（路径上的仓库 id 覆盖 warehouse_filter）。"""
        return await self.get_stocks(session, replace(params, warehouse_filter=str(warehouse_id)))
