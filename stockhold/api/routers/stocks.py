# stockhold/api/routers/stocks.py
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.api.deps import get_catalog_reader, get_session
from stockhold.domain.types import GetParams
from stockhold.schemas.stock import StockOut
from stockhold.services.catalog_reader import CatalogReader

router = APIRouter(tags=["stocks"])


@router.get("/stocks", response_model=List[StockOut])
async def list_stocks(
    offset: int = Query(0),
    limit: int = Query(0),
    sorting: str = Query(""),
    descending: bool = Query(False),
    warehouse_filter: str = Query("", alias="warehouseFilter"),
    product_filter: str = Query("", alias="productFilter"),
    session: AsyncSession = Depends(get_session),
    reader: CatalogReader = Depends(get_catalog_reader),
) -> List[StockOut]:
    params = GetParams(
        offset=offset,
        limit=limit,
        sorting=sorting,
        descending=descending,
        warehouse_filter=warehouse_filter,
        product_filter=product_filter,
    )
    rows = await reader.get_stocks(session, params)
    return [StockOut.from_row(r) for r in rows]


@router.get("/warehouses/{warehouse_id}/stocks", response_model=List[StockOut])
async def list_warehouse_stocks(
    warehouse_id: uuid.UUID,
    offset: int = Query(0),
    limit: int = Query(0),
    sorting: str = Query(""),
    descending: bool = Query(False),
    product_filter: str = Query("", alias="productFilter"),
    session: AsyncSession = Depends(get_session),
    reader: CatalogReader = Depends(get_catalog_reader),
) -> List[StockOut]:
    params = GetParams(
        offset=offset,
        limit=limit,
        sorting=sorting,
        descending=descending,
        product_filter=product_filter,
    )
    rows = await reader.get_warehouse_stocks(session, warehouse_id, params)
    return [StockOut.from_row(r) for r in rows]
