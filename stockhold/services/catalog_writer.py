# stockhold/services/catalog_writer.py
"""
主档 / 库存写入（入库工具面）：

- 仅供种子脚本、运维工具与测试使用，不暴露 HTTP；
- 唯一键冲突 → ObjectAlreadyExists；外键目标不存在 → ObjectNotFound；
- 新库存行 reserved_quantity 从 0 开始。
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.core.logging import get_logger
from stockhold.core.tx import run_in_tx
from stockhold.domain.errors import (
    InvalidQuantity,
    InventoryError,
    ObjectAlreadyExists,
    ObjectNotFound,
)
from stockhold.domain.types import StockKey, StockRow
from stockhold.models.product import Product
from stockhold.models.reservation import Reservation
from stockhold.models.stock import Stock
from stockhold.models.warehouse import Warehouse
from stockhold.services.constraint_errors import is_foreign_key_violation, is_unique_violation
from stockhold.services.validation import validate_sku
from stockhold.utils.time import as_utc, utc_now

log_default = get_logger("catalog_writer")


def _translate(e: IntegrityError, entity: str, key, log: logging.Logger) -> Optional[InventoryError]:
    if is_unique_violation(e):
        return ObjectAlreadyExists(entity, key)
    if is_foreign_key_violation(e):
        return ObjectNotFound(entity, key)
    log.error("insert %s %s: unexpected integrity error: %s", entity, key, e)
    return None


async def create_warehouse(
    session: AsyncSession,
    warehouse_id: uuid.UUID,
    name: str,
    *,
    is_active: bool = True,
    logger: Optional[logging.Logger] = None,
) -> uuid.UUID:
    log = logger or log_default

    async def _insert() -> uuid.UUID:
        try:
            await session.execute(
                sa.insert(Warehouse).values(id=warehouse_id, name=name, is_active=is_active)
            )
        except IntegrityError as e:
            err = _translate(e, "warehouse", warehouse_id, log)
            if err is None:
                raise
            raise err from e
        return warehouse_id

    return await run_in_tx(session, _insert, op="create_warehouse")


async def create_product(
    session: AsyncSession,
    sku: str,
    *,
    name: Optional[str] = None,
    size: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> str:
    log = logger or log_default
    validate_sku(sku)

    async def _insert() -> str:
        try:
            await session.execute(sa.insert(Product).values(sku=sku, name=name, size=size))
        except IntegrityError as e:
            err = _translate(e, "product", sku, log)
            if err is None:
                raise
            raise err from e
        return sku

    return await run_in_tx(session, _insert, op="create_product")


async def create_stock(
    session: AsyncSession,
    warehouse_id: uuid.UUID,
    product_id: str,
    quantity: int,
    *,
    logger: Optional[logging.Logger] = None,
) -> StockRow:
    log = logger or log_default
    if quantity is None or quantity < 0:
        raise InvalidQuantity(quantity)
    key = StockKey(warehouse_id, product_id)

    async def _insert() -> StockRow:
        # 先确认外键目标，报出具体是哪一个不存在
        if await session.scalar(sa.select(Warehouse.id).where(Warehouse.id == warehouse_id)) is None:
            raise ObjectNotFound("warehouse", warehouse_id)
        if await session.scalar(sa.select(Product.sku).where(Product.sku == product_id)) is None:
            raise ObjectNotFound("product", product_id)

        now = utc_now()
        try:
            row = (
                await session.execute(
                    sa.insert(Stock)
                    .values(
                        warehouse_id=warehouse_id,
                        product_id=product_id,
                        quantity=quantity,
                        reserved_quantity=0,
                        created_at=now,
                        modified_at=now,
                    )
                    .returning(Stock.created_at, Stock.modified_at)
                )
            ).one()
        except IntegrityError as e:
            err = _translate(e, "stock", key, log)
            if err is None:
                raise
            raise err from e

        return StockRow(
            warehouse_id=warehouse_id,
            product_id=product_id,
            quantity=quantity,
            reserved_quantity=0,
            created_at=as_utc(row.created_at),
            modified_at=as_utc(row.modified_at),
        )

    return await run_in_tx(session, _insert, op="create_stock")


async def truncate_tables(session: AsyncSession) -> None:
    """按外键依赖的逆序清空四张表。"""

    async def _truncate() -> None:
        for model in (Reservation, Stock, Product, Warehouse):
            await session.execute(sa.delete(model))

    await run_in_tx(session, _truncate, op="truncate_tables")
