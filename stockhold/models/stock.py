# stockhold/models/stock.py
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, PrimaryKeyConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stockhold.db.base import Base
from stockhold.models.product import SKU_MAX_LENGTH


class Stock(Base):
    """
    库存余额维度 (warehouse_id, product_id)

    - quantity：实物总量，预占 / 释放不改变它
    - reserved_quantity：当前有效预占占用的数量
    - 不变式 0 <= reserved_quantity <= quantity 由 CHECK 约束兜底，
      正常路径由 StockLedger 的条件 UPDATE 保证
    """

    __tablename__ = "stocks"

    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
    )
    product_id: Mapped[str] = mapped_column(
        sa.String(SKU_MAX_LENGTH),
        sa.ForeignKey("products.sku", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    reserved_quantity: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=0, server_default="0"
    )

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )
    modified_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )

    __table_args__ = (
        PrimaryKeyConstraint("warehouse_id", "product_id", name="pk_stocks"),
        CheckConstraint("quantity >= 0", name="ck_stocks_quantity_non_negative"),
        CheckConstraint("reserved_quantity >= 0", name="ck_stocks_reserved_non_negative"),
        CheckConstraint(
            "reserved_quantity <= quantity", name="ck_stocks_reserved_le_quantity"
        ),
    )

    @property
    def free_quantity(self) -> int:
        return int(self.quantity or 0) - int(self.reserved_quantity or 0)

    def __repr__(self) -> str:
        return (
            f"<Stock wh={self.warehouse_id} sku={self.product_id} "
            f"qty={self.quantity} reserved={self.reserved_quantity}>"
        )
