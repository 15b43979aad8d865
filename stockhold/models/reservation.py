# stockhold/models/reservation.py
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, ForeignKeyConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from stockhold.db.base import Base
from stockhold.models.product import SKU_MAX_LENGTH


class Reservation(Base):
    """
    预占记录：id 由调用方提供（全局唯一）

    生命周期：创建即 is_active=true；删除或过期后置为 false，且不可再激活。
    """

    __tablename__ = "reservations"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True)

    warehouse_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False)
    product_id: Mapped[str] = mapped_column(sa.String(SKU_MAX_LENGTH), nullable=False)
    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    due_date: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.true()
    )

    __table_args__ = (
        ForeignKeyConstraint(
            ["warehouse_id", "product_id"],
            ["stocks.warehouse_id", "stocks.product_id"],
            name="fk_reservations_stock",
            ondelete="RESTRICT",
        ),
        CheckConstraint("quantity > 0", name="ck_reservations_quantity_positive"),
        # 过期扫描：WHERE is_active AND due_date < now
        Index("ix_reservations_active_due", "is_active", "due_date"),
        Index("ix_reservations_stock", "warehouse_id", "product_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation id={self.id} wh={self.warehouse_id} sku={self.product_id} "
            f"qty={self.quantity} active={self.is_active}>"
        )
