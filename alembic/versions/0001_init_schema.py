"""init schema: warehouses / products / stocks / reservations

Revision ID: 0001_init_schema
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_init_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )

    op.create_table(
        "products",
        sa.Column("sku", sa.String(length=12), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("size", sa.String(length=32), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )

    op.create_table(
        "stocks",
        sa.Column(
            "warehouse_id",
            sa.Uuid(),
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            sa.String(length=12),
            sa.ForeignKey("products.sku", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reserved_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "modified_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("warehouse_id", "product_id", name="pk_stocks"),
        sa.CheckConstraint("quantity >= 0", name="ck_stocks_quantity_non_negative"),
        sa.CheckConstraint("reserved_quantity >= 0", name="ck_stocks_reserved_non_negative"),
        # 预占不变式的最后一道防线（正常路径由条件 UPDATE 保证）
        sa.CheckConstraint("reserved_quantity <= quantity", name="ck_stocks_reserved_le_quantity"),
    )
    op.create_index("ix_stocks_product_id", "stocks", ["product_id"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("warehouse_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.String(length=12), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(
            ["warehouse_id", "product_id"],
            ["stocks.warehouse_id", "stocks.product_id"],
            name="fk_reservations_stock",
            ondelete="RESTRICT",
        ),
        sa.CheckConstraint("quantity > 0", name="ck_reservations_quantity_positive"),
    )
    # 过期扫描：WHERE is_active AND due_date < now
    op.create_index("ix_reservations_active_due", "reservations", ["is_active", "due_date"])
    op.create_index("ix_reservations_stock", "reservations", ["warehouse_id", "product_id"])


def downgrade() -> None:
    op.drop_index("ix_reservations_stock", table_name="reservations")
    op.drop_index("ix_reservations_active_due", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index("ix_stocks_product_id", table_name="stocks")
    op.drop_table("stocks")
    op.drop_table("products")
    op.drop_table("warehouses")
