# stockhold/models/product.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from stockhold.db.base import Base

SKU_MAX_LENGTH = 12


class Product(Base):
    """商品主档：sku 即主键"""

    __tablename__ = "products"

    sku: Mapped[str] = mapped_column(sa.String(SKU_MAX_LENGTH), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(sa.String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )

    def __repr__(self) -> str:
        return f"<Product sku={self.sku} name={self.name!r}>"
