# stockhold/schemas/stock.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from stockhold.domain.types import StockRow
from stockhold.utils.time import as_utc


class StockOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    warehouse_id: uuid.UUID = Field(alias="warehouseId")
    product_id: str = Field(alias="productId")
    quantity: int
    reserved_quantity: int = Field(alias="reservedQuantity")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    modified_at: Optional[datetime] = Field(default=None, alias="modifiedAt")

    @field_serializer("created_at", "modified_at")
    def _ser_utc(self, v: Optional[datetime]) -> Optional[str]:
        return as_utc(v).isoformat() if v is not None else None

    @classmethod
    def from_row(cls, row: StockRow) -> "StockOut":
        return cls(
            warehouse_id=row.warehouse_id,
            product_id=row.product_id,
            quantity=row.quantity,
            reserved_quantity=row.reserved_quantity,
            created_at=row.created_at,
            modified_at=row.modified_at,
        )
