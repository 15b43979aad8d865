# stockhold/domain/types.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, order=True)
class StockKey:
    """(warehouse_id, product_id) 复合身份；库存行一旦存在就不可变。"""

    warehouse_id: uuid.UUID
    product_id: str

    def __str__(self) -> str:
        return f"{self.warehouse_id}/{self.product_id}"


@dataclass(frozen=True)
class StockRow:
    warehouse_id: uuid.UUID
    product_id: str
    quantity: int
    reserved_quantity: int
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    @property
    def key(self) -> StockKey:
        return StockKey(self.warehouse_id, self.product_id)

    @property
    def free_quantity(self) -> int:
        return self.quantity - self.reserved_quantity


@dataclass(frozen=True)
class ReservationRequest:
    """一条建单请求（校验前的原始形态，字段可能缺失）。"""

    id: Optional[uuid.UUID]
    warehouse_id: Optional[uuid.UUID]
    product_id: Optional[str]
    quantity: int
    due_date: Optional[datetime]

    @property
    def key(self) -> StockKey:
        return StockKey(self.warehouse_id, self.product_id)  # type: ignore[arg-type]


@dataclass(frozen=True)
class ReservationRecord:
    id: uuid.UUID
    warehouse_id: uuid.UUID
    product_id: str
    quantity: int
    created_at: datetime
    due_date: datetime
    is_active: bool = True

    @property
    def key(self) -> StockKey:
        return StockKey(self.warehouse_id, self.product_id)


@dataclass(frozen=True)
class GetParams:
    offset: int = 0
    limit: int = 0
    sorting: str = ""
    descending: bool = False
    warehouse_filter: str = ""
    product_filter: str = ""
