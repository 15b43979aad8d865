# stockhold/schemas/reservation.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from stockhold.domain.types import ReservationRecord, ReservationRequest
from stockhold.utils.time import as_utc


# -------------------------------
# POST /reservations 入参（单条）
# -------------------------------
class ReservationIn(BaseModel):
    """
    字段可缺省：缺失 / 非法的值统一交给领域校验报出具体错误
    （例如 id 缺失 → InvalidUUID，而不是通用的请求体错误）。
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[uuid.UUID] = None
    warehouse_id: Optional[uuid.UUID] = Field(default=None, alias="warehouseId")
    product_id: Optional[str] = Field(default=None, alias="productId")
    quantity: int = 0
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")

    def to_request(self) -> ReservationRequest:
        return ReservationRequest(
            id=self.id,
            warehouse_id=self.warehouse_id,
            product_id=self.product_id,
            quantity=self.quantity,
            due_date=as_utc(self.due_date),
        )


# -------------------------------
# DELETE /reservations 入参（单条，只认 id）
# -------------------------------
class ReservationDeleteIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[uuid.UUID] = None


class ReservationOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    warehouse_id: uuid.UUID = Field(alias="warehouseId")
    product_id: str = Field(alias="productId")
    quantity: int
    created_at: datetime = Field(alias="createdAt")
    due_date: datetime = Field(alias="dueDate")
    is_active: bool = Field(alias="isActive")

    @field_serializer("created_at", "due_date")
    def _ser_utc(self, v: datetime) -> str:
        return as_utc(v).isoformat()

    @classmethod
    def from_record(cls, rec: ReservationRecord) -> "ReservationOut":
        return cls(
            id=rec.id,
            warehouse_id=rec.warehouse_id,
            product_id=rec.product_id,
            quantity=rec.quantity,
            created_at=rec.created_at,
            due_date=rec.due_date,
            is_active=rec.is_active,
        )
