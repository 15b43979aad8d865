# stockhold/domain/errors.py
"""
库存预占领域错误（封闭枚举）：

- 所有错误都派生自 InventoryError，并带一个 ErrorKind 标签；
- 边界层（HTTP）只按 kind 查表决定状态码，不做运行时类型分派；
- 存储层的约束冲突（唯一键 / CHECK / 外键）在存储边界翻译成这里的业务错误，
  原始驱动错误码不向上泄露。
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"  # 入参不合法，不触达存储
    NOT_FOUND = "NOT_FOUND"  # 引用的库存 / 预占不存在
    CONFLICT = "CONFLICT"  # 唯一身份冲突（重复 id）
    CAPACITY = "CAPACITY"  # 可用量不足（业务结果，不是 bug）
    TRANSACTION = "TRANSACTION"  # 存储层失败：连接 / 序列化冲突 / 未知约束


class InventoryError(Exception):
    kind: ErrorKind = ErrorKind.TRANSACTION
    code: str = "inventory_error"

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# VALIDATION
# ---------------------------------------------------------------------------


class ValidationError(InventoryError):
    kind = ErrorKind.VALIDATION
    code = "invalid_request"


class InvalidUUID(ValidationError):
    code = "invalid_uuid"

    def __init__(self, field: str = "id"):
        super().__init__("invalid uuid", context={"field": field})


class InvalidSKU(ValidationError):
    code = "invalid_sku"

    def __init__(self, sku: Optional[str] = None):
        super().__init__("invalid product sku", context={"sku": sku})


class IncorrectDueDate(ValidationError):
    code = "incorrect_due_date"

    def __init__(self):
        super().__init__("incorrect due date")


class InvalidQuantity(ValidationError):
    code = "invalid_quantity"

    def __init__(self, quantity: Optional[int] = None):
        super().__init__("invalid quantity", context={"quantity": quantity})


class InvalidGetParams(ValidationError):
    code = "invalid_get_params"

    def __init__(self, reason: str):
        super().__init__("invalid get params", context={"reason": reason})


# ---------------------------------------------------------------------------
# NOT_FOUND
# ---------------------------------------------------------------------------


class StockNotFound(InventoryError):
    kind = ErrorKind.NOT_FOUND
    code = "stock_not_found"

    def __init__(self, sku: str, warehouse_id: uuid.UUID):
        super().__init__(
            f"stock of {sku} not found at {warehouse_id}",
            context={"sku": sku, "warehouse_id": str(warehouse_id)},
        )
        self.sku = sku
        self.warehouse_id = warehouse_id


class ReservationNotFound(InventoryError):
    kind = ErrorKind.NOT_FOUND
    code = "reservation_not_found"

    def __init__(self, reservation_id: uuid.UUID):
        super().__init__(
            f"active reservation {reservation_id} not found",
            context={"reservation_id": str(reservation_id)},
        )
        self.reservation_id = reservation_id


class ObjectNotFound(InventoryError):
    kind = ErrorKind.NOT_FOUND
    code = "object_not_found"

    def __init__(self, entity: str, key: Any):
        super().__init__(f"{entity} {key} not found", context={"entity": entity, "key": str(key)})


# ---------------------------------------------------------------------------
# CONFLICT
# ---------------------------------------------------------------------------


class DuplicateReservation(InventoryError):
    kind = ErrorKind.CONFLICT
    code = "duplicate_reservation"

    def __init__(self, reservation_id: uuid.UUID):
        super().__init__(
            f"duplicate reservation of {reservation_id}",
            context={"reservation_id": str(reservation_id)},
        )
        self.reservation_id = reservation_id


class ObjectAlreadyExists(InventoryError):
    kind = ErrorKind.CONFLICT
    code = "object_already_exists"

    def __init__(self, entity: str, key: Any):
        super().__init__(
            f"{entity} {key} already exists", context={"entity": entity, "key": str(key)}
        )


# ---------------------------------------------------------------------------
# CAPACITY
# ---------------------------------------------------------------------------


class NotEnoughQuantity(InventoryError):
    kind = ErrorKind.CAPACITY
    code = "not_enough_quantity"

    def __init__(
        self,
        sku: str,
        warehouse_id: uuid.UUID,
        requested: int,
        available: Optional[int] = None,
    ):
        msg = f"not enough quantity of {sku} at {warehouse_id}. Required: {requested}"
        if available is not None:
            msg += f"; Found: {available}"
        super().__init__(
            msg,
            context={
                "sku": sku,
                "warehouse_id": str(warehouse_id),
                "requested": requested,
                "available": available,
            },
        )
        self.sku = sku
        self.warehouse_id = warehouse_id
        self.requested = requested
        self.available = available


# ---------------------------------------------------------------------------
# TRANSACTION
# ---------------------------------------------------------------------------


class TransactionFailed(InventoryError):
    kind = ErrorKind.TRANSACTION
    code = "transaction_failed"

    def __init__(self, op: str, cause: Optional[BaseException] = None, *, attempts: int = 1):
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown"
        super().__init__(
            f"{op}: transaction failed ({detail})",
            context={"op": op, "attempts": attempts},
        )
        self.op = op
        self.cause = cause
        self.attempts = attempts
