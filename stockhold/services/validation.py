# stockhold/services/validation.py
"""
预占请求 / 列表参数的纯校验：同步、无存储访问。
任何一条不通过都在触达 Ledger 之前整体拒绝。
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from stockhold.domain.errors import (
    IncorrectDueDate,
    InvalidGetParams,
    InvalidQuantity,
    InvalidSKU,
    InvalidUUID,
)
from stockhold.domain.types import GetParams, ReservationRequest
from stockhold.models.product import SKU_MAX_LENGTH
from stockhold.utils.time import as_utc, utc_now

NIL_UUID = uuid.UUID(int=0)


def _is_valid_uuid(value: Any) -> bool:
    if isinstance(value, uuid.UUID):
        return True
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def validate_sku(sku: Optional[str]) -> None:
    if not sku or len(sku) > SKU_MAX_LENGTH:
        raise InvalidSKU(sku)


def validate_reservation_request(req: ReservationRequest, *, now: Optional[datetime] = None) -> None:
    if req.id is None or req.id == NIL_UUID:
        raise InvalidUUID("id")

    if req.warehouse_id is None or not _is_valid_uuid(req.warehouse_id):
        raise InvalidUUID("warehouseId")

    validate_sku(req.product_id)

    now = now or utc_now()
    due = as_utc(req.due_date)
    if due is None or due <= now:
        raise IncorrectDueDate()

    if req.quantity is None or req.quantity <= 0:
        raise InvalidQuantity(req.quantity)


def validate_delete_request(reservation_id: Optional[uuid.UUID]) -> None:
    if reservation_id is None or reservation_id == NIL_UUID:
        raise InvalidUUID("id")


def _single_token(value: str, name: str) -> None:
    if len((value or "").split()) > 1:
        raise InvalidGetParams(f"{name} must be a single token")


def validate_get_params(params: GetParams, *, max_limit: Optional[int] = None) -> None:
    _single_token(params.sorting, "sorting")
    _single_token(params.warehouse_filter, "warehouseFilter")
    _single_token(params.product_filter, "productFilter")

    if len(params.product_filter or "") > SKU_MAX_LENGTH:
        raise InvalidSKU(params.product_filter)

    wf = (params.warehouse_filter or "").strip()
    if wf and not _is_valid_uuid(wf):
        raise InvalidGetParams("warehouseFilter must be a uuid")

    if params.offset < 0:
        raise InvalidGetParams("offset must be >= 0")
    if params.limit < 0:
        raise InvalidGetParams("limit must be >= 0")
    if max_limit is not None and params.limit > max_limit:
        raise InvalidGetParams(f"limit must be <= {max_limit}")
