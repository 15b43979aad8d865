# stockhold/api/error_map.py
"""
ErrorKind → HTTP 状态码（显式查表，边界层只看 kind）。

注意：CONFLICT（重复 id）沿用历史约定返回 429，
422 留给 CAPACITY（可用量不足）。
"""

from __future__ import annotations

from typing import Dict

from stockhold.domain.errors import ErrorKind, InventoryError

KIND_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 429,
    ErrorKind.CAPACITY: 422,
    ErrorKind.TRANSACTION: 500,
}


def status_for(err: InventoryError) -> int:
    return KIND_STATUS.get(err.kind, 500)
