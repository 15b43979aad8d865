# stockhold/core/tx.py
from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.domain.errors import InventoryError, TransactionFailed

T = TypeVar("T")

log = logging.getLogger("stockhold.tx")

# 40001 serialization_failure / 40P01 deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def _sqlstate(exc: BaseException) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for obj in (orig, getattr(orig, "__cause__", None)):
        if obj is None:
            continue
        code = getattr(obj, "sqlstate", None) or getattr(obj, "pgcode", None)
        if code:
            return str(code)
    return None


def is_retryable(exc: BaseException) -> bool:
    """
    可重试的存储层失败：
    - PG 序列化冲突 / 死锁（整笔事务重跑即可）
    - SQLite 库级写锁忙（database is locked / busy）
    """
    if not isinstance(exc, DBAPIError):
        return False
    if _sqlstate(exc) in RETRYABLE_SQLSTATES:
        return True
    msg = (str(exc) or "").lower()
    return "database is locked" in msg or "database is busy" in msg


def backoff_delay(attempt: int, *, base: float, mx: float) -> float:
    """指数退避 + 抖动（attempt 从 1 开始）。"""
    delay = min(mx, base * (1.8**attempt))
    return delay * (0.6 + 0.4 * random.random())


async def run_in_tx(
    session: AsyncSession,
    fn: Callable[[], Awaitable[T]],
    *,
    op: str,
    attempts: int = 5,
    base_delay: float = 0.03,
    max_delay: float = 0.35,
) -> T:
    """
    统一的事务执行器：

    - session 已在事务中：直接执行 fn，由外层负责提交 / 回滚，不做重试；
    - 否则：async with session.begin() 包裹 fn，正常退出即提交，
      任何异常（包括 commit 本身失败）都会回滚；
    - 序列化冲突 / 死锁 / SQLite 忙：整笔事务有界重试；
    - 业务错误（InventoryError）原样上抛；其它存储层错误包成 TransactionFailed(op)。
    """
    if session.in_transaction():
        try:
            return await fn()
        except InventoryError:
            raise
        except SQLAlchemyError as e:
            raise TransactionFailed(op, e) from e

    attempts = max(1, int(attempts))
    for attempt in range(1, attempts + 1):
        try:
            async with session.begin():
                return await fn()
        except InventoryError:
            raise
        except SQLAlchemyError as e:
            if is_retryable(e) and attempt < attempts:
                delay = backoff_delay(attempt, base=base_delay, mx=max_delay)
                log.debug("%s: retryable conflict (attempt %d/%d), retry in %.3fs", op, attempt, attempts, delay)
                await asyncio.sleep(delay)
                continue
            raise TransactionFailed(op, e, attempts=attempt) from e

    raise TransactionFailed(op, attempts=attempts)  # pragma: no cover
