# stockhold/services/constraint_errors.py
"""
存储边界：识别驱动层的约束冲突（PG sqlstate / SQLite 文本），
供各 store 翻译成领域错误。
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
CHECK_VIOLATION = "23514"


def _sqlstate(exc: IntegrityError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return str(code) if code else None


def _message(exc: IntegrityError) -> str:
    return str(getattr(exc, "orig", exc) or "").lower()


def is_unique_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == UNIQUE_VIOLATION:
        return True
    msg = _message(exc)
    return "unique constraint failed" in msg or "duplicate key" in msg


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == FOREIGN_KEY_VIOLATION:
        return True
    return "foreign key constraint failed" in _message(exc)


def is_check_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == CHECK_VIOLATION:
        return True
    return "check constraint failed" in _message(exc)
