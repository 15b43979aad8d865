# stockhold/db/base.py
from __future__ import annotations

import importlib
import logging
from typing import Iterable, List

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("stockhold.models")


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


_INITIALIZED: bool = False  # 防重复初始化

# 有外键依赖，按依赖顺序显式导入
MODEL_MODULES = [
    "stockhold.models.warehouse",
    "stockhold.models.product",
    "stockhold.models.stock",
    "stockhold.models.reservation",
]


def init_models(*, extra_modules: Iterable[str] | None = None, force: bool = False) -> None:
    """
    集中导入模型 + 固化关系映射：
      1) 按依赖顺序导入 stockhold.models.*（保证外键目标表已注册到 metadata）
      2) 再导入调用方追加的模块
      3) 最后统一 configure_mappers()
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        log.debug("init_models() called again; already initialized, skipping.")
        return

    loaded: List[str] = []
    for mod in [*MODEL_MODULES, *(extra_modules or [])]:
        if mod in loaded:
            continue
        importlib.import_module(mod)
        loaded.append(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", len(loaded))
