# stockhold/db/session.py
# 统一的异步会话工厂 + FastAPI 依赖（get_session）
from __future__ import annotations

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from stockhold.core.config import get_settings
from stockhold.db.engine import create_async_engine_safe


@lru_cache
def get_async_engine() -> AsyncEngine:
    settings = get_settings()
    return create_async_engine_safe(
        settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        isolation_level=settings.DB_ISOLATION_LEVEL,
    )


@lru_cache
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_async_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ---- FastAPI 依赖 ----
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with get_session_maker()() as session:
        yield session


# ---- 关闭引擎（测试/生命周期） ----
async def close_engines() -> None:
    if get_async_engine.cache_info().currsize:
        await get_async_engine().dispose()
    get_session_maker.cache_clear()
    get_async_engine.cache_clear()
