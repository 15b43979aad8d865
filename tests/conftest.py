# tests/conftest.py
from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from typing import AsyncGenerator, List

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from stockhold.api.deps import get_reservation_engine, get_session
from stockhold.core.config import AppSettings
from stockhold.db import Base, init_models
from stockhold.db.engine import create_async_engine_safe
from stockhold.main import create_app
from stockhold.services.catalog_writer import create_product, create_stock, create_warehouse
from stockhold.services.reservation_engine import ReservationEngine

# ==========================
# 数据库 DSN
#   - 设置 STOCKHOLD_TEST_DATABASE_URL 时走真实 PG（推荐，SERIALIZABLE 语义完整）
#   - 未设置时每个用例一个独立的 SQLite 文件（aiosqlite）
# ==========================
TEST_DATABASE_URL = os.getenv("STOCKHOLD_TEST_DATABASE_URL")

# 测试里并发冲突更密集，重试次数放宽、退避缩短
TEST_TX_ATTEMPTS = 30
TEST_TX_BASE_DELAY = 0.005
TEST_TX_MAX_DELAY = 0.05

SEED_QUANTITY = 100


# =========================================
# 每用例独立 Engine（NullPool，避免跨 loop）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'stockhold_test.db'}"
    engine = create_async_engine_safe(url, poolclass=NullPool)

    init_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    标准 Session：服务层自己开 / 提交事务，这里只兜底回滚。
    """
    async with async_session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


@pytest.fixture
def engine() -> ReservationEngine:
    return ReservationEngine(
        attempts=TEST_TX_ATTEMPTS,
        base_delay=TEST_TX_BASE_DELAY,
        max_delay=TEST_TX_MAX_DELAY,
    )


# =========================================
# 最小种子数据：3 仓 × 3 品，每个库存键 quantity=100
# =========================================
@dataclass
class Seed:
    warehouses: List[uuid.UUID] = field(default_factory=list)
    skus: List[str] = field(default_factory=list)
    quantity: int = SEED_QUANTITY


@pytest_asyncio.fixture(scope="function")
async def seeded(async_session_maker) -> Seed:
    seed = Seed()
    async with async_session_maker() as sess:
        for i in range(3):
            seed.warehouses.append(await create_warehouse(sess, uuid.uuid4(), f"WH-{i + 1}"))
        for j in range(3):
            seed.skus.append(await create_product(sess, f"SKU-{j + 1:04d}", name=f"UT-ITEM-{j + 1}"))
        for wh in seed.warehouses:
            for sku in seed.skus:
                await create_stock(sess, wh, sku, SEED_QUANTITY)
    return seed


# =========================================
# FastAPI / httpx AsyncClient（依赖覆盖到测试库）
# =========================================
@pytest.fixture(scope="function")
def app(async_session_maker):
    application = create_app(AppSettings(ENABLE_EXPIRY_SCHEDULER=False))

    async def _get_session() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as sess:
            yield sess

    application.dependency_overrides[get_session] = _get_session
    application.dependency_overrides[get_reservation_engine] = lambda: ReservationEngine(
        attempts=TEST_TX_ATTEMPTS,
        base_delay=TEST_TX_BASE_DELAY,
        max_delay=TEST_TX_MAX_DELAY,
    )
    return application


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
        timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=5.0, pool=5.0),
    ) as c:
        yield c
