# stockhold/jobs/reservation_expiry.py
"""
过期预占回收（一次性入口）

目标：
  - 把 is_active 且 due_date < now 的预占置为失效，并把数量还回可用量；
  - 与后台周期任务、建单前的同步回收走同一个 sweep_expired_reservations，
    并发执行也不会重复释放。

用法：
  - 本地 / 生产均可使用（例如外部 cron）：
        python -m stockhold.jobs.reservation_expiry
"""

from __future__ import annotations

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from stockhold.core.config import get_settings
from stockhold.core.logging import get_logger, setup_logging
from stockhold.db.engine import create_async_engine_safe
from stockhold.services.expiry_sweeper import sweep_expired_reservations
from stockhold.utils.time import utc_now


async def main() -> int:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)
    log = get_logger("jobs.reservation_expiry")

    engine = create_async_engine_safe(
        settings.DATABASE_URL,
        isolation_level=settings.DB_ISOLATION_LEVEL,
        poolclass=NullPool,
    )
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with maker() as session:
            processed = await sweep_expired_reservations(
                session,
                now=utc_now(),
                attempts=settings.TX_RETRY_ATTEMPTS,
                base_delay=settings.TX_RETRY_BASE_DELAY,
                max_delay=settings.TX_RETRY_MAX_DELAY,
            )
        log.info("released %d expired reservations", processed)
        return processed
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
