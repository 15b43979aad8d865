# stockhold/core/scheduler.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockhold.core.logging import get_logger
from stockhold.domain.errors import InventoryError
from stockhold.services.expiry_sweeper import sweep_expired_reservations
from stockhold.utils.time import utc_now

JOB_ID = "reservation-expiry-sweep"

SweepFn = Callable[..., Awaitable[int]]


class ExpirySweepScheduler:
    """
    过期回收的周期任务（APScheduler interval job）：

    - 启动后立即跑一次，此后每 period 秒一次；
    - max_instances=1 + coalesce：上一轮未结束时不会叠加新一轮；
    - 单轮失败只记日志，不影响后续轮次；
    - stop()：不再触发新一轮，已在跑的一轮等待其完成（不取消，避免半提交）。
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        period_seconds: float = 60.0,
        sweep: Optional[SweepFn] = None,
        sweep_kwargs: Optional[dict] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._session_maker = session_maker
        self._period = float(period_seconds)
        self._sweep = sweep or sweep_expired_reservations
        self._sweep_kwargs = dict(sweep_kwargs or {})
        self._log = logger or get_logger("scheduler")
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._inflight: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def run_once(self) -> int:
        async with self._session_maker() as session:
            return await self._sweep(session, **self._sweep_kwargs)

    async def _tick(self) -> None:
        if self._stopping:
            return
        self._inflight = asyncio.ensure_future(self.run_once())
        try:
            await asyncio.shield(self._inflight)
        except InventoryError as e:
            self._log.error("expiry sweep failed: kind=%s err=%s", e.kind.value, e)
        except asyncio.CancelledError:
            # 调度器被关停：交给 stop() 等待在跑的那一轮
            raise
        finally:
            if self._inflight is not None and self._inflight.done():
                self._inflight = None

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self._tick,
            "interval",
            seconds=self._period,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            next_run_time=utc_now(),
        )
        self._scheduler.start()

    async def stop(self) -> None:
        self._stopping = True
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

        task = self._inflight
        if task is not None and not task.done():
            try:
                await task
            except InventoryError as e:
                self._log.error("expiry sweep failed during shutdown: kind=%s err=%s", e.kind.value, e)
        self._inflight = None
