# stockhold/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from stockhold.api.routers.reservations import router as reservations_router
from stockhold.api.routers.stocks import router as stocks_router
from stockhold.core.config import AppSettings, get_settings
from stockhold.core.logging import setup_logging
from stockhold.core.scheduler import ExpirySweepScheduler
from stockhold.db import init_models
from stockhold.db.session import close_engines, get_session_maker
from stockhold.http_problem_handlers import register_exception_handlers
from stockhold.metrics import router as metrics_router

logger = logging.getLogger("stockhold")

API_PREFIX = "/api/v1"


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)
        init_models()

        scheduler: Optional[ExpirySweepScheduler] = None
        if settings.ENABLE_EXPIRY_SCHEDULER:
            scheduler = ExpirySweepScheduler(
                get_session_maker(),
                period_seconds=settings.EXPIRY_SWEEP_PERIOD_SECONDS,
                sweep_kwargs={
                    "attempts": settings.TX_RETRY_ATTEMPTS,
                    "base_delay": settings.TX_RETRY_BASE_DELAY,
                    "max_delay": settings.TX_RETRY_MAX_DELAY,
                },
            )
            scheduler.start()
            logger.info(
                "expiry sweeper started (period=%.1fs)", settings.EXPIRY_SWEEP_PERIOD_SECONDS
            )
        app.state.expiry_scheduler = scheduler

        try:
            yield
        finally:
            if scheduler is not None:
                await scheduler.stop()
            await close_engines()

    app = FastAPI(
        title="stockhold",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(reservations_router, prefix=API_PREFIX)
    app.include_router(stocks_router, prefix=API_PREFIX)
    app.include_router(metrics_router)

    @app.get("/healthz", tags=["health"])
    async def healthz():
        return {"status": "ok"}

    return app


app = create_app()
