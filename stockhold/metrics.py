# stockhold/metrics.py
from __future__ import annotations

import os

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    multiprocess,
)

# 业务指标
RESERVATIONS_CREATED = Counter(
    "stockhold_reservations_created_total", "Reservations created"
)
RESERVATIONS_RELEASED = Counter(
    "stockhold_reservations_released_total",
    "Reservations released (quantity returned to free stock)",
    ["reason"],  # deleted / expired
)
RESERVATION_ERRORS = Counter(
    "stockhold_reservation_errors_total",
    "Reservation operation errors",
    ["op", "kind"],
)
EXPIRY_SWEEP_SECONDS = Histogram(
    "stockhold_expiry_sweep_seconds", "Expiry sweep duration (seconds)"
)

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """
    单进程：直接导出默认 REGISTRY；
    多进程（设置了 PROMETHEUS_MULTIPROC_DIR）：临时 CollectorRegistry 合并各分片。
    """
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        payload = generate_latest(registry)
    else:
        payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
