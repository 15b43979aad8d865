# stockhold/api/deps.py
from __future__ import annotations

from fastapi import Depends

from stockhold.core.config import AppSettings, get_settings
from stockhold.db.session import get_session
from stockhold.services.catalog_reader import CatalogReader
from stockhold.services.reservation_engine import ReservationEngine

__all__ = ["get_session", "get_settings", "get_reservation_engine", "get_catalog_reader"]


def get_reservation_engine(settings: AppSettings = Depends(get_settings)) -> ReservationEngine:
    """引擎无状态，每个请求构造一个即可。"""
    return ReservationEngine.from_settings(settings)


def get_catalog_reader(settings: AppSettings = Depends(get_settings)) -> CatalogReader:
    return CatalogReader(
        default_limit=settings.DEFAULT_PAGE_LIMIT,
        max_limit=settings.MAX_PAGE_LIMIT,
    )
