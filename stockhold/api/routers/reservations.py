# stockhold/api/routers/reservations.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from stockhold.api.deps import get_reservation_engine, get_session
from stockhold.schemas.reservation import ReservationDeleteIn, ReservationIn, ReservationOut
from stockhold.services.reservation_engine import ReservationEngine

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=List[ReservationOut])
async def create_reservations(
    body: List[ReservationIn],
    session: AsyncSession = Depends(get_session),
    engine: ReservationEngine = Depends(get_reservation_engine),
) -> List[ReservationOut]:
    """
    批量建单（整批全有或全无）：

    - 201：返回持久化后的预占（含 createdAt / isActive）
    - 400：字段非法；404：库存不存在；422：可用量不足；429：id 重复
    """
    records = await engine.create_reservations(session, [item.to_request() for item in body])
    return [ReservationOut.from_record(r) for r in records]


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_reservations(
    body: List[ReservationDeleteIn],
    session: AsyncSession = Depends(get_session),
    engine: ReservationEngine = Depends(get_reservation_engine),
) -> Response:
    """批量删除：释放数量并置为失效；任一 id 不存在 / 已失效 → 404，整批回滚。"""
    await engine.delete_reservations(session, [item.id for item in body])
    return Response(status_code=status.HTTP_204_NO_CONTENT)
