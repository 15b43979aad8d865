from stockhold.schemas.reservation import ReservationDeleteIn, ReservationIn, ReservationOut
from stockhold.schemas.stock import StockOut

__all__ = ["ReservationDeleteIn", "ReservationIn", "ReservationOut", "StockOut"]
