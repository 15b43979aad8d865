# stockhold/models/__init__.py
"""
统一导出 ORM 模型。
"""

from stockhold.models.product import Product
from stockhold.models.reservation import Reservation
from stockhold.models.stock import Stock
from stockhold.models.warehouse import Warehouse

__all__ = ["Product", "Reservation", "Stock", "Warehouse"]
