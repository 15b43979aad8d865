# stockhold/db/__init__.py
from stockhold.db.base import Base, init_models

__all__ = ["Base", "init_models"]
