"""SQLAlchemy ORM models"""
from app.models.device import ApnDevice

__all__ = [
    "ApnDevice",
]
