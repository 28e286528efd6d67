"""Relational persistence (SQLAlchemy async)."""

from sessionlayer.infrastructure.persistence.base import BaseModel
from sessionlayer.infrastructure.persistence.database import Database

__all__ = ["BaseModel", "Database"]
