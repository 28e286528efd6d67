"""Declarative base and timestamp mixin for the session tables.

Following hexagonal architecture:
- This is an infrastructure concern (database implementation detail)
- SessionRecord is NOT a database model; stores map it to/from rows

Architecture:
    BaseModel (created_at)
        ↑
        └── BaseMutableModel (+ updated_at via TimestampMixin)
            └── SessionRecordModel
"""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class BaseModel(DeclarativeBase):
    """Base class for all database models.

    Primary keys are declared per model (session rows are keyed by their
    storage key, not a surrogate id).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class TimestampMixin:
    """Adds updated_at, refreshed by the database on every UPDATE."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class BaseMutableModel(TimestampMixin, BaseModel):
    """Base class for mutable models (TimestampMixin + BaseModel in MRO order)."""

    __abstract__ = True
