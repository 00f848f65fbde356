"""Declarative base, UUID primary key helper and timestamp mixin."""
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Type

from sqlalchemy import DateTime, Enum, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


def enum_column(enum_cls: Type[PyEnum]) -> Enum:
    """VARCHAR-backed enum column; unknown values fail on flush, not at read time."""
    return Enum(enum_cls, native_enum=False, validate_strings=True, length=24)


class TimestampMixin:
    """created_at / updated_at as timezone-aware UTC, set by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
