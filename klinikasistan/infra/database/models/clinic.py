"""Clinic, weekly schedule and employee ORM models."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, SmallInteger, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from klinikasistan.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class Clinic(Base, TimestampMixin):
    """Tenant. Every other row carries a clinic_id."""

    __tablename__ = "clinics"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    tax_rate: Mapped[int] = mapped_column(Integer, nullable=False, default=20, server_default="20")
    """VAT percentage included in treatment prices (KDV)."""


class ClinicSchedule(Base, TimestampMixin):
    """Working hours for one weekday; day_of_week is 0=Sunday .. 6=Saturday."""

    __tablename__ = "clinic_schedules"
    __table_args__ = (
        UniqueConstraint("clinic_id", "day_of_week", name="uq_clinic_schedules_clinic_day"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False, default="09:00")
    end_time: Mapped[str] = mapped_column(String(5), nullable=False, default="18:00")
    slot_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    """Minutes."""
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Employee(Base, TimestampMixin):
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str | None] = mapped_column(String(64), nullable=True)
    commission_rate: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Percent of attributed treatment revenue paid as commission (prim)."""
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
