"""Treatment (income) and expense ORM models. Amounts are integer kuruş."""
from __future__ import annotations

import datetime as _dt
import uuid
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from klinikasistan.core.enums import ExpenseCategory, TreatmentType
from klinikasistan.infra.database.models.base import Base, TimestampMixin, _uuid_pk, enum_column
from klinikasistan.infra.database.models.patient import Patient


class Treatment(Base, TimestampMixin):
    __tablename__ = "treatments"
    __table_args__ = (
        Index("ix_treatments_clinic_date", "clinic_id", "date"),
        Index("ix_treatments_clinic_category_date", "clinic_id", "category", "date"),
        CheckConstraint("amount >= 0", name="ck_treatments_amount_nonnegative"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    employee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[TreatmentType] = mapped_column(enum_column(TreatmentType), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    patient: Mapped[Patient] = relationship(lazy="joined")


class Expense(Base, TimestampMixin):
    __tablename__ = "expenses"
    __table_args__ = (
        Index("ix_expenses_clinic_date", "clinic_id", "date"),
        CheckConstraint("amount >= 0", name="ck_expenses_amount_nonnegative"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    category: Mapped[ExpenseCategory] = mapped_column(enum_column(ExpenseCategory), nullable=False)
    date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
