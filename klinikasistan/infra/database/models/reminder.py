"""Reminder rule and reminder log ORM models."""
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from klinikasistan.core.enums import ReminderChannel, ReminderStatus, TreatmentType
from klinikasistan.infra.database.models.base import Base, TimestampMixin, _uuid_pk, enum_column


class Reminder(Base, TimestampMixin):
    """Recurring rule: remind patients ``interval_days`` after a treatment of a category.

    message_template placeholders: {hasta}, {islem}, {gun}.
    """

    __tablename__ = "reminders"

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    treatment_category: Mapped[TreatmentType] = mapped_column(enum_column(TreatmentType), nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    message_template: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ReminderLog(Base, TimestampMixin):
    """One outbound reminder; created_at drives the per-patient cooldown."""

    __tablename__ = "reminder_logs"
    __table_args__ = (
        Index("ix_reminder_logs_clinic_created", "clinic_id", "created_at"),
        Index("ix_reminder_logs_patient", "patient_id"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False
    )
    reminder_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("reminders.id", ondelete="SET NULL"), nullable=True
    )
    message_content: Mapped[str] = mapped_column(Text, nullable=False)
    channel: Mapped[ReminderChannel] = mapped_column(enum_column(ReminderChannel), nullable=False)
    status: Mapped[ReminderStatus] = mapped_column(enum_column(ReminderStatus), nullable=False)
