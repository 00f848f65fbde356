"""Appointment ORM model."""
from __future__ import annotations

import datetime as _dt
import uuid
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from klinikasistan.core.enums import AppointmentStatus, TreatmentType
from klinikasistan.infra.database.models.base import Base, TimestampMixin, _uuid_pk, enum_column
from klinikasistan.infra.database.models.patient import Patient


class Appointment(Base, TimestampMixin):
    """A booking on one clinic-local day with "HH:MM" start and end times.

    At most one non-cancelled appointment may occupy any interval of a
    clinic's day; the booking service enforces it under a per-day lock.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_clinic_date", "clinic_id", "date"),
        Index("ix_appointments_patient_status", "patient_id", "status"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    treatment_type: Mapped[TreatmentType] = mapped_column(enum_column(TreatmentType), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        enum_column(AppointmentStatus), nullable=False, default=AppointmentStatus.SCHEDULED
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    patient: Mapped[Patient] = relationship(lazy="joined")
