"""Patient and patient preference ORM models."""
from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from klinikasistan.core.enums import PreferenceType
from klinikasistan.infra.database.models.base import Base, TimestampMixin, _uuid_pk, enum_column


class Patient(Base, TimestampMixin):
    """Patients are never deleted by the message or command pipeline."""

    __tablename__ = "patients"
    __table_args__ = (
        Index("ix_patients_clinic_created", "clinic_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    preferences: Mapped[List["PatientPreference"]] = relationship(
        back_populates="patient",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PatientPreference(Base, TimestampMixin):
    __tablename__ = "patient_preferences"

    id: Mapped[uuid.UUID] = _uuid_pk()
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    preference_type: Mapped[PreferenceType] = mapped_column(enum_column(PreferenceType), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    patient: Mapped[Patient] = relationship(back_populates="preferences")
