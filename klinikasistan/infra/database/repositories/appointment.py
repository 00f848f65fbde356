"""Appointment repository."""
from __future__ import annotations

import datetime as _dt
import hashlib
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select, text

from klinikasistan.core.enums import AppointmentStatus
from klinikasistan.infra.database.models.appointment import Appointment
from klinikasistan.infra.database.models.patient import Patient
from klinikasistan.infra.database.repositories.base import BaseRepository, contains_pattern


def day_lock_key(clinic_id: UUID, day: _dt.date) -> int:
    """Signed 64-bit advisory lock key for one clinic day."""
    digest = hashlib.blake2b(f"{clinic_id}:{day.isoformat()}".encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


class AppointmentRepository(BaseRepository[Appointment]):
    model = Appointment

    async def lock_day(self, clinic_id: UUID, day: _dt.date) -> None:
        """Serialise bookings for one clinic day until the transaction ends."""
        await self.session.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": day_lock_key(clinic_id, day)},
        )

    async def list_for_day(
        self,
        clinic_id: UUID,
        day: _dt.date,
        *,
        include_cancelled: bool = False,
    ) -> List[Appointment]:
        stmt = (
            select(Appointment)
            .where(Appointment.clinic_id == clinic_id, Appointment.date == day)
            .order_by(Appointment.start_time.asc())
        )
        if not include_cancelled:
            stmt = stmt.where(Appointment.status != AppointmentStatus.CANCELLED)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_active_in_range(self, clinic_id: UUID, start: _dt.date, end: _dt.date) -> int:
        """Non-cancelled appointments with start <= date <= end."""
        stmt = select(func.count(Appointment.id)).where(
            Appointment.clinic_id == clinic_id,
            Appointment.date >= start,
            Appointment.date <= end,
            Appointment.status != AppointmentStatus.CANCELLED,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def counts_by_day(
        self, clinic_id: UUID, start: _dt.date, end: _dt.date
    ) -> Dict[_dt.date, int]:
        stmt = (
            select(Appointment.date, func.count(Appointment.id))
            .where(
                Appointment.clinic_id == clinic_id,
                Appointment.date >= start,
                Appointment.date <= end,
                Appointment.status != AppointmentStatus.CANCELLED,
            )
            .group_by(Appointment.date)
        )
        result = await self.session.execute(stmt)
        return {day: int(count) for day, count in result.all()}

    async def scheduled_by_patient_name(self, clinic_id: UUID, fragment: str) -> List[Appointment]:
        """SCHEDULED appointments whose patient name contains ``fragment``."""
        stmt = (
            select(Appointment)
            .join(Patient, Appointment.patient_id == Patient.id)
            .where(
                Appointment.clinic_id == clinic_id,
                Appointment.status == AppointmentStatus.SCHEDULED,
                Patient.name.ilike(contains_pattern(fragment), escape="\\"),
            )
            .order_by(Appointment.date.asc(), Appointment.start_time.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().unique().all())

    async def upcoming_for_patient(
        self, patient_id: UUID, from_day: _dt.date, limit: int = 5
    ) -> List[Appointment]:
        stmt = (
            select(Appointment)
            .where(
                Appointment.patient_id == patient_id,
                Appointment.date >= from_day,
                Appointment.status == AppointmentStatus.SCHEDULED,
            )
            .order_by(Appointment.date.asc(), Appointment.start_time.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_status(self, id: UUID, status: AppointmentStatus) -> Optional[Appointment]:
        return await self.update(id, {"status": status})
