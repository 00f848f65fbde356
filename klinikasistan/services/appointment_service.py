"""AppointmentService: conflict-checked booking, cancellation and rebooking."""
from __future__ import annotations

import datetime as _dt
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.core.enums import AppointmentStatus, TreatmentType
from klinikasistan.core.exceptions import ConflictError, NotFoundError, ValidationError
from klinikasistan.infra.database.models.appointment import Appointment
from klinikasistan.infra.database.repositories.appointment import AppointmentRepository
from klinikasistan.infra.database.repositories.clinic import ScheduleRepository
from klinikasistan.services.availability_service import (
    _parse_time,
    check_conflict,
    compute_slots,
    schedule_for,
)

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "Bu saatte başka bir randevu var"


def _valid_range(start_time: str, end_time: str) -> tuple[str, str]:
    start, end = _parse_time(start_time), _parse_time(end_time)
    if start is None or end is None:
        raise ValidationError("Saat HH:MM biçiminde olmalı", details={"start_time": start_time, "end_time": end_time})
    if start >= end:
        raise ValidationError("Bitiş saati başlangıçtan sonra olmalı", details={"start_time": start_time, "end_time": end_time})
    return start.strftime("%H:%M"), end.strftime("%H:%M")


class AppointmentService:
    def __init__(self, session: AsyncSession) -> None:
        self._repo = AppointmentRepository(session)
        self._schedules = ScheduleRepository(session)

    async def create_appointment(
        self,
        *,
        clinic_id: UUID,
        patient_id: UUID,
        date: _dt.date,
        start_time: str,
        end_time: str,
        treatment_type: TreatmentType = TreatmentType.GENEL,
        notes: Optional[str] = None,
    ) -> Appointment:
        """Book an interval, rejecting any overlap with a live appointment.

        Concurrent bookings for the same clinic day are serialised by a
        transaction-scoped lock, and the overlap check runs after it is taken.
        """
        start, end = _valid_range(start_time, end_time)
        await self._repo.lock_day(clinic_id, date)
        existing = await self._repo.list_for_day(clinic_id, date)
        if check_conflict(start, end, existing):
            logger.info(
                "AppointmentService: conflict on %s %s-%s", date, start, end,
                extra={"clinic_id": str(clinic_id)},
            )
            raise ConflictError(
                CONFLICT_MESSAGE,
                details={"date": date.isoformat(), "start_time": start, "end_time": end},
            )
        appt = await self._repo.create({
            "clinic_id": clinic_id,
            "patient_id": patient_id,
            "date": date,
            "start_time": start,
            "end_time": end,
            "treatment_type": treatment_type,
            "status": AppointmentStatus.SCHEDULED,
            "notes": notes or None,
        })
        logger.info("AppointmentService: created appointment %s on %s %s", appt.id, date, start)
        return appt

    async def get(self, clinic_id: UUID, appointment_id: UUID) -> Appointment:
        appt = await self._repo.get_for_clinic(appointment_id, clinic_id)
        if appt is None:
            raise NotFoundError("Randevu bulunamadı", details={"appointment_id": str(appointment_id)})
        return appt

    async def cancel(self, clinic_id: UUID, appointment_id: UUID) -> Appointment:
        appt = await self.get(clinic_id, appointment_id)
        if appt.status == AppointmentStatus.CANCELLED:
            return appt
        updated = await self._repo.update_status(appt.id, AppointmentStatus.CANCELLED)
        logger.info("AppointmentService: cancelled appointment %s", appt.id)
        return updated or appt

    async def scheduled_by_patient_name(self, clinic_id: UUID, fragment: str) -> List[Appointment]:
        return await self._repo.scheduled_by_patient_name(clinic_id, fragment)

    async def rebook(self, clinic_id: UUID, cancelled_id: UUID, reply_number: int = 1) -> Appointment:
        """Book the Nth free slot (1-based) on the day of a cancelled appointment.

        Raises ValidationError with ``details["available_slots"]`` when the
        index is out of range.
        """
        original = await self._repo.get_for_clinic(cancelled_id, clinic_id)
        if original is None or original.status != AppointmentStatus.CANCELLED:
            raise NotFoundError("İptal edilmiş randevu bulunamadı", details={"appointment_id": str(cancelled_id)})

        schedules = await self._schedules.list_for_clinic(clinic_id)
        if schedule_for(schedules, original.date) is None:
            raise ValidationError("Bu gün için çalışma saati tanımlanmamış")

        await self._repo.lock_day(clinic_id, original.date)
        booked = await self._repo.list_for_day(clinic_id, original.date)
        free = [s for s in compute_slots(schedules, original.date, booked) if s.available]
        index = reply_number - 1
        if index < 0 or index >= len(free):
            raise ValidationError(
                "Geçersiz slot seçimi",
                details={"available_slots": [s.to_dict() for s in free]},
            )
        chosen = free[index]
        appt = await self._repo.create({
            "clinic_id": clinic_id,
            "patient_id": original.patient_id,
            "date": original.date,
            "start_time": chosen.start_time,
            "end_time": chosen.end_time,
            "treatment_type": original.treatment_type,
            "status": AppointmentStatus.SCHEDULED,
            "notes": f"Yeniden randevu (önceki: {original.id})",
        })
        logger.info("AppointmentService: rebooked %s as %s at %s", original.id, appt.id, chosen.start_time)
        return appt
