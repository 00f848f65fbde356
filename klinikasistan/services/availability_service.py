"""AvailabilityService: slot grid from the weekly schedule minus existing bookings."""
from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.core.enums import AppointmentStatus
from klinikasistan.core.exceptions import ValidationError
from klinikasistan.core.formatting import sunday_weekday
from klinikasistan.infra.database.models.clinic import ClinicSchedule
from klinikasistan.infra.database.repositories.appointment import AppointmentRepository
from klinikasistan.infra.database.repositories.clinic import ScheduleRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    start_time: str
    end_time: str
    available: bool

    def to_dict(self) -> dict:
        return {"start_time": self.start_time, "end_time": self.end_time, "available": self.available}


def schedule_for(schedules: Iterable[ClinicSchedule], day: _dt.date) -> Optional[ClinicSchedule]:
    """Active schedule row for ``day``'s weekday (0=Sunday), if any."""
    weekday = sunday_weekday(day)
    for row in schedules:
        if row.day_of_week == weekday and row.is_active:
            return row
    return None


def compute_slots(
    schedules: Iterable[ClinicSchedule],
    day: _dt.date,
    appointments: Iterable,
) -> List[Slot]:
    """Full slot grid for ``day``; a slot is taken when a live booking overlaps it.

    Only whole slots that end on or before the closing time are generated.
    Cancelled appointments never block a slot.
    """
    schedule = schedule_for(schedules, day)
    if schedule is None:
        return []
    open_at = _parse_time(schedule.start_time)
    close_at = _parse_time(schedule.end_time)
    step = int(schedule.slot_duration)
    if open_at is None or close_at is None or step <= 0:
        logger.warning("AvailabilityService: unusable schedule row %s", getattr(schedule, "id", None))
        return []

    busy = _busy_ranges(appointments)
    slots: List[Slot] = []
    cursor = _minutes(open_at)
    end = _minutes(close_at)
    while cursor + step <= end:
        start_s, end_s = _hhmm(cursor), _hhmm(cursor + step)
        slots.append(Slot(start_s, end_s, not _overlaps_any(start_s, end_s, busy)))
        cursor += step
    return slots


def check_conflict(start_time: str, end_time: str, appointments: Iterable) -> bool:
    """True when [start_time, end_time) overlaps any non-cancelled appointment."""
    return _overlaps_any(_normalize(start_time), _normalize(end_time), _busy_ranges(appointments))


def add_minutes(hhmm: str, minutes: int) -> str:
    """End time of a same-day appointment; raises ValidationError past midnight."""
    t = _parse_time(hhmm)
    if t is None:
        raise ValidationError("Saat HH:MM biçiminde olmalı", details={"time": hhmm})
    total = _minutes(t) + minutes
    if total >= 24 * 60:
        raise ValidationError(
            "Randevu gece yarısını geçemez", details={"start_time": _hhmm(_minutes(t)), "minutes": minutes}
        )
    return _hhmm(total)


class AvailabilityService:
    def __init__(self, session: AsyncSession) -> None:
        self._schedules = ScheduleRepository(session)
        self._appointments = AppointmentRepository(session)

    async def get_slots(self, clinic_id: UUID, day: _dt.date) -> List[Slot]:
        schedules = await self._schedules.list_for_clinic(clinic_id)
        booked = await self._appointments.list_for_day(clinic_id, day)
        return compute_slots(schedules, day, booked)

    async def slot_minutes(self, clinic_id: UUID, day: _dt.date, default: int) -> int:
        """Appointment length for ``day``: the schedule's slot size or ``default``."""
        schedule = schedule_for(await self._schedules.list_for_clinic(clinic_id), day)
        return int(schedule.slot_duration) if schedule is not None else default


def _parse_time(s: str) -> Optional[_dt.time]:
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return _dt.datetime.strptime(s, fmt).time()
        except (TypeError, ValueError):
            continue
    return None


def _minutes(t: _dt.time) -> int:
    return t.hour * 60 + t.minute


def _hhmm(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def _normalize(hhmm: str) -> str:
    t = _parse_time(hhmm)
    return _hhmm(_minutes(t)) if t is not None else hhmm


def _busy_ranges(appointments: Iterable) -> List[Tuple[str, str]]:
    return [
        (_normalize(a.start_time), _normalize(a.end_time))
        for a in appointments
        if a.status != AppointmentStatus.CANCELLED
    ]


def _overlaps_any(start: str, end: str, ranges: Sequence[Tuple[str, str]]) -> bool:
    # Zero-padded HH:MM strings compare in time order.
    for busy_start, busy_end in ranges:
        if busy_start < end and busy_end > start:
            return True
    return False
