"""ScheduleService: the clinic's weekly opening hours, one row per weekday."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.core.exceptions import ValidationError
from klinikasistan.infra.database.repositories.clinic import ScheduleRepository
from klinikasistan.services.availability_service import _parse_time

logger = logging.getLogger(__name__)

MIN_SLOT_MINUTES = 5

# Weekday 0 is Sunday; Monday to Friday open 09:00-18:00 with 30 minute slots
DEFAULT_WEEK: List[Dict[str, Any]] = [
    {"day_of_week": day, "start_time": "09:00", "end_time": "18:00", "slot_duration": 30, "is_active": 1 <= day <= 5}
    for day in range(7)
]


def validate_day(day: Dict[str, Any]) -> Dict[str, Any]:
    """Normalised column values for one weekday row; raises ValidationError."""
    weekday = day.get("day_of_week")
    if not isinstance(weekday, int) or not 0 <= weekday <= 6:
        raise ValidationError("Gün 0 (Pazar) ile 6 (Cumartesi) arasında olmalı", details={"day_of_week": weekday})
    start, end = _parse_time(day.get("start_time") or ""), _parse_time(day.get("end_time") or "")
    if start is None or end is None:
        raise ValidationError(
            "Saat HH:MM biçiminde olmalı",
            details={"day_of_week": weekday, "start_time": day.get("start_time"), "end_time": day.get("end_time")},
        )
    if start >= end:
        raise ValidationError("Başlangıç saati bitişten önce olmalı", details={"day_of_week": weekday})
    slot = int(day.get("slot_duration") or 0)
    if slot < MIN_SLOT_MINUTES:
        raise ValidationError(
            f"Randevu süresi en az {MIN_SLOT_MINUTES} dakika olmalı", details={"slot_duration": slot}
        )
    return {
        "day_of_week": weekday,
        "start_time": start.strftime("%H:%M"),
        "end_time": end.strftime("%H:%M"),
        "slot_duration": slot,
        "is_active": bool(day.get("is_active", True)),
    }


class ScheduleService:
    def __init__(self, session: AsyncSession) -> None:
        self._schedules = ScheduleRepository(session)

    async def weekly(self, clinic_id: UUID) -> List[Dict[str, Any]]:
        """Stored rows, or the default week (unsaved, ``id`` None) when none exist."""
        rows = await self._schedules.list_for_clinic(clinic_id)
        if not rows:
            return [{**day, "id": None, "clinic_id": clinic_id} for day in DEFAULT_WEEK]
        return [
            {
                "id": row.id,
                "clinic_id": row.clinic_id,
                "day_of_week": row.day_of_week,
                "start_time": row.start_time,
                "end_time": row.end_time,
                "slot_duration": row.slot_duration,
                "is_active": row.is_active,
            }
            for row in rows
        ]

    async def save_week(self, clinic_id: UUID, days: Iterable[Dict[str, Any]]) -> list:
        """Upsert each given weekday; days not listed keep their current row.

        Everything is validated before the first write, so a bad row leaves
        the schedule untouched.
        """
        cleaned = [validate_day(day) for day in days]
        if not cleaned:
            raise ValidationError("En az bir gün gönderilmeli")
        weekdays = [day["day_of_week"] for day in cleaned]
        if len(set(weekdays)) != len(weekdays):
            raise ValidationError("Aynı gün birden fazla kez gönderildi", details={"days": weekdays})

        saved = []
        for day in cleaned:
            weekday = day.pop("day_of_week")
            saved.append(await self._schedules.upsert(clinic_id, weekday, day))
        logger.info(
            "ScheduleService: saved %d day(s)", len(saved), extra={"clinic_id": str(clinic_id)}
        )
        return saved
