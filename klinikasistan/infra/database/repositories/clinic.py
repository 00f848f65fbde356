"""Clinic, schedule and employee repositories."""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert

from klinikasistan.infra.database.models.clinic import Clinic, ClinicSchedule, Employee
from klinikasistan.infra.database.repositories.base import BaseRepository


class ClinicRepository(BaseRepository[Clinic]):
    model = Clinic

    async def first(self) -> Optional[Clinic]:
        """Oldest clinic; inbound chat falls back to it when no default is configured."""
        stmt = select(Clinic).order_by(Clinic.created_at.asc(), Clinic.id.asc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_all(self) -> List[Clinic]:
        result = await self.session.execute(select(Clinic).order_by(Clinic.created_at.asc()))
        return list(result.scalars().all())


class ScheduleRepository(BaseRepository[ClinicSchedule]):
    model = ClinicSchedule

    async def list_for_clinic(self, clinic_id: UUID) -> List[ClinicSchedule]:
        stmt = (
            select(ClinicSchedule)
            .where(ClinicSchedule.clinic_id == clinic_id)
            .order_by(ClinicSchedule.day_of_week.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def upsert(self, clinic_id: UUID, day_of_week: int, values: Dict[str, Any]) -> ClinicSchedule:
        """Insert or overwrite the row for one weekday; unique on (clinic_id, day_of_week)."""
        stmt = (
            insert(ClinicSchedule)
            .values(clinic_id=clinic_id, day_of_week=day_of_week, **values)
            .on_conflict_do_update(
                index_elements=[ClinicSchedule.clinic_id, ClinicSchedule.day_of_week],
                set_={**values, "updated_at": func.now()},
            )
            .returning(ClinicSchedule)
            .execution_options(populate_existing=True)
        )
        result = await self.session.scalars(stmt)
        return result.one()


class EmployeeRepository(BaseRepository[Employee]):
    model = Employee

    async def list_active(self, clinic_id: UUID) -> List[Employee]:
        stmt = (
            select(Employee)
            .where(Employee.clinic_id == clinic_id, Employee.is_active.is_(True))
            .order_by(Employee.name.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
