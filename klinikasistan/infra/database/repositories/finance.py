"""Treatment and expense repositories: range aggregates in integer kuruş."""
from __future__ import annotations

import datetime as _dt
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import Select, func, select

from klinikasistan.core.enums import TreatmentType
from klinikasistan.infra.database.models.finance import Expense, Treatment
from klinikasistan.infra.database.models.patient import Patient
from klinikasistan.infra.database.repositories.base import BaseRepository


def _in_range(stmt: Select, column, start: Optional[_dt.date], end: Optional[_dt.date]) -> Select:
    if start is not None:
        stmt = stmt.where(column >= start)
    if end is not None:
        stmt = stmt.where(column <= end)
    return stmt


class TreatmentRepository(BaseRepository[Treatment]):
    model = Treatment

    async def sum_and_count(
        self,
        clinic_id: UUID,
        start: Optional[_dt.date] = None,
        end: Optional[_dt.date] = None,
        *,
        employee_id: Optional[UUID] = None,
    ) -> Tuple[int, int]:
        """(total amount, row count); open bounds mean lifetime."""
        stmt = select(
            func.coalesce(func.sum(Treatment.amount), 0), func.count(Treatment.id)
        ).where(Treatment.clinic_id == clinic_id)
        stmt = _in_range(stmt, Treatment.date, start, end)
        if employee_id is not None:
            stmt = stmt.where(Treatment.employee_id == employee_id)
        total, count = (await self.session.execute(stmt)).one()
        return int(total), int(count)

    async def distinct_patient_count(self, clinic_id: UUID, start: _dt.date, end: _dt.date) -> int:
        stmt = select(func.count(func.distinct(Treatment.patient_id))).where(Treatment.clinic_id == clinic_id)
        stmt = _in_range(stmt, Treatment.date, start, end)
        return int((await self.session.execute(stmt)).scalar_one())

    async def totals_by_category(
        self, clinic_id: UUID, start: _dt.date, end: _dt.date
    ) -> List[Tuple[TreatmentType, int, int]]:
        """(category, amount, count), highest amount first."""
        total = func.sum(Treatment.amount)
        stmt = (
            select(Treatment.category, total, func.count(Treatment.id))
            .where(Treatment.clinic_id == clinic_id)
            .group_by(Treatment.category)
            .order_by(total.desc())
        )
        stmt = _in_range(stmt, Treatment.date, start, end)
        rows = (await self.session.execute(stmt)).all()
        return [(TreatmentType(cat), int(amount), int(count)) for cat, amount, count in rows]

    async def totals_by_patient(
        self, clinic_id: UUID, start: _dt.date, end: _dt.date, limit: int = 10
    ) -> List[Tuple[UUID, str, int, int]]:
        """(patient id, name, amount, visits), highest amount first."""
        total = func.sum(Treatment.amount)
        stmt = (
            select(Patient.id, Patient.name, total, func.count(Treatment.id))
            .join(Patient, Treatment.patient_id == Patient.id)
            .where(Treatment.clinic_id == clinic_id)
            .group_by(Patient.id, Patient.name)
            .order_by(total.desc(), Patient.name.asc())
            .limit(limit)
        )
        stmt = _in_range(stmt, Treatment.date, start, end)
        rows = (await self.session.execute(stmt)).all()
        return [(pid, name, int(amount), int(count)) for pid, name, amount, count in rows]

    async def list_for_categories(
        self, clinic_id: UUID, categories: Iterable[TreatmentType]
    ) -> List[Treatment]:
        """All treatments of the given categories, newest first."""
        cats = list(categories)
        if not cats:
            return []
        stmt = (
            select(Treatment)
            .where(Treatment.clinic_id == clinic_id, Treatment.category.in_(cats))
            .order_by(Treatment.date.desc(), Treatment.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_patient(self, patient_id: UUID) -> List[Treatment]:
        stmt = (
            select(Treatment)
            .where(Treatment.patient_id == patient_id)
            .order_by(Treatment.date.asc(), Treatment.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class ExpenseRepository(BaseRepository[Expense]):
    model = Expense

    async def sum_and_count(
        self,
        clinic_id: UUID,
        start: Optional[_dt.date] = None,
        end: Optional[_dt.date] = None,
    ) -> Tuple[int, int]:
        stmt = select(
            func.coalesce(func.sum(Expense.amount), 0), func.count(Expense.id)
        ).where(Expense.clinic_id == clinic_id)
        stmt = _in_range(stmt, Expense.date, start, end)
        total, count = (await self.session.execute(stmt)).one()
        return int(total), int(count)

    async def list_in_range(self, clinic_id: UUID, start: _dt.date, end: _dt.date) -> List[Expense]:
        stmt = select(Expense).where(Expense.clinic_id == clinic_id).order_by(Expense.date.asc())
        stmt = _in_range(stmt, Expense.date, start, end)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
