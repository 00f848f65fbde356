"""FinanceService: income and expense records plus period aggregates (kuruş)."""
from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.core.enums import ExpenseCategory, TreatmentType
from klinikasistan.core.exceptions import ValidationError
from klinikasistan.infra.database.models.finance import Expense, Treatment
from klinikasistan.infra.database.repositories.clinic import ClinicRepository
from klinikasistan.infra.database.repositories.finance import ExpenseRepository, TreatmentRepository

logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE = 20


def included_vat(gross: int, tax_rate: int) -> int:
    """VAT contained in a VAT-inclusive amount, rounded half up to whole kuruş."""
    if gross <= 0 or tax_rate <= 0:
        return 0
    return (gross * tax_rate * 2 + (100 + tax_rate)) // (2 * (100 + tax_rate))


@dataclass(frozen=True)
class IncomeStatement:
    income: int
    expense: int
    tax_rate: int

    @property
    def net(self) -> int:
        return self.income - self.expense

    @property
    def vat(self) -> int:
        return included_vat(self.income, self.tax_rate)


class FinanceService:
    def __init__(self, session: AsyncSession) -> None:
        self._treatments = TreatmentRepository(session)
        self._expenses = ExpenseRepository(session)
        self._clinics = ClinicRepository(session)

    async def record_income(
        self,
        *,
        clinic_id: UUID,
        patient_id: UUID,
        category: TreatmentType,
        amount: int,
        date: _dt.date,
        name: Optional[str] = None,
        description: Optional[str] = None,
        employee_id: Optional[UUID] = None,
    ) -> Treatment:
        if amount <= 0:
            raise ValidationError("Tutar sıfırdan büyük olmalı", details={"amount": amount})
        treatment = await self._treatments.create({
            "clinic_id": clinic_id,
            "patient_id": patient_id,
            "employee_id": employee_id,
            "name": name or category.value,
            "category": category,
            "amount": amount,
            "date": date,
            "description": description or None,
        })
        logger.info("FinanceService: income %s recorded (%d kuruş)", treatment.id, amount)
        return treatment

    async def record_expense(
        self,
        *,
        clinic_id: UUID,
        description: str,
        amount: int,
        category: ExpenseCategory,
        date: _dt.date,
    ) -> Expense:
        if amount <= 0:
            raise ValidationError("Tutar sıfırdan büyük olmalı", details={"amount": amount})
        expense = await self._expenses.create({
            "clinic_id": clinic_id,
            "description": description,
            "amount": amount,
            "category": category,
            "date": date,
        })
        logger.info("FinanceService: expense %s recorded (%d kuruş)", expense.id, amount)
        return expense

    async def tax_rate(self, clinic_id: UUID) -> int:
        clinic = await self._clinics.get_by_id(clinic_id)
        rate = getattr(clinic, "tax_rate", None)
        return int(rate) if rate else DEFAULT_TAX_RATE

    async def income_statement(
        self,
        clinic_id: UUID,
        start: Optional[_dt.date] = None,
        end: Optional[_dt.date] = None,
    ) -> IncomeStatement:
        income, _ = await self._treatments.sum_and_count(clinic_id, start, end)
        expense, _ = await self._expenses.sum_and_count(clinic_id, start, end)
        return IncomeStatement(income=income, expense=expense, tax_rate=await self.tax_rate(clinic_id))
