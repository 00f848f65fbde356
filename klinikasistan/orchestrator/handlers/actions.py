"""Action handlers: one per persisted message type."""
from __future__ import annotations

import datetime as _dt
import logging
from typing import TYPE_CHECKING
from uuid import UUID

from klinikasistan.core.enums import StockMovementType
from klinikasistan.core.exceptions import NotFoundError
from klinikasistan.core.formatting import format_amount, format_long_weekday_date
from klinikasistan.orchestrator.dates import DateResolver
from klinikasistan.orchestrator.handlers.base import ActionHandler
from klinikasistan.orchestrator.types import (
    AppointmentMessage,
    DispatchResult,
    ExpenseMessage,
    IncomeMessage,
    StockInMessage,
    StockOutMessage,
)
from klinikasistan.services.appointment_service import AppointmentService
from klinikasistan.services.availability_service import AvailabilityService, add_minutes
from klinikasistan.services.finance_service import FinanceService
from klinikasistan.services.patient_service import PatientService
from klinikasistan.services.stock_service import StockService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class AppointmentAction(ActionHandler):
    def __init__(self, *, default_minutes: int = 30) -> None:
        self._default_minutes = default_minutes

    async def handle(
        self,
        message: AppointmentMessage,
        session: "AsyncSession",
        *,
        clinic_id: UUID,
        now: _dt.datetime,
    ) -> DispatchResult:
        patient, is_new = await PatientService(session).find_or_create(message.patient_name, clinic_id)
        minutes = await AvailabilityService(session).slot_minutes(clinic_id, message.date, self._default_minutes)
        appt = await AppointmentService(session).create_appointment(
            clinic_id=clinic_id,
            patient_id=patient.id,
            date=message.date,
            start_time=message.time,
            end_time=add_minutes(message.time, minutes),
            treatment_type=message.treatment_type,
            notes=message.notes,
        )
        text = (
            "✅ Randevu oluşturuldu:\n"
            f"{patient.name} - {format_long_weekday_date(message.date)} {appt.start_time} - "
            f"{message.treatment_type.label}"
        )
        if message.notes:
            text += f"\nNot: {message.notes}"
        if is_new:
            text += f"\n⚠️ Yeni hasta oluşturuldu: {patient.name}"
        return DispatchResult(success=True, confirmation_text=text, record_id=appt.id, patient_is_new=is_new)


class IncomeAction(ActionHandler):
    def __init__(self, resolver: DateResolver) -> None:
        self._resolver = resolver

    async def handle(
        self,
        message: IncomeMessage,
        session: "AsyncSession",
        *,
        clinic_id: UUID,
        now: _dt.datetime,
    ) -> DispatchResult:
        patient, is_new = await PatientService(session).find_or_create(message.patient_name, clinic_id)
        treatment = await FinanceService(session).record_income(
            clinic_id=clinic_id,
            patient_id=patient.id,
            category=message.treatment_type,
            amount=message.amount,
            date=self._resolver.today(now),
            name=message.treatment_name or message.treatment_type.label,
            description=message.notes,
        )
        label = message.treatment_name or message.treatment_type.label
        text = f"✅ {patient.name} - {label} - {format_amount(message.amount)} TL kaydedildi"
        if is_new:
            text += f"\n⚠️ Yeni hasta oluşturuldu: {patient.name}"
        return DispatchResult(success=True, confirmation_text=text, record_id=treatment.id, patient_is_new=is_new)


class ExpenseAction(ActionHandler):
    def __init__(self, resolver: DateResolver) -> None:
        self._resolver = resolver

    async def handle(
        self,
        message: ExpenseMessage,
        session: "AsyncSession",
        *,
        clinic_id: UUID,
        now: _dt.datetime,
    ) -> DispatchResult:
        expense = await FinanceService(session).record_expense(
            clinic_id=clinic_id,
            description=message.description,
            amount=message.amount,
            category=message.category,
            date=self._resolver.today(now),
        )
        text = f"✅ Gider kaydedildi: {message.description} - {format_amount(message.amount)} TL"
        return DispatchResult(success=True, confirmation_text=text, record_id=expense.id)


class StockAction(ActionHandler):
    """STOCK_IN / STOCK_OUT against the first product whose name contains the given text."""

    def __init__(self, resolver: DateResolver, movement: StockMovementType) -> None:
        self._resolver = resolver
        self._movement = movement

    async def handle(
        self,
        message: StockInMessage | StockOutMessage,
        session: "AsyncSession",
        *,
        clinic_id: UUID,
        now: _dt.datetime,
    ) -> DispatchResult:
        stock = StockService(session)
        product = await stock.find_product(clinic_id, message.product_name)
        if product is None:
            raise NotFoundError(
                f'Ürün bulunamadı: "{message.product_name}"',
                details={"product_name": message.product_name},
            )
        movement, new_stock = await stock.record_movement(
            clinic_id=clinic_id,
            product_id=product.id,
            type=self._movement,
            quantity=message.quantity,
            unit_price=message.unit_price,
            description=message.notes,
            date=self._resolver.today(now),
        )
        if self._movement == StockMovementType.IN:
            head = f"✅ Stok girişi kaydedildi: {product.name} +{message.quantity}"
        else:
            head = f"✅ Stok çıkışı kaydedildi: {product.name} -{message.quantity}"
        text = f"{head} {product.unit}\n📦 Güncel stok: {new_stock} {product.unit}"
        return DispatchResult(success=True, confirmation_text=text, record_id=movement.id)
