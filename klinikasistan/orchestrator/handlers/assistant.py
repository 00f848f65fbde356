"""ClinicAssistant: open-ended questions answered through tool calls.

The model picks one tool per step; the tool runs in its own short database
session and its result goes back to the model as a JSON string. The loop
ends on a plain answer or after ``max_steps`` tool calls.
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID

from klinikasistan.core.enums import TreatmentType
from klinikasistan.core.exceptions import ClinicError, ValidationError
from klinikasistan.infra.database.repositories.appointment import AppointmentRepository
from klinikasistan.infra.database.repositories.finance import ExpenseRepository, TreatmentRepository
from klinikasistan.infra.database.repositories.patient import PatientRepository
from klinikasistan.orchestrator.dates import DateResolver, month_range
from klinikasistan.services.appointment_service import AppointmentService
from klinikasistan.services.availability_service import AvailabilityService
from klinikasistan.services.finance_service import FinanceService, included_vat

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from klinikasistan.clients.llm.base import BaseLLMClient, LLMMessage

logger = logging.getLogger(__name__)

APOLOGY = "AI yanıt veremedi. Lütfen tekrar deneyin."
EMPTY_ANSWER = "Yanıt oluşturulamadı."

SYSTEM_PROMPT = """\
Sen KlinikAsistan AI asistanısın. Bir klinik yönetim sistemi için akıllı bir yardımcısın.
Bugün: {today}
Görevlerin:
- Klinik gelir-gider analizleri yapma
- Hasta bilgilerini sorgulama
- KDV hesaplamaları
- Finansal özetler sunma
- Klinik yönetimi tavsiyeleri verme
- Randevu yönetimi (bugünün randevuları, müsait saatler, randevu oluşturma ve iptal)

Kurallar:
- Her zaman Türkçe yanıt ver
- Parasal değerleri TL formatında göster (ör: 1.500,00 ₺)
- Tarihler gün/ay/yıl formatında olsun
- Profesyonel ve yardımcı bir ton kullan
- Eğer veri bulamazsan, bunu açıkça belirt"""

_MONTH_YEAR = {
    "type": "object",
    "properties": {
        "month": {"type": "integer", "description": "Ay (1-12)"},
        "year": {"type": "integer", "description": "Yıl"},
    },
    "required": ["month", "year"],
}


@dataclass
class ToolContext:
    clinic_id: UUID
    now: _dt.datetime


@dataclass
class ToolDefinition:
    """Schema for a callable tool."""

    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    handler: Optional[Callable[..., Awaitable[Any]]] = None


class ToolRegistry:
    """Registry of available tools."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        self._tools[tool.name] = tool
        logger.debug("ToolRegistry: registered tool '%s'", tool.name)

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._tools.keys())

    def get_schema_for_llm(self) -> List[dict]:
        """OpenAI function-calling schema."""
        return [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.parameters,
                },
            }
            for t in self._tools.values()
        ]


def to_tl(kurus: int) -> float:
    return kurus / 100


def _uuid(value: Any, label: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise ValidationError(f"Geçersiz {label}", cause=exc) from exc


def _date(value: Any) -> _dt.date:
    try:
        return _dt.date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError("Tarih YYYY-MM-DD biçiminde olmalı", cause=exc) from exc


class ClinicTools:
    """Tool implementations; every call opens and commits its own session."""

    def __init__(self, session_factory: "async_sessionmaker[AsyncSession]", resolver: DateResolver) -> None:
        self._session_factory = session_factory
        self._resolver = resolver

    def registry(self) -> ToolRegistry:
        reg = ToolRegistry()
        for tool in (
            ToolDefinition(
                "get_monthly_revenue",
                "Belirtilen ay ve yıl için aylık gelir toplamını getirir.",
                _MONTH_YEAR,
                self.monthly_revenue,
            ),
            ToolDefinition(
                "get_expenses",
                "Belirtilen ay ve yıl için giderleri listeler ve toplamını getirir.",
                _MONTH_YEAR,
                self.expenses,
            ),
            ToolDefinition(
                "get_income_statement",
                "Belirtilen ay için gelir tablosu: toplam gelir, gider, net kâr ve KDV hesabı.",
                _MONTH_YEAR,
                self.income_statement,
            ),
            ToolDefinition(
                "get_vat_summary",
                "Belirtilen ay için KDV özeti: KDV dahil toplam, KDV tutarı, KDV hariç toplam.",
                _MONTH_YEAR,
                self.vat_summary,
            ),
            ToolDefinition(
                "search_patients",
                "Hasta adı veya telefon numarasına göre hasta arar.",
                {
                    "type": "object",
                    "properties": {"query": {"type": "string", "description": "Arama terimi"}},
                    "required": ["query"],
                },
                self.search_patients,
            ),
            ToolDefinition(
                "get_patient_history",
                "Belirtilen hastanın detaylı bilgilerini ve tedavi geçmişini getirir.",
                {
                    "type": "object",
                    "properties": {"patient_id": {"type": "string", "description": "Hasta ID"}},
                    "required": ["patient_id"],
                },
                self.patient_history,
            ),
            ToolDefinition(
                "get_todays_appointments",
                "Bugünün randevularını getirir. Hasta adı, saat, işlem türü ve durum bilgisini içerir.",
                {"type": "object", "properties": {}, "required": []},
                self.todays_appointments,
            ),
            ToolDefinition(
                "get_available_slots",
                "Belirtilen tarih için müsait randevu saatlerini getirir.",
                {
                    "type": "object",
                    "properties": {"date": {"type": "string", "description": "Tarih (YYYY-MM-DD formatında)"}},
                    "required": ["date"],
                },
                self.available_slots,
            ),
            ToolDefinition(
                "create_appointment",
                "Yeni bir randevu oluşturur.",
                {
                    "type": "object",
                    "properties": {
                        "patient_id": {"type": "string", "description": "Hasta ID"},
                        "date": {"type": "string", "description": "Tarih (YYYY-MM-DD)"},
                        "start_time": {"type": "string", "description": "Başlangıç saati (HH:MM)"},
                        "end_time": {"type": "string", "description": "Bitiş saati (HH:MM)"},
                        "treatment_type": {
                            "type": "string",
                            "enum": [t.value for t in TreatmentType],
                            "description": "İşlem türü",
                        },
                        "notes": {"type": "string", "description": "Notlar (opsiyonel)"},
                    },
                    "required": ["patient_id", "date", "start_time", "end_time", "treatment_type"],
                },
                self.create_appointment,
            ),
            ToolDefinition(
                "cancel_appointment",
                "Bir randevuyu iptal eder. İptal edilen saati ve müsait alternatifleri döner.",
                {
                    "type": "object",
                    "properties": {"appointment_id": {"type": "string", "description": "Randevu ID"}},
                    "required": ["appointment_id"],
                },
                self.cancel_appointment,
            ),
        ):
            reg.register(tool)
        return reg

    async def monthly_revenue(self, ctx: ToolContext, month: int, year: int) -> Dict[str, Any]:
        period = month_range(int(year), int(month))
        async with self._session_factory() as session:
            total, count = await TreatmentRepository(session).sum_and_count(ctx.clinic_id, period.start, period.end)
        return {"total_revenue_tl": to_tl(total), "treatment_count": count, "month": month, "year": year}

    async def expenses(self, ctx: ToolContext, month: int, year: int) -> Dict[str, Any]:
        period = month_range(int(year), int(month))
        async with self._session_factory() as session:
            rows = await ExpenseRepository(session).list_in_range(ctx.clinic_id, period.start, period.end)
        return {
            "expenses": [
                {"description": e.description, "amount_tl": to_tl(e.amount), "category": e.category.value}
                for e in rows
            ],
            "total_expenses_tl": to_tl(sum(e.amount for e in rows)),
            "month": month,
            "year": year,
        }

    async def income_statement(self, ctx: ToolContext, month: int, year: int) -> Dict[str, Any]:
        period = month_range(int(year), int(month))
        async with self._session_factory() as session:
            st = await FinanceService(session).income_statement(ctx.clinic_id, period.start, period.end)
        return {
            "total_revenue_tl": to_tl(st.income),
            "total_expenses_tl": to_tl(st.expense),
            "net_profit_tl": to_tl(st.net),
            "vat_amount_tl": to_tl(st.vat),
            "tax_rate": st.tax_rate,
            "month": month,
            "year": year,
        }

    async def vat_summary(self, ctx: ToolContext, month: int, year: int) -> Dict[str, Any]:
        period = month_range(int(year), int(month))
        async with self._session_factory() as session:
            finance = FinanceService(session)
            total, _ = await TreatmentRepository(session).sum_and_count(ctx.clinic_id, period.start, period.end)
            rate = await finance.tax_rate(ctx.clinic_id)
        vat = included_vat(total, rate)
        return {
            "total_with_vat_tl": to_tl(total),
            "vat_amount_tl": to_tl(vat),
            "total_without_vat_tl": to_tl(total - vat),
            "tax_rate": rate,
            "month": month,
            "year": year,
        }

    async def search_patients(self, ctx: ToolContext, query: str) -> Dict[str, Any]:
        async with self._session_factory() as session:
            rows = await PatientRepository(session).search(ctx.clinic_id, query, limit=10)
        return {
            "patients": [
                {"id": str(p.id), "name": p.name, "phone": p.phone, "email": p.email} for p in rows
            ]
        }

    async def patient_history(self, ctx: ToolContext, patient_id: str) -> Dict[str, Any]:
        async with self._session_factory() as session:
            patient = await PatientRepository(session).get_for_clinic(_uuid(patient_id, "hasta ID"), ctx.clinic_id)
            if patient is None:
                return {"error": "Hasta bulunamadı"}
            treatments = await TreatmentRepository(session).list_for_patient(patient.id)
        return {
            "name": patient.name,
            "phone": patient.phone,
            "email": patient.email,
            "notes": patient.notes,
            "treatments": [
                {
                    "name": t.name,
                    "category": t.category.value,
                    "amount_tl": to_tl(t.amount),
                    "date": t.date.isoformat(),
                }
                for t in reversed(treatments)
            ],
        }

    async def todays_appointments(self, ctx: ToolContext) -> Dict[str, Any]:
        today = self._resolver.today(ctx.now)
        async with self._session_factory() as session:
            rows = await AppointmentRepository(session).list_for_day(ctx.clinic_id, today)
        return {
            "date": today.isoformat(),
            "appointments": [
                {
                    "id": str(a.id),
                    "patient_name": a.patient.name,
                    "patient_phone": a.patient.phone,
                    "start_time": a.start_time,
                    "end_time": a.end_time,
                    "treatment_type": a.treatment_type.value,
                    "status": a.status.value,
                    "notes": a.notes,
                }
                for a in rows
            ],
            "total_count": len(rows),
        }

    async def available_slots(self, ctx: ToolContext, date: str) -> Dict[str, Any]:
        day = _date(date)
        async with self._session_factory() as session:
            slots = await AvailabilityService(session).get_slots(ctx.clinic_id, day)
        if not slots:
            return {"message": "Bu gün için çalışma programı bulunmuyor", "slots": []}
        return {
            "date": day.isoformat(),
            "slots": [s.to_dict() for s in slots],
            "available_count": sum(1 for s in slots if s.available),
        }

    async def create_appointment(
        self,
        ctx: ToolContext,
        patient_id: str,
        date: str,
        start_time: str,
        end_time: str,
        treatment_type: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        day = _date(date)
        try:
            category = TreatmentType(str(treatment_type).upper())
        except ValueError as exc:
            raise ValidationError("Geçersiz işlem türü", cause=exc) from exc
        async with self._session_factory() as session:
            patient = await PatientRepository(session).get_for_clinic(_uuid(patient_id, "hasta ID"), ctx.clinic_id)
            if patient is None:
                return {"error": "Hasta bulunamadı"}
            appt = await AppointmentService(session).create_appointment(
                clinic_id=ctx.clinic_id,
                patient_id=patient.id,
                date=day,
                start_time=start_time,
                end_time=end_time,
                treatment_type=category,
                notes=notes,
            )
            await session.commit()
        return {
            "id": str(appt.id),
            "patient_name": patient.name,
            "date": day.isoformat(),
            "start_time": appt.start_time,
            "end_time": appt.end_time,
            "treatment_type": category.value,
            "message": "Randevu oluşturuldu",
        }

    async def cancel_appointment(self, ctx: ToolContext, appointment_id: str) -> Dict[str, Any]:
        async with self._session_factory() as session:
            service = AppointmentService(session)
            appt = await service.get(ctx.clinic_id, _uuid(appointment_id, "randevu ID"))
            patient_name = appt.patient.name
            await service.cancel(ctx.clinic_id, appt.id)
            await session.commit()
            slots = await AvailabilityService(session).get_slots(ctx.clinic_id, appt.date)
        return {
            "message": "Randevu iptal edildi",
            "cancelled_appointment": {
                "patient_name": patient_name,
                "date": appt.date.isoformat(),
                "start_time": appt.start_time,
                "end_time": appt.end_time,
                "treatment_type": appt.treatment_type.value,
            },
            "available_slots": [f"{s.start_time}-{s.end_time}" for s in slots if s.available],
        }


class ClinicAssistant:
    def __init__(
        self,
        llm: "BaseLLMClient",
        tools: ClinicTools,
        resolver: DateResolver,
        *,
        max_steps: int = 5,
        timeout_seconds: Optional[float] = 30,
    ) -> None:
        self._llm = llm
        self._registry = tools.registry()
        self._resolver = resolver
        self._max_steps = max_steps
        self._timeout = timeout_seconds

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def answer(
        self,
        messages: List["LLMMessage"],
        clinic_id: UUID,
        now: Optional[_dt.datetime] = None,
    ) -> str:
        """Answer the last user turn of ``messages``; never raises."""
        now = now or _dt.datetime.now(_dt.timezone.utc)
        turns = [m for m in messages if m.get("role") in ("user", "assistant") and m.get("content")]
        if not turns or turns[-1]["role"] != "user":
            return EMPTY_ANSWER
        question = turns[-1]["content"]
        history: List["LLMMessage"] = [
            {"role": "system", "content": SYSTEM_PROMPT.format(today=self._resolver.today(now).isoformat())},
            *turns[:-1],
        ]
        ctx = ToolContext(clinic_id=clinic_id, now=now)
        schemas = self._registry.get_schema_for_llm()

        try:
            for step in range(self._max_steps):
                fc = await self._bounded(self._llm.function_call(question, schemas, conversation_history=history))
                if fc is None or not fc.tool_name:
                    break
                result = await self._execute(fc.tool_name, fc.arguments, ctx)
                logger.info(
                    "ClinicAssistant: step %d tool='%s'", step + 1, fc.tool_name,
                    extra={"clinic_id": str(clinic_id)},
                )
                history.append({
                    "role": "assistant",
                    "content": f"[{fc.tool_name}] {json.dumps(fc.arguments, ensure_ascii=False, default=str)}",
                })
                history.append({"role": "user", "content": f"Araç sonucu ({fc.tool_name}): {result}"})
            else:
                logger.warning("ClinicAssistant: stopped after %d tool steps", self._max_steps)

            reply = await self._bounded(self._llm.chat([*history, {"role": "user", "content": question}]))
        except asyncio.TimeoutError:
            logger.warning("ClinicAssistant: model call timed out after %ss", self._timeout)
            return APOLOGY
        except Exception:
            logger.exception("ClinicAssistant: model call failed")
            return APOLOGY
        return (reply or "").strip() or EMPTY_ANSWER

    async def _bounded(self, coro: Awaitable[Any]) -> Any:
        if self._timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout=self._timeout)

    async def _execute(self, name: str, arguments: Dict[str, Any], ctx: ToolContext) -> str:
        """Run one tool and return its result as a JSON string."""
        tool = self._registry.get(name)
        if tool is None or tool.handler is None:
            result: Any = {"error": f"Bilinmeyen araç: {name}"}
        else:
            try:
                result = await tool.handler(ctx, **arguments)
            except TypeError as exc:
                logger.error("ClinicAssistant: tool '%s' called with bad arguments %s: %s", name, arguments, exc)
                result = {"error": "Geçersiz araç parametreleri"}
            except ClinicError as exc:
                result = {"error": exc.message}
            except Exception:
                logger.exception("ClinicAssistant: tool '%s' raised", name)
                result = {"error": "Araç çalıştırılamadı"}
        return json.dumps(result, ensure_ascii=False, default=str)
