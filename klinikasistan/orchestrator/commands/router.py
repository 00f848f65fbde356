"""Slash-command router.

``route`` never raises. Each command runs in its own database session and
degrades to a command-specific failure text; the outer catch-all covers
everything else (session setup, commit).
"""
from __future__ import annotations

import datetime as _dt
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional
from uuid import UUID

from klinikasistan.core.exceptions import ClinicError
from klinikasistan.orchestrator.commands.reports import (
    HELP_TEXT,
    REMINDER_HELP,
    TOP_HELP,
    ClinicReports,
)
from klinikasistan.orchestrator.dates import THIS_WEEK, DateResolver, normalize
from klinikasistan.orchestrator.types import CommandResult

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from klinikasistan.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "❌ Komut calistirilirken bir hata olustu. Lutfen tekrar deneyin."

CommandHandler = Callable[[ClinicReports, str, UUID, _dt.datetime], Awaitable[str]]

_FAILURES: Dict[str, str] = {
    "randevu": "❌ Randevular getirilirken bir hata olustu.",
    "gelir": "❌ Gelir bilgisi alinamadi.",
    "gider": "❌ Gider bilgisi alinamadi.",
    "rapor": "❌ Rapor olusturulamadi.",
    "kasa": "❌ Kasa durumu alinamadi.",
    "hasta": "❌ Hasta bilgisi alinamadi.",
    "hastalar": "❌ Hasta listesi alinamadi.",
    "hatirlatmalar": "❌ Hatirlatmalar getirilemedi.",
    "hatirlatma": "❌ Hatirlatmalar gonderilemedi.",
    "top": "❌ Siralama olusturulamadi.",
    "prim": "❌ Prim raporu olusturulamadi.",
    "ozet": "❌ Günlük ozet olusturulamadi.",
}


def split_command(raw_text: str) -> tuple[str, str]:
    """``"/Gelir  ocak"`` -> ``("gelir", "ocak")``."""
    parts = raw_text.strip().split()
    name = parts[0][1:].lower() if parts else ""
    return name, " ".join(parts[1:])


class CommandRouter:
    def __init__(
        self,
        session_factory: "async_sessionmaker[AsyncSession]",
        resolver: DateResolver,
        *,
        reminders: Optional["ReminderService"] = None,
    ) -> None:
        self._session_factory = session_factory
        self._resolver = resolver
        self._reminders = reminders
        self._commands: Dict[str, CommandHandler] = {
            "randevu": self._appointments,
            "gelir": self._income,
            "gider": self._expenses,
            "rapor": self._report,
            "kasa": self._cash,
            "hasta": self._patient,
            "hastalar": self._patients,
            "hatirlatmalar": self._reminders_list,
            "hatirlatma": self._reminders_send,
            "top": self._top,
            "prim": self._commissions,
            "ozet": self._summary,
        }

    async def route(self, raw_text: str, clinic_id: UUID, now: _dt.datetime) -> CommandResult:
        text = raw_text.strip()
        if not text.startswith("/"):
            return CommandResult(is_command=False)

        name, args = split_command(text)
        if name in ("yardim", "help"):
            return CommandResult(is_command=True, response_text=HELP_TEXT)
        handler = self._commands.get(name)
        if handler is None:
            return CommandResult(
                is_command=True,
                response_text=f"❌ Bilinmeyen komut: /{name}\n\nKullanilabilir komutlar icin /yardim yazin.",
            )

        try:
            async with self._session_factory() as session:
                reports = ClinicReports(session, self._resolver, reminders=self._reminders)
                reply = await self._guarded(name, handler, reports, args, clinic_id, now)
                await session.commit()
        except Exception:
            logger.exception("CommandRouter: /%s failed", name, extra={"clinic_id": str(clinic_id), "command": name})
            reply = GENERIC_FAILURE
        return CommandResult(is_command=True, response_text=reply)

    async def _guarded(
        self,
        name: str,
        handler: CommandHandler,
        reports: ClinicReports,
        args: str,
        clinic_id: UUID,
        now: _dt.datetime,
    ) -> str:
        try:
            return await handler(reports, args, clinic_id, now)
        except ClinicError as exc:
            logger.warning("CommandRouter: /%s rejected: %s", name, exc.message)
            return exc.reply_text
        except Exception:
            logger.exception("CommandRouter: /%s handler error", name, extra={"clinic_id": str(clinic_id), "command": name})
            return _FAILURES.get(name, GENERIC_FAILURE)

    # ── handlers ─────────────────────────────────────────────────────────

    async def _appointments(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        expr = normalize(args)
        if expr == "iptal" or expr.startswith("iptal "):
            return await reports.cancel_by_patient_name(clinic_id, args.strip()[5:].strip())
        if expr == THIS_WEEK:
            return await reports.weekly_appointments(clinic_id, now)
        day = self._resolver.resolve_single_date(args, now) or self._resolver.today(now)
        return await reports.appointments_for_day(clinic_id, day)

    async def _income(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        return await reports.income(clinic_id, self._resolver.resolve_period(args, now))

    async def _expenses(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        return await reports.expenses(clinic_id, self._resolver.resolve_period(args, now))

    async def _report(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        if normalize(args) == "detay":
            return await reports.detailed_report(clinic_id, now)
        return await reports.report(clinic_id, self._resolver.resolve_period(args, now))

    async def _cash(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        return await reports.cash(clinic_id)

    async def _patient(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        return await reports.patient_info(clinic_id, args, now)

    async def _patients(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        return await reports.patients_list(clinic_id)

    async def _reminders_list(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        return await reports.pending_reminders(clinic_id, now)

    async def _reminders_send(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        if normalize(args) in ("gonder", "gönder"):
            return await reports.send_reminders(clinic_id, now)
        return REMINDER_HELP

    async def _top(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        kind = normalize(args)
        if kind in ("servis", "hizmet"):
            return await reports.top_services(clinic_id, now)
        if kind in ("hasta", "musteri", "müşteri"):
            return await reports.top_patients(clinic_id, now)
        return TOP_HELP

    async def _commissions(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        return await reports.commissions(clinic_id, now)

    async def _summary(self, reports: ClinicReports, args: str, clinic_id: UUID, now: _dt.datetime) -> str:
        return await reports.daily_summary(clinic_id, now)
