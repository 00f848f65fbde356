"""Text reports behind the slash commands.

Each method returns the finished reply. Amounts are kuruş and all day ranges
come from the date resolver as inclusive clinic-local dates.
"""
from __future__ import annotations

import datetime as _dt
import logging
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.core.enums import AppointmentStatus, TreatmentType
from klinikasistan.core.formatting import (
    TURKISH_DAYS,
    TURKISH_MONTHS,
    format_date_short,
    format_date_tr,
    format_day_month,
    format_day_short_month,
    format_tl,
    format_tl_detailed,
    medal,
    sunday_weekday,
)
from klinikasistan.infra.database.repositories.appointment import AppointmentRepository
from klinikasistan.infra.database.repositories.clinic import EmployeeRepository
from klinikasistan.infra.database.repositories.finance import ExpenseRepository, TreatmentRepository
from klinikasistan.infra.database.repositories.patient import PatientRepository
from klinikasistan.orchestrator.dates import DateResolver, Period, local_date
from klinikasistan.services.batch import STATUS_SENT
from klinikasistan.services.finance_service import FinanceService, included_vat

if TYPE_CHECKING:
    from klinikasistan.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)


def rounded_percent(part: int, whole: int) -> int:
    """round(part / whole * 100), halves toward +inf; 0 when whole is 0."""
    if whole == 0:
        return 0
    return (part * 200 + whole) // (2 * whole)


def _label(category) -> str:
    return TreatmentType(category).label


HELP_TEXT = "\n".join([
    "📖 Komut Listesi:",
    "",
    "📅 Randevu Komutlari:",
    "/randevu - Bugünkü randevular",
    "/randevu yarin - Yarinin randevulari",
    "/randevu bu hafta - Haftalik ozet",
    "/randevu iptal [isim] - Randevu iptali",
    "",
    "💰 Finans Komutlari:",
    "/gelir - Bu ayin geliri",
    "/gelir [dönem] - Dönem geliri",
    "/gider - Bu ayin gideri",
    "/rapor - Aylik rapor",
    "/kasa - Kasa durumu",
    "",
    "📊 Rapor Komutlari:",
    "/rapor detay - Detayli aylik rapor",
    "/top servis - En cok kazandiran servisler",
    "/top hasta - En cok gelen hastalar",
    "/prim - Calisan prim raporu",
    "",
    "👤 Hasta Komutlari:",
    "/hasta [isim] - Hasta bilgisi",
    "/hastalar - Hasta listesi",
    "/hatirlatmalar - Günün hatirlatmalari",
    "/hatirlatma gonder - Hatirlatmalari gonder",
    "",
    "📋 Genel:",
    "/ozet - Günlük ozet",
    "/yardim - Bu yardim mesaji",
])

REMINDER_HELP = "\n".join([
    "🔔 Hatirlatma Komutlari:",
    "/hatirlatmalar - Bekleyen hatirlatmalari goster",
    "/hatirlatma gonder - Tum hatirlatmalari gonder",
])

TOP_HELP = "\n".join([
    "📊 Top Komutlari:",
    "/top servis - En cok kazandiran servisler",
    "/top hasta - En cok gelen hastalar",
])


class ClinicReports:
    def __init__(
        self,
        session: AsyncSession,
        resolver: DateResolver,
        *,
        reminders: Optional["ReminderService"] = None,
    ) -> None:
        self._resolver = resolver
        self._reminders = reminders
        self._appointments = AppointmentRepository(session)
        self._treatments = TreatmentRepository(session)
        self._expenses = ExpenseRepository(session)
        self._patients = PatientRepository(session)
        self._employees = EmployeeRepository(session)
        self._finance = FinanceService(session)

    # ── appointments ─────────────────────────────────────────────────────

    async def appointments_for_day(self, clinic_id: UUID, day: _dt.date) -> str:
        rows = await self._appointments.list_for_day(clinic_id, day)
        label = format_date_tr(day)
        if not rows:
            return f"📅 {label} icin randevu bulunmuyor."
        lines = [f"{a.start_time} - {a.patient.name} ({_label(a.treatment_type)})" for a in rows]
        return "\n".join([f"📅 {label} Randevulari:", *lines, "", f"Toplam: {len(rows)} randevu"])

    async def weekly_appointments(self, clinic_id: UUID, now: _dt.datetime) -> str:
        week = self._resolver.this_week(now)
        counts = await self._appointments.counts_by_day(clinic_id, week.start, week.end)
        lines: List[str] = []
        total = 0
        for offset in range(7):
            day = week.start + _dt.timedelta(days=offset)
            count = counts.get(day, 0)
            total += count
            lines.append(f"{TURKISH_DAYS[sunday_weekday(day)]} ({format_day_short_month(day)}): {count} randevu")
        return "\n".join(["📅 Bu Hafta Randevu Ozeti:", *lines, "", f"Toplam: {total} randevu"])

    async def cancel_by_patient_name(self, clinic_id: UUID, name: str) -> str:
        """Cancel the single SCHEDULED match; list candidates when there are several."""
        fragment = name.strip()
        if not fragment:
            return "⚠️ Iptal icin hasta adi belirtmelisiniz. Ornek: /randevu iptal Erdinc Ayar"
        matches = await self._appointments.scheduled_by_patient_name(clinic_id, fragment)
        if not matches:
            return f'❌ Randevu bulunamadi: "{fragment}"'
        if len(matches) == 1:
            appt = matches[0]
            await self._appointments.update_status(appt.id, AppointmentStatus.CANCELLED)
            logger.info("ClinicReports: cancelled appointment %s by name", appt.id)
            return "\n".join([
                "✅ Randevu iptal edildi:",
                f"👤 {appt.patient.name}",
                f"📅 {format_date_tr(appt.date)} {appt.start_time}",
                f"💉 {_label(appt.treatment_type)}",
            ])
        lines = [
            f"{i}. {a.patient.name} - {format_date_tr(a.date)} {a.start_time} ({_label(a.treatment_type)})"
            for i, a in enumerate(matches, start=1)
        ]
        return "\n".join([
            f"⚠️ Birden fazla randevu bulundu ({len(matches)}):",
            *lines,
            "",
            "Lutfen tarih belirterek tekrar deneyin.",
        ])

    # ── finance ──────────────────────────────────────────────────────────

    async def income(self, clinic_id: UUID, period: Period) -> str:
        total, count = await self._treatments.sum_and_count(clinic_id, period.start, period.end)
        return "\n".join([
            f"💰 {period.label} Gelir:",
            f"Toplam: {format_tl_detailed(total)}",
            f"Islem Sayisi: {count}",
        ])

    async def expenses(self, clinic_id: UUID, period: Period) -> str:
        total, count = await self._expenses.sum_and_count(clinic_id, period.start, period.end)
        return "\n".join([
            f"💸 {period.label} Gider:",
            f"Toplam: {format_tl_detailed(total)}",
            f"Islem Sayisi: {count}",
        ])

    async def report(self, clinic_id: UUID, period: Period) -> str:
        statement = await self._finance.income_statement(clinic_id, period.start, period.end)
        patients = await self._treatments.distinct_patient_count(clinic_id, period.start, period.end)
        appointments = await self._appointments.count_active_in_range(clinic_id, period.start, period.end)
        return "\n".join([
            f"📊 {period.label} Raporu:",
            f"💰 Gelir: {format_tl_detailed(statement.income)}",
            f"💸 Gider: {format_tl_detailed(statement.expense)}",
            f"📈 Net Kar: {format_tl_detailed(statement.net)}",
            f"🧾 KDV (%{statement.tax_rate}): {format_tl_detailed(statement.vat)}",
            f"👥 Hasta Sayisi: {patients}",
            f"📋 Randevu: {appointments}",
        ])

    async def detailed_report(self, clinic_id: UUID, now: _dt.datetime) -> str:
        month = self._resolver.current_month(now)
        income, income_count = await self._treatments.sum_and_count(clinic_id, month.start, month.end)
        expense, expense_count = await self._expenses.sum_and_count(clinic_id, month.start, month.end)
        by_category = await self._treatments.totals_by_category(clinic_id, month.start, month.end)
        patient_total = await self._patients.count_for_clinic(clinic_id)
        appointments = await self._appointments.count_active_in_range(clinic_id, month.start, month.end)
        tax_rate = await self._finance.tax_rate(clinic_id)
        net = income - expense

        lines = [
            f"📊 Detayli Rapor - {month.label}:",
            "",
            "💰 Gelir:",
            f"Toplam: {format_tl_detailed(income)} ({income_count} islem)",
            "",
        ]
        if by_category:
            lines.append("📋 Kategori Dagilimi:")
            for category, amount, _ in by_category:
                lines.append(f"{category.label}: {format_tl(amount)} (%{rounded_percent(amount, income)})")
            lines.append("")
        lines += [
            "💸 Gider:",
            f"Toplam: {format_tl_detailed(expense)} ({expense_count} islem)",
            "",
            "📈 Kar-Zarar:",
            f"Net Kar: {format_tl_detailed(net)}",
            f"Kar Marji: %{rounded_percent(net, income)}",
            f"KDV (%{tax_rate}): {format_tl_detailed(included_vat(income, tax_rate))}",
            "",
            f"👥 Hasta: {patient_total} | 📋 Randevu: {appointments}",
        ]
        return "\n".join(lines)

    async def cash(self, clinic_id: UUID) -> str:
        income, _ = await self._treatments.sum_and_count(clinic_id)
        expense, _ = await self._expenses.sum_and_count(clinic_id)
        return "\n".join([
            "🏦 Kasa Durumu:",
            f"💰 Toplam Gelir: {format_tl_detailed(income)}",
            f"💸 Toplam Gider: {format_tl_detailed(expense)}",
            f"💵 Kasa: {format_tl_detailed(income - expense)}",
        ])

    # ── patients ─────────────────────────────────────────────────────────

    async def patient_info(self, clinic_id: UUID, name: str, now: _dt.datetime) -> str:
        fragment = name.strip()
        if not fragment:
            return "⚠️ Hasta adi belirtmelisiniz. Ornek: /hasta Erdinc Ayar"
        patient = await self._patients.first_name_match(clinic_id, fragment)
        if patient is None:
            return f"❌ Hasta bulunamadi: {fragment}"

        lines = [f"👤 {patient.name}"]
        if patient.phone:
            lines.append(f"📞 {patient.phone}")
        if patient.email:
            lines.append(f"📧 {patient.email}")
        if patient.notes:
            lines.append(f"📝 {patient.notes}")

        treatments = await self._treatments.list_for_patient(patient.id)
        if treatments:
            lines += ["", "📋 Islem Gecmisi:"]
            for i, t in enumerate(treatments, start=1):
                lines.append(f"{i}. {t.name} - {format_tl(t.amount)} ({format_date_short(t.date)})")
            lines.append(f"Toplam: {format_tl(sum(t.amount for t in treatments))}")

        upcoming = await self._appointments.upcoming_for_patient(patient.id, self._resolver.today(now), limit=5)
        if upcoming:
            lines += ["", "📅 Yaklaşan Randevu:"]
            for a in upcoming:
                lines.append(f"{format_day_month(a.date)} {a.start_time} - {_label(a.treatment_type)}")
        return "\n".join(lines)

    async def patients_list(self, clinic_id: UUID) -> str:
        total = await self._patients.count_for_clinic(clinic_id)
        recent = await self._patients.recent(clinic_id, limit=10)
        lines = ["👥 Hasta Listesi:", f"Toplam: {total} hasta"]
        if recent:
            lines.append("Son eklenenler:")
            for i, p in enumerate(recent, start=1):
                created = local_date(p.created_at, self._resolver.tz)
                lines.append(f"{i}. {p.name} ({format_date_short(created)})")
        return "\n".join(lines)

    # ── reminders ────────────────────────────────────────────────────────

    async def pending_reminders(self, clinic_id: UUID, now: _dt.datetime) -> str:
        due = await self._require_reminders().due_patients(clinic_id, now)
        if not due:
            return "🔔 Bugün gönderilecek hatirlatma yok."
        lines = ["🔔 Bugünkü Hatirlatmalar:"]
        for i, d in enumerate(due, start=1):
            if d.interval_days >= 30:
                elapsed = f"{rounded_percent(d.interval_days, 3000)} ay doldu"
            else:
                elapsed = f"{d.interval_days} gün doldu"
            lines.append(f"{i}. {d.patient_name} - {d.treatment_category.label} kontrolü ({elapsed})")
            if d.phone:
                lines.append(f"   📞 {d.phone}")
        lines.append(f"Toplam: {len(due)} hatirlatma")
        return "\n".join(lines)

    async def send_reminders(self, clinic_id: UUID, now: _dt.datetime) -> str:
        report = await self._require_reminders().send_all(clinic_id, now)
        if report.sent == 0 and report.failed == 0:
            return "🔔 Gonderilecek hatirlatma bulunmuyor."
        lines = ["🔔 Hatirlatma Gonderim Sonucu:"]
        for detail in report.details:
            icon = "✅" if detail["status"] == STATUS_SENT else "❌"
            lines.append(f"{icon} {detail['name']}")
        lines += ["", f"Gonderilen: {report.sent} | Basarisiz: {report.failed}"]
        return "\n".join(lines)

    def _require_reminders(self) -> "ReminderService":
        if self._reminders is None:
            raise RuntimeError("ClinicReports: reminder service is not configured")
        return self._reminders

    # ── leaderboards ─────────────────────────────────────────────────────

    async def top_services(self, clinic_id: UUID, now: _dt.datetime) -> str:
        month = self._resolver.current_month(now)
        rows = await self._treatments.totals_by_category(clinic_id, month.start, month.end)
        if not rows:
            return "📊 Bu ay henuz islem yapilmamis."
        lines = [f"🏆 En Cok Kazandiran Servisler ({TURKISH_MONTHS[month.start.month - 1]}):"]
        for i, (category, amount, count) in enumerate(rows):
            lines.append(f"{medal(i)} {category.label}: {format_tl(amount)} ({count} islem)")
        return "\n".join(lines)

    async def top_patients(self, clinic_id: UUID, now: _dt.datetime) -> str:
        year = self._resolver.current_year(now)
        rows = await self._treatments.totals_by_patient(clinic_id, year.start, year.end, limit=10)
        if not rows:
            return "👥 Bu yil henuz islem yapilmamis."
        lines = [f"👑 En Cok Gelen Hastalar ({year.label}):"]
        for i, (_, name, amount, visits) in enumerate(rows):
            lines.append(f"{medal(i)} {name}: {format_tl(amount)} ({visits} ziyaret)")
        return "\n".join(lines)

    async def commissions(self, clinic_id: UUID, now: _dt.datetime) -> str:
        employees = await self._employees.list_active(clinic_id)
        if not employees:
            return "👥 Henuz calisan kaydi bulunmuyor."
        month = self._resolver.current_month(now)
        lines = [f"💰 Prim Raporu ({month.label}):"]
        total = 0
        for emp in employees:
            revenue, _ = await self._treatments.sum_and_count(
                clinic_id, month.start, month.end, employee_id=emp.id
            )
            commission = rounded_percent(revenue * emp.commission_rate, 10000)
            total += commission
            lines.append(
                f"👤 {emp.name} (%{emp.commission_rate}): {format_tl(revenue)} gelir → {format_tl(commission)} prim"
            )
        lines += ["", f"Toplam Prim: {format_tl(total)}"]
        return "\n".join(lines)

    # ── summary ──────────────────────────────────────────────────────────

    async def daily_summary(self, clinic_id: UUID, now: _dt.datetime) -> str:
        today = self._resolver.today(now)
        rows = await self._appointments.list_for_day(clinic_id, today)
        income, _ = await self._treatments.sum_and_count(clinic_id, today, today)
        expense, _ = await self._expenses.sum_and_count(clinic_id, today, today)
        due = await self._require_reminders().due_patients(clinic_id, now) if self._reminders else []

        lines = [f"📋 Günlük Ozet ({format_date_tr(today)}):", "", f"📅 Bugünkü Randevular: {len(rows)}"]
        for a in rows:
            lines.append(f"{a.start_time} - {a.patient.name} ({_label(a.treatment_type)})")
        lines += [
            "",
            f"💰 Bugünkü Gelir: {format_tl(income)}",
            f"💸 Bugünkü Gider: {format_tl(expense)}",
            f"🔔 Bekleyen Hatirlatma: {len(due)}",
        ]
        return "\n".join(lines)
