"""ReminderService: who is due for a recurring treatment reminder, and sending.

``find_due_patients`` is pure: it works on rows already loaded, so the due-set
rules are testable without a database. A patient is due for a rule when their
latest treatment of the rule's category is at least ``interval_days`` old, they
had no newer treatment of that category, and no reminder of any kind was sent
to them within the cooldown window.
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
)
from uuid import UUID
from zoneinfo import ZoneInfo

from klinikasistan.core.enums import PreferenceType, ReminderChannel, ReminderStatus, TreatmentType
from klinikasistan.core.exceptions import ValidationError
from klinikasistan.infra.database.repositories.finance import TreatmentRepository
from klinikasistan.infra.database.repositories.patient import PatientRepository
from klinikasistan.infra.database.repositories.reminder import (
    ReminderLogRepository,
    ReminderRepository,
)
from klinikasistan.orchestrator.dates import local_date
from klinikasistan.services.batch import BatchReport, BatchRunner

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from klinikasistan.clients.llm.base import BaseLLMClient
    from klinikasistan.integrations.base import MessageSender

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_DAYS = 30

_SYSTEM_PROMPT = """\
Sen bir klinik asistanisin. Hastalara hatirlatma mesajlari yaziyorsun.
Mesajlar kisa, samimi ve profesyonel olmali. WhatsApp mesaji olarak gonderilecek.
Emoji kullanabilirsin ama asiri kullanma. Mesaj 2-3 cumle olmali."""

_USER_PROMPT = """\
Asagidaki bilgilere gore kisisellestirilmis bir hatirlatma mesaji yaz:

Hasta Adi: {name}
Islem Turu: {category}
Son Islem: {months} ay once
Beklenen Aralik: {interval} gun
Hasta Tercihleri: {preferences}
Sablon: {template}

Kurallar:
- Hasta adini kullan
- Islem turune gore ozel mesaj yaz
{hints}- Sadece mesaj metnini yaz, baska bir sey yazma"""


@dataclass(frozen=True)
class DuePatient:
    patient_id: UUID
    treatment_category: TreatmentType
    last_treatment_date: _dt.date
    interval_days: int
    patient_name: str = ""
    phone: Optional[str] = None
    reminder_id: Optional[UUID] = None
    message_template: str = ""

    def days_since(self, today: _dt.date) -> int:
        return (today - self.last_treatment_date).days

    def to_dict(self, today: Optional[_dt.date] = None) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "patient_id": str(self.patient_id),
            "patient_name": self.patient_name,
            "phone": self.phone,
            "treatment_category": self.treatment_category.value,
            "treatment_label": self.treatment_category.label,
            "last_treatment_date": self.last_treatment_date.isoformat(),
            "interval_days": self.interval_days,
        }
        if today is not None:
            out["days_since"] = self.days_since(today)
        return out


def _reference_day(reference_now: _dt.datetime, tz: Optional[ZoneInfo]) -> _dt.date:
    if tz is not None:
        return local_date(reference_now, tz)
    return reference_now.date()


def _overdue_key(item: DuePatient, today: _dt.date) -> tuple:
    overdue = (today - item.last_treatment_date).days - item.interval_days
    return (-overdue, item.treatment_category.value, item.interval_days)


def find_due_patients(
    clinic_id: UUID,
    active_rules: Iterable,
    treatments_by_category: Mapping[TreatmentType, Sequence],
    recent_logs_by_patient: Mapping[UUID, Sequence[_dt.datetime]],
    reference_now: _dt.datetime,
    *,
    cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
    tz: Optional[ZoneInfo] = None,
) -> List[DuePatient]:
    """Due set for one clinic.

    ``treatments_by_category`` holds every treatment of each rule category
    (any date); ``recent_logs_by_patient`` maps a patient to the send times of
    their reminder logs. A patient due under several rules appears once, with
    the rule they are most overdue on. Output is sorted by patient id.
    """
    today = _reference_day(reference_now, tz)
    cooldown_start = reference_now - _dt.timedelta(days=cooldown_days)

    def _cooling_down(patient_id: UUID) -> bool:
        return any(sent_at >= cooldown_start for sent_at in recent_logs_by_patient.get(patient_id, ()))

    # One entry per patient: the rule they are most overdue on
    best: Dict[UUID, DuePatient] = {}
    for rule in active_rules:
        if not getattr(rule, "is_active", True) or getattr(rule, "clinic_id", clinic_id) != clinic_id:
            continue
        category = TreatmentType(rule.treatment_category)
        cutoff = today - _dt.timedelta(days=int(rule.interval_days))

        latest_before: Dict[UUID, Any] = {}
        returned: set = set()
        for t in treatments_by_category.get(category, ()):
            if t.date > cutoff:
                returned.add(t.patient_id)
                continue
            current = latest_before.get(t.patient_id)
            if current is None or t.date > current.date:
                latest_before[t.patient_id] = t

        for patient_id, t in latest_before.items():
            if patient_id in returned or _cooling_down(patient_id):
                continue
            patient = getattr(t, "patient", None)
            candidate = DuePatient(
                patient_id=patient_id,
                treatment_category=category,
                last_treatment_date=t.date,
                interval_days=int(rule.interval_days),
                patient_name=getattr(patient, "name", "") or "",
                phone=getattr(patient, "phone", None),
                reminder_id=getattr(rule, "id", None),
                message_template=getattr(rule, "message_template", "") or "",
            )
            current = best.get(patient_id)
            if current is None or _overdue_key(candidate, today) < _overdue_key(current, today):
                best[patient_id] = candidate

    due = list(best.values())
    due.sort(key=lambda d: str(d.patient_id))
    return due


def render_template(template: str, patient_name: str, category: TreatmentType, interval_days: int) -> str:
    """Deterministic fallback: {hasta}, {islem} and {gun} placeholders."""
    return (
        (template or "")
        .replace("{hasta}", patient_name)
        .replace("{islem}", category.label)
        .replace("{gun}", str(interval_days))
    )


def build_prompt(
    patient_name: str,
    category: TreatmentType,
    interval_days: int,
    months_since: int,
    preferences: Sequence[PreferenceType],
    template: str,
) -> str:
    labels = ", ".join(p.label for p in preferences) or "Bilinmiyor"
    hints = "".join(f"- {p.hint}\n" for p in preferences)
    return _USER_PROMPT.format(
        name=patient_name,
        category=category.label,
        months=months_since,
        interval=interval_days,
        preferences=labels,
        template=template,
        hints=hints,
    )


class ReminderService:
    """Loads due sets and sends reminders.

    Network calls (model and transport) run outside any database session;
    each successful delivery is logged in its own short transaction.
    """

    def __init__(
        self,
        session_factory: "async_sessionmaker[AsyncSession]",
        *,
        llm: Optional["BaseLLMClient"] = None,
        sender: Optional["MessageSender"] = None,
        tz: Optional[ZoneInfo] = None,
        cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
        llm_timeout_seconds: Optional[float] = 30.0,
        runner: Optional[BatchRunner] = None,
    ) -> None:
        self._session_factory = session_factory
        self._llm = llm
        self._sender = sender
        self._tz = tz
        self._cooldown_days = cooldown_days
        self._timeout = llm_timeout_seconds
        self._runner = runner or BatchRunner()

    async def due_patients(self, clinic_id: UUID, now: _dt.datetime) -> List[DuePatient]:
        async with self._session_factory() as session:
            rules = await ReminderRepository(session).list_active(clinic_id)
            if not rules:
                return []
            categories = {TreatmentType(r.treatment_category) for r in rules}
            treatments = await TreatmentRepository(session).list_for_categories(clinic_id, categories)
            logs = await ReminderLogRepository(session).list_since(
                clinic_id, now - _dt.timedelta(days=self._cooldown_days)
            )

        by_category: Dict[TreatmentType, List[Any]] = defaultdict(list)
        for t in treatments:
            by_category[TreatmentType(t.category)].append(t)
        by_patient: Dict[UUID, List[_dt.datetime]] = defaultdict(list)
        for log in logs:
            by_patient[log.patient_id].append(log.created_at)

        return find_due_patients(
            clinic_id, rules, by_category, by_patient, now,
            cooldown_days=self._cooldown_days, tz=self._tz,
        )

    async def pending_summary(self, clinic_id: UUID, now: _dt.datetime) -> List[Dict[str, Any]]:
        today = _reference_day(now, self._tz)
        return [d.to_dict(today) for d in await self.due_patients(clinic_id, now)]

    async def generate_message(
        self,
        patient_name: str,
        category: TreatmentType,
        interval_days: int,
        template: str,
        *,
        preferences: Sequence[PreferenceType] = (),
        last_treatment_date: Optional[_dt.date] = None,
        now: Optional[_dt.datetime] = None,
    ) -> str:
        """Model-personalised text; falls back to the template and never raises."""
        fallback = render_template(template, patient_name, category, interval_days)
        if self._llm is None:
            return fallback
        try:
            days = 0
            if last_treatment_date is not None and now is not None:
                days = (_reference_day(now, self._tz) - last_treatment_date).days
            prompt = build_prompt(
                patient_name, category, interval_days, round(days / 30), preferences, template
            )
            coro = self._llm.chat([
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ])
            if self._timeout is not None and self._timeout > 0:
                coro = asyncio.wait_for(coro, timeout=self._timeout)
            text = (await coro or "").strip()
        except Exception as exc:
            logger.warning("ReminderService: personalised message failed, using template: %s", exc)
            return fallback
        return text or fallback

    async def send_all(self, clinic_id: UUID, now: _dt.datetime) -> BatchReport:
        """Send every due reminder; one failure never stops the batch."""
        due = await self.due_patients(clinic_id, now)

        async def _send(item: DuePatient) -> None:
            await self.send_one(clinic_id, item, now)

        report = await self._runner.run(due, _send, label=lambda d: d.patient_name or str(d.patient_id))
        logger.info(
            "ReminderService: clinic batch done, %d sent, %d failed", report.sent, report.failed,
            extra={"clinic_id": str(clinic_id)},
        )
        return report

    async def send_one(self, clinic_id: UUID, item: DuePatient, now: _dt.datetime) -> UUID:
        if self._sender is None:
            raise ValidationError("Mesaj gönderim kanalı yapılandırılmadı")
        if not item.phone:
            raise ValidationError("Hastanın telefon numarası yok", details={"patient_id": str(item.patient_id)})

        async with self._session_factory() as session:
            patient = await PatientRepository(session).get_by_id(item.patient_id)
            preferences = [PreferenceType(p.preference_type) for p in getattr(patient, "preferences", None) or []]

        text = await self.generate_message(
            item.patient_name, item.treatment_category, item.interval_days, item.message_template,
            preferences=preferences, last_treatment_date=item.last_treatment_date, now=now,
        )
        await self._sender.send_text(item.phone, text)

        async with self._session_factory() as session:
            log = await ReminderLogRepository(session).create({
                "clinic_id": clinic_id,
                "patient_id": item.patient_id,
                "reminder_id": item.reminder_id,
                "message_content": text,
                "channel": ReminderChannel(self._sender.channel),
                "status": ReminderStatus.SENT,
            })
            await session.commit()
        return log.id
