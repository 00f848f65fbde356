"""Tests for reminder due-set selection, message generation and batch sending."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

from klinikasistan.core.enums import PreferenceType, TreatmentType
from klinikasistan.core.exceptions import ValidationError
from klinikasistan.services.batch import BatchRunner
from klinikasistan.services.reminder_service import (
    DuePatient,
    ReminderService,
    build_prompt,
    find_due_patients,
    render_template,
)

CLINIC = uuid.uuid4()
NOW = _dt.datetime(2026, 7, 1, 9, 0, tzinfo=_dt.timezone.utc)
TZ = ZoneInfo("Europe/Istanbul")


def _run(coro):
    return asyncio.run(coro)


def _rule(category=TreatmentType.BOTOX, interval=180, **kw):
    defaults = dict(
        id=uuid.uuid4(), clinic_id=CLINIC, treatment_category=category, interval_days=interval,
        is_active=True, message_template="Merhaba {hasta}, {islem} zamanı geldi",
    )
    defaults.update(kw)
    return SimpleNamespace(**defaults)


def _treatment(patient_id, day, name="Ayşe", phone="+905551112233"):
    return SimpleNamespace(patient_id=patient_id, date=day, patient=SimpleNamespace(name=name, phone=phone))


class TestFindDuePatients(unittest.TestCase):
    def setUp(self):
        self.ayse = uuid.uuid4()

    def _due(self, treatments, logs=None, rules=None):
        return find_due_patients(
            CLINIC, rules or [_rule()], {TreatmentType.BOTOX: treatments}, logs or {}, NOW, tz=TZ,
        )

    def test_old_treatment_is_due(self):
        due = self._due([_treatment(self.ayse, _dt.date(2025, 12, 1))])
        self.assertEqual(len(due), 1)
        self.assertEqual(due[0].patient_name, "Ayşe")
        self.assertEqual(due[0].last_treatment_date, _dt.date(2025, 12, 1))
        self.assertEqual(due[0].message_template, "Merhaba {hasta}, {islem} zamanı geldi")

    def test_exact_interval_boundary_is_due(self):
        # 2026-07-01 minus 180 days
        self.assertEqual(len(self._due([_treatment(self.ayse, _dt.date(2026, 1, 2))])), 1)
        self.assertEqual(self._due([_treatment(self.ayse, _dt.date(2026, 1, 3))]), [])

    def test_returned_patient_is_not_due(self):
        due = self._due([
            _treatment(self.ayse, _dt.date(2025, 10, 1)),
            _treatment(self.ayse, _dt.date(2026, 5, 1)),
        ])
        self.assertEqual(due, [])

    def test_latest_old_treatment_is_reported(self):
        due = self._due([
            _treatment(self.ayse, _dt.date(2025, 6, 1)),
            _treatment(self.ayse, _dt.date(2025, 11, 1)),
        ])
        self.assertEqual(len(due), 1)
        self.assertEqual(due[0].last_treatment_date, _dt.date(2025, 11, 1))

    def test_cooldown_suppresses_any_recent_reminder(self):
        logs = {self.ayse: [NOW - _dt.timedelta(days=10)]}
        self.assertEqual(self._due([_treatment(self.ayse, _dt.date(2025, 12, 1))], logs), [])
        old_logs = {self.ayse: [NOW - _dt.timedelta(days=45)]}
        self.assertEqual(len(self._due([_treatment(self.ayse, _dt.date(2025, 12, 1))], old_logs)), 1)

    def _two_rule_case(self, logs=None):
        rules = [_rule(TreatmentType.BOTOX, 180), _rule(TreatmentType.DOLGU, 180, message_template="Dolgu {hasta}")]
        treatments = {
            TreatmentType.BOTOX: [_treatment(self.ayse, _dt.date(2025, 12, 1))],
            TreatmentType.DOLGU: [_treatment(self.ayse, _dt.date(2025, 9, 1))],
        }
        return find_due_patients(CLINIC, rules, treatments, logs or {}, NOW, tz=TZ)

    def test_patient_due_under_two_rules_is_listed_once(self):
        due = self._two_rule_case()
        self.assertEqual(len(due), 1)
        # DOLGU is the older treatment, so that rule is the more overdue one
        self.assertEqual(due[0].treatment_category, TreatmentType.DOLGU)
        self.assertEqual(due[0].message_template, "Dolgu {hasta}")

    def test_cooldown_covers_every_matching_rule(self):
        logs = {self.ayse: [NOW - _dt.timedelta(days=3)]}
        self.assertEqual(self._two_rule_case(logs), [])

    def test_inactive_and_foreign_rules_are_ignored(self):
        rules = [_rule(is_active=False), _rule(clinic_id=uuid.uuid4())]
        self.assertEqual(self._due([_treatment(self.ayse, _dt.date(2025, 12, 1))], rules=rules), [])

    def test_order_is_stable(self):
        a, b = sorted([uuid.uuid4(), uuid.uuid4()], key=str)
        due = self._due([_treatment(b, _dt.date(2025, 12, 1)), _treatment(a, _dt.date(2025, 12, 1))])
        self.assertEqual([d.patient_id for d in due], [a, b])


class TestMessageText(unittest.TestCase):
    def test_render_template(self):
        self.assertEqual(
            render_template("Merhaba {hasta}, {islem} için {gun} gün oldu", "Ayşe", TreatmentType.BOTOX, 180),
            "Merhaba Ayşe, Botoks için 180 gün oldu",
        )
        self.assertEqual(render_template("", "Ayşe", TreatmentType.BOTOX, 180), "")

    def test_prompt_lists_preferences(self):
        prompt = build_prompt("Ayşe", TreatmentType.DOLGU, 120, 4, [PreferenceType.INDIRIM_SEVER], "t")
        self.assertIn("Hasta Adi: Ayşe", prompt)
        self.assertIn("Son Islem: 4 ay once", prompt)
        self.assertIn(PreferenceType.INDIRIM_SEVER.label, prompt)
        self.assertIn("Hasta Tercihleri: Bilinmiyor", build_prompt("Ayşe", TreatmentType.DOLGU, 120, 4, [], "t"))

    def test_generate_without_model_uses_template(self):
        svc = ReminderService(MagicMock())
        text = _run(svc.generate_message("Ayşe", TreatmentType.BOTOX, 180, "Merhaba {hasta}"))
        self.assertEqual(text, "Merhaba Ayşe")

    def test_generate_uses_model_reply(self):
        llm = MagicMock()
        llm.chat = AsyncMock(return_value="  Merhaba Ayşe Hanım! 😊  ")
        svc = ReminderService(MagicMock(), llm=llm)
        self.assertEqual(_run(svc.generate_message("Ayşe", TreatmentType.BOTOX, 180, "t")), "Merhaba Ayşe Hanım! 😊")

    def test_generate_falls_back_on_model_failure(self):
        llm = MagicMock()
        llm.chat = AsyncMock(side_effect=RuntimeError("quota"))
        svc = ReminderService(MagicMock(), llm=llm)
        self.assertEqual(_run(svc.generate_message("Ayşe", TreatmentType.BOTOX, 180, "Selam {hasta}")), "Selam Ayşe")


class TestSending(unittest.TestCase):
    def _item(self, name, phone="+90555"):
        return DuePatient(uuid.uuid4(), TreatmentType.BOTOX, _dt.date(2025, 12, 1), 180, name, phone)

    def test_send_all_continues_past_failures(self):
        svc = ReminderService(MagicMock())
        items = [self._item("Ayşe"), self._item("Mehmet"), self._item("Zeynep")]
        svc.due_patients = AsyncMock(return_value=items)

        async def send_one(clinic_id, item, now):
            if item.patient_name == "Mehmet":
                raise RuntimeError("WhatsApp API 500")
            return uuid.uuid4()

        svc.send_one = send_one
        report = _run(svc.send_all(CLINIC, NOW))
        self.assertEqual((report.sent, report.failed), (2, 1))
        self.assertEqual([d["name"] for d in report.details], ["Ayşe", "Mehmet", "Zeynep"])
        self.assertEqual(report.details[1]["status"], "failed")

    def test_send_one_requires_sender_and_phone(self):
        with self.assertRaises(ValidationError):
            _run(ReminderService(MagicMock()).send_one(CLINIC, self._item("Ayşe"), NOW))
        svc = ReminderService(MagicMock(), sender=MagicMock())
        with self.assertRaises(ValidationError):
            _run(svc.send_one(CLINIC, self._item("Ayşe", phone=None), NOW))


class TestBatchRunner(unittest.TestCase):
    def test_concurrent_run_keeps_input_order(self):
        async def job(n):
            await asyncio.sleep(0.01 * (3 - n))
            if n == 1:
                raise ValueError("bad")

        report = _run(BatchRunner(concurrency=3).run([0, 1, 2], job))
        self.assertEqual([d["name"] for d in report.details], ["0", "1", "2"])
        self.assertEqual((report.sent, report.failed), (2, 1))

    def test_invalid_concurrency(self):
        with self.assertRaises(ValueError):
            BatchRunner(concurrency=0)
