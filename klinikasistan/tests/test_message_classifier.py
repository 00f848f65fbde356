"""Tests for the free-text message classifier."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from zoneinfo import ZoneInfo

from klinikasistan.core.enums import ExpenseCategory, TreatmentType
from klinikasistan.orchestrator.classifiers.message_classifier import (
    NO_REPLY,
    PARSE_FAILED,
    MessageClassifier,
    build_messages,
    extract_json,
)
from klinikasistan.orchestrator.dates import DateResolver
from klinikasistan.orchestrator.types import (
    AmbiguousMessage,
    AppointmentMessage,
    ErrorMessage,
    ExpenseMessage,
    IncomeMessage,
    StockOutMessage,
)

NOW = _dt.datetime(2026, 1, 6, 9, 0, tzinfo=_dt.timezone.utc)


def _run(coro):
    return asyncio.run(coro)


class FakeLLM:
    def __init__(self, reply=None, *, exc=None, delay=0.0):
        self.reply = reply
        self.exc = exc
        self.delay = delay
        self.calls = []

    async def chat(self, messages, *, json_output=False):
        self.json_output = json_output
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.reply


def _classifier(llm, timeout=5.0):
    return MessageClassifier(llm, DateResolver(ZoneInfo("Europe/Istanbul")), timeout_seconds=timeout)


class TestExtractJson(unittest.TestCase):
    def test_plain_object(self):
        self.assertEqual(extract_json('{"type": "ERROR"}'), {"type": "ERROR"})

    def test_code_fence(self):
        self.assertEqual(extract_json('```json\n{"a": 1}\n```'), {"a": 1})

    def test_surrounding_prose(self):
        self.assertEqual(extract_json('Sonuç: {"a": 1} tamam'), {"a": 1})

    def test_braces_in_prose_around_object(self):
        self.assertEqual(extract_json('Sonuç: {"a": 1} (biçim: {type})'), {"a": 1})
        self.assertEqual(extract_json('{tür} şöyle: {"a": {"b": 2}} bitti {'), {"a": {"b": 2}})

    def test_garbage(self):
        self.assertIsNone(extract_json("bilmiyorum"))
        self.assertIsNone(extract_json('{"type": "EXPENSE", "amount":'))


class TestBuildMessages(unittest.TestCase):
    def test_prompt_carries_today_and_weekday(self):
        messages = build_messages("Kira 25000 odendi", _dt.date(2026, 1, 6))
        self.assertEqual(messages[0]["role"], "system")
        self.assertIn("2026-01-06", messages[0]["content"])
        self.assertIn("Salı", messages[0]["content"])
        self.assertIn("Kira 25000 odendi", messages[-1]["content"])


class TestClassify(unittest.TestCase):
    def test_expense_without_patient_name(self):
        llm = FakeLLM('```json\n{"type": "EXPENSE", "description": "Kira", "amount": 2500000, "category": "KIRA"}\n```')
        parsed = _run(_classifier(llm).classify("Kira 25000 odendi", NOW))
        self.assertIsInstance(parsed, ExpenseMessage)
        self.assertIn("Kira", parsed.description)
        self.assertEqual(parsed.amount, 2500000)
        self.assertEqual(parsed.category, ExpenseCategory.KIRA)
        self.assertTrue(llm.json_output)

    def test_expense_with_braces_in_surrounding_prose(self):
        llm = FakeLLM(
            'Sonuç: {"type": "EXPENSE", "description": "Kira", "amount": 2500000, "category": "KIRA"} '
            '(biçim: {type})'
        )
        parsed = _run(_classifier(llm).classify("Kira 25000 odendi", NOW))
        self.assertIsInstance(parsed, ExpenseMessage)
        self.assertEqual(parsed.amount, 2500000)

    def test_appointment_with_camel_case_keys(self):
        llm = FakeLLM(
            '{"type": "APPOINTMENT", "patientName": "Ayşe Erdoğan", "date": "2026-01-12", '
            '"time": "15:00", "treatmentType": "botox", "notes": "kontrol"}'
        )
        parsed = _run(_classifier(llm).classify("Ayşe Erdoğan pazartesi saat 3 botoks kontrol", NOW))
        self.assertIsInstance(parsed, AppointmentMessage)
        self.assertEqual(parsed.date, _dt.date(2026, 1, 12))
        self.assertEqual(parsed.treatment_type, TreatmentType.BOTOX)

    def test_income_and_stock_out(self):
        income = _classifier(FakeLLM(
            '{"type": "INCOME", "patientName": "Ayşe", "treatmentType": "DOLGU", "treatmentName": "Dudak dolgusu", "amount": 500000}'
        ))
        self.assertIsInstance(_run(income.classify("Ayşe dolgu 5000tl", NOW)), IncomeMessage)
        stock = _classifier(FakeLLM('{"type": "STOCK_OUT", "productName": "Botoks", "quantity": 2}'))
        self.assertIsInstance(_run(stock.classify("2 botoks kullanildi", NOW)), StockOutMessage)

    def test_ambiguous(self):
        llm = FakeLLM('{"type": "AMBIGUOUS", "message": "Gelir mi gider mi?", "options": ["Gelir", "Gider"]}')
        parsed = _run(_classifier(llm).classify("5000", NOW))
        self.assertIsInstance(parsed, AmbiguousMessage)
        self.assertEqual(parsed.options, ["Gelir", "Gider"])

    def test_garbled_replies_become_error_with_original_text(self):
        for raw in ("bilmiyorum", '{"type": "INCOME", "amount": ', "[1, 2]", '{"type": "UNKNOWN"}'):
            parsed = _run(_classifier(FakeLLM(raw)).classify("xyz", NOW))
            self.assertIsInstance(parsed, ErrorMessage, raw)
            self.assertEqual(parsed.message, PARSE_FAILED)
            self.assertEqual(parsed.original_text, "xyz")

    def test_schema_violations_become_error(self):
        for raw in (
            '{"type": "EXPENSE", "description": "Kira", "amount": -5}',
            '{"type": "INCOME", "patientName": "Ali", "treatmentType": "SAC", "amount": 100}',
            '{"type": "APPOINTMENT", "patientName": "Ali", "date": "2026-01-12", "time": "25:00"}',
        ):
            self.assertIsInstance(_run(_classifier(FakeLLM(raw)).classify("x", NOW)), ErrorMessage, raw)

    def test_model_error_keeps_user_text(self):
        llm = FakeLLM('{"type": "ERROR", "message": "Anlaşılamadı", "originalText": "başka metin"}')
        parsed = _run(_classifier(llm).classify("asdf qwer", NOW))
        self.assertEqual(parsed.message, "Anlaşılamadı")
        self.assertEqual(parsed.original_text, "asdf qwer")

    def test_timeout_returns_error(self):
        llm = FakeLLM('{"type": "ERROR", "message": "x"}', delay=0.5)
        parsed = _run(_classifier(llm, timeout=0.01).classify("Kira 25000 odendi", NOW))
        self.assertIsInstance(parsed, ErrorMessage)
        self.assertEqual(parsed.original_text, "Kira 25000 odendi")

    def test_model_failure_returns_error(self):
        parsed = _run(_classifier(FakeLLM(exc=RuntimeError("down"))).classify("Kira", NOW))
        self.assertIsInstance(parsed, ErrorMessage)

    def test_empty_reply(self):
        parsed = _run(_classifier(FakeLLM("   ")).classify("Kira", NOW))
        self.assertEqual(parsed.message, NO_REPLY)
