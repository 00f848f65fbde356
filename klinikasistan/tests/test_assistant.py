"""Tests for the tool-calling clinic assistant."""
from __future__ import annotations

import asyncio
import datetime as _dt
import json
import unittest
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

from klinikasistan.clients.llm.base import FunctionCallResult
from klinikasistan.core.exceptions import NotFoundError
from klinikasistan.orchestrator.dates import DateResolver
from klinikasistan.orchestrator.handlers.assistant import (
    APOLOGY,
    EMPTY_ANSWER,
    ClinicAssistant,
    ClinicTools,
    ToolDefinition,
    ToolRegistry,
)

CLINIC = uuid.uuid4()
NOW = _dt.datetime(2026, 10, 16, 9, 0, tzinfo=_dt.timezone.utc)
RESOLVER = DateResolver(ZoneInfo("Europe/Istanbul"))


def _run(coro):
    return asyncio.run(coro)


class FakeTools:
    def __init__(self, *definitions):
        self._definitions = definitions

    def registry(self):
        reg = ToolRegistry()
        for d in self._definitions:
            reg.register(d)
        return reg


def _llm(calls, answer="Bu ay 9.000,00 ₺ gelir var."):
    llm = MagicMock()
    llm.function_call = AsyncMock(side_effect=list(calls))
    llm.chat = AsyncMock(return_value=answer)
    return llm


def _question(text="Bu ay ne kadar kazandık?"):
    return [{"role": "user", "content": text}]


class TestToolLoop(unittest.TestCase):
    def test_tool_result_reaches_final_answer(self):
        revenue = AsyncMock(return_value={"total_revenue_tl": 9000.0, "treatment_count": 2})
        tools = FakeTools(ToolDefinition("get_monthly_revenue", "gelir", {}, revenue))
        llm = _llm([FunctionCallResult("get_monthly_revenue", {"month": 10, "year": 2026}), None])
        answer = _run(ClinicAssistant(llm, tools, RESOLVER).answer(_question(), CLINIC, NOW))

        self.assertEqual(answer, "Bu ay 9.000,00 ₺ gelir var.")
        ctx = revenue.await_args.args[0]
        self.assertEqual(ctx.clinic_id, CLINIC)
        self.assertEqual(revenue.await_args.kwargs, {"month": 10, "year": 2026})
        final = llm.chat.await_args.args[0]
        self.assertEqual(final[0]["role"], "system")
        self.assertIn("2026-10-16", final[0]["content"])
        self.assertIn('"total_revenue_tl": 9000.0', final[-2]["content"])
        self.assertEqual(final[-1], {"role": "user", "content": "Bu ay ne kadar kazandık?"})

    def test_step_limit(self):
        tool = AsyncMock(return_value={"ok": True})
        tools = FakeTools(ToolDefinition("loop", "", {}, tool))
        llm = _llm([FunctionCallResult("loop", {})] * 10)
        _run(ClinicAssistant(llm, tools, RESOLVER, max_steps=3).answer(_question(), CLINIC, NOW))
        self.assertEqual(tool.await_count, 3)
        llm.chat.assert_awaited_once()

    def test_tool_errors_are_reported_to_the_model(self):
        failing = AsyncMock(side_effect=NotFoundError("Randevu bulunamadı"))
        tools = FakeTools(ToolDefinition("cancel_appointment", "", {}, failing))
        llm = _llm([
            FunctionCallResult("cancel_appointment", {"appointment_id": "x"}),
            FunctionCallResult("unknown_tool", {}),
            None,
        ])
        _run(ClinicAssistant(llm, tools, RESOLVER).answer(_question("Randevuyu iptal et"), CLINIC, NOW))
        results = [m["content"] for m in llm.chat.await_args.args[0] if m["content"].startswith("Araç sonucu")]
        self.assertIn("Randevu bulunamadı", results[0])
        self.assertIn("Bilinmeyen araç: unknown_tool", results[1])

    def test_bad_arguments(self):
        async def handler(ctx, month, year):
            return {}

        tools = FakeTools(ToolDefinition("get_expenses", "", {}, handler))
        assistant = ClinicAssistant(_llm([]), tools, RESOLVER)
        ctx = SimpleNamespace(clinic_id=CLINIC, now=NOW)
        result = json.loads(_run(assistant._execute("get_expenses", {"month": 1}, ctx)))
        self.assertEqual(result, {"error": "Geçersiz araç parametreleri"})


class TestFailures(unittest.TestCase):
    def test_model_failure_apologises(self):
        llm = MagicMock()
        llm.function_call = AsyncMock(side_effect=RuntimeError("quota"))
        self.assertEqual(_run(ClinicAssistant(llm, FakeTools(), RESOLVER).answer(_question(), CLINIC, NOW)), APOLOGY)

    def test_timeout_apologises(self):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        llm = MagicMock()
        llm.function_call = slow
        assistant = ClinicAssistant(llm, FakeTools(), RESOLVER, timeout_seconds=0.01)
        self.assertEqual(_run(assistant.answer(_question(), CLINIC, NOW)), APOLOGY)

    def test_empty_conversation_and_empty_reply(self):
        assistant = ClinicAssistant(_llm([None], answer="  "), FakeTools(), RESOLVER)
        self.assertEqual(_run(assistant.answer([], CLINIC, NOW)), EMPTY_ANSWER)
        self.assertEqual(_run(assistant.answer(_question(), CLINIC, NOW)), EMPTY_ANSWER)


class TestClinicTools(unittest.TestCase):
    def test_registry_names_and_schema(self):
        reg = ClinicTools(MagicMock(), RESOLVER).registry()
        self.assertEqual(len(reg.names), 10)
        self.assertIn("get_vat_summary", reg.names)
        schema = reg.get_schema_for_llm()
        self.assertEqual(schema[0]["type"], "function")
        self.assertIn("parameters", schema[0]["function"])
