"""Tests for MessagePipeline routing between commands and free text."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
import uuid
from unittest.mock import AsyncMock, MagicMock

from klinikasistan.core.enums import ExpenseCategory
from klinikasistan.orchestrator.handlers.action_dispatcher import GENERIC_FAILURE
from klinikasistan.orchestrator.pipeline import MessagePipeline
from klinikasistan.orchestrator.types import CommandResult, DispatchResult, ExpenseMessage

CLINIC = uuid.uuid4()
NOW = _dt.datetime(2026, 10, 16, 9, 0, tzinfo=_dt.timezone.utc)


def _run(coro):
    return asyncio.run(coro)


def _pipeline(command=None, parsed=None, dispatched=None):
    router = MagicMock()
    router.route = AsyncMock(return_value=command or CommandResult(is_command=False))
    classifier = MagicMock()
    classifier.classify = AsyncMock(return_value=parsed)
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=dispatched)
    return MessagePipeline(router, classifier, dispatcher), router, classifier, dispatcher


class TestPipeline(unittest.TestCase):
    def test_command_skips_classifier(self):
        pipeline, _, classifier, _ = _pipeline(command=CommandResult(is_command=True, response_text="🏦 Kasa Durumu:"))
        result = _run(pipeline.handle("/kasa", CLINIC, NOW))
        self.assertTrue(result.is_command)
        self.assertTrue(result.success)
        self.assertEqual(result.reply_text, "🏦 Kasa Durumu:")
        classifier.classify.assert_not_awaited()

    def test_failed_command_is_unsuccessful(self):
        pipeline, *_ = _pipeline(command=CommandResult(is_command=True, response_text="❌ Bilinmeyen komut: /x"))
        self.assertFalse(_run(pipeline.handle("/x", CLINIC, NOW)).success)

    def test_free_text_is_classified_then_dispatched(self):
        parsed = ExpenseMessage(description="Kira", amount=2500000, category=ExpenseCategory.KIRA)
        record_id = uuid.uuid4()
        pipeline, _, classifier, dispatcher = _pipeline(
            parsed=parsed,
            dispatched=DispatchResult(success=True, confirmation_text="✅ Gider kaydedildi: Kira - 25.000 TL", record_id=record_id),
        )
        result = _run(pipeline.handle("Kira 25000 odendi", CLINIC, NOW))
        classifier.classify.assert_awaited_once_with("Kira 25000 odendi", NOW)
        dispatcher.dispatch.assert_awaited_once_with(parsed, CLINIC, NOW)
        self.assertFalse(result.is_command)
        self.assertTrue(result.success)
        self.assertIs(result.parsed, parsed)
        self.assertEqual(result.record_id, record_id)

    def test_unexpected_error_becomes_generic_reply(self):
        pipeline, _, classifier, _ = _pipeline()
        classifier.classify = AsyncMock(side_effect=RuntimeError("boom"))
        result = _run(pipeline.handle("Kira 25000 odendi", CLINIC, NOW))
        self.assertFalse(result.success)
        self.assertEqual(result.reply_text, GENERIC_FAILURE)
