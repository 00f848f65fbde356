"""Tests for Telegram & WhatsApp webhook integration.

Covers:
- Background processing: pipeline reply, new-patient note, missing clinic
- Telegram route: update parsing, welcome, text-only notice
- WhatsApp route: verification handshake and inbound messages
- Integration client helpers (phone normalisation)
"""
from __future__ import annotations

import asyncio
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from fastapi import FastAPI
from fastapi.testclient import TestClient

from klinikasistan.api.routers import webhooks
from klinikasistan.orchestrator.types import PipelineResult


# ─── helpers ─────────────────────────────────────────────────────────────────

def _run(coro):
    return asyncio.run(coro)


class _FakeSessionCtx:
    async def __aenter__(self):
        return MagicMock()

    async def __aexit__(self, *_):
        return False


def _state(result=None, clinic_id=None):
    pipeline = MagicMock()
    pipeline.handle = AsyncMock(return_value=result or PipelineResult(is_command=True, success=True, reply_text="ok"))
    return SimpleNamespace(
        pipeline=pipeline,
        clinic_config=SimpleNamespace(default_clinic_id=clinic_id or uuid4()),
        session_factory=lambda: _FakeSessionCtx(),
    )


# ─── Background processing ────────────────────────────────────────────────────

class TestProcessAndReply(unittest.TestCase):
    def test_reply_is_pipeline_text(self):
        state = _state(PipelineResult(is_command=True, success=True, reply_text="🏦 Kasa Durumu:"))
        reply = AsyncMock()
        _run(webhooks._process_and_reply(state=state, platform="telegram", channel_id="1", text="/kasa", reply_fn=reply))
        reply.assert_awaited_once_with("🏦 Kasa Durumu:")
        self.assertEqual(state.pipeline.handle.await_args.args[:2], ("/kasa", state.clinic_config.default_clinic_id))

    def test_new_patient_notice_is_sent_once(self):
        confirmation = "✅ Randevu oluşturuldu\n⚠️ Yeni hasta oluşturuldu: Kerem İnanır"
        state = _state(PipelineResult(is_command=False, success=True, reply_text=confirmation, patient_is_new=True))
        reply = AsyncMock()
        _run(webhooks._process_and_reply(state=state, platform="whatsapp", channel_id="9055", text="x", reply_fn=reply))
        reply.assert_awaited_once_with(confirmation)

    def test_missing_clinic(self):
        state = _state()
        state.clinic_config = SimpleNamespace(default_clinic_id=None)
        reply = AsyncMock()
        with patch("klinikasistan.api.dependencies.ClinicRepository") as repo_cls:
            repo_cls.return_value.first = AsyncMock(return_value=None)
            _run(webhooks._process_and_reply(state=state, platform="telegram", channel_id="1", text="/kasa", reply_fn=reply))
        reply.assert_awaited_once_with(webhooks.NO_CLINIC)
        state.pipeline.handle.assert_not_awaited()

    def test_pipeline_crash_sends_failure_text(self):
        state = _state()
        state.pipeline.handle = AsyncMock(side_effect=RuntimeError("boom"))
        reply = AsyncMock()
        _run(webhooks._process_and_reply(state=state, platform="telegram", channel_id="1", text="hi", reply_fn=reply))
        reply.assert_awaited_once_with(webhooks.PROCESSING_FAILED)


# ─── HTTP routes ──────────────────────────────────────────────────────────────

_SPAWN = "klinikasistan.api.routers.webhooks._spawn"


class _WebhookCase(unittest.TestCase):
    """Webhooks router on a bare app; transport credentials come from ``env``."""

    env: dict = {}

    def setUp(self):
        self.app = FastAPI()
        self.app.include_router(webhooks.router)
        state = _state()
        self.app.state.pipeline = state.pipeline
        self.app.state.clinic_config = state.clinic_config
        self.app.state.session_factory = state.session_factory
        base = {
            "TELEGRAM_BOT_TOKEN": "",
            "WHATSAPP_ACCESS_TOKEN": "",
            "WHATSAPP_PHONE_NUMBER_ID": "",
            "WHATSAPP_VERIFY_TOKEN": "",
        }
        env_patch = patch.dict("os.environ", {**base, **self.env}, clear=False)
        env_patch.start()
        self.addCleanup(env_patch.stop)

    def request(self, method, path, **kwargs):
        with TestClient(self.app, raise_server_exceptions=False) as client:
            return client.request(method, path, **kwargs)


class TestTelegramNotConfigured(_WebhookCase):
    def test_inbound_is_503(self):
        resp = self.request("POST", "/webhooks/telegram", json={"message": {"text": "/kasa", "chat": {"id": 1}}})
        self.assertEqual(resp.status_code, 503)

    def test_status_endpoint_still_answers(self):
        self.assertEqual(self.request("GET", "/webhooks/telegram").json()["status"], "ok")


class TestTelegramInbound(_WebhookCase):
    env = {"TELEGRAM_BOT_TOKEN": "tok123"}

    def _post_update(self, update):
        with patch(_SPAWN) as spawn, \
             patch("klinikasistan.integrations.telegram.TelegramClient.send_message", new=MagicMock()) as send:
            resp = self.request("POST", "/webhooks/telegram", json=update)
        self.assertEqual(resp.status_code, 200)
        return spawn, send

    def test_sticker_gets_text_only_notice(self):
        spawn, send = self._post_update({"update_id": 2, "message": {"sticker": {}, "chat": {"id": 1}}})
        spawn.assert_called_once()
        send.assert_called_once_with("1", webhooks.TEXT_ONLY)

    def test_start_gets_welcome(self):
        _, send = self._post_update({"update_id": 5, "message": {"text": "/start", "chat": {"id": 7}}})
        send.assert_called_once_with("7", webhooks.WELCOME_MESSAGE)

    def test_callback_query_is_ignored(self):
        spawn, send = self._post_update({"update_id": 3, "callback_query": {"data": "btn1"}})
        spawn.assert_not_called()
        send.assert_not_called()

    def test_text_is_processed_in_background(self):
        spawn, send = self._post_update(
            {"update_id": 4, "message": {"text": "Kira 25000 odendi", "chat": {"id": 987654}}}
        )
        spawn.assert_called_once()
        send.assert_not_called()
        spawn.call_args.args[0].close()

    def test_garbage_body_is_acknowledged(self):
        resp = self.request(
            "POST", "/webhooks/telegram", content=b"{{{", headers={"Content-Type": "application/json"}
        )
        self.assertEqual(resp.status_code, 200)


def _handshake(token):
    return {"hub.mode": "subscribe", "hub.verify_token": token, "hub.challenge": "ch-42"}


class TestWhatsAppHandshake(_WebhookCase):
    env = {"WHATSAPP_VERIFY_TOKEN": "klinik-secret"}

    def test_echoes_challenge_for_matching_token(self):
        resp = self.request("GET", "/webhooks/whatsapp", params=_handshake("klinik-secret"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.text, "ch-42")

    def test_rejects_other_token(self):
        resp = self.request("GET", "/webhooks/whatsapp", params=_handshake("guess"))
        self.assertEqual(resp.status_code, 403)


class TestWhatsAppHandshakeNotConfigured(_WebhookCase):
    def test_rejects_any_token(self):
        resp = self.request("GET", "/webhooks/whatsapp", params=_handshake(""))
        self.assertEqual(resp.status_code, 403)

    def test_inbound_is_503(self):
        self.assertEqual(self.request("POST", "/webhooks/whatsapp", json={"entry": []}).status_code, 503)


def _wa_body(*, sender="905551112233", text="Kira 25000 odendi", kind="text"):
    message: dict = {"from": sender, "type": kind}
    if kind == "text":
        message["text"] = {"body": text}
    return {"entry": [{"changes": [{"value": {"messages": [message]}}]}]}


class TestWhatsAppInbound(_WebhookCase):
    env = {"WHATSAPP_ACCESS_TOKEN": "tok", "WHATSAPP_PHONE_NUMBER_ID": "pid", "WHATSAPP_VERIFY_TOKEN": "v"}

    def test_image_gets_text_only_notice(self):
        with patch(_SPAWN), \
             patch("klinikasistan.integrations.whatsapp.WhatsAppClient.send_message", new=MagicMock()) as send:
            resp = self.request("POST", "/webhooks/whatsapp", json=_wa_body(kind="image"))
        self.assertEqual(resp.status_code, 200)
        send.assert_called_once_with("905551112233", webhooks.TEXT_ONLY)

    def test_text_is_processed_in_background(self):
        with patch(_SPAWN) as spawn:
            resp = self.request("POST", "/webhooks/whatsapp", json=_wa_body())
        self.assertEqual(resp.status_code, 200)
        spawn.assert_called_once()
        spawn.call_args.args[0].close()

    def test_delivery_status_is_acknowledged(self):
        with patch(_SPAWN) as spawn:
            resp = self.request("POST", "/webhooks/whatsapp", json={"entry": [{"changes": [{"value": {"statuses": []}}]}]})
        self.assertEqual(resp.status_code, 200)
        spawn.assert_not_called()

    def test_garbage_body_is_acknowledged(self):
        resp = self.request("POST", "/webhooks/whatsapp", content=b"nope", headers={"Content-Type": "application/json"})
        self.assertEqual(resp.status_code, 200)


# ─── Payload parsing ──────────────────────────────────────────────────────────

class TestPayloadParsing(unittest.TestCase):
    def test_whatsapp_text_and_media(self):
        self.assertEqual(webhooks.whatsapp_message(_wa_body(text="Ayşe botoks 5000")), ("905551112233", "Ayşe botoks 5000"))
        self.assertEqual(webhooks.whatsapp_message(_wa_body(kind="audio")), ("905551112233", None))

    def test_whatsapp_malformed(self):
        self.assertIsNone(webhooks.whatsapp_message({}))
        self.assertIsNone(webhooks.whatsapp_message({"entry": [{"changes": [{"value": {"messages": [{"type": "text"}]}}]}]}))

    def test_telegram_text_is_stripped(self):
        self.assertEqual(webhooks.telegram_message({"message": {"text": "  /kasa ", "chat": {"id": 12}}}), ("12", "/kasa"))
        self.assertEqual(webhooks.telegram_message({"message": {"chat": {"id": 12}}}), ("12", ""))
        self.assertIsNone(webhooks.telegram_message({"message": {"text": "x"}}))


# ─── Client helpers ───────────────────────────────────────────────────────────

class TestPhoneNormalisation(unittest.TestCase):
    def test_turkish_numbers(self):
        from klinikasistan.integrations.whatsapp import normalize_phone

        self.assertEqual(normalize_phone("0532 111 22 33"), "905321112233")
        self.assertEqual(normalize_phone("532-111-2233"), "905321112233")
        self.assertEqual(normalize_phone("+90 532 111 22 33"), "905321112233")


if __name__ == "__main__":
    unittest.main()
