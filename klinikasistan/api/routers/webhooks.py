"""Public webhook endpoints for Telegram and WhatsApp.

These routes live under /webhooks/ (not /api/v1/). Both handlers return
HTTP 200 immediately and run the message pipeline in a background task,
replying through the transport client:
  - WhatsApp: must ack within 20 s
  - Telegram: must ack within 60 s
"""
from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from klinikasistan.api.dependencies import resolve_clinic_id
from klinikasistan.core.exceptions import NotFoundError
from klinikasistan.integrations.telegram import TelegramClient
from klinikasistan.integrations.whatsapp import WhatsAppClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])

WELCOME_MESSAGE = """Merhaba! KlinikAsistan Telegram botuna hosgeldiniz.

Kullanilabilir komutlar:
/start - Hosgeldin mesaji
/randevu - Randevulari goruntule
/gelir - Gelir ozetini goruntule
/gider - Gider ozetini goruntule
/yardim - Yardim mesaji

Veya dogal dilde mesaj yazabilirsiniz:
- "Ahmet Yilmaz yarin 15:00 dolgu" (randevu)
- "Ayse botoks 5000tl" (gelir)
- "Kira 25000tl odendi" (gider)"""

TEXT_ONLY = "Sadece metin mesajlari desteklenmektedir. Lutfen bir komut veya metin gonderin."
NO_CLINIC = "Sistem hatasi: Klinik bulunamadi. Lutfen once bir klinik olusturun."
PROCESSING_FAILED = "❌ Mesaj islenirken bir hata olustu. Lutfen tekrar deneyin."

# Keeps background tasks referenced until they finish.
_pending: set[asyncio.Task] = set()


def _telegram_client(request: Request) -> Optional[TelegramClient]:
    return getattr(request.app.state, "telegram", None) or TelegramClient.from_env()


def _whatsapp_client(request: Request) -> Optional[WhatsAppClient]:
    return getattr(request.app.state, "whatsapp", None) or WhatsAppClient.from_env()


def _whatsapp_verify_token() -> Optional[str]:
    return os.environ.get("WHATSAPP_VERIFY_TOKEN", "").strip() or None


def _spawn(coro: Awaitable[None]) -> None:
    task = asyncio.create_task(coro)
    _pending.add(task)
    task.add_done_callback(_pending.discard)


# ── Background processing ─────────────────────────────────────────────────────

async def _process_and_reply(
    *,
    state,
    platform: str,
    channel_id: str,
    text: str,
    reply_fn: Callable[[str], Awaitable[None]],
) -> None:
    try:
        try:
            clinic_id = await resolve_clinic_id(state)
        except NotFoundError:
            logger.warning("webhooks: no clinic for %s message from %s", platform, channel_id)
            await reply_fn(NO_CLINIC)
            return
        result = await state.pipeline.handle(text, clinic_id, datetime.now(timezone.utc))
        # The confirmation already names a newly created patient
        await reply_fn(result.reply_text)
    except Exception:
        logger.exception("webhooks: error processing %s message from %s", platform, channel_id)
        await reply_fn(PROCESSING_FAILED)


# ── Payload parsing ───────────────────────────────────────────────────────────

def whatsapp_message(body: Dict[str, Any]) -> Optional[Tuple[str, Optional[str]]]:
    """(sender, text) of the first message in a Cloud API body.

    None for delivery/read statuses and malformed bodies; text is None for
    non-text messages (images, audio, locations).
    """
    try:
        value = body["entry"][0]["changes"][0]["value"]
        messages = value.get("messages") or []
        if not messages:
            return None
        msg = messages[0]
        if msg.get("type") != "text":
            return str(msg["from"]), None
        return str(msg["from"]), msg["text"]["body"]
    except (KeyError, IndexError, TypeError, AttributeError):
        logger.warning("webhooks: WhatsApp payload parse error", exc_info=True)
        return None


def telegram_message(update: Dict[str, Any]) -> Optional[Tuple[str, str]]:
    """(chat id, stripped text) of a Telegram Update; None when it carries no message."""
    msg = update.get("message")
    if not isinstance(msg, dict):
        return None
    try:
        chat_id = str(msg["chat"]["id"])
    except (KeyError, TypeError):
        logger.warning("webhooks: Telegram payload parse error", exc_info=True)
        return None
    return chat_id, (msg.get("text") or "").strip()


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _not_configured(channel: str) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": f"{channel} integration not configured"})


# ── WhatsApp ──────────────────────────────────────────────────────────────────

@router.get("/whatsapp")
async def whatsapp_verify(request: Request):
    """Meta webhook verification handshake."""
    verify_token = _whatsapp_verify_token()
    params = request.query_params
    if (
        verify_token
        and params.get("hub.mode") == "subscribe"
        and params.get("hub.verify_token") == verify_token
    ):
        logger.info("webhooks: WhatsApp verification succeeded")
        return PlainTextResponse(params.get("hub.challenge") or "")
    logger.warning("webhooks: WhatsApp verification failed (configured=%s)", bool(verify_token))
    return JSONResponse(status_code=403, content={"detail": "Verification failed"})


@router.post("/whatsapp")
async def whatsapp_inbound(request: Request):
    """Receive WhatsApp Business messages from Meta Cloud API."""
    client = _whatsapp_client(request)
    if client is None:
        return _not_configured("WhatsApp")

    parsed = whatsapp_message(await _json_body(request))
    if parsed is None:
        return Response(status_code=200)
    sender, text = parsed
    if text is None:
        _spawn(client.send_message(sender, TEXT_ONLY))
    else:
        _spawn(
            _process_and_reply(
                state=request.app.state,
                platform="whatsapp",
                channel_id=sender,
                text=text,
                reply_fn=lambda reply: client.send_message(sender, reply),
            )
        )
    return Response(status_code=200)


# ── Telegram ──────────────────────────────────────────────────────────────────

@router.get("/telegram")
async def telegram_status():
    return {"status": "ok", "bot": "KlinikAsistan Telegram Bot", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/telegram")
async def telegram_inbound(request: Request):
    """Receive Telegram Update objects from the Bot API."""
    client = _telegram_client(request)
    if client is None:
        return _not_configured("Telegram")

    parsed = telegram_message(await _json_body(request))
    if parsed is None:
        return Response(status_code=200)
    chat_id, text = parsed
    if not text:
        _spawn(client.send_message(chat_id, TEXT_ONLY))
    elif text == "/start":
        _spawn(client.send_message(chat_id, WELCOME_MESSAGE))
    else:
        _spawn(
            _process_and_reply(
                state=request.app.state,
                platform="telegram",
                channel_id=chat_id,
                text=text,
                reply_fn=lambda reply: client.send_message(chat_id, reply),
            )
        )
    return Response(status_code=200)
