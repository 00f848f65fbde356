"""WhatsApp Business (Meta Cloud API) client: outbound text messages."""
from __future__ import annotations

import logging
import os
from typing import Optional

import httpx

from klinikasistan.core.exceptions import ExternalServiceError
from klinikasistan.integrations.base import MessageSender

logger = logging.getLogger(__name__)

_GRAPH_URL = "https://graph.facebook.com/v21.0/{phone_number_id}/messages"
_MAX_MESSAGE_LEN = 4096


def normalize_phone(phone: str) -> str:
    """Digits only, Turkish local numbers prefixed with 90 (0532... -> 90532...)."""
    digits = "".join(ch for ch in phone if ch.isdigit())
    if digits.startswith("0") and len(digits) == 11:
        return "90" + digits[1:]
    if len(digits) == 10 and digits.startswith("5"):
        return "90" + digits
    return digits


class WhatsAppClient(MessageSender):
    def __init__(self, access_token: str, phone_number_id: str, *, timeout: float = 15.0) -> None:
        self._url = _GRAPH_URL.format(phone_number_id=phone_number_id)
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        self._timeout = timeout

    @classmethod
    def from_env(cls) -> Optional["WhatsAppClient"]:
        token = os.environ.get("WHATSAPP_ACCESS_TOKEN", "").strip()
        phone_id = os.environ.get("WHATSAPP_PHONE_NUMBER_ID", "").strip()
        if not token or not phone_id:
            return None
        return cls(token, phone_id)

    @property
    def channel(self) -> str:
        return "WHATSAPP"

    async def send_text(self, to: str, text: str) -> None:
        """Send *text* to *to*, split into API-sized chunks."""
        recipient = normalize_phone(to)
        if not recipient:
            raise ExternalServiceError("Geçerli bir telefon numarası yok", details={"to": to})
        chunks = [text[i : i + _MAX_MESSAGE_LEN] for i in range(0, len(text), _MAX_MESSAGE_LEN)] or [""]
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            for chunk in chunks:
                payload = {
                    "messaging_product": "whatsapp",
                    "to": recipient,
                    "type": "text",
                    "text": {"body": chunk},
                }
                try:
                    resp = await client.post(self._url, headers=self._headers, json=payload)
                except httpx.HTTPError as exc:
                    raise ExternalServiceError("WhatsApp mesajı gönderilemedi", cause=exc) from exc
                if resp.status_code not in (200, 201):
                    logger.warning(
                        "WhatsAppClient: send failed (status=%s): %s", resp.status_code, resp.text[:300],
                    )
                    raise ExternalServiceError(
                        "WhatsApp mesajı gönderilemedi", details={"status": resp.status_code}
                    )

    async def send_message(self, to: str, text: str) -> None:
        """Webhook replies: log failures instead of raising."""
        try:
            await self.send_text(to, text)
        except ExternalServiceError as exc:
            logger.warning("WhatsAppClient: reply not delivered: %s", exc)
