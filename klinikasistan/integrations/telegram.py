"""Telegram Bot API client: outbound replies."""
from __future__ import annotations

import logging
import os
from typing import Optional, Union

import httpx

from klinikasistan.core.exceptions import ExternalServiceError
from klinikasistan.integrations.base import MessageSender

logger = logging.getLogger(__name__)

_MAX_MESSAGE_LEN = 4096


class TelegramClient(MessageSender):
    BASE = "https://api.telegram.org/bot{token}"

    def __init__(self, token: str, *, timeout: float = 15.0) -> None:
        self._base = self.BASE.format(token=token)
        self._timeout = timeout

    @classmethod
    def from_env(cls) -> Optional["TelegramClient"]:
        token = os.environ.get("TELEGRAM_BOT_TOKEN", "").strip()
        return cls(token) if token else None

    @property
    def channel(self) -> str:
        return "TELEGRAM"

    async def send_text(self, to: Union[int, str], text: str) -> None:
        chunks = [text[i : i + _MAX_MESSAGE_LEN] for i in range(0, len(text), _MAX_MESSAGE_LEN)] or [""]
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            for chunk in chunks:
                try:
                    resp = await client.post(f"{self._base}/sendMessage", json={"chat_id": to, "text": chunk})
                except httpx.HTTPError as exc:
                    raise ExternalServiceError("Telegram mesajı gönderilemedi", cause=exc) from exc
                if resp.status_code != 200:
                    logger.warning(
                        "TelegramClient: sendMessage failed (chat=%s status=%s): %s",
                        to, resp.status_code, resp.text[:300],
                    )
                    raise ExternalServiceError(
                        "Telegram mesajı gönderilemedi", details={"status": resp.status_code}
                    )

    async def send_message(self, chat_id: Union[int, str], text: str) -> None:
        """Webhook replies: log failures instead of raising."""
        try:
            await self.send_text(chat_id, text)
        except ExternalServiceError as exc:
            logger.warning("TelegramClient: reply not delivered: %s", exc)
