"""Outbound message delivery used by reminder sending."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class MessageSender(ABC):
    """Deliver plain text to a recipient; raise ExternalServiceError on failure."""

    @property
    @abstractmethod
    def channel(self) -> str:
        ...

    @abstractmethod
    async def send_text(self, to: str, text: str) -> None:
        ...


class LoggingSender(MessageSender):
    """Stand-in when no transport credentials are configured: logs the message."""

    def __init__(self, channel: str = "WHATSAPP") -> None:
        self._channel = channel

    @property
    def channel(self) -> str:
        return self._channel

    async def send_text(self, to: str, text: str) -> None:
        logger.info("LoggingSender: message to %s (%d chars) not delivered, no transport configured", to, len(text))
