"""Executes a parsed message and builds the Turkish confirmation.

``dispatch`` never raises. Each persisted message type runs in one session
that is committed on success and rolled back on any error.
"""
from __future__ import annotations

import datetime as _dt
import logging
from typing import TYPE_CHECKING, Dict
from uuid import UUID

from klinikasistan.core.enums import StockMovementType
from klinikasistan.core.exceptions import ClinicError
from klinikasistan.orchestrator.dates import DateResolver
from klinikasistan.orchestrator.handlers.actions import (
    AppointmentAction,
    ExpenseAction,
    IncomeAction,
    StockAction,
)
from klinikasistan.orchestrator.handlers.base import ActionHandler
from klinikasistan.orchestrator.types import (
    AmbiguousMessage,
    DispatchResult,
    ErrorMessage,
    MessageType,
    ParsedMessage,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "❌ İşlem sırasında bir hata oluştu. Lütfen tekrar deneyin."


def error_help(message: str) -> str:
    return (
        f'❌ Mesaj anlaşılamadı: "{message}"\n'
        "Lütfen şu formatlardan birini kullanın:\n"
        '- Randevu: "Hasta adı gün saat işlem"\n'
        '- Gelir: "Hasta adı işlem tutarTL"\n'
        '- Gider: "Açıklama tutarTL"'
    )


def ambiguous_text(message: AmbiguousMessage) -> str:
    lines = [f"🤔 {message.message}"]
    lines += [f"{i}. {option}" for i, option in enumerate(message.options, start=1)]
    return "\n".join(lines)


class ActionDispatcher:
    def __init__(
        self,
        session_factory: "async_sessionmaker[AsyncSession]",
        resolver: DateResolver,
        *,
        default_appointment_minutes: int = 30,
    ) -> None:
        self._session_factory = session_factory
        self._handlers: Dict[MessageType, ActionHandler] = {
            MessageType.APPOINTMENT: AppointmentAction(default_minutes=default_appointment_minutes),
            MessageType.INCOME: IncomeAction(resolver),
            MessageType.EXPENSE: ExpenseAction(resolver),
            MessageType.STOCK_IN: StockAction(resolver, StockMovementType.IN),
            MessageType.STOCK_OUT: StockAction(resolver, StockMovementType.OUT),
        }

    async def dispatch(self, parsed: ParsedMessage, clinic_id: UUID, now: _dt.datetime) -> DispatchResult:
        if isinstance(parsed, AmbiguousMessage):
            return DispatchResult(success=False, confirmation_text=ambiguous_text(parsed))
        if isinstance(parsed, ErrorMessage):
            return DispatchResult(success=False, confirmation_text=error_help(parsed.message))

        kind = MessageType(parsed.type)
        handler = self._handlers[kind]
        extra = {"clinic_id": str(clinic_id), "message_type": kind.value}
        try:
            async with self._session_factory() as session:
                try:
                    result = await handler.handle(parsed, session, clinic_id=clinic_id, now=now)
                    await session.commit()
                except BaseException:
                    await session.rollback()
                    raise
        except ClinicError as exc:
            logger.info("ActionDispatcher: %s rejected: %s", kind.value, exc.message, extra=extra)
            return DispatchResult(success=False, confirmation_text=exc.reply_text)
        except Exception:
            logger.exception("ActionDispatcher: %s failed", kind.value, extra=extra)
            return DispatchResult(success=False, confirmation_text=GENERIC_FAILURE)

        logger.info("ActionDispatcher: %s stored as %s", kind.value, result.record_id, extra=extra)
        return result
