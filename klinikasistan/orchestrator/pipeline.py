"""Inbound text pipeline: slash commands go to the router, everything else is
classified and dispatched.

The classifier runs before any database session is opened, so no transaction
is held across the language model call.
"""
from __future__ import annotations

import datetime as _dt
import logging
from typing import Optional
from uuid import UUID

from klinikasistan.orchestrator.classifiers.message_classifier import MessageClassifier
from klinikasistan.orchestrator.commands.router import CommandRouter
from klinikasistan.orchestrator.handlers.action_dispatcher import GENERIC_FAILURE, ActionDispatcher
from klinikasistan.orchestrator.types import PipelineResult

logger = logging.getLogger(__name__)


class MessagePipeline:
    def __init__(
        self,
        router: CommandRouter,
        classifier: MessageClassifier,
        dispatcher: ActionDispatcher,
    ) -> None:
        self._router = router
        self._classifier = classifier
        self._dispatcher = dispatcher

    async def handle(
        self,
        text: str,
        clinic_id: UUID,
        now: Optional[_dt.datetime] = None,
    ) -> PipelineResult:
        now = now or _dt.datetime.now(_dt.timezone.utc)
        try:
            return await self._handle(text, clinic_id, now)
        except Exception:
            logger.exception("MessagePipeline: unhandled error", extra={"clinic_id": str(clinic_id)})
            return PipelineResult(is_command=text.strip().startswith("/"), success=False, reply_text=GENERIC_FAILURE)

    async def _handle(self, text: str, clinic_id: UUID, now: _dt.datetime) -> PipelineResult:
        command = await self._router.route(text, clinic_id, now)
        if command.is_command:
            return PipelineResult(
                is_command=True,
                success=not command.response_text.startswith("❌"),
                reply_text=command.response_text,
            )

        parsed = await self._classifier.classify(text, now)
        result = await self._dispatcher.dispatch(parsed, clinic_id, now)
        logger.info(
            "MessagePipeline: %s -> success=%s", parsed.type, result.success,
            extra={"clinic_id": str(clinic_id), "message_type": parsed.type},
        )
        return PipelineResult(
            is_command=False,
            success=result.success,
            reply_text=result.confirmation_text,
            parsed=parsed,
            record_id=result.record_id,
            patient_is_new=result.patient_is_new,
        )
