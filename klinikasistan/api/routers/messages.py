"""Messages API: run one inbound text through the command/message pipeline."""
from __future__ import annotations

import datetime as _dt
import logging

from fastapi import APIRouter, Depends, Request

from klinikasistan.api.dependencies import CHAT_RATE_LIMIT, get_now, limiter, resolve_clinic_id
from klinikasistan.api.schemas.messages import MessageRequest, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", response_model=MessageResponse)
@limiter.limit(CHAT_RATE_LIMIT)
async def handle_message(body: MessageRequest, request: Request, now: _dt.datetime = Depends(get_now)):
    clinic_id = await resolve_clinic_id(request.app.state, body.clinic_id)
    result = await request.app.state.pipeline.handle(body.text, clinic_id, now)
    parsed = result.parsed.model_dump(mode="json", by_alias=True) if result.parsed is not None else None
    return MessageResponse(
        is_command=result.is_command,
        success=result.success,
        reply_text=result.reply_text,
        parsed=parsed,
        record_id=result.record_id,
        patient_is_new=result.patient_is_new,
    )
