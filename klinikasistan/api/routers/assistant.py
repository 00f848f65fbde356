"""Assistant API: tool-using chat over clinic data."""
from __future__ import annotations

import datetime as _dt

from fastapi import APIRouter, Depends, Request

from klinikasistan.api.dependencies import CHAT_RATE_LIMIT, get_now, limiter, resolve_clinic_id
from klinikasistan.api.schemas.messages import AssistantRequest, AssistantResponse

router = APIRouter(prefix="/assistant", tags=["assistant"])


@router.post("/chat", response_model=AssistantResponse)
@limiter.limit(CHAT_RATE_LIMIT)
async def chat(body: AssistantRequest, request: Request, now: _dt.datetime = Depends(get_now)):
    clinic_id = await resolve_clinic_id(request.app.state, body.clinic_id)
    turns = [{"role": t.role, "content": t.content} for t in body.messages]
    answer = await request.app.state.assistant.answer(turns, clinic_id, now)
    return AssistantResponse(answer=answer)
