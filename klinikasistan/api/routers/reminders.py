"""Reminders API: due list and batch send for one clinic."""
from __future__ import annotations

import datetime as _dt
import uuid

from fastapi import APIRouter, Depends, Query, Request

from klinikasistan.api.dependencies import get_now
from klinikasistan.api.schemas.operations import (
    DueReminderSchema,
    DueRemindersResponse,
    SendRemindersResponse,
)

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("/due", response_model=DueRemindersResponse)
async def due_reminders(
    request: Request,
    clinic_id: uuid.UUID = Query(...),
    now: _dt.datetime = Depends(get_now),
):
    items = await request.app.state.reminders.pending_summary(clinic_id, now)
    return DueRemindersResponse(
        clinic_id=clinic_id,
        count=len(items),
        items=[DueReminderSchema(**item) for item in items],
    )


@router.post("/send", response_model=SendRemindersResponse)
async def send_reminders(
    request: Request,
    clinic_id: uuid.UUID = Query(...),
    now: _dt.datetime = Depends(get_now),
):
    report = await request.app.state.reminders.send_all(clinic_id, now)
    return SendRemindersResponse(**report.to_dict())
