"""Schedule API: weekly opening hours per clinic."""
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.api.dependencies import get_session
from klinikasistan.api.schemas.settings import ScheduleDaySchema, ScheduleUpdate
from klinikasistan.services.schedule_service import ScheduleService

router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.get("", response_model=List[ScheduleDaySchema])
async def get_schedule(clinic_id: uuid.UUID = Query(...), session: AsyncSession = Depends(get_session)):
    """The default Monday to Friday week (with null ids) until one is saved."""
    days = await ScheduleService(session).weekly(clinic_id)
    return [ScheduleDaySchema(**day) for day in days]


@router.put("", response_model=List[ScheduleDaySchema])
async def save_schedule(body: ScheduleUpdate, session: AsyncSession = Depends(get_session)):
    rows = await ScheduleService(session).save_week(body.clinic_id, [day.model_dump() for day in body.days])
    return [ScheduleDaySchema.model_validate(row) for row in rows]
