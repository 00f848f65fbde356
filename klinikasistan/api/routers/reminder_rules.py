"""Reminder rules API: list, create and edit recall rules."""
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.api.dependencies import get_session
from klinikasistan.api.schemas.settings import ReminderRuleCreate, ReminderRuleSchema, ReminderRuleUpdate
from klinikasistan.services.reminder_rule_service import ReminderRuleService

router = APIRouter(prefix="/reminder-rules", tags=["reminders"])


@router.get("", response_model=List[ReminderRuleSchema])
async def list_rules(clinic_id: uuid.UUID = Query(...), session: AsyncSession = Depends(get_session)):
    rules = await ReminderRuleService(session).list_rules(clinic_id)
    return [ReminderRuleSchema.model_validate(rule) for rule in rules]


@router.post("", response_model=ReminderRuleSchema, status_code=201)
async def create_rule(body: ReminderRuleCreate, session: AsyncSession = Depends(get_session)):
    rule = await ReminderRuleService(session).create_rule(
        body.clinic_id,
        treatment_category=body.treatment_category,
        interval_days=body.interval_days,
        message_template=body.message_template,
        is_active=body.is_active,
    )
    return ReminderRuleSchema.model_validate(rule)


@router.patch("/{rule_id}", response_model=ReminderRuleSchema)
async def update_rule(rule_id: uuid.UUID, body: ReminderRuleUpdate, session: AsyncSession = Depends(get_session)):
    changes = body.model_dump(exclude_unset=True, exclude_none=True, exclude={"clinic_id"})
    rule = await ReminderRuleService(session).update_rule(rule_id, body.clinic_id, changes)
    return ReminderRuleSchema.model_validate(rule)
