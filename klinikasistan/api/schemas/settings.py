"""Pydantic v2 schemas for clinic settings: weekly schedule and reminder rules."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from klinikasistan.core.enums import TreatmentType

_HHMM = r"^\d{1,2}:\d{2}$"


class ScheduleDay(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday")
    start_time: str = Field("09:00", pattern=_HHMM)
    end_time: str = Field("18:00", pattern=_HHMM)
    slot_duration: int = Field(30, ge=5, le=480)
    is_active: bool = True


class ScheduleDaySchema(ScheduleDay):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    clinic_id: UUID


class ScheduleUpdate(BaseModel):
    clinic_id: UUID
    days: List[ScheduleDay] = Field(..., min_length=1, max_length=7)


class ReminderRuleCreate(BaseModel):
    clinic_id: UUID
    treatment_category: TreatmentType
    interval_days: int = Field(..., ge=1)
    message_template: str = Field(..., min_length=5, max_length=2000)
    is_active: bool = True


class ReminderRuleUpdate(BaseModel):
    clinic_id: UUID
    treatment_category: Optional[TreatmentType] = None
    interval_days: Optional[int] = Field(None, ge=1)
    message_template: Optional[str] = Field(None, min_length=5, max_length=2000)
    is_active: Optional[bool] = None


class ReminderRuleSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    clinic_id: UUID
    treatment_category: TreatmentType
    interval_days: int
    message_template: str
    is_active: bool
