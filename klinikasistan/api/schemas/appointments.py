"""Pydantic v2 schemas for the appointments API."""
from __future__ import annotations

import datetime as _dt
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from klinikasistan.core.enums import AppointmentStatus, TreatmentType


class SlotSchema(BaseModel):
    start_time: str
    end_time: str
    available: bool


class AvailableSlotsResponse(BaseModel):
    date: _dt.date
    slots: List[SlotSchema] = []


class AppointmentCreate(BaseModel):
    clinic_id: UUID
    patient_id: UUID
    date: _dt.date
    start_time: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")
    end_time: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")
    treatment_type: TreatmentType = TreatmentType.GENEL
    notes: Optional[str] = Field(None, max_length=2000)


class ClinicScoped(BaseModel):
    clinic_id: UUID


class RebookRequest(ClinicScoped):
    reply_number: int = Field(1, ge=1)


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    clinic_id: UUID
    patient_id: UUID
    date: _dt.date
    start_time: str
    end_time: str
    treatment_type: TreatmentType
    status: AppointmentStatus
    notes: Optional[str] = None
