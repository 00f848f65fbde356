"""Appointments API: available slots, booking, cancel and rebook."""
from __future__ import annotations

import datetime as _dt
import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.api.dependencies import get_session
from klinikasistan.api.schemas.appointments import (
    AppointmentCreate,
    AppointmentResponse,
    AvailableSlotsResponse,
    ClinicScoped,
    RebookRequest,
    SlotSchema,
)
from klinikasistan.services.appointment_service import AppointmentService
from klinikasistan.services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("/available-slots", response_model=AvailableSlotsResponse)
async def available_slots(
    clinic_id: uuid.UUID = Query(...),
    date: _dt.date = Query(...),
    session: AsyncSession = Depends(get_session),
):
    slots = await AvailabilityService(session).get_slots(clinic_id, date)
    return AvailableSlotsResponse(date=date, slots=[SlotSchema(**s.to_dict()) for s in slots])


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(body: AppointmentCreate, session: AsyncSession = Depends(get_session)):
    """Book an interval; 409 when it overlaps a live appointment."""
    appt = await AppointmentService(session).create_appointment(
        clinic_id=body.clinic_id,
        patient_id=body.patient_id,
        date=body.date,
        start_time=body.start_time,
        end_time=body.end_time,
        treatment_type=body.treatment_type,
        notes=body.notes,
    )
    return AppointmentResponse.model_validate(appt)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: uuid.UUID,
    body: ClinicScoped,
    session: AsyncSession = Depends(get_session),
):
    appt = await AppointmentService(session).cancel(body.clinic_id, appointment_id)
    return AppointmentResponse.model_validate(appt)


@router.post("/{appointment_id}/rebook", response_model=AppointmentResponse, status_code=201)
async def rebook_appointment(
    appointment_id: uuid.UUID,
    body: RebookRequest,
    session: AsyncSession = Depends(get_session),
):
    """Book the Nth free slot on the cancelled appointment's day."""
    appt = await AppointmentService(session).rebook(body.clinic_id, appointment_id, body.reply_number)
    return AppointmentResponse.model_validate(appt)
