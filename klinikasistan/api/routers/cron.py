"""Scheduled reminder trigger.

GET lists due reminders per clinic, POST sends them. When CRON_SECRET is set
the caller must send ``Authorization: Bearer <CRON_SECRET>``.
"""
from __future__ import annotations

import datetime as _dt
import logging
import os
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request

from klinikasistan.api.dependencies import get_now
from klinikasistan.core.exceptions import UnauthorizedError
from klinikasistan.infra.database.repositories import ClinicRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def require_cron_secret(request: Request) -> None:
    secret = os.environ.get("CRON_SECRET", "").strip()
    if secret and request.headers.get("authorization") != f"Bearer {secret}":
        raise UnauthorizedError("Yetkisiz istek")


async def _clinics(request: Request):
    async with request.app.state.session_factory() as session:
        return await ClinicRepository(session).list_all()


@router.get("/reminders", dependencies=[Depends(require_cron_secret)])
async def reminder_status(request: Request, now: _dt.datetime = Depends(get_now)):
    reminders = request.app.state.reminders
    results: List[Dict[str, Any]] = []
    for clinic in await _clinics(request):
        pending = await reminders.pending_summary(clinic.id, now)
        results.append({
            "clinic_id": str(clinic.id),
            "clinic_name": clinic.name,
            "pending_reminders": len(pending),
            "patients": [
                {"name": p["patient_name"], "category": p["treatment_category"], "days_since": p["days_since"]}
                for p in pending
            ],
        })
    return {"status": "ok", "timestamp": now.isoformat(), "clinics": results}


@router.post("/reminders", dependencies=[Depends(require_cron_secret)])
async def run_reminders(request: Request, now: _dt.datetime = Depends(get_now)):
    reminders = request.app.state.reminders
    results: List[Dict[str, Any]] = []
    total_sent = total_failed = 0
    for clinic in await _clinics(request):
        report = await reminders.send_all(clinic.id, now)
        total_sent += report.sent
        total_failed += report.failed
        results.append({"clinic_id": str(clinic.id), "clinic_name": clinic.name, **report.to_dict()})
    logger.info("cron: reminders done, %d sent, %d failed", total_sent, total_failed)
    return {
        "status": "ok",
        "timestamp": now.isoformat(),
        "total_sent": total_sent,
        "total_failed": total_failed,
        "clinics": results,
    }
