"""PatientService: approximate find-or-create by name.

Matching is deliberately loose: the full name as a substring first, then the
first name alone. When several patients match, the earliest created wins.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.core.exceptions import ValidationError
from klinikasistan.infra.database.models.patient import Patient
from klinikasistan.infra.database.repositories.patient import PatientRepository

logger = logging.getLogger(__name__)

MIN_FIRST_NAME_LENGTH = 2


class PatientService:
    def __init__(self, session: AsyncSession) -> None:
        self._repo = PatientRepository(session)

    async def find(self, clinic_id: UUID, name: str) -> Optional[Patient]:
        """Full-name substring match, then first-token match (≥ 2 chars)."""
        full = " ".join(name.split())
        if not full:
            return None
        patient = await self._repo.first_name_match(clinic_id, full)
        if patient is not None:
            return patient
        first = full.split(" ", 1)[0]
        if first != full and len(first) >= MIN_FIRST_NAME_LENGTH:
            return await self._repo.first_name_match(clinic_id, first)
        return None

    async def find_or_create(
        self,
        name: str,
        clinic_id: UUID,
        phone: Optional[str] = None,
    ) -> Tuple[Patient, bool]:
        """Return ``(patient, is_new)``."""
        full = " ".join(name.split())
        if not full:
            raise ValidationError("Hasta adı boş olamaz")
        patient = await self.find(clinic_id, full)
        if patient is not None:
            return patient, False
        patient = await self._repo.create({"clinic_id": clinic_id, "name": full, "phone": phone or None})
        logger.info("PatientService: created patient %s", patient.id, extra={"clinic_id": str(clinic_id)})
        return patient, True
