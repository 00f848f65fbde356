"""Patient repository."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select

from klinikasistan.infra.database.models.patient import Patient
from klinikasistan.infra.database.repositories.base import BaseRepository, contains_pattern


class PatientRepository(BaseRepository[Patient]):
    model = Patient

    async def first_name_match(self, clinic_id: UUID, fragment: str) -> Optional[Patient]:
        """First patient (creation order) whose name contains ``fragment``, case-insensitive."""
        stmt = (
            self.scoped(clinic_id)
            .where(Patient.name.ilike(contains_pattern(fragment), escape="\\"))
            .order_by(Patient.created_at.asc(), Patient.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def search(self, clinic_id: UUID, query: str, limit: int = 10) -> List[Patient]:
        """Name or phone substring search."""
        pattern = contains_pattern(query.strip())
        stmt = (
            self.scoped(clinic_id)
            .where(or_(Patient.name.ilike(pattern, escape="\\"), Patient.phone.ilike(pattern, escape="\\")))
            .order_by(Patient.created_at.asc(), Patient.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def recent(self, clinic_id: UUID, limit: int = 10) -> List[Patient]:
        stmt = (
            self.scoped(clinic_id)
            .order_by(Patient.created_at.desc(), Patient.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_ids(self, ids: List[UUID]) -> List[Patient]:
        if not ids:
            return []
        result = await self.session.execute(select(Patient).where(Patient.id.in_(ids)))
        return list(result.scalars().all())
