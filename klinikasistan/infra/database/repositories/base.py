"""Clinic-scoped async repository base for SQLAlchemy 2.0.

Every clinic table carries ``clinic_id``; lookups by id go through
``get_for_clinic`` so one clinic can never read another clinic's rows.
Repositories flush but never commit; the caller owns the transaction.
"""
from __future__ import annotations

from typing import Any, ClassVar, Generic, Optional, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


def contains_pattern(fragment: str) -> str:
    """ILIKE pattern for a case-insensitive substring match; escapes % and _."""
    escaped = fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class BaseRepository(Generic[ModelT]):
    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def scoped(self, clinic_id: UUID, *columns: Any) -> Select:
        """SELECT over this model (or the given columns) limited to one clinic."""
        stmt = select(*columns) if columns else select(self.model)
        return stmt.where(self.model.clinic_id == clinic_id)  # type: ignore[attr-defined]

    async def get_by_id(self, id: UUID) -> Optional[ModelT]:
        return await self.session.get(self.model, id)  # type: ignore[return-value]

    async def get_for_clinic(self, id: UUID, clinic_id: UUID) -> Optional[ModelT]:
        stmt = self.scoped(clinic_id).where(self.model.id == id)  # type: ignore[attr-defined]
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def count_for_clinic(self, clinic_id: UUID) -> int:
        result = await self.session.execute(self.scoped(clinic_id, func.count()).select_from(self.model))
        return int(result.scalar_one())

    async def create(self, data: dict[str, Any]) -> ModelT:
        """Insert a row and return it with server defaults loaded."""
        row = self.model(**data)
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return row  # type: ignore[return-value]

    async def update(self, id: UUID, data: dict[str, Any]) -> Optional[ModelT]:
        row = await self.get_by_id(id)
        if row is None:
            return None
        for column, value in data.items():
            setattr(row, column, value)
        await self.session.flush()
        await self.session.refresh(row)
        return row  # type: ignore[return-value]
