"""Reminder rule and reminder log repositories."""
from __future__ import annotations

import datetime as _dt
from typing import List
from uuid import UUID

from sqlalchemy import select

from klinikasistan.infra.database.models.reminder import Reminder, ReminderLog
from klinikasistan.infra.database.repositories.base import BaseRepository


class ReminderRepository(BaseRepository[Reminder]):
    model = Reminder

    async def list_active(self, clinic_id: UUID) -> List[Reminder]:
        stmt = (
            select(Reminder)
            .where(Reminder.clinic_id == clinic_id, Reminder.is_active.is_(True))
            .order_by(Reminder.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_clinic(self, clinic_id: UUID) -> List[Reminder]:
        result = await self.session.execute(self.scoped(clinic_id).order_by(Reminder.created_at.desc()))
        return list(result.scalars().all())


class ReminderLogRepository(BaseRepository[ReminderLog]):
    model = ReminderLog

    async def list_since(self, clinic_id: UUID, since: _dt.datetime) -> List[ReminderLog]:
        stmt = select(ReminderLog).where(
            ReminderLog.clinic_id == clinic_id,
            ReminderLog.created_at >= since,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
