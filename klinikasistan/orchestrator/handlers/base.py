"""Abstract base for the handlers that persist a parsed message."""
from __future__ import annotations

import datetime as _dt
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

from klinikasistan.orchestrator.types import DispatchResult

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class ActionHandler(ABC):
    """Every action handler implements ``handle()`` inside the caller's session.

    Handlers raise typed project errors; the dispatcher turns them into
    reply text and owns commit/rollback.
    """

    @abstractmethod
    async def handle(
        self,
        message: object,
        session: "AsyncSession",
        *,
        clinic_id: UUID,
        now: _dt.datetime,
    ) -> DispatchResult:
        ...
