"""FastAPI dependency providers."""
from __future__ import annotations

import datetime as _dt
import os
from collections.abc import AsyncGenerator
from typing import Optional
from uuid import UUID

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from klinikasistan.core.exceptions import NotFoundError
from klinikasistan.infra.database.repositories import ClinicRepository

# Per client address; applies to the routes that reach the language model
CHAT_RATE_LIMIT = os.environ.get("CHAT_RATE_LIMIT", "30/minute")
limiter = Limiter(key_func=get_remote_address, default_limits=[CHAT_RATE_LIMIT])


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a transactional AsyncSession from the app-level session factory."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_now() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


async def resolve_clinic_id(state, requested: Optional[UUID] = None) -> UUID:
    """Explicit id, else DEFAULT_CLINIC_ID, else the first clinic."""
    if requested is not None:
        return requested
    config = getattr(state, "clinic_config", None)
    if config is not None and config.default_clinic_id is not None:
        return config.default_clinic_id
    async with state.session_factory() as session:
        clinic = await ClinicRepository(session).first()
    if clinic is None:
        raise NotFoundError("Kayıtlı klinik bulunamadı")
    return clinic.id
