"""Maps project errors to JSON responses."""
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from klinikasistan.core.exceptions import ClinicError

logger = logging.getLogger(__name__)


async def clinic_error_handler(request: Request, exc: ClinicError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("API: %s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.to_dict(include_cause=False)})
