"""
Clinic error hierarchy.

Usage:
    from klinikasistan.core.exceptions import ConflictError, NotFoundError

    raise ConflictError("Bu saatte başka bir randevu var", details={"date": "2026-10-19"})

Services raise these; the command router and action dispatcher turn them into
``❌ <message>`` replies, the API turns them into JSON with ``http_status``.
"""
from klinikasistan.core.exceptions.base import ClinicError
from klinikasistan.core.exceptions.errors import (
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ParseError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "ClinicError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ConflictError",
    "ParseError",
    "ExternalServiceError",
]
