"""
Concrete error types, one per way a clinic operation can be refused.
"""
from __future__ import annotations

from klinikasistan.core.exceptions.base import ClinicError


class ConfigurationError(ClinicError):
    """A collaborator (model key, transport credentials) is not configured."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 503


class ValidationError(ClinicError):
    """Input rejected: bad HH:MM, non-positive amount, slot number out of range."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class NotFoundError(ClinicError):
    """Unknown clinic, patient, product or appointment (or one from another clinic)."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class UnauthorizedError(ClinicError):
    """Missing or wrong shared secret on the scheduled reminder trigger."""

    default_code = "UNAUTHORIZED"
    default_http_status = 401


class ConflictError(ClinicError):
    """Overlapping appointment or insufficient stock."""

    default_code = "CONFLICT"
    default_http_status = 409


class ParseError(ClinicError):
    """Model reply is not a JSON object or does not match the message contract."""

    default_code = "PARSE_ERROR"
    default_http_status = 422


class ExternalServiceError(ClinicError):
    """Language model or messaging transport failed."""

    default_code = "EXTERNAL_SERVICE_ERROR"
    default_http_status = 502
