"""
Root of the clinic error hierarchy.

Every error carries a Turkish message that is safe to show to clinic staff,
a machine-readable code and the HTTP status the API layer answers with.
Chat channels show ``reply_text``; the API serialises ``to_dict``.
"""
from __future__ import annotations

import traceback
from typing import Any, Optional


class ClinicError(Exception):
    """
    Base exception for all klinikasistan errors.

    Attributes:
        message: User-facing description (Turkish, no internal identifiers).
        code: Machine-readable slug (defaults to the class default_code).
        http_status: Status for API responses (defaults to the class value).
        details: Extra context, e.g. the list of free slots on a rebook error.
        cause: Underlying exception from a driver or remote service.
    """

    default_code: str = "ERROR"
    default_http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.http_status = http_status or self.default_http_status
        self.details: dict[str, Any] = details or {}
        self.cause = cause

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def __str__(self) -> str:
        return self.message

    @property
    def reply_text(self) -> str:
        """Chat reply for a rejected command or message."""
        return f"❌ {self.message}"

    def to_dict(self, *, include_cause: bool = True) -> dict[str, Any]:
        """Serialize for logging or API responses.

        API handlers pass ``include_cause=False`` so tracebacks never reach
        the client.
        """
        out: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            out["details"] = self.details
        if include_cause and self.cause is not None:
            out["cause"] = repr(self.cause)
            out["cause_traceback"] = "".join(traceback.format_exception(self.cause))
        return out
