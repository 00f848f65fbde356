"""
klinikasistan.config.clinic – clinic-wide behaviour settings.

Env vars: CLINIC_TIMEZONE, DEFAULT_CLINIC_ID, LLM_TIMEOUT_SECONDS,
REMINDER_COOLDOWN_DAYS, DEFAULT_APPOINTMENT_MINUTES, ASSISTANT_MAX_TOOL_STEPS,
REMINDER_CHANNEL.
"""
from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from klinikasistan.core.enums import ReminderChannel


@dataclass(frozen=True)
class ClinicConfig:
    """
    Settings shared by the command router, classifier, booking and reminders.

    All business days are calendar dates in ``timezone``; the date resolver is
    the only place that converts an instant into a clinic-local day.
    """

    timezone: str = "Europe/Istanbul"
    default_clinic_id: Optional[uuid.UUID] = None
    """Clinic used for inbound chat messages; first clinic when unset."""

    llm_timeout_seconds: float = 30.0
    reminder_cooldown_days: int = 30
    default_appointment_minutes: int = 30
    """Used when no schedule row exists for the appointment's weekday."""

    assistant_max_tool_steps: int = 5
    reminder_channel: ReminderChannel = ReminderChannel.WHATSAPP

    def __post_init__(self) -> None:
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"CLINIC_TIMEZONE is not a known zone: {self.timezone!r}") from exc
        if self.llm_timeout_seconds <= 0:
            raise ValueError(f"llm_timeout_seconds must be > 0, got {self.llm_timeout_seconds!r}")
        if self.reminder_cooldown_days < 0:
            raise ValueError(f"reminder_cooldown_days must be >= 0, got {self.reminder_cooldown_days!r}")
        if not 5 <= self.default_appointment_minutes <= 480:
            raise ValueError(
                f"default_appointment_minutes must be between 5 and 480, got {self.default_appointment_minutes!r}"
            )
        if self.assistant_max_tool_steps < 1:
            raise ValueError(f"assistant_max_tool_steps must be >= 1, got {self.assistant_max_tool_steps!r}")

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls) -> ClinicConfig:
        raw_clinic = os.environ.get("DEFAULT_CLINIC_ID", "").strip()
        try:
            clinic_id = uuid.UUID(raw_clinic) if raw_clinic else None
        except ValueError as exc:
            raise ValueError(f"DEFAULT_CLINIC_ID must be a UUID, got {raw_clinic!r}") from exc
        channel = os.environ.get("REMINDER_CHANNEL", ReminderChannel.WHATSAPP.value).strip().upper()
        try:
            reminder_channel = ReminderChannel(channel)
        except ValueError as exc:
            raise ValueError(f"REMINDER_CHANNEL must be one of {[c.value for c in ReminderChannel]}") from exc
        return cls(
            timezone=os.environ.get("CLINIC_TIMEZONE", "Europe/Istanbul").strip(),
            default_clinic_id=clinic_id,
            llm_timeout_seconds=float(os.environ.get("LLM_TIMEOUT_SECONDS", "30")),
            reminder_cooldown_days=int(os.environ.get("REMINDER_COOLDOWN_DAYS", "30")),
            default_appointment_minutes=int(os.environ.get("DEFAULT_APPOINTMENT_MINUTES", "30")),
            assistant_max_tool_steps=int(os.environ.get("ASSISTANT_MAX_TOOL_STEPS", "5")),
            reminder_channel=reminder_channel,
        )


def load_clinic_config() -> ClinicConfig:
    """Load clinic settings from env. Raises ValueError on invalid values."""
    return ClinicConfig.from_env()
