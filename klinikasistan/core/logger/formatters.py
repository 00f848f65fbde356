"""
Formatters: JSON lines for the log file, plain text for the console.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes passed through ``extra=`` that are copied into the JSON record
CONTEXT_KEYS = ("clinic_id", "command", "message_type", "channel", "patient_id")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; clinic context keys become top-level fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.lineno}",
        }
        entry.update(
            (key, getattr(record, key)) for key in CONTEXT_KEYS if getattr(record, key, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class PlainConsoleFormatter(logging.Formatter):
    """``2026-01-06 14:00:00 | INFO     | klinikasistan.api | ...``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
