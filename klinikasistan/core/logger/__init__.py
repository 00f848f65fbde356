"""
Project logger: rotating JSON-lines file + console.

Usage:
    from klinikasistan.core.logger import get_logger, configure, LoggerConfig

    # Configure once at startup (from env when no config is given)
    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/klinikasistan"))

    logger = get_logger(__name__)
    logger.info("Hatırlatma gönderimi başladı", extra={"clinic_id": str(clinic_id)})

Env: LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, LOG_MAX_BYTES, LOG_BACKUP_COUNT,
LOG_ROOT_NAME, LOG_CONSOLE, LOG_FILE_ROTATING.
"""
from klinikasistan.core.logger.config import LoggerConfig
from klinikasistan.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from klinikasistan.core.logger.setup import configure, get_logger

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
    "get_logger",
]
