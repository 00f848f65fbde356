"""
Logger setup: console and rotating JSON-lines handlers on the package root.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from klinikasistan.core.logger.config import LoggerConfig
from klinikasistan.core.logger.formatters import JsonFormatter, PlainConsoleFormatter

_configured: Optional[LoggerConfig] = None


def _handlers(config: LoggerConfig) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if config.console:
        console = logging.StreamHandler()
        console.setFormatter(PlainConsoleFormatter())
        handlers.append(console)
    log_dir = (config.log_dir or "").strip()
    if config.file_rotating and log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
        except OSError as exc:
            logging.getLogger(config.root_name).warning("Log dizini oluşturulamadı (%s): %s", log_dir, exc)
        else:
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, f"{config.log_file_basename}.log"),
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(JsonFormatter())
            handlers.append(file_handler)
    return handlers


def configure(config: Optional[LoggerConfig] = None) -> None:
    """
    Configure the package root logger, from env when config is None.
    Safe to call again (tests, reload): old handlers are replaced.
    """
    global _configured
    config = config or LoggerConfig.from_env()
    root = logging.getLogger(config.root_name)
    root.setLevel(config.level.upper())
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    for handler in _handlers(config):
        root.addHandler(handler)
    root.propagate = False
    _configured = config


def get_logger(name: str, config: Optional[LoggerConfig] = None) -> logging.Logger:
    """Logger under the package root, configuring it on first use."""
    if _configured is None:
        configure(config)
    return logging.getLogger(name)
