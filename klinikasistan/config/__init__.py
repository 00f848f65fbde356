"""
Application config loaded from env.

load_postgres_config() for the database pool, load_clinic_config() for
clinic-wide behaviour (timezone, LLM timeout, reminder cooldown, defaults).
"""
from klinikasistan.config.clinic import ClinicConfig, load_clinic_config
from klinikasistan.config.postgres import PostgresConfig, load_postgres_config

__all__ = [
    "ClinicConfig",
    "load_clinic_config",
    "PostgresConfig",
    "load_postgres_config",
]
