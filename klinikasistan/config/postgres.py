"""
klinikasistan.config.postgres – clinic database connection and pool settings.

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT,
DB_POOL_RECYCLE, DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

_SCHEMES = ("postgresql+asyncpg://", "postgresql://", "postgres://")

# attribute -> (env var, default)
_POOL_ENV = {
    "pool_size": ("DB_POOL_SIZE", 10),
    "max_overflow": ("DB_MAX_OVERFLOW", 20),
    "pool_timeout": ("DB_POOL_TIMEOUT", 30),
    "pool_recycle": ("DB_POOL_RECYCLE", 1800),
}


@dataclass(frozen=True)
class PostgresConfig:
    """
    Where the clinic tables live and how the async pool is sized.

    Booking takes a transaction-scoped advisory lock per clinic day, so
    ``pool_size`` bounds how many bookings can wait on a busy day at once.
    """

    url: str = "postgresql://localhost/klinikasistan"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    echo: bool = False
    application_name: str = "klinikasistan"

    def __post_init__(self) -> None:
        if not self.url.strip():
            raise ValueError("DATABASE_URL must be non-empty")
        if not self.url.startswith(_SCHEMES):
            raise ValueError(f"DATABASE_URL must start with one of {_SCHEMES}")
        for attr in _POOL_ENV:
            value = getattr(self, attr)
            floor = 0 if attr == "max_overflow" else 1
            if not isinstance(value, int) or value < floor:
                raise ValueError(f"{attr} must be an integer >= {floor}, got {value!r}")
        if not self.application_name.strip():
            raise ValueError("application_name must be non-empty")

    @property
    def async_url(self) -> str:
        """The URL with the asyncpg driver selected."""
        for scheme in _SCHEMES[1:]:
            if self.url.startswith(scheme):
                return "postgresql+asyncpg://" + self.url[len(scheme):]
        return self.url

    @classmethod
    def from_env(cls, **overrides: object) -> PostgresConfig:
        """Build from env; keyword overrides win over env values."""
        values: dict = {
            "url": os.environ.get("DATABASE_URL", cls.url).strip(),
            "echo": os.environ.get("DB_ECHO", "").strip().lower() in ("1", "true", "yes"),
            "application_name": os.environ.get("DB_APPLICATION_NAME", cls.application_name),
        }
        for attr, (var, default) in _POOL_ENV.items():
            values[attr] = int(os.environ.get(var, default))
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def load_postgres_config(**overrides: object) -> PostgresConfig:
    """Load database settings from env. Raises ValueError on invalid values."""
    return PostgresConfig.from_env(**overrides)
