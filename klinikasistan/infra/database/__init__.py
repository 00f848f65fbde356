"""
klinikasistan.infra.database - clinic tables on PostgreSQL, through SQLAlchemy's async engine.
"""
from klinikasistan.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from klinikasistan.infra.database.models import Base

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "close_engine",
    "ensure_database_exists",
    "init_db",
]
