"""
klinikasistan.infra.database.engine - process-wide async engine and session factory.

Startup order: ensure_database_exists() -> build_engine() -> init_db().
Components receive the session factory and open one session per operation.
"""
from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlparse, urlunparse

import asyncpg
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

# Registers every clinic table on Base.metadata before create_all()
import klinikasistan.infra.database.models  # noqa: F401
from klinikasistan.config import PostgresConfig, load_postgres_config
from klinikasistan.infra.database.models.base import Base

logger = logging.getLogger(__name__)

# CREATE DATABASE cannot take a bind parameter
_SAFE_DBNAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


async def ensure_database_exists(config: Optional[PostgresConfig] = None) -> None:
    """Create the clinic database through the 'postgres' maintenance database if missing."""
    config = config or load_postgres_config()
    parsed = urlparse(config.url)
    dbname = parsed.path.strip("/") or "postgres"
    if dbname == "postgres":
        return
    if not _SAFE_DBNAME.match(dbname):
        logger.warning("Veritabanı adı %r geçersiz, otomatik oluşturma atlandı", dbname)
        return
    # asyncpg wants the plain scheme
    admin_url = urlunparse(parsed._replace(scheme="postgresql", path="/postgres"))
    try:
        conn = await asyncpg.connect(admin_url)
    except (OSError, asyncpg.PostgresError) as exc:
        logger.debug("postgres veritabanına bağlanılamadı (%s), oluşturma atlandı", exc)
        return
    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", dbname) is None:
            await conn.execute(f'CREATE DATABASE "{dbname}"')
            logger.info("Veritabanı oluşturuldu: %s", dbname)
    finally:
        await conn.close()


def build_engine(config: Optional[PostgresConfig] = None) -> AsyncEngine:
    """Create (once) and return the process-wide async engine."""
    global _engine
    if _engine is None:
        config = config or load_postgres_config()
        _engine = create_async_engine(
            config.async_url,
            echo=config.echo,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
            connect_args={"server_settings": {"application_name": config.application_name}},
        )
        logger.info("AsyncEngine created: pool_size=%d max_overflow=%d", config.pool_size, config.max_overflow)
    return _engine


def build_session_factory(engine: Optional[AsyncEngine] = None) -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        # Rows are read after commit when building replies
        _session_factory = async_sessionmaker(engine or build_engine(), expire_on_commit=False, autoflush=False)
    return _session_factory


async def init_db(*, drop_all: bool = False) -> None:
    """Create the clinic tables that do not exist yet."""
    async with build_engine().begin() as conn:
        if drop_all:
            logger.warning("Dropping all clinic tables (drop_all=True)")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


async def close_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("AsyncEngine disposed")
    _engine = None
    _session_factory = None
