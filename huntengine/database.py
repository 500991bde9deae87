"""Async engine and session factory for the hunt engine's store.

SQLite (aiosqlite) is the default backend. Every SQLite connection gets its
PRAGMAs on connect, and NullPool gives each session its own connection so
concurrent source reads never share one while the executor writes matches.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from .config import HuntEngineConfig
from .models import Base
from .utils.logging import get_logger

logger = get_logger("database")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _is_sqlite(config: HuntEngineConfig) -> bool:
    return config.database_url.startswith("sqlite")


def _install_sqlite_pragmas(engine: AsyncEngine, config: HuntEngineConfig) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        if config.db_wal_mode:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={config.db_busy_timeout}")
        cursor.execute(f"PRAGMA synchronous={config.db_synchronous}")
        cursor.close()


def get_engine(config: HuntEngineConfig) -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        kwargs: dict = {"echo": config.debug, "future": True}
        if _is_sqlite(config):
            kwargs["poolclass"] = NullPool
        else:
            kwargs["pool_pre_ping"] = True
        _engine = create_async_engine(config.database_url, **kwargs)
        if _is_sqlite(config):
            _install_sqlite_pragmas(_engine, config)
            logger.info(
                "sqlite_engine_created",
                wal=config.db_wal_mode,
                busy_timeout=config.db_busy_timeout,
                synchronous=config.db_synchronous,
            )
    return _engine


def get_session_factory(config: HuntEngineConfig) -> async_sessionmaker[AsyncSession]:
    """Return the session factory shared by every store and source."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(config), expire_on_commit=False)
    return _session_factory


async def create_tables(config: HuntEngineConfig) -> None:
    """Create the engine's own tables and the read-only fleet tables if missing."""
    async with get_engine(config).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("tables_ready", tables=sorted(Base.metadata.tables))


async def close_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("engine_disposed")
    _engine = None
    _session_factory = None
