"""Async engine management for authz-core."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
from sqlalchemy import event, text
from sqlalchemy.engine import URL, Connection, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from authz_core.settings import Settings, get_settings

_ENGINE: AsyncEngine | None = None
_ENGINE_KEY: tuple[Any, ...] | None = None

_SYNC_DRIVERS = {"sqlite": "sqlite", "postgresql": "postgresql+psycopg"}

logger = logging.getLogger(__name__)


def build_database_url(settings: Settings) -> URL:
    url = make_url(settings.database_url)
    backend = url.get_backend_name()
    if backend not in _SYNC_DRIVERS:
        raise ValueError("Only SQLite and PostgreSQL are supported.")
    if backend == "sqlite" and url.drivername == "sqlite":
        url = url.set(drivername="sqlite+aiosqlite")
    elif backend == "postgresql" and url.drivername == "postgresql":
        url = url.set(drivername="postgresql+psycopg")
    return url


def _cache_key(settings: Settings) -> tuple[Any, ...]:
    return (
        settings.database_url,
        settings.database_echo,
        settings.database_pool_size,
        settings.database_max_overflow,
        settings.database_pool_timeout,
    )


def is_sqlite_memory_url(url: URL) -> bool:
    database = (url.database or "").strip()
    if not database or database == ":memory:":
        return True
    if database.startswith("file:") and (url.query or {}).get("mode") == "memory":
        return True
    return False


def ensure_sqlite_database_directory(url: URL) -> None:
    database = (url.database or "").strip()
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    path = Path(database)
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)


def _create_engine(settings: Settings) -> AsyncEngine:
    url = build_database_url(settings)
    connect_args: dict[str, Any] = {}
    engine_kwargs: dict[str, Any] = {
        "echo": settings.database_echo,
        "pool_pre_ping": True,
    }

    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = settings.database_pool_timeout
        if is_sqlite_memory_url(url):
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["poolclass"] = NullPool
            ensure_sqlite_database_directory(url)
    else:
        engine_kwargs["pool_size"] = settings.database_pool_size
        engine_kwargs["max_overflow"] = settings.database_max_overflow
        engine_kwargs["pool_timeout"] = settings.database_pool_timeout

    if connect_args:
        engine_kwargs["connect_args"] = connect_args

    engine = create_async_engine(url.render_as_string(hide_password=False), **engine_kwargs)

    if url.get_backend_name() == "sqlite":
        attach_sqlite_pragmas(engine)

    return engine


def attach_sqlite_pragmas(engine: AsyncEngine) -> None:
    """Enable FK enforcement and take over BEGIN so SAVEPOINTs behave."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
        # The driver's implicit transaction handling breaks SAVEPOINT; we emit BEGIN ourselves.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=30000")
        finally:
            cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _sqlite_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """Return a cached async engine matching the active settings."""

    global _ENGINE, _ENGINE_KEY
    settings = settings or get_settings()
    key = _cache_key(settings)
    if _ENGINE is None or _ENGINE_KEY != key:
        if _ENGINE is not None:
            _ENGINE.sync_engine.dispose()
        _ENGINE = _create_engine(settings)
        _ENGINE_KEY = key
    return _ENGINE


def reset_database_state() -> None:
    """Dispose cached engine and associated session factories."""

    global _ENGINE, _ENGINE_KEY
    if _ENGINE is not None:
        _ENGINE.sync_engine.dispose()
    _ENGINE = None
    _ENGINE_KEY = None

    from . import session as session_module

    session_module.reset_session_state()


def _load_alembic_config(settings: Settings) -> Config:
    config_path = settings.alembic_ini_path
    if not config_path.exists():
        msg = f"Alembic configuration not found at {config_path}"
        raise FileNotFoundError(msg)
    config = Config(str(config_path))
    # Preserve the service's logging configuration when migrations run in-process.
    config.attributes["configure_logger"] = False
    config.set_main_option("script_location", str(settings.alembic_migrations_dir))
    return config


def _upgrade_database(settings: Settings, connection: Connection) -> None:
    config = _load_alembic_config(settings)
    config.set_main_option("sqlalchemy.url", render_sync_url(settings))
    config.attributes["connection"] = connection
    command.upgrade(config, "head")


async def ensure_database_ready(settings: Settings | None = None) -> None:
    """Create the database and apply migrations if needed."""

    resolved = settings or get_settings()
    engine = get_engine(resolved)
    async with engine.begin() as connection:
        await connection.run_sync(
            lambda sync_connection: _upgrade_database(resolved, sync_connection)
        )
    logger.info("database.migrations.applied")


async def check_database_ready(settings: Settings | None = None) -> None:
    """Verify database connectivity without running migrations."""

    resolved = settings or get_settings()
    engine = get_engine(resolved)
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("database.readiness.failed", exc_info=exc)
        raise


def engine_cache_key(settings: Settings) -> tuple[Any, ...]:
    """Expose the cache key used for engine/session reuse."""

    return _cache_key(settings)


def render_sync_url(database: Settings | str) -> str:
    """Return a synchronous SQLAlchemy URL (offline Alembic runs)."""

    if isinstance(database, Settings):
        url = build_database_url(database)
    else:
        url = make_url(database)
    sync_url = url.set(drivername=_SYNC_DRIVERS.get(url.get_backend_name(), url.drivername))
    return sync_url.render_as_string(hide_password=False)


__all__ = [
    "attach_sqlite_pragmas",
    "build_database_url",
    "check_database_ready",
    "engine_cache_key",
    "ensure_database_ready",
    "ensure_sqlite_database_directory",
    "get_engine",
    "is_sqlite_memory_url",
    "render_sync_url",
    "reset_database_state",
]
