"""Alembic environment configuration (SQLite + PostgreSQL)."""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from authz_core.db.base import metadata
from authz_core.db.engine import attach_sqlite_pragmas, build_database_url, render_sync_url
from authz_core.settings import get_settings

# Alembic Config object
config = context.config

# Keep Alembic logging optional (standard pattern)
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)


# Import models so Base.metadata is populated
def _import_models() -> None:
    import authz_core.models  # noqa: F401


_import_models()
target_metadata = metadata


def _get_url() -> str:
    # 1) alembic.ini sqlalchemy.url, 2) AUTHZ_DATABASE_URL via settings
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    return render_sync_url(get_settings())


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _configure_and_run(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=_is_sqlite(str(connection.engine.url)),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    url = _get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )
    with context.begin_transaction():
        context.run_migrations()


async def _run_async_migrations() -> None:
    url = build_database_url(get_settings())
    explicit = config.get_main_option("sqlalchemy.url")
    if explicit:
        url = make_url(explicit)
        if url.drivername == "sqlite":
            url = url.set(drivername="sqlite+aiosqlite")
        elif url.drivername == "postgresql":
            url = url.set(drivername="postgresql+psycopg")

    connectable = create_async_engine(
        url.render_as_string(hide_password=False), poolclass=NullPool
    )
    if url.get_backend_name() == "sqlite":
        attach_sqlite_pragmas(connectable)
    try:
        async with connectable.connect() as connection:
            await connection.run_sync(_configure_and_run)
            await connection.commit()
    finally:
        await connectable.dispose()


def run_migrations_online() -> None:
    # In-process callers hand over a connection (see authz_core.db.engine).
    existing_connection = config.attributes.get("connection")
    if existing_connection is not None:
        _configure_and_run(existing_connection)
        return
    asyncio.run(_run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
