"""Alembic migrations produce the schema the models expect."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import inspect

from authz_core.db import ensure_database_ready, get_engine, metadata, reset_database_state
from authz_core.settings import Settings

pytestmark = pytest.mark.asyncio


async def test_upgrade_creates_every_table(tmp_path: Path) -> None:
    settings = Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'migrated.sqlite'}")
    reset_database_state()
    try:
        await ensure_database_ready(settings)
        # Re-running is a no-op at head.
        await ensure_database_ready(settings)

        engine = get_engine(settings)
        async with engine.connect() as connection:
            tables = await connection.run_sync(
                lambda sync_conn: set(inspect(sync_conn).get_table_names())
            )
            indexes = await connection.run_sync(
                lambda sync_conn: {
                    index["name"]: index for index in inspect(sync_conn).get_indexes("groups")
                }
            )
    finally:
        reset_database_state()

    assert set(metadata.tables) <= tables
    assert "alembic_version" in tables
    assert indexes["groups_is_default_uidx"]["unique"]
