"""Shared pytest fixtures for authz-core tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from authz_core.core.default_group import DefaultGroup
from authz_core.db import atomic, get_engine, metadata, reset_database_state, session_scope
from authz_core.features.groups.service import load_default_group
from authz_core.features.users.repository import UsersRepository
from authz_core.settings import Settings

DEFAULT_GROUP_NAME = "everyone"


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file with a default group configured."""

    return Settings(
        database_url=_sqlite_url(tmp_path / "authz.sqlite"),
        default_group_name=DEFAULT_GROUP_NAME,
    )


@pytest_asyncio.fixture()
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    reset_database_state()
    engine = get_engine(settings)
    async with engine.begin() as connection:
        await connection.run_sync(metadata.create_all)
    yield engine
    reset_database_state()


@pytest_asyncio.fixture()
async def session(settings: Settings, engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    async with session_scope(settings) as session:
        yield session


@pytest_asyncio.fixture()
async def default_group(session: AsyncSession, settings: Settings) -> DefaultGroup:
    group = await load_default_group(session, settings)
    assert group is not None
    return group


@pytest_asyncio.fixture()
async def users(session: AsyncSession) -> dict[str, int]:
    """Seed alice, bob and carol; map each username to its id.

    Ids rather than ORM rows: a rolled back unit of work expires loaded
    instances, and tests keep going after expected failures.
    """

    repo = UsersRepository(session)
    created: dict[str, int] = {}
    async with atomic(session):
        for username in ("alice", "bob", "carol"):
            user = await repo.create(username=username, fullname=username.capitalize())
            created[username] = user.id
    return created
