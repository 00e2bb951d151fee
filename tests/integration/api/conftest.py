"""Fixtures that run the FastAPI app against a migrated SQLite file."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from authz_core.api.deps import ACTOR_HEADER
from authz_core.db import atomic, reset_database_state, session_scope
from authz_core.features.users.repository import UsersRepository
from authz_core.infra.events import InMemoryEventPublisher
from authz_core.main import create_app
from authz_core.settings import Settings


@pytest.fixture()
def api_settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.sqlite'}",
        default_group_name="everyone",
    )


@pytest.fixture()
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest_asyncio.fixture()
async def app(api_settings: Settings, publisher: InMemoryEventPublisher) -> AsyncIterator[FastAPI]:
    reset_database_state()
    application = create_app(api_settings, publisher=publisher)
    async with LifespanManager(application):
        yield application
    reset_database_state()


@pytest_asyncio.fixture()
async def seed_users(app: FastAPI, api_settings: Settings) -> list[str]:
    usernames = ["alice", "bob", "carol"]
    async with session_scope(api_settings) as session:
        repo = UsersRepository(session)
        async with atomic(session):
            for username in usernames:
                await repo.create(username=username, fullname=username.capitalize())
    return usernames


@pytest_asyncio.fixture()
async def async_client(app: FastAPI, seed_users: list[str]) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def as_user() -> Callable[[str], dict[str, str]]:
    def _headers(username: str) -> dict[str, str]:
        return {ACTOR_HEADER: username}

    return _headers
