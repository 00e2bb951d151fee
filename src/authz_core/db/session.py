"""Session factories, transaction scopes and FastAPI dependencies."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authz_core.core.errors import StorageFailureError
from authz_core.settings import Settings, get_settings

from .engine import engine_cache_key, get_engine

_SESSION_FACTORY: async_sessionmaker[AsyncSession] | None = None
_SESSION_KEY: tuple[Any, ...] | None = None

_ATOMIC_DEPTH = "authz.atomic_depth"
_UNIQUE_SQLSTATE = "23505"
_UNIQUE_MARKERS = ("unique constraint failed", "duplicate key value", "uniqueviolation")


def reset_session_state() -> None:
    """Clear the cached session factory."""

    global _SESSION_FACTORY, _SESSION_KEY
    _SESSION_FACTORY = None
    _SESSION_KEY = None


def get_sessionmaker(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    """Return a cached ``async_sessionmaker`` bound to the authz engine."""

    global _SESSION_FACTORY, _SESSION_KEY
    settings = settings or get_settings()
    cache_key = engine_cache_key(settings)
    if _SESSION_FACTORY is None or _SESSION_KEY != cache_key:
        engine = get_engine(settings)
        _SESSION_FACTORY = build_sessionmaker(engine)
        _SESSION_KEY = cache_key
    return _SESSION_FACTORY


def build_sessionmaker(bind) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, expire_on_commit=False, autoflush=False)


async def close_session(session: AsyncSession) -> None:
    await asyncio.shield(session.close())


@asynccontextmanager
async def session_scope(settings: Settings | None = None) -> AsyncIterator[AsyncSession]:
    session = get_sessionmaker(settings)()
    try:
        yield session
    finally:
        await close_session(session)


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one AsyncSession per request."""

    settings = getattr(request.app.state, "settings", None)
    session = get_sessionmaker(settings)()
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
    finally:
        await close_session(session)


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the enclosed block as one unit of work.

    The outermost ``atomic`` on a session commits on exit, also when an
    earlier read already started the transaction. Nested calls run inside a
    SAVEPOINT so service operations compose. Any exception, cancellation
    included, rolls the unit back before it propagates. Driver errors that no
    caller translated surface as :class:`StorageFailureError`.
    """

    depth = session.info.get(_ATOMIC_DEPTH, 0)
    session.info[_ATOMIC_DEPTH] = depth + 1
    try:
        if depth:
            async with session.begin_nested():
                yield session
        elif session.in_transaction():
            try:
                yield session
            except BaseException:
                await session.rollback()
                raise
            await session.commit()
        else:
            async with session.begin():
                yield session
    except SQLAlchemyError as exc:
        raise StorageFailureError("Storage operation failed", error=type(exc).__name__) from exc
    finally:
        session.info[_ATOMIC_DEPTH] = depth


def is_unique_violation(exc: BaseException) -> bool:
    """Return True when ``exc`` reports a unique or primary key collision."""

    if not isinstance(exc, IntegrityError):
        return False
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        if getattr(orig, attr, None) == _UNIQUE_SQLSTATE:
            return True
    message = str(orig if orig is not None else exc).lower()
    return any(marker in message for marker in _UNIQUE_MARKERS)


__all__ = [
    "atomic",
    "build_sessionmaker",
    "close_session",
    "get_db_session",
    "get_sessionmaker",
    "is_unique_violation",
    "reset_session_state",
    "session_scope",
]
