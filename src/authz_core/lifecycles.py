"""FastAPI lifespan helpers for the authz-core application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import Lifespan

from .common.logging import log_context
from .db.engine import ensure_database_ready, reset_database_state
from .db.session import session_scope
from .features.groups.service import load_default_group
from .settings import Settings

logger = logging.getLogger(__name__)


def create_application_lifespan(
    *,
    settings: Settings,
) -> Lifespan[FastAPI]:
    """Return the lifespan handler: migrate, resolve the default group, dispose on exit."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        await ensure_database_ready(settings)
        async with session_scope(settings) as session:
            default_group = await load_default_group(session, settings)
            await session.commit()
        app.state.default_group = default_group
        logger.info(
            "app.startup.complete",
            extra=log_context(
                default_group=default_group.name if default_group is not None else None
            ),
        )
        try:
            yield
        finally:
            reset_database_state()

    return lifespan


__all__ = ["create_application_lifespan"]
