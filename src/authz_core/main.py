"""authz-core FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI

from .api.v1.router import api_router
from .common.exceptions import register_exception_handlers
from .common.logging import setup_logging
from .common.middleware import register_middleware
from .infra.events import EventPublisher, LoggingEventPublisher
from .lifecycles import create_application_lifespan
from .settings import Settings, get_settings

API_PREFIX = "/api"


def create_app(
    settings: Settings | None = None,
    *,
    publisher: EventPublisher | None = None,
) -> FastAPI:
    """Return a configured FastAPI application."""

    settings = settings or get_settings()
    setup_logging(settings)

    docs_url = "/docs" if settings.api_docs_enabled else None
    openapi_url = "/openapi.json" if settings.api_docs_enabled else None

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=docs_url,
        redoc_url=None,
        openapi_url=openapi_url,
        lifespan=create_application_lifespan(settings=settings),
    )
    app.state.settings = settings
    app.state.default_group = None
    app.state.event_publisher = publisher or LoggingEventPublisher()

    register_middleware(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=API_PREFIX)
    return app


__all__ = ["API_PREFIX", "create_app"]
