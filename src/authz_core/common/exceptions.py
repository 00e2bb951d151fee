"""Centralized FastAPI exception handlers with structured logging."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from authz_core.core.errors import (
    AuthzError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvariantViolationError,
    NotFoundError,
    StorageFailureError,
)

from .logging import log_context
from .schema import ErrorMessage

_UNHANDLED_LOGGER = logging.getLogger("authz_core.errors")
_HTTP_LOGGER = logging.getLogger("authz_core.http")

# Most specific first; the first class in the error's MRO wins.
ERROR_STATUS: dict[type[AuthzError], int] = {
    InvalidInputError: 422,
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvariantViolationError: status.HTTP_409_CONFLICT,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    StorageFailureError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for_error(exc: AuthzError) -> int:
    for cls in type(exc).__mro__:
        code = ERROR_STATUS.get(cls)  # type: ignore[arg-type]
        if code is not None:
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def authz_error_handler(request: Request, exc: AuthzError) -> JSONResponse:
    """Render domain errors as ``{"detail", "error", "context"}``.

    Only server-side failures are logged; caller errors are returned as-is.
    """
    status_code = status_for_error(exc)
    if status_code >= 500:
        _HTTP_LOGGER.error(
            "authz_error",
            exc_info=exc,
            extra=log_context(
                path=str(request.url.path),
                method=request.method,
                status_code=status_code,
                error=type(exc).__name__,
            ),
        )

    body = ErrorMessage(detail=exc.message, error=type(exc).__name__, context=exc.context or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: HTTP 500 plus an ERROR log with stack trace."""
    _UNHANDLED_LOGGER.exception(
        "unhandled_exception",
        extra=log_context(
            path=str(request.url.path),
            method=request.method,
            exception_type=type(exc).__name__,
            detail=str(exc),
        ),
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        _HTTP_LOGGER.error(
            "http_exception",
            extra=log_context(
                path=str(request.url.path),
                method=request.method,
                status_code=exc.status_code,
                detail=exc.detail,
            ),
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthzError, authz_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "ERROR_STATUS",
    "authz_error_handler",
    "http_exception_handler",
    "register_exception_handlers",
    "status_for_error",
    "unhandled_exception_handler",
]
