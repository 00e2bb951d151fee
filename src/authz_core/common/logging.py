"""Process logging for authz-core.

Records are rendered on one line: UTC timestamp, level, logger, the request
correlation id and then whatever was passed through ``extra`` as ``key=value``
pairs. Services build those payloads with :func:`log_context` so membership,
grant and project events share the same field names.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from authz_core.settings import Settings

_correlation_id: ContextVar[str | None] = ContextVar("authz_correlation_id", default=None)

# Fields every LogRecord carries; anything else on the record came from ``extra``.
_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "correlation_id", "color_message"}

_ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "alembic", "sqlalchemy")

_IDENTIFIER_FIELDS = ("group_id", "project_id", "project_key", "user_id")


class ConsoleLogFormatter(logging.Formatter):
    """``2026-01-05T10:11:12.345Z INFO  authz_core.x [cid=-] group.create.success group_id=3``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-5s %(name)s [cid=%(correlation_id)s] %(message)s"
        )

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=UTC)
        return f"{stamp:%Y-%m-%dT%H:%M:%S}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = (
            getattr(record, "correlation_id", None) or _correlation_id.get() or "-"
        )
        line = super().format(record)
        pairs = [
            f"{key}={'null' if value is None else value}"
            for key, value in vars(record).items()
            if key not in _RECORD_FIELDS and not key.startswith("_")
        ]
        return " ".join([line, *pairs]) if pairs else line


def setup_logging(settings: Settings) -> None:
    """Send every log record through a single console handler on the root logger.

    Repeated calls only adjust the level (``AUTHZ_LOGGING_LEVEL``).
    """

    root = logging.getLogger()
    level = logging.getLevelName(settings.logging_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)
    if any(isinstance(h.formatter, ConsoleLogFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(ConsoleLogFormatter())
    root.handlers = [handler]
    for name in _ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers.clear()
        routed.propagate = True


def bind_request_context(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


def clear_request_context() -> None:
    _correlation_id.set(None)


def log_context(**fields: Any) -> dict[str, Any]:
    """Return an ``extra`` mapping; unset entity identifiers are left out.

    >>> log_context(group_id=3, user_id=None, is_admin=True)
    {'group_id': 3, 'is_admin': True}
    """

    return {
        key: value
        for key, value in fields.items()
        if value is not None or key not in _IDENTIFIER_FIELDS
    }


__all__ = [
    "ConsoleLogFormatter",
    "bind_request_context",
    "clear_request_context",
    "log_context",
    "setup_logging",
]
