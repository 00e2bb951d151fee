"""DB package exports."""

from .base import NAMING_CONVENTION, Base, IntegerPrimaryKeyMixin, TimestampMixin, metadata, utc_now
from .engine import (
    build_database_url,
    check_database_ready,
    ensure_database_ready,
    get_engine,
    render_sync_url,
    reset_database_state,
)
from .session import (
    atomic,
    build_sessionmaker,
    get_db_session,
    get_sessionmaker,
    is_unique_violation,
    session_scope,
)
from .types import UTCDateTime

__all__ = [
    "Base",
    "metadata",
    "NAMING_CONVENTION",
    "utc_now",
    "IntegerPrimaryKeyMixin",
    "TimestampMixin",
    "UTCDateTime",
    "atomic",
    "build_database_url",
    "build_sessionmaker",
    "check_database_ready",
    "ensure_database_ready",
    "get_db_session",
    "get_engine",
    "get_sessionmaker",
    "is_unique_violation",
    "render_sync_url",
    "reset_database_state",
    "session_scope",
]
