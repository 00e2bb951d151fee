"""authz-core settings (conventional Pydantic v2)."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---- Defaults ---------------------------------------------------------------

MODULE_DIR = Path(__file__).resolve().parent


def _candidate_roots() -> list[Path]:
    """Return candidate directories that may hold alembic.ini + migrations."""

    candidates = [
        MODULE_DIR.parent.parent,  # source layout: <repo>/src/authz_core
        MODULE_DIR,  # packaged assets alongside the module (if bundled)
        Path.cwd(),
    ]

    seen: set[Path] = set()
    resolved: list[Path] = []
    for path in candidates:
        try:
            absolute = path.expanduser().resolve()
        except OSError:
            continue
        if absolute not in seen:
            seen.add(absolute)
            resolved.append(absolute)
    return resolved


def _detect_root() -> Path:
    """Pick a root that actually contains the Alembic assets."""

    default_root = MODULE_DIR.parent.parent
    for candidate in _candidate_roots():
        if (candidate / "alembic.ini").exists() and (candidate / "migrations").exists():
            return candidate
    return default_root


DEFAULT_ROOT = _detect_root()
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./data/db/authz.sqlite"
DEFAULT_ALEMBIC_INI = DEFAULT_ROOT / "alembic.ini"
DEFAULT_ALEMBIC_MIGRATIONS = DEFAULT_ROOT / "migrations"

# Group names: letters, digits, dot, underscore, dash.
DEFAULT_GROUP_NAME_PATTERN = r"^[a-zA-Z0-9._-]{1,}$"
# Project keys: upper-case letters and digits.
DEFAULT_PROJECT_KEY_PATTERN = r"^[A-Z0-9]{1,}$"


# ---- Helpers ----------------------------------------------------------------

def _resolve_path(value: Path | str | None, *, default: Path) -> Path:
    """Expand, absolutize, and resolve a configurable path."""

    if value in (None, ""):
        candidate = default
    elif isinstance(value, Path):
        candidate = value
    else:
        candidate = Path(str(value).strip())
    return candidate.expanduser().resolve()


def _compile_pattern(value: Any, *, field_name: str) -> str:
    s = "" if value is None else str(value).strip()
    if not s:
        raise ValueError(f"{field_name} must not be blank")
    try:
        re.compile(s)
    except re.error as exc:
        raise ValueError(f"{field_name} is not a valid regular expression: {exc}") from exc
    return s


# ---- Settings ---------------------------------------------------------------

class Settings(BaseSettings):
    """Service settings loaded from AUTHZ_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AUTHZ_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Core
    app_name: str = "authz-core"
    app_version: str = "0.1.0"
    logging_level: str = "INFO"
    api_docs_enabled: bool = False

    # Database
    database_url: str = DEFAULT_DATABASE_URL
    database_echo: bool = False
    database_pool_size: int = Field(5, ge=1)  # ignored by sqlite
    database_max_overflow: int = Field(10, ge=0)
    database_pool_timeout: int = Field(30, gt=0)

    # Migrations
    alembic_ini_path: Path = Field(default=DEFAULT_ALEMBIC_INI)
    alembic_migrations_dir: Path = Field(default=DEFAULT_ALEMBIC_MIGRATIONS)

    # Naming rules
    group_name_pattern: str = DEFAULT_GROUP_NAME_PATTERN
    project_key_pattern: str = DEFAULT_PROJECT_KEY_PATTERN

    # Groups
    default_group_name: str | None = None
    guard_admin_demotion: bool = False

    # ---- Validators ----

    @field_validator("logging_level", mode="before")
    @classmethod
    def _v_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v).strip()).upper()
        return s or "INFO"

    @field_validator("group_name_pattern", "project_key_pattern", mode="before")
    @classmethod
    def _v_patterns(cls, v: Any, info: ValidationInfo) -> str:
        return _compile_pattern(v, field_name=info.field_name)

    @field_validator("default_group_name", mode="before")
    @classmethod
    def _v_default_group(cls, v: Any) -> str | None:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("alembic_ini_path", mode="before")
    @classmethod
    def _v_alembic_ini(cls, v: Any) -> Path:
        return _resolve_path(v, default=DEFAULT_ALEMBIC_INI)

    @field_validator("alembic_migrations_dir", mode="before")
    @classmethod
    def _v_alembic_dir(cls, v: Any) -> Path:
        return _resolve_path(v, default=DEFAULT_ALEMBIC_MIGRATIONS)

    @property
    def group_name_regex(self) -> re.Pattern[str]:
        return re.compile(self.group_name_pattern)

    @property
    def project_key_regex(self) -> re.Pattern[str]:
        return re.compile(self.project_key_pattern)


@lru_cache(maxsize=1)
def _build_settings() -> Settings:
    return Settings()


def get_settings() -> Settings:
    return _build_settings()


def reload_settings() -> Settings:
    _build_settings.cache_clear()
    return _build_settings()


__all__ = [
    "DEFAULT_DATABASE_URL",
    "DEFAULT_GROUP_NAME_PATTERN",
    "DEFAULT_PROJECT_KEY_PATTERN",
    "Settings",
    "get_settings",
    "reload_settings",
]
