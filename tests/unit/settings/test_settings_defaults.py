from __future__ import annotations

from collections.abc import Iterator

import pytest
from pydantic import ValidationError

from authz_core.settings import (
    DEFAULT_DATABASE_URL,
    Settings,
    get_settings,
    reload_settings,
)


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear AUTHZ_* overrides and the settings cache between tests."""

    for var in (
        "AUTHZ_APP_NAME",
        "AUTHZ_LOGGING_LEVEL",
        "AUTHZ_DATABASE_URL",
        "AUTHZ_DEFAULT_GROUP_NAME",
        "AUTHZ_GROUP_NAME_PATTERN",
        "AUTHZ_PROJECT_KEY_PATTERN",
        "AUTHZ_GUARD_ADMIN_DEMOTION",
    ):
        monkeypatch.delenv(var, raising=False)
    reload_settings()
    yield
    monkeypatch.undo()
    reload_settings()


def test_defaults() -> None:
    settings = Settings()

    assert settings.app_name == "authz-core"
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.default_group_name is None
    assert settings.guard_admin_demotion is False
    assert settings.logging_level == "INFO"
    assert settings.alembic_ini_path.is_absolute()


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTHZ_DEFAULT_GROUP_NAME", "  everyone ")
    monkeypatch.setenv("AUTHZ_LOGGING_LEVEL", "debug")
    monkeypatch.setenv("AUTHZ_GUARD_ADMIN_DEMOTION", "true")

    settings = reload_settings()

    assert settings.default_group_name == "everyone"
    assert settings.logging_level == "DEBUG"
    assert settings.guard_admin_demotion is True
    assert get_settings() is settings


def test_blank_default_group_name_means_none() -> None:
    assert Settings(default_group_name="   ").default_group_name is None


def test_name_patterns_are_full_matched() -> None:
    settings = Settings()

    assert settings.group_name_regex.fullmatch("team-a.b_c")
    assert settings.group_name_regex.fullmatch("team a") is None
    assert settings.project_key_regex.fullmatch("PRJ1")
    assert settings.project_key_regex.fullmatch("prj") is None


def test_invalid_pattern_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(group_name_pattern="([a-z")
    with pytest.raises(ValidationError):
        Settings(project_key_pattern="  ")
