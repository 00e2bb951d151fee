"""Notifications emitted after project and permission changes commit."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import uuid4

from pydantic import Field

from authz_core.common.schema import BaseSchema
from authz_core.db import utc_now


class AuthzEvent(BaseSchema):
    """Common envelope fields."""

    type: str
    event_id: str = Field(default_factory=lambda: uuid4().hex)
    created_at: datetime = Field(default_factory=utc_now)
    project_key: str
    username: str | None = None


class ProjectCreated(AuthzEvent):
    type: Literal["project.created"] = "project.created"
    project_id: int
    project_name: str
    group_ids: list[int] = Field(default_factory=list)


class ProjectUpdated(AuthzEvent):
    type: Literal["project.updated"] = "project.updated"
    project_id: int
    old_name: str
    new_name: str


class ProjectDeleted(AuthzEvent):
    type: Literal["project.deleted"] = "project.deleted"
    project_id: int


class ProjectPermissionDeleted(AuthzEvent):
    """A group lost its grant on a project (for example when the group was deleted)."""

    type: Literal["project.permission.deleted"] = "project.permission.deleted"
    project_id: int
    group_id: int
    group_name: str
    level: int


__all__ = [
    "AuthzEvent",
    "ProjectCreated",
    "ProjectDeleted",
    "ProjectPermissionDeleted",
    "ProjectUpdated",
]
