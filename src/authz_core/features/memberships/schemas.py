"""Schemas for membership endpoints."""

from __future__ import annotations

from pydantic import Field

from authz_core.common.schema import BaseSchema


class MembersAdd(BaseSchema):
    """Usernames to add; unknown names fail the whole request."""

    usernames: list[str] = Field(min_length=1)
    admin: bool = False


class UserGroupOut(BaseSchema):
    group_id: int
    group_name: str
    admin: bool


__all__ = ["MembersAdd", "UserGroupOut"]
