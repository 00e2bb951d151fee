"""Schemas for group endpoints."""

from __future__ import annotations

from pydantic import Field

from authz_core.common.schema import BaseSchema


class GroupCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=255)


class GroupRename(BaseSchema):
    name: str = Field(min_length=1, max_length=255)


class MemberOut(BaseSchema):
    user_id: int
    username: str
    fullname: str | None = None
    admin: bool


class GroupOut(BaseSchema):
    id: int
    name: str
    is_default: bool = False


class GroupDetailOut(GroupOut):
    members: list[MemberOut] = Field(default_factory=list)


__all__ = ["GroupCreate", "GroupDetailOut", "GroupOut", "GroupRename", "MemberOut"]
