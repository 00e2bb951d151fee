"""Membership endpoints under ``/groups/{group_name}`` and ``/users/{username}``."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Response, status
from fastapi import Path as PathParam

from authz_core.api.deps import (
    CurrentUser,
    GroupManagerDep,
    LedgerDep,
    UsersDep,
    require_group_admin,
)
from authz_core.features.groups.router import group_detail
from authz_core.features.groups.schemas import GroupDetailOut

from .schemas import MembersAdd, UserGroupOut

router = APIRouter(prefix="/groups/{group_name}", tags=["memberships"])
users_router = APIRouter(prefix="/users", tags=["memberships"])

GroupName = Annotated[str, PathParam(min_length=1, description="Group name")]
Username = Annotated[str, PathParam(min_length=1, description="Username")]


@router.post("/members", response_model=GroupDetailOut, summary="Add users to a group")
async def add_members(
    group_name: GroupName,
    actor: CurrentUser,
    manager: GroupManagerDep,
    ledger: LedgerDep,
    users: UsersDep,
    payload: Annotated[MembersAdd, Body(...)],
) -> GroupDetailOut:
    group = await manager.get_group_by_name(group_name)
    await require_group_admin(group, actor, ledger)
    for username in payload.usernames:
        user_id = await users.resolve_username(username)
        await ledger.add_member(group.id, user_id, as_admin=payload.admin)
    return await group_detail(group, ledger)


@router.delete(
    "/members/{username}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a user from a group",
)
async def remove_member(
    group_name: GroupName,
    username: Username,
    actor: CurrentUser,
    manager: GroupManagerDep,
    ledger: LedgerDep,
    users: UsersDep,
) -> Response:
    group = await manager.get_group_by_name(group_name)
    await require_group_admin(group, actor, ledger)
    user_id = await users.resolve_username(username)
    await ledger.remove_member(group.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/admins/{username}", response_model=GroupDetailOut, summary="Promote to admin")
async def promote_member(
    group_name: GroupName,
    username: Username,
    actor: CurrentUser,
    manager: GroupManagerDep,
    ledger: LedgerDep,
    users: UsersDep,
) -> GroupDetailOut:
    group = await manager.get_group_by_name(group_name)
    await require_group_admin(group, actor, ledger)
    user_id = await users.resolve_username(username)
    await ledger.promote_to_admin(group.id, user_id)
    return await group_detail(group, ledger)


@router.delete("/admins/{username}", response_model=GroupDetailOut, summary="Demote an admin")
async def demote_member(
    group_name: GroupName,
    username: Username,
    actor: CurrentUser,
    manager: GroupManagerDep,
    ledger: LedgerDep,
    users: UsersDep,
) -> GroupDetailOut:
    group = await manager.get_group_by_name(group_name)
    await require_group_admin(group, actor, ledger)
    user_id = await users.resolve_username(username)
    await ledger.demote_from_admin(group.id, user_id)
    return await group_detail(group, ledger)


@users_router.get(
    "/{username}/groups",
    response_model=list[UserGroupOut],
    summary="List the groups a user belongs to",
)
async def list_user_groups(
    username: Username,
    _actor: CurrentUser,
    ledger: LedgerDep,
    users: UsersDep,
) -> list[UserGroupOut]:
    user_id = await users.resolve_username(username)
    views = await ledger.list_user_groups(user_id)
    return [
        UserGroupOut(group_id=view.group_id, group_name=view.group_name, admin=view.is_admin)
        for view in views
    ]


__all__ = ["router", "users_router"]
