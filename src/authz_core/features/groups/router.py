"""Group endpoints: list, read, create, rename and delete."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Query, Response, status
from fastapi import Path as PathParam

from authz_core.api.deps import (
    CurrentUser,
    GroupManagerDep,
    LedgerDep,
    PublisherDep,
    require_group_admin,
)
from authz_core.common.logging import log_context
from authz_core.features.memberships.service import MembershipLedger
from authz_core.infra.events import ProjectPermissionDeleted, publish_safely
from authz_core.models import Group

from .schemas import GroupCreate, GroupDetailOut, GroupOut, GroupRename, MemberOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["groups"])

GroupName = Annotated[str, PathParam(min_length=1, description="Group name")]


async def group_detail(group: Group, ledger: MembershipLedger) -> GroupDetailOut:
    members = await ledger.list_members(group.id)
    return GroupDetailOut(
        id=group.id,
        name=group.name,
        is_default=group.is_default,
        members=[
            MemberOut(
                user_id=membership.user_id,
                username=membership.user.username,
                fullname=membership.user.fullname,
                admin=membership.is_admin,
            )
            for membership in members
        ],
    )


@router.get("", response_model=list[GroupOut], summary="List groups")
async def list_groups(
    _actor: CurrentUser,
    manager: GroupManagerDep,
    without_default: Annotated[
        bool,
        Query(alias="withoutDefault", description="Leave out the default group."),
    ] = False,
) -> list[GroupOut]:
    groups = await manager.list_groups(without_default=without_default)
    return [GroupOut.model_validate(group) for group in groups]


@router.get("/{group_name}", response_model=GroupDetailOut, summary="Get a group")
async def get_group(
    group_name: GroupName,
    _actor: CurrentUser,
    manager: GroupManagerDep,
    ledger: LedgerDep,
) -> GroupDetailOut:
    group = await manager.get_group_by_name(group_name)
    return await group_detail(group, ledger)


@router.post(
    "",
    response_model=GroupDetailOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a group; the caller becomes its admin",
)
async def create_group(
    actor: CurrentUser,
    manager: GroupManagerDep,
    ledger: LedgerDep,
    payload: Annotated[GroupCreate, Body(...)],
) -> GroupDetailOut:
    group = await manager.create_group(payload.name, actor.id)
    return await group_detail(group, ledger)


@router.put("/{group_name}", response_model=GroupDetailOut, summary="Rename a group")
async def rename_group(
    group_name: GroupName,
    actor: CurrentUser,
    manager: GroupManagerDep,
    ledger: LedgerDep,
    payload: Annotated[GroupRename, Body(...)],
) -> GroupDetailOut:
    group = await manager.get_group_by_name(group_name)
    await require_group_admin(group, actor, ledger)
    group = await manager.rename_group(group.id, payload.name)
    return await group_detail(group, ledger)


@router.delete(
    "/{group_name}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a group with its memberships and project grants",
)
async def delete_group(
    group_name: GroupName,
    actor: CurrentUser,
    manager: GroupManagerDep,
    ledger: LedgerDep,
    publisher: PublisherDep,
) -> Response:
    group = await manager.get_group_by_name(group_name)
    await require_group_admin(group, actor, ledger)
    deletion = await manager.delete_group(group.id)

    delivered = await publish_safely(
        publisher,
        [
            ProjectPermissionDeleted(
                project_key=grant.project_key,
                project_id=grant.project_id,
                group_id=deletion.group_id,
                group_name=deletion.group_name,
                level=int(grant.level),
                username=actor.username,
            )
            for grant in deletion.grants
        ],
    )
    logger.debug(
        "group.delete.notified",
        extra=log_context(group_id=deletion.group_id, events=delivered),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
