"""Project endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Response, status
from fastapi import Path as PathParam

from authz_core.api.deps import (
    AggregatorDep,
    CurrentUser,
    GrantStoreDep,
    GroupManagerDep,
    OrchestratorDep,
    require_project_level,
)
from authz_core.core.permissions import PermissionLevel, Permissions, grantable_level
from authz_core.models import Project

from .schemas import (
    PermissionsOut,
    ProjectCreate,
    ProjectDetailOut,
    ProjectGroupAttach,
    ProjectGroupOut,
    ProjectKeyOut,
    ProjectLoadOptions,
    ProjectOut,
    ProjectRename,
    ProjectVariableOut,
)

router = APIRouter(prefix="/projects", tags=["projects"])

ProjectKeyParam = Annotated[str, PathParam(min_length=1, description="Project key")]

_FULL = ProjectLoadOptions(with_groups=True, with_keys=True, with_variables=True)


def _permissions_out(permissions: Permissions) -> PermissionsOut:
    return PermissionsOut(
        level=int(permissions.level),
        readable=permissions.readable,
        writable=permissions.writable,
        executable=permissions.executable,
    )


def _detail(project: Project, permissions: Permissions | None) -> ProjectDetailOut:
    return ProjectDetailOut(
        id=project.id,
        key=project.key,
        name=project.name,
        permissions=_permissions_out(permissions) if permissions is not None else None,
        groups=[
            ProjectGroupOut(group_id=grant.group_id, group_name=grant.group.name, level=grant.level)
            for grant in sorted(project.grants, key=lambda item: item.group.name)
        ],
        keys=[
            ProjectKeyOut(name=key.name, type=key.type, public=key.public, key_id=key.key_id)
            for key in project.keys
        ],
        variables=[
            ProjectVariableOut(name=variable.name, type=variable.type)
            for variable in project.variables
        ],
    )


@router.get("", response_model=list[ProjectOut], summary="Projects reachable by the caller")
async def list_projects(actor: CurrentUser, orchestrator: OrchestratorDep) -> list[ProjectOut]:
    entries = await orchestrator.list_projects_for_user(actor.id)
    return [
        ProjectOut(
            id=entry.project.id,
            key=entry.project.key,
            name=entry.project.name,
            permissions=_permissions_out(entry.permissions),
        )
        for entry in entries
    ]


@router.post(
    "",
    response_model=ProjectDetailOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project with its groups, keys and variables",
)
async def create_project(
    actor: CurrentUser,
    orchestrator: OrchestratorDep,
    aggregator: AggregatorDep,
    payload: Annotated[ProjectCreate, Body(...)],
) -> ProjectDetailOut:
    created = await orchestrator.create_project(payload, user_id=actor.id)
    project = await orchestrator.get_project(created.key, options=_FULL)
    permissions = await aggregator.permissions_for(actor.id, project.id)
    return _detail(project, permissions)


@router.get("/{project_key}", response_model=ProjectDetailOut, summary="Get a project")
async def get_project(
    project_key: ProjectKeyParam,
    actor: CurrentUser,
    orchestrator: OrchestratorDep,
    aggregator: AggregatorDep,
) -> ProjectDetailOut:
    project = await orchestrator.get_project(project_key, options=_FULL)
    level = await require_project_level(project, actor, aggregator, PermissionLevel.READ)
    return _detail(project, Permissions.from_level(level))


@router.put("/{project_key}", response_model=ProjectOut, summary="Rename a project")
async def update_project(
    project_key: ProjectKeyParam,
    actor: CurrentUser,
    orchestrator: OrchestratorDep,
    aggregator: AggregatorDep,
    payload: Annotated[ProjectRename, Body(...)],
) -> ProjectOut:
    project = await orchestrator.get_project(project_key)
    level = await require_project_level(
        project, actor, aggregator, PermissionLevel.READ_WRITE_EXECUTE
    )
    project = await orchestrator.update_project(project_key, name=payload.name, user_id=actor.id)
    return ProjectOut(
        id=project.id,
        key=project.key,
        name=project.name,
        permissions=_permissions_out(Permissions.from_level(level)),
    )


@router.delete(
    "/{project_key}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a project",
)
async def delete_project(
    project_key: ProjectKeyParam,
    actor: CurrentUser,
    orchestrator: OrchestratorDep,
    aggregator: AggregatorDep,
) -> Response:
    project = await orchestrator.get_project(project_key)
    await require_project_level(project, actor, aggregator, PermissionLevel.READ_WRITE_EXECUTE)
    await orchestrator.delete_project(project_key, user_id=actor.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{project_key}/groups",
    response_model=ProjectGroupOut,
    summary="Grant a group access to a project",
)
async def attach_group(
    project_key: ProjectKeyParam,
    actor: CurrentUser,
    orchestrator: OrchestratorDep,
    aggregator: AggregatorDep,
    manager: GroupManagerDep,
    grants: GrantStoreDep,
    payload: Annotated[ProjectGroupAttach, Body(...)],
) -> ProjectGroupOut:
    project = await orchestrator.get_project(project_key)
    await require_project_level(project, actor, aggregator, PermissionLevel.READ_WRITE_EXECUTE)
    group = await manager.get_group_by_name(payload.group_name)
    level = grantable_level(payload.level)
    if group.is_default:
        level = PermissionLevel.READ
    grant = await grants.grant(project.id, group.id, level)
    return ProjectGroupOut(group_id=group.id, group_name=group.name, level=grant.level)


@router.delete(
    "/{project_key}/groups/{group_name}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Revoke a group's access to a project",
)
async def detach_group(
    project_key: ProjectKeyParam,
    group_name: Annotated[str, PathParam(min_length=1)],
    actor: CurrentUser,
    orchestrator: OrchestratorDep,
    aggregator: AggregatorDep,
    manager: GroupManagerDep,
    grants: GrantStoreDep,
) -> Response:
    project = await orchestrator.get_project(project_key)
    await require_project_level(project, actor, aggregator, PermissionLevel.READ_WRITE_EXECUTE)
    group = await manager.get_group_by_name(group_name)
    await grants.revoke(project.id, group.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
