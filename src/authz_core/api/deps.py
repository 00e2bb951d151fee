"""Request-scoped dependencies used by API routers.

The acting user is taken from the ``X-Authz-Username`` header; whatever sits
in front of the service is responsible for authenticating it.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.core.default_group import DefaultGroup
from authz_core.core.errors import ForbiddenError
from authz_core.core.permissions import PermissionLevel
from authz_core.db import get_db_session
from authz_core.features.grants.aggregator import PermissionAggregator
from authz_core.features.grants.service import PermissionGrantStore
from authz_core.features.groups.service import GroupLifecycleManager
from authz_core.features.memberships.service import MembershipLedger
from authz_core.features.projects.service import ProjectProvisioningOrchestrator
from authz_core.features.users.repository import UsersRepository
from authz_core.infra.events import EventPublisher, LoggingEventPublisher
from authz_core.models import Group, Project, User
from authz_core.settings import Settings, get_settings

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]

ACTOR_HEADER = "X-Authz-Username"


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_default_group(request: Request) -> DefaultGroup | None:
    return getattr(request.app.state, "default_group", None)


def get_event_publisher(request: Request) -> EventPublisher:
    publisher = getattr(request.app.state, "event_publisher", None)
    return publisher if publisher is not None else LoggingEventPublisher()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
DefaultGroupDep = Annotated[DefaultGroup | None, Depends(get_default_group)]
PublisherDep = Annotated[EventPublisher, Depends(get_event_publisher)]


def get_users_repository(session: SessionDep) -> UsersRepository:
    return UsersRepository(session)


def get_membership_ledger(
    session: SessionDep, settings: SettingsDep, default_group: DefaultGroupDep
) -> MembershipLedger:
    return MembershipLedger(session=session, settings=settings, default_group=default_group)


def get_group_manager(
    session: SessionDep, settings: SettingsDep, default_group: DefaultGroupDep
) -> GroupLifecycleManager:
    return GroupLifecycleManager(session=session, settings=settings, default_group=default_group)


def get_grant_store(session: SessionDep) -> PermissionGrantStore:
    return PermissionGrantStore(session=session)


def get_aggregator(session: SessionDep) -> PermissionAggregator:
    return PermissionAggregator(session=session)


def get_orchestrator(
    session: SessionDep,
    settings: SettingsDep,
    default_group: DefaultGroupDep,
    publisher: PublisherDep,
) -> ProjectProvisioningOrchestrator:
    return ProjectProvisioningOrchestrator(
        session=session,
        settings=settings,
        publisher=publisher,
        default_group=default_group,
    )


UsersDep = Annotated[UsersRepository, Depends(get_users_repository)]
LedgerDep = Annotated[MembershipLedger, Depends(get_membership_ledger)]
GroupManagerDep = Annotated[GroupLifecycleManager, Depends(get_group_manager)]
GrantStoreDep = Annotated[PermissionGrantStore, Depends(get_grant_store)]
AggregatorDep = Annotated[PermissionAggregator, Depends(get_aggregator)]
OrchestratorDep = Annotated[ProjectProvisioningOrchestrator, Depends(get_orchestrator)]


async def get_current_user(
    users: UsersDep,
    ledger: LedgerDep,
    actor_username: Annotated[str | None, Header(alias=ACTOR_HEADER)] = None,
) -> User:
    """Resolve the acting user and join them to the default group on first use."""

    if actor_username is None or not actor_username.strip():
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {ACTOR_HEADER} header",
        )
    user = await users.get_by_username(actor_username)
    if user is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    await ledger.ensure_default_membership(user.id)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def require_group_admin(group: Group, actor: User, ledger: MembershipLedger) -> None:
    if not await ledger.is_admin(group.id, actor.id):
        raise ForbiddenError(
            "Only group admins may perform this action",
            group_name=group.name,
            username=actor.username,
        )


async def require_project_level(
    project: Project,
    actor: User,
    aggregator: PermissionAggregator,
    level: PermissionLevel,
) -> PermissionLevel:
    effective = await aggregator.effective_permission(actor.id, project.id)
    if effective < level:
        raise ForbiddenError(
            f"{level.name} permission required on project",
            project_key=project.key,
            username=actor.username,
        )
    return effective


__all__ = [
    "ACTOR_HEADER",
    "AggregatorDep",
    "CurrentUser",
    "GrantStoreDep",
    "GroupManagerDep",
    "LedgerDep",
    "OrchestratorDep",
    "PublisherDep",
    "SessionDep",
    "SettingsDep",
    "UsersDep",
    "require_group_admin",
    "require_project_level",
]
