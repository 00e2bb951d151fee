"""Project provisioning: create, update and delete projects with their grants."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.common.logging import log_context
from authz_core.core.default_group import DefaultGroup, is_default_group
from authz_core.core.errors import (
    InvalidKeyError,
    InvalidNameError,
    NameConflictError,
    ProjectExistsError,
    ProjectNotFoundError,
)
from authz_core.core.permissions import PermissionLevel, Permissions, grantable_level
from authz_core.db import atomic, is_unique_violation
from authz_core.features.grants.aggregator import PermissionAggregator
from authz_core.features.grants.service import PermissionGrantStore
from authz_core.features.groups.repository import GroupsRepository
from authz_core.features.groups.service import GroupLifecycleManager
from authz_core.features.users.repository import UsersRepository
from authz_core.infra.events import (
    EventPublisher,
    LoggingEventPublisher,
    ProjectCreated,
    ProjectDeleted,
    ProjectUpdated,
    publish_safely,
)
from authz_core.models import Group, Project
from authz_core.settings import Settings, get_settings

from .provisioning import (
    KeyProvisioner,
    StoredKeyProvisioner,
    StoredVariableProvisioner,
    VariableProvisioner,
    with_default_keys,
)
from .repository import ProjectsRepository
from .schemas import GroupGrantSpec, ProjectCreate, ProjectLoadOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProjectAccess:
    """A project together with the caller's effective permissions on it."""

    project: Project
    permissions: Permissions


class ProjectProvisioningOrchestrator:
    """Creates projects and wires their groups, keys and variables in one transaction."""

    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings | None = None,
        publisher: EventPublisher | None = None,
        key_provisioner: KeyProvisioner | None = None,
        variable_provisioner: VariableProvisioner | None = None,
        default_group: DefaultGroup | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._publisher = publisher if publisher is not None else LoggingEventPublisher()
        self._keys = key_provisioner or StoredKeyProvisioner(session=session)
        self._variables = variable_provisioner or StoredVariableProvisioner(session=session)
        self._default_group = default_group
        self._repo = ProjectsRepository(session)
        self._users = UsersRepository(session)
        self._group_repo = GroupsRepository(session)
        self._grants = PermissionGrantStore(session=session)
        self._aggregator = PermissionAggregator(session=session)
        self._groups = GroupLifecycleManager(
            session=session, settings=self._settings, default_group=default_group
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    async def create_project(self, spec: ProjectCreate, *, user_id: int) -> Project:
        """Insert the project, attach its groups, then provision keys and variables.

        When no entry references a non-default group, an owning group named
        after the project (spaces removed) is created with the requesting
        user as admin and granted READ_WRITE_EXECUTE. The default group is
        always attached at READ.
        """

        key = spec.key
        name = spec.name.strip()
        if self._settings.project_key_regex.fullmatch(key or "") is None:
            raise InvalidKeyError(
                f"Invalid project key {key!r}",
                project_key=key,
                pattern=self._settings.project_key_pattern,
            )
        if not name:
            raise InvalidNameError("Project name must not be empty", project_key=key)

        # The default group is always stored at READ, whatever level was requested.
        plan: list[tuple[GroupGrantSpec, PermissionLevel]] = [
            (
                entry,
                grantable_level(entry.level)
                if self._is_attachable(entry)
                else PermissionLevel.READ,
            )
            for entry in spec.groups
            if not entry.is_empty
        ]

        async with atomic(self._session):
            user = await self._users.require(user_id)
            if await self._repo.get_by_key(key) is not None:
                raise ProjectExistsError(f"Project {key} already exists", project_key=key)
            project = await self._insert(key, name)

            if not any(self._is_attachable(entry) for entry, _ in plan):
                owner_name = name.replace(" ", "")
                if await self._group_repo.get_by_name(owner_name) is not None:
                    raise NameConflictError(
                        f"Group {owner_name!r} already exists", group_name=owner_name
                    )
                owner_level = PermissionLevel.READ_WRITE_EXECUTE
                plan.append((GroupGrantSpec(name=owner_name, level=int(owner_level)), owner_level))

            attached: list[int] = []
            for entry, level in plan:
                group = await self._resolve_group(entry, user_id=user_id)
                if is_default_group(self._default_group, group_id=group.id) or group.is_default:
                    level = PermissionLevel.READ
                await self._grants.grant(project.id, group.id, level)
                attached.append(group.id)

            await self._variables.provision(project, spec.variables)
            await self._keys.provision(project, with_default_keys(key, spec.keys))

        logger.info(
            "project.create.success",
            extra=log_context(
                project_id=project.id, project_key=key, user_id=user_id, groups=len(attached)
            ),
        )
        await publish_safely(
            self._publisher,
            [
                ProjectCreated(
                    project_key=key,
                    project_id=project.id,
                    project_name=name,
                    group_ids=attached,
                    username=user.username,
                )
            ],
        )
        return project

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    async def get_project(self, key: str, *, options: ProjectLoadOptions | None = None) -> Project:
        project = await self._repo.get_by_key(key, options=options)
        if project is None:
            raise ProjectNotFoundError(f"Project {key} not found", project_key=key)
        return project

    async def get_project_access(self, key: str, *, user_id: int) -> ProjectAccess:
        project = await self.get_project(key)
        permissions = await self._aggregator.permissions_for(user_id, project.id)
        return ProjectAccess(project=project, permissions=permissions)

    async def list_projects_for_user(self, user_id: int) -> list[ProjectAccess]:
        levels = await self._aggregator.reachable_projects(user_id)
        projects = await self._repo.list_by_ids(list(levels))
        return [
            ProjectAccess(project=project, permissions=Permissions.from_level(levels[project.id]))
            for project in projects
        ]

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------
    async def update_project(self, key: str, *, name: str, user_id: int) -> Project:
        new_name = (name or "").strip()
        if not new_name:
            raise InvalidNameError("Project name must not be empty", project_key=key)
        async with atomic(self._session):
            user = await self._users.require(user_id)
            project = await self.get_project(key)
            old_name = project.name
            project = await self._repo.rename(project, name=new_name)

        logger.info(
            "project.update.success",
            extra=log_context(project_id=project.id, project_key=key, user_id=user_id),
        )
        await publish_safely(
            self._publisher,
            [
                ProjectUpdated(
                    project_key=key,
                    project_id=project.id,
                    old_name=old_name,
                    new_name=new_name,
                    username=user.username,
                )
            ],
        )
        return project

    async def delete_project(self, key: str, *, user_id: int) -> None:
        async with atomic(self._session):
            user = await self._users.require(user_id)
            project = await self.get_project(key)
            project_id = project.id
            counts = await self._repo.delete(project_id)

        logger.info(
            "project.delete.success",
            extra=log_context(project_id=project_id, project_key=key, user_id=user_id, **counts),
        )
        await publish_safely(
            self._publisher,
            [ProjectDeleted(project_key=key, project_id=project_id, username=user.username)],
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _is_attachable(self, entry: GroupGrantSpec) -> bool:
        if entry.id is not None:
            return not is_default_group(self._default_group, group_id=entry.id)
        if entry.clean_name is not None:
            return not is_default_group(self._default_group, name=entry.clean_name)
        return False

    async def _resolve_group(self, entry: GroupGrantSpec, *, user_id: int) -> Group:
        if entry.id is not None:
            return await self._groups.get_group(entry.id)
        name = entry.clean_name
        assert name is not None
        group, created = await self._groups.ensure_group(name, user_id)
        if created:
            logger.info(
                "project.group.created",
                extra=log_context(group_id=group.id, user_id=user_id, group_name=name),
            )
        return group

    async def _insert(self, key: str, name: str) -> Project:
        try:
            return await self._repo.create(key=key, name=name)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise ProjectExistsError(f"Project {key} already exists", project_key=key) from exc
            raise


__all__ = ["ProjectAccess", "ProjectProvisioningOrchestrator"]
