"""Permission grant store: which group holds which level on which project."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.common.logging import log_context
from authz_core.core.errors import GroupNotFoundError, ProjectNotFoundError
from authz_core.core.permissions import grantable_level
from authz_core.db import atomic
from authz_core.features.groups.repository import GroupsRepository
from authz_core.features.projects.repository import ProjectsRepository
from authz_core.models import ProjectGroupGrant

from .repository import GrantsRepository

logger = logging.getLogger(__name__)


class PermissionGrantStore:
    """Upserts and revokes project/group grants."""

    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._repo = GrantsRepository(session)
        self._projects = ProjectsRepository(session)
        self._groups = GroupsRepository(session)

    async def grant(self, project_id: int, group_id: int, level: Any) -> ProjectGroupGrant:
        """Give ``group_id`` ``level`` on ``project_id``, replacing any prior grant."""

        resolved = grantable_level(level)
        async with atomic(self._session):
            if await self._projects.get(project_id) is None:
                raise ProjectNotFoundError(
                    f"Project {project_id} not found", project_id=project_id
                )
            if await self._groups.get(group_id) is None:
                raise GroupNotFoundError(f"Group {group_id} not found", group_id=group_id)
            grant = await self._repo.upsert(
                project_id=project_id, group_id=group_id, level=int(resolved)
            )

        logger.info(
            "grant.upsert.success",
            extra=log_context(project_id=project_id, group_id=group_id, level=resolved.name),
        )
        return grant

    async def revoke(self, project_id: int, group_id: int) -> bool:
        async with atomic(self._session):
            removed = await self._repo.delete(project_id=project_id, group_id=group_id)

        logger.info(
            "grant.revoke.success",
            extra=log_context(project_id=project_id, group_id=group_id, existed=bool(removed)),
        )
        return bool(removed)

    async def revoke_all_for_group(self, group_id: int) -> int:
        async with atomic(self._session):
            return await self._repo.delete_for_group(group_id)

    async def revoke_all_for_project(self, project_id: int) -> int:
        async with atomic(self._session):
            return await self._repo.delete_for_project(project_id)

    async def get(self, project_id: int, group_id: int) -> ProjectGroupGrant | None:
        return await self._repo.get(project_id=project_id, group_id=group_id)

    async def list_for_project(self, project_id: int) -> list[ProjectGroupGrant]:
        return await self._repo.list_for_project(project_id)

    async def list_for_group(self, group_id: int) -> list[ProjectGroupGrant]:
        return await self._repo.list_for_group(group_id)


__all__ = ["PermissionGrantStore"]
