"""Effective permission resolution.

A user's level on a project is the maximum level granted to any group the
user belongs to. Nothing here is cached: each call reads the grant and
membership tables.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.core.permissions import PermissionLevel, Permissions
from authz_core.features.memberships.repository import MembershipsRepository

from .repository import GrantsRepository


def _unique(ids: Iterable[int]) -> list[int]:
    return sorted(set(ids))


class PermissionAggregator:
    """Read-side view over grants and memberships."""

    def __init__(self, *, session: AsyncSession) -> None:
        self._grants = GrantsRepository(session)
        self._memberships = MembershipsRepository(session)

    async def max_level_for_groups(
        self, project_ids: Collection[int], group_ids: Collection[int]
    ) -> dict[int, PermissionLevel]:
        """Projects without a matching grant are omitted from the result."""

        projects = _unique(project_ids)
        groups = _unique(group_ids)
        if not projects or not groups:
            return {}
        levels = await self._grants.max_levels(project_ids=projects, group_ids=groups)
        return {project_id: PermissionLevel(level) for project_id, level in levels.items()}

    async def effective_permission(self, user_id: int, project_id: int) -> PermissionLevel:
        group_ids = await self._memberships.group_ids_for_user(user_id)
        levels = await self.max_level_for_groups([project_id], group_ids)
        return levels.get(project_id, PermissionLevel.NONE)

    async def effective_permissions(
        self, user_id: int, project_ids: Collection[int]
    ) -> dict[int, PermissionLevel]:
        """Like :meth:`effective_permission` for many projects; absent ones map to NONE."""

        projects = _unique(project_ids)
        if not projects:
            return {}
        group_ids = await self._memberships.group_ids_for_user(user_id)
        levels = await self.max_level_for_groups(projects, group_ids)
        return {
            project_id: levels.get(project_id, PermissionLevel.NONE) for project_id in projects
        }

    async def permissions_for(self, user_id: int, project_id: int) -> Permissions:
        level = await self.effective_permission(user_id, project_id)
        return Permissions.from_level(level)

    async def writable_projects(self, user_id: int, project_ids: Collection[int]) -> list[int]:
        levels = await self.effective_permissions(user_id, project_ids)
        return [
            project_id
            for project_id, level in levels.items()
            if level >= PermissionLevel.READ_WRITE
        ]

    async def reachable_projects(self, user_id: int) -> dict[int, PermissionLevel]:
        """Every project the user holds a grant on, through any group."""

        levels = await self._grants.max_levels_for_user(user_id=user_id)
        return {project_id: PermissionLevel(level) for project_id, level in levels.items()}


__all__ = ["PermissionAggregator"]
