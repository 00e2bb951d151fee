"""Project/group grant persistence helpers."""

from __future__ import annotations

from collections.abc import Collection

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from authz_core.db import utc_now
from authz_core.models import Group, GroupMembership, ProjectGroupGrant


class GrantsRepository:
    """Query helpers for the ``project_group_grants`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _insert(self):
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(ProjectGroupGrant)
        return sqlite_insert(ProjectGroupGrant)

    async def get(self, *, project_id: int, group_id: int) -> ProjectGroupGrant | None:
        stmt = (
            select(ProjectGroupGrant)
            .where(
                ProjectGroupGrant.project_id == project_id,
                ProjectGroupGrant.group_id == group_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(self, *, project_id: int, group_id: int, level: int) -> ProjectGroupGrant:
        """Insert the pair or overwrite its level in a single statement."""

        now = utc_now()
        insert_stmt = self._insert().values(
            project_id=project_id,
            group_id=group_id,
            level=level,
            created_at=now,
            updated_at=now,
        )
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=[ProjectGroupGrant.project_id, ProjectGroupGrant.group_id],
            set_={"level": insert_stmt.excluded.level, "updated_at": now},
        )
        await self._session.execute(stmt)
        grant = await self.get(project_id=project_id, group_id=group_id)
        assert grant is not None
        return grant

    async def delete(self, *, project_id: int, group_id: int) -> int:
        stmt = delete(ProjectGroupGrant).where(
            ProjectGroupGrant.project_id == project_id,
            ProjectGroupGrant.group_id == group_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def delete_for_group(self, group_id: int) -> int:
        stmt = delete(ProjectGroupGrant).where(ProjectGroupGrant.group_id == group_id)
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def delete_for_project(self, project_id: int) -> int:
        stmt = delete(ProjectGroupGrant).where(ProjectGroupGrant.project_id == project_id)
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def list_for_project(self, project_id: int) -> list[ProjectGroupGrant]:
        stmt = (
            select(ProjectGroupGrant)
            .join(Group, Group.id == ProjectGroupGrant.group_id)
            .where(ProjectGroupGrant.project_id == project_id)
            .order_by(Group.name)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().unique().all())

    async def list_for_group(self, group_id: int) -> list[ProjectGroupGrant]:
        stmt = (
            select(ProjectGroupGrant)
            .options(joinedload(ProjectGroupGrant.project))
            .where(ProjectGroupGrant.group_id == group_id)
            .order_by(ProjectGroupGrant.project_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().unique().all())

    async def max_levels(
        self, *, project_ids: Collection[int], group_ids: Collection[int]
    ) -> dict[int, int]:
        stmt = (
            select(ProjectGroupGrant.project_id, func.max(ProjectGroupGrant.level))
            .where(
                ProjectGroupGrant.project_id.in_(list(project_ids)),
                ProjectGroupGrant.group_id.in_(list(group_ids)),
            )
            .group_by(ProjectGroupGrant.project_id)
        )
        result = await self._session.execute(stmt)
        return {project_id: int(level) for project_id, level in result.all()}

    async def max_levels_for_user(
        self, *, user_id: int, project_ids: Collection[int] | None = None
    ) -> dict[int, int]:
        """Aggregate through the user's memberships in one query."""

        stmt = (
            select(ProjectGroupGrant.project_id, func.max(ProjectGroupGrant.level))
            .join(GroupMembership, GroupMembership.group_id == ProjectGroupGrant.group_id)
            .where(GroupMembership.user_id == user_id)
            .group_by(ProjectGroupGrant.project_id)
        )
        if project_ids is not None:
            stmt = stmt.where(ProjectGroupGrant.project_id.in_(list(project_ids)))
        result = await self._session.execute(stmt)
        return {project_id: int(level) for project_id, level in result.all()}


__all__ = ["GrantsRepository"]
