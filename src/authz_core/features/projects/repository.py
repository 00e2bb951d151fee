"""Project persistence helpers."""

from __future__ import annotations

from collections.abc import Collection

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from authz_core.models import Project, ProjectGroupGrant, ProjectKey, ProjectVariable

from .schemas import ProjectLoadOptions


class ProjectsRepository:
    """Query helpers for projects and their owned rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, project_id: int) -> Project | None:
        return await self._session.get(Project, project_id)

    async def get_by_key(
        self, key: str, *, options: ProjectLoadOptions | None = None
    ) -> Project | None:
        stmt = select(Project).where(Project.key == key)
        if options is not None:
            if options.with_groups:
                stmt = stmt.options(selectinload(Project.grants))
            if options.with_keys:
                stmt = stmt.options(selectinload(Project.keys))
            if options.with_variables:
                stmt = stmt.options(selectinload(Project.variables))
            stmt = stmt.execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_ids(self, project_ids: Collection[int]) -> list[Project]:
        if not project_ids:
            return []
        stmt = select(Project).where(Project.id.in_(list(project_ids))).order_by(Project.name)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, *, key: str, name: str) -> Project:
        project = Project(key=key, name=name)
        self._session.add(project)
        await self._session.flush()
        await self._session.refresh(project)
        return project

    async def rename(self, project: Project, *, name: str) -> Project:
        project.name = name
        await self._session.flush()
        await self._session.refresh(project)
        return project

    async def add_key(self, key: ProjectKey) -> ProjectKey:
        self._session.add(key)
        await self._session.flush()
        return key

    async def add_variable(self, variable: ProjectVariable) -> ProjectVariable:
        self._session.add(variable)
        await self._session.flush()
        return variable

    async def delete(self, project_id: int) -> dict[str, int]:
        """Delete the project's grants, keys and variables, then the project."""

        counts: dict[str, int] = {}
        for label, model in (
            ("grants", ProjectGroupGrant),
            ("keys", ProjectKey),
            ("variables", ProjectVariable),
        ):
            result = await self._session.execute(
                delete(model).where(model.project_id == project_id)
            )
            counts[label] = result.rowcount or 0
        result = await self._session.execute(delete(Project).where(Project.id == project_id))
        counts["project"] = result.rowcount or 0
        return counts


__all__ = ["ProjectsRepository"]
