"""Group persistence helpers."""

from __future__ import annotations

from sqlalchemy import delete, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.models import Group, GroupMembership


class GroupsRepository:
    """Query helpers for the ``groups`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, group_id: int) -> Group | None:
        return await self._session.get(Group, group_id)

    async def get_by_name(self, name: str) -> Group | None:
        stmt = select(Group).where(Group.name == name)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_default(self) -> Group | None:
        stmt = select(Group).where(Group.is_default == true())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self, *, exclude_id: int | None = None) -> list[Group]:
        stmt = select(Group).order_by(Group.name)
        if exclude_id is not None:
            stmt = stmt.where(Group.id != exclude_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_user(self, user_id: int, *, exclude_id: int | None = None) -> list[Group]:
        stmt = (
            select(Group)
            .join(GroupMembership, GroupMembership.group_id == Group.id)
            .where(GroupMembership.user_id == user_id)
            .order_by(Group.name)
        )
        if exclude_id is not None:
            stmt = stmt.where(Group.id != exclude_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, *, name: str, is_default: bool = False) -> Group:
        group = Group(name=name, is_default=is_default)
        self._session.add(group)
        await self._session.flush()
        await self._session.refresh(group)
        return group

    async def rename(self, group: Group, *, name: str) -> Group:
        group.name = name
        await self._session.flush()
        await self._session.refresh(group)
        return group

    async def mark_default(self, group: Group) -> Group:
        await self._session.execute(
            update(Group)
            .where(Group.is_default == true(), Group.id != group.id)
            .values(is_default=False)
        )
        group.is_default = True
        await self._session.flush()
        await self._session.refresh(group)
        return group

    async def delete(self, group_id: int) -> int:
        result = await self._session.execute(delete(Group).where(Group.id == group_id))
        return result.rowcount or 0


__all__ = ["GroupsRepository"]
