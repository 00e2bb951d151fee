"""Membership persistence helpers."""

from __future__ import annotations

from sqlalchemy import and_, delete, func, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.models import Group, GroupMembership, User


class MembershipsRepository:
    """Query helpers for the ``group_memberships`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, *, group_id: int, user_id: int) -> GroupMembership | None:
        stmt = (
            select(GroupMembership)
            .where(
                and_(
                    GroupMembership.group_id == group_id,
                    GroupMembership.user_id == user_id,
                )
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, *, group_id: int, user_id: int) -> bool:
        stmt = select(
            select(GroupMembership.user_id)
            .where(
                GroupMembership.group_id == group_id,
                GroupMembership.user_id == user_id,
            )
            .exists()
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())

    async def add(self, *, group_id: int, user_id: int, is_admin: bool) -> GroupMembership:
        membership = GroupMembership(group_id=group_id, user_id=user_id, is_admin=is_admin)
        self._session.add(membership)
        await self._session.flush()
        await self._session.refresh(membership)
        return membership

    async def delete(self, *, group_id: int, user_id: int) -> int:
        stmt = delete(GroupMembership).where(
            GroupMembership.group_id == group_id,
            GroupMembership.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def delete_all(self, group_id: int) -> int:
        stmt = delete(GroupMembership).where(GroupMembership.group_id == group_id)
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def set_admin(self, *, group_id: int, user_id: int, is_admin: bool) -> int:
        stmt = (
            update(GroupMembership)
            .where(
                GroupMembership.group_id == group_id,
                GroupMembership.user_id == user_id,
            )
            .values(is_admin=is_admin)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def list_admins_for_update(self, group_id: int) -> list[GroupMembership]:
        """Lock the group's admin rows; SQLite ignores ``FOR UPDATE``."""

        stmt = (
            select(GroupMembership)
            .where(
                GroupMembership.group_id == group_id,
                GroupMembership.is_admin == true(),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().unique().all())

    async def count_admins(self, group_id: int) -> int:
        stmt = select(func.count()).select_from(GroupMembership).where(
            GroupMembership.group_id == group_id,
            GroupMembership.is_admin == true(),
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def list_members(self, group_id: int) -> list[GroupMembership]:
        stmt = (
            select(GroupMembership)
            .join(User, User.id == GroupMembership.user_id)
            .where(GroupMembership.group_id == group_id)
            .order_by(GroupMembership.is_admin.desc(), User.username)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().unique().all())

    async def list_for_user(self, user_id: int) -> list[tuple[Group, bool]]:
        stmt = (
            select(Group, GroupMembership.is_admin)
            .join(GroupMembership, GroupMembership.group_id == Group.id)
            .where(GroupMembership.user_id == user_id)
            .order_by(Group.name, GroupMembership.is_admin.desc())
        )
        result = await self._session.execute(stmt)
        return [(group, bool(is_admin)) for group, is_admin in result.all()]

    async def group_ids_for_user(self, user_id: int) -> list[int]:
        stmt = (
            select(GroupMembership.group_id)
            .where(GroupMembership.user_id == user_id)
            .order_by(GroupMembership.group_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


__all__ = ["MembershipsRepository"]
