"""Membership ledger: who belongs to which group, and who administers it."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.common.logging import log_context
from authz_core.core.default_group import DefaultGroup
from authz_core.core.errors import (
    AlreadyMemberError,
    GroupNotFoundError,
    InsufficientAdminsError,
    NotAMemberError,
    UserNotFoundError,
)
from authz_core.db import atomic, is_unique_violation
from authz_core.features.groups.repository import GroupsRepository
from authz_core.features.users.repository import UsersRepository
from authz_core.models import GroupMembership
from authz_core.settings import Settings, get_settings

from .repository import MembershipsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UserGroupView:
    """One row of a user's group listing."""

    group_id: int
    group_name: str
    is_admin: bool


class MembershipLedger:
    """Adds, removes, promotes and demotes group members.

    Removing an admin is guarded by the last-admin rule. Demotion is a plain
    flag clear unless ``guard_admin_demotion`` is enabled.
    """

    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings | None = None,
        default_group: DefaultGroup | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._default_group = default_group
        self._repo = MembershipsRepository(session)
        self._groups = GroupsRepository(session)
        self._users = UsersRepository(session)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def add_member(
        self, group_id: int, user_id: int, *, as_admin: bool = False
    ) -> GroupMembership:
        async with atomic(self._session):
            if await self._groups.get(group_id) is None:
                raise GroupNotFoundError(f"Group {group_id} not found", group_id=group_id)
            if await self._users.get_by_id(user_id) is None:
                raise UserNotFoundError(f"User {user_id} not found", user_id=user_id)
            if await self._repo.exists(group_id=group_id, user_id=user_id):
                raise AlreadyMemberError(
                    "User is already a member of the group",
                    group_id=group_id,
                    user_id=user_id,
                )
            try:
                membership = await self._repo.add(
                    group_id=group_id, user_id=user_id, is_admin=as_admin
                )
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise AlreadyMemberError(
                        "User is already a member of the group",
                        group_id=group_id,
                        user_id=user_id,
                    ) from exc
                raise

        logger.info(
            "membership.add.success",
            extra=log_context(group_id=group_id, user_id=user_id, is_admin=as_admin),
        )
        return membership

    async def remove_member(self, group_id: int, user_id: int) -> None:
        async with atomic(self._session):
            membership = await self._repo.get(group_id=group_id, user_id=user_id)
            if membership is None:
                raise NotAMemberError(
                    "User is not a member of the group", group_id=group_id, user_id=user_id
                )
            if membership.is_admin:
                await self._ensure_admin_remains(group_id, user_id, action="remove")
            await self._repo.delete(group_id=group_id, user_id=user_id)

        logger.info(
            "membership.remove.success",
            extra=log_context(group_id=group_id, user_id=user_id),
        )

    async def promote_to_admin(self, group_id: int, user_id: int) -> GroupMembership:
        async with atomic(self._session):
            membership = await self._repo.get(group_id=group_id, user_id=user_id)
            if membership is None:
                raise NotAMemberError(
                    "User is not a member of the group", group_id=group_id, user_id=user_id
                )
            if membership.is_admin:
                return membership
            await self._repo.set_admin(group_id=group_id, user_id=user_id, is_admin=True)
            membership = await self._repo.get(group_id=group_id, user_id=user_id)

        logger.info(
            "membership.promote.success",
            extra=log_context(group_id=group_id, user_id=user_id),
        )
        assert membership is not None
        return membership

    async def demote_from_admin(self, group_id: int, user_id: int) -> None:
        """Clear the admin flag; a missing link is a no-op."""

        async with atomic(self._session):
            if self._settings.guard_admin_demotion:
                membership = await self._repo.get(group_id=group_id, user_id=user_id)
                if membership is None or not membership.is_admin:
                    return
                await self._ensure_admin_remains(group_id, user_id, action="demote")
            changed = await self._repo.set_admin(
                group_id=group_id, user_id=user_id, is_admin=False
            )

        logger.info(
            "membership.demote.success",
            extra=log_context(group_id=group_id, user_id=user_id, changed=changed),
        )

    async def remove_all_members(self, group_id: int) -> int:
        """Bulk delete used by cascading group deletion; skips the admin rule."""

        async with atomic(self._session):
            removed = await self._repo.delete_all(group_id)

        logger.debug(
            "membership.remove_all.success",
            extra=log_context(group_id=group_id, removed=removed),
        )
        return removed

    async def ensure_default_membership(self, user_id: int) -> bool:
        """Join the user to the default group on first use.

        Returns True when a membership row was inserted.
        """

        if self._default_group is None:
            return False
        async with atomic(self._session):
            if await self._repo.exists(group_id=self._default_group.id, user_id=user_id):
                return False
            if await self._users.get_by_id(user_id) is None:
                raise UserNotFoundError(f"User {user_id} not found", user_id=user_id)
            await self._repo.add(group_id=self._default_group.id, user_id=user_id, is_admin=False)

        logger.info(
            "membership.default.joined",
            extra=log_context(group_id=self._default_group.id, user_id=user_id),
        )
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def is_member(self, group_id: int, user_id: int) -> bool:
        return await self._repo.exists(group_id=group_id, user_id=user_id)

    async def is_admin(self, group_id: int, user_id: int) -> bool:
        membership = await self._repo.get(group_id=group_id, user_id=user_id)
        return membership is not None and membership.is_admin

    async def count_admins(self, group_id: int) -> int:
        return await self._repo.count_admins(group_id)

    async def list_members(self, group_id: int) -> list[GroupMembership]:
        if await self._groups.get(group_id) is None:
            raise GroupNotFoundError(f"Group {group_id} not found", group_id=group_id)
        return await self._repo.list_members(group_id)

    async def list_user_groups(self, user_id: int) -> list[UserGroupView]:
        rows = await self._repo.list_for_user(user_id)
        return [
            UserGroupView(group_id=group.id, group_name=group.name, is_admin=is_admin)
            for group, is_admin in rows
        ]

    async def group_ids_for_user(self, user_id: int) -> list[int]:
        return await self._repo.group_ids_for_user(user_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _ensure_admin_remains(self, group_id: int, user_id: int, *, action: str) -> None:
        admins = await self._repo.list_admins_for_update(group_id)
        if len(admins) <= 1:
            logger.warning(
                f"membership.{action}.last_admin",
                extra=log_context(group_id=group_id, user_id=user_id),
            )
            raise InsufficientAdminsError(
                "Group must retain at least one admin", group_id=group_id, user_id=user_id
            )


__all__ = ["MembershipLedger", "UserGroupView"]
