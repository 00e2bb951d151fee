"""Group lifecycle: creation, renaming and cascading deletion."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.common.logging import log_context
from authz_core.core.default_group import DefaultGroup, is_default_group
from authz_core.core.errors import (
    DefaultGroupError,
    GroupNotFoundError,
    InvalidNameError,
    NameConflictError,
    UserNotFoundError,
)
from authz_core.core.permissions import PermissionLevel
from authz_core.db import atomic, is_unique_violation
from authz_core.features.grants.repository import GrantsRepository
from authz_core.features.memberships.service import MembershipLedger
from authz_core.features.users.repository import UsersRepository
from authz_core.models import Group
from authz_core.settings import Settings, get_settings

from .repository import GroupsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RevokedGrant:
    project_id: int
    project_key: str
    level: PermissionLevel


@dataclass(frozen=True, slots=True)
class GroupDeletion:
    """Outcome of :meth:`GroupLifecycleManager.delete_group`.

    ``grants`` lists the grants the group held before deletion so callers can
    notify each affected project once the transaction has committed.
    """

    group_id: int
    group_name: str
    members_removed: int
    grants: list[RevokedGrant] = field(default_factory=list)


class GroupLifecycleManager:
    """Creates, renames and deletes groups while keeping dependents consistent."""

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
        self._repo = GroupsRepository(session)
        self._grants = GrantsRepository(session)
        self._users = UsersRepository(session)
        self._ledger = MembershipLedger(
            session=session, settings=self._settings, default_group=default_group
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_group(self, group_id: int) -> Group:
        group = await self._repo.get(group_id)
        if group is None:
            raise GroupNotFoundError(f"Group {group_id} not found", group_id=group_id)
        return group

    async def get_group_by_name(self, name: str) -> Group:
        group = await self._repo.get_by_name(name)
        if group is None:
            raise GroupNotFoundError(f"Group {name!r} not found", group_name=name)
        return group

    async def list_groups(
        self, *, user_id: int | None = None, without_default: bool = False
    ) -> list[Group]:
        """All groups, or those of ``user_id``, ordered by name.

        ``without_default`` leaves out the default group, which is how project
        creation screens list the groups a project can be attached to.
        """

        exclude_id = None
        if without_default and self._default_group is not None:
            exclude_id = self._default_group.id
        if user_id is None:
            return await self._repo.list_all(exclude_id=exclude_id)
        return await self._repo.list_for_user(user_id, exclude_id=exclude_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def create_group(self, name: str, creator_user_id: int) -> Group:
        """Insert the group and make ``creator_user_id`` its first admin."""

        self._validate_name(name)
        async with atomic(self._session):
            if await self._users.get_by_id(creator_user_id) is None:
                raise UserNotFoundError(
                    f"User {creator_user_id} not found", user_id=creator_user_id
                )
            if await self._repo.get_by_name(name) is not None:
                raise NameConflictError(f"Group {name!r} already exists", group_name=name)
            group = await self._insert(name)
            await self._ledger.add_member(group.id, creator_user_id, as_admin=True)

        logger.info(
            "group.create.success",
            extra=log_context(group_id=group.id, user_id=creator_user_id, group_name=name),
        )
        return group

    async def rename_group(self, group_id: int, new_name: str) -> Group:
        self._validate_name(new_name)
        async with atomic(self._session):
            group = await self.get_group(group_id)
            if group.name == new_name:
                return group
            if is_default_group(self._default_group, group_id=group.id):
                raise DefaultGroupError(
                    "The default group cannot be renamed", group_id=group.id, group_name=group.name
                )
            if await self._repo.get_by_name(new_name) is not None:
                raise NameConflictError(
                    f"Group {new_name!r} already exists", group_name=new_name
                )
            previous = group.name
            try:
                group = await self._repo.rename(group, name=new_name)
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise NameConflictError(
                        f"Group {new_name!r} already exists", group_name=new_name
                    ) from exc
                raise

        logger.info(
            "group.rename.success",
            extra=log_context(group_id=group.id, previous_name=previous, group_name=new_name),
        )
        return group

    async def delete_group(self, group_id: int) -> GroupDeletion:
        """Remove members, then grants, then the group, all or nothing."""

        async with atomic(self._session):
            group = await self.get_group(group_id)
            if is_default_group(self._default_group, group_id=group.id) or group.is_default:
                raise DefaultGroupError(
                    "The default group cannot be deleted", group_id=group.id, group_name=group.name
                )
            revoked = [
                RevokedGrant(
                    project_id=grant.project_id,
                    project_key=grant.project.key,
                    level=PermissionLevel(grant.level),
                )
                for grant in await self._grants.list_for_group(group_id)
            ]
            group_name = group.name

            removed: dict[str, int] = {}
            steps: list[tuple[str, Callable[[], Awaitable[int]]]] = [
                ("members", lambda: self._ledger.remove_all_members(group_id)),
                ("grants", lambda: self._grants.delete_for_group(group_id)),
                ("group", lambda: self._repo.delete(group_id)),
            ]
            for step_name, step in steps:
                removed[step_name] = await step()

        logger.info(
            "group.delete.success",
            extra=log_context(
                group_id=group_id,
                group_name=group_name,
                members_removed=removed["members"],
                grants_removed=removed["grants"],
            ),
        )
        return GroupDeletion(
            group_id=group_id,
            group_name=group_name,
            members_removed=removed["members"],
            grants=revoked,
        )

    async def ensure_group(self, name: str, creator_user_id: int) -> tuple[Group, bool]:
        """Return the named group, creating it (creator as admin) when absent.

        The second element tells whether the group was created.
        """

        existing = await self._repo.get_by_name(name)
        if existing is not None:
            return existing, False
        return await self.create_group(name, creator_user_id), True

    async def ensure_default_group(self, name: str) -> DefaultGroup:
        """Create or flag ``name`` as the single default group."""

        self._validate_name(name)
        async with atomic(self._session):
            group = await self._repo.get_by_name(name)
            if group is None:
                group = await self._insert(name, is_default=True)
            elif not group.is_default:
                group = await self._repo.mark_default(group)

        logger.info(
            "group.default.ready",
            extra=log_context(group_id=group.id, group_name=group.name),
        )
        return DefaultGroup(id=group.id, name=group.name)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _validate_name(self, name: str) -> None:
        if not isinstance(name, str) or self._settings.group_name_regex.fullmatch(name) is None:
            raise InvalidNameError(
                f"Invalid group name {name!r}",
                group_name=name,
                pattern=self._settings.group_name_pattern,
            )

    async def _insert(self, name: str, *, is_default: bool = False) -> Group:
        try:
            return await self._repo.create(name=name, is_default=is_default)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise NameConflictError(f"Group {name!r} already exists", group_name=name) from exc
            raise


async def load_default_group(
    session: AsyncSession, settings: Settings | None = None
) -> DefaultGroup | None:
    """Resolve the configured default group, creating it when missing."""

    settings = settings or get_settings()
    if settings.default_group_name is None:
        return None
    manager = GroupLifecycleManager(session=session, settings=settings)
    return await manager.ensure_default_group(settings.default_group_name)


__all__ = [
    "GroupDeletion",
    "GroupLifecycleManager",
    "RevokedGrant",
    "load_default_group",
]
