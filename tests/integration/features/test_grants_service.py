"""Grant store upserts and effective permission aggregation."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.common.exceptions import status_for_error
from authz_core.core.errors import GroupNotFoundError, InvalidLevelError, ProjectNotFoundError
from authz_core.core.permissions import PermissionLevel
from authz_core.db import atomic
from authz_core.features.grants.aggregator import PermissionAggregator
from authz_core.features.grants.service import PermissionGrantStore
from authz_core.features.groups.service import GroupLifecycleManager
from authz_core.features.memberships.service import MembershipLedger
from authz_core.features.projects.repository import ProjectsRepository
from authz_core.models import ProjectGroupGrant
from authz_core.settings import Settings

pytestmark = pytest.mark.asyncio


async def _project(session: AsyncSession, key: str) -> int:
    async with atomic(session):
        project = await ProjectsRepository(session).create(key=key, name=key.title())
    return project.id


async def _group(session: AsyncSession, settings: Settings, name: str, admin_id: int) -> int:
    manager = GroupLifecycleManager(session=session, settings=settings)
    return (await manager.create_group(name, admin_id)).id


async def test_regrant_overwrites_level(
    session: AsyncSession, settings: Settings, users: dict[str, int]
) -> None:
    store = PermissionGrantStore(session=session)
    project_id = await _project(session, "PRJ")
    group_id = await _group(session, settings, "ops", users["alice"])

    await store.grant(project_id, group_id, PermissionLevel.READ)
    updated = await store.grant(project_id, group_id, "READ_WRITE_EXECUTE")

    assert updated.level == PermissionLevel.READ_WRITE_EXECUTE
    count = await session.scalar(
        select(func.count())
        .select_from(ProjectGroupGrant)
        .where(ProjectGroupGrant.project_id == project_id)
    )
    assert count == 1


async def test_grant_rejects_invalid_levels(
    session: AsyncSession, settings: Settings, users: dict[str, int]
) -> None:
    store = PermissionGrantStore(session=session)
    project_id = await _project(session, "PRJ")
    group_id = await _group(session, settings, "ops", users["alice"])

    for level in (PermissionLevel.NONE, 5, "owner"):
        with pytest.raises(InvalidLevelError):
            await store.grant(project_id, group_id, level)

    assert await store.get(project_id, group_id) is None


async def test_revoke(session: AsyncSession, settings: Settings, users: dict[str, int]) -> None:
    store = PermissionGrantStore(session=session)
    project_id = await _project(session, "PRJ")
    group_id = await _group(session, settings, "ops", users["alice"])
    await store.grant(project_id, group_id, PermissionLevel.READ)

    assert await store.revoke(project_id, group_id) is True
    assert await store.revoke(project_id, group_id) is False
    assert await store.list_for_group(group_id) == []


async def test_effective_permission_is_maximum_over_groups(
    session: AsyncSession, settings: Settings, users: dict[str, int]
) -> None:
    store = PermissionGrantStore(session=session)
    ledger = MembershipLedger(session=session, settings=settings)
    aggregator = PermissionAggregator(session=session)
    project_id = await _project(session, "PRJ")
    readers = await _group(session, settings, "readers", users["alice"])
    writers = await _group(session, settings, "writers", users["bob"])
    await ledger.add_member(writers, users["alice"])
    await store.grant(project_id, readers, PermissionLevel.READ)
    await store.grant(project_id, writers, PermissionLevel.READ_WRITE)

    assert await aggregator.effective_permission(users["alice"], project_id) == (
        PermissionLevel.READ_WRITE
    )
    assert await aggregator.effective_permission(users["bob"], project_id) == (
        PermissionLevel.READ_WRITE
    )
    assert await aggregator.effective_permission(users["carol"], project_id) == (
        PermissionLevel.NONE
    )

    permissions = await aggregator.permissions_for(users["alice"], project_id)
    assert permissions.readable and permissions.writable and not permissions.executable


async def test_permission_drops_when_membership_ends(
    session: AsyncSession, settings: Settings, users: dict[str, int]
) -> None:
    store = PermissionGrantStore(session=session)
    ledger = MembershipLedger(session=session, settings=settings)
    aggregator = PermissionAggregator(session=session)
    project_id = await _project(session, "PRJ")
    ops = await _group(session, settings, "ops", users["alice"])
    await ledger.add_member(ops, users["bob"])
    await store.grant(project_id, ops, PermissionLevel.READ_WRITE_EXECUTE)

    assert await aggregator.effective_permission(users["bob"], project_id) == (
        PermissionLevel.READ_WRITE_EXECUTE
    )
    await ledger.remove_member(ops, users["bob"])
    assert await aggregator.effective_permission(users["bob"], project_id) == (
        PermissionLevel.NONE
    )


async def test_bulk_views(session: AsyncSession, settings: Settings, users: dict[str, int]) -> None:
    store = PermissionGrantStore(session=session)
    aggregator = PermissionAggregator(session=session)
    alpha = await _project(session, "ALPHA")
    beta = await _project(session, "BETA")
    gamma = await _project(session, "GAMMA")
    ops = await _group(session, settings, "ops", users["alice"])
    dev = await _group(session, settings, "dev", users["alice"])
    await store.grant(alpha, ops, PermissionLevel.READ)
    await store.grant(alpha, dev, PermissionLevel.READ_WRITE_EXECUTE)
    await store.grant(beta, ops, PermissionLevel.READ_WRITE)

    assert await aggregator.max_level_for_groups([alpha, beta, gamma], [ops]) == {
        alpha: PermissionLevel.READ,
        beta: PermissionLevel.READ_WRITE,
    }
    assert await aggregator.max_level_for_groups([alpha], []) == {}
    assert await aggregator.effective_permissions(users["alice"], [alpha, beta, gamma]) == {
        alpha: PermissionLevel.READ_WRITE_EXECUTE,
        beta: PermissionLevel.READ_WRITE,
        gamma: PermissionLevel.NONE,
    }
    assert await aggregator.writable_projects(users["alice"], [alpha, beta, gamma]) == [
        alpha,
        beta,
    ]
    assert await aggregator.reachable_projects(users["alice"]) == {
        alpha: PermissionLevel.READ_WRITE_EXECUTE,
        beta: PermissionLevel.READ_WRITE,
    }
    assert await aggregator.reachable_projects(users["bob"]) == {}
    assert await store.revoke_all_for_project(alpha) == 2
    assert [grant.project_id for grant in await store.list_for_group(ops)] == [beta]


async def test_grant_on_unknown_ids_is_not_found(
    session: AsyncSession, settings: Settings, users: dict[str, int]
) -> None:
    store = PermissionGrantStore(session=session)
    project_id = await _project(session, "PRJ")
    group_id = await _group(session, settings, "ops", users["alice"])

    with pytest.raises(ProjectNotFoundError):
        await store.grant(project_id + 100, group_id, PermissionLevel.READ)
    with pytest.raises(GroupNotFoundError):
        await store.grant(project_id, group_id + 100, PermissionLevel.READ)

    assert status_for_error(ProjectNotFoundError("missing")) == 404
    assert await store.list_for_project(project_id) == []


async def test_revoking_only_grant_leaves_no_access(
    session: AsyncSession, settings: Settings, users: dict[str, int]
) -> None:
    store = PermissionGrantStore(session=session)
    aggregator = PermissionAggregator(session=session)
    project_id = await _project(session, "PRJ")
    ops = await _group(session, settings, "ops", users["alice"])
    await store.grant(project_id, ops, PermissionLevel.READ_WRITE)

    await store.revoke(project_id, ops)

    assert await aggregator.max_level_for_groups([project_id], [ops]) == {}
    assert await aggregator.effective_permission(users["alice"], project_id) == (
        PermissionLevel.NONE
    )


async def test_lower_second_grant_keeps_higher_level(
    session: AsyncSession, settings: Settings, users: dict[str, int]
) -> None:
    store = PermissionGrantStore(session=session)
    ledger = MembershipLedger(session=session, settings=settings)
    aggregator = PermissionAggregator(session=session)
    project_id = await _project(session, "PRJ")
    owners = await _group(session, settings, "owners", users["alice"])
    readers = await _group(session, settings, "readers", users["bob"])
    await ledger.add_member(readers, users["alice"])

    await store.grant(project_id, owners, PermissionLevel.READ_WRITE_EXECUTE)
    await store.grant(project_id, readers, PermissionLevel.READ)

    assert await aggregator.effective_permission(users["alice"], project_id) == (
        PermissionLevel.READ_WRITE_EXECUTE
    )
    assert await aggregator.effective_permission(users["bob"], project_id) == (
        PermissionLevel.READ
    )
