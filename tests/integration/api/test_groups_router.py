"""Integration tests covering group and membership routes."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from httpx import AsyncClient

from authz_core.infra.events import InMemoryEventPublisher

pytestmark = pytest.mark.asyncio

Headers = Callable[[str], dict[str, str]]


async def _create_group(client: AsyncClient, as_user: Headers, name: str, owner: str) -> dict:
    response = await client.post("/api/v1/groups", json={"name": name}, headers=as_user(owner))
    assert response.status_code == 201, response.text
    return response.json()


async def test_requests_require_a_known_actor(async_client: AsyncClient) -> None:
    missing = await async_client.get("/api/v1/groups")
    assert missing.status_code == 401

    unknown = await async_client.get(
        "/api/v1/groups", headers={"X-Authz-Username": "mallory"}
    )
    assert unknown.status_code == 401


async def test_first_request_joins_default_group(
    async_client: AsyncClient, as_user: Headers
) -> None:
    response = await async_client.get("/api/v1/users/carol/groups", headers=as_user("carol"))

    assert response.status_code == 200, response.text
    assert [(g["group_name"], g["admin"]) for g in response.json()] == [("everyone", False)]
    assert response.headers.get("X-Request-ID")


async def test_create_group_and_manage_members(async_client: AsyncClient, as_user: Headers) -> None:
    created = await _create_group(async_client, as_user, "ops", "alice")
    [owner] = created["members"]
    assert (owner["username"], owner["fullname"], owner["admin"]) == ("alice", "Alice", True)

    added = await async_client.post(
        "/api/v1/groups/ops/members",
        json={"usernames": ["bob", "carol"]},
        headers=as_user("alice"),
    )
    assert added.status_code == 200, added.text
    assert [(m["username"], m["admin"]) for m in added.json()["members"]] == [
        ("alice", True),
        ("bob", False),
        ("carol", False),
    ]

    duplicate = await async_client.post(
        "/api/v1/groups/ops/members", json={"usernames": ["bob"]}, headers=as_user("alice")
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "AlreadyMemberError"

    forbidden = await async_client.post(
        "/api/v1/groups/ops/members", json={"usernames": ["carol"]}, headers=as_user("bob")
    )
    assert forbidden.status_code == 403

    last_admin = await async_client.delete(
        "/api/v1/groups/ops/members/alice", headers=as_user("alice")
    )
    assert last_admin.status_code == 409
    assert last_admin.json()["error"] == "InsufficientAdminsError"

    promoted = await async_client.post("/api/v1/groups/ops/admins/bob", headers=as_user("alice"))
    assert promoted.status_code == 200
    left = await async_client.delete("/api/v1/groups/ops/members/alice", headers=as_user("alice"))
    assert left.status_code == 204

    detail = await async_client.get("/api/v1/groups/ops", headers=as_user("bob"))
    assert [(m["username"], m["admin"]) for m in detail.json()["members"]] == [
        ("bob", True),
        ("carol", False),
    ]

    missing = await async_client.delete(
        "/api/v1/groups/ops/members/alice", headers=as_user("bob")
    )
    assert missing.status_code == 404
    assert missing.json()["error"] == "NotAMemberError"


async def test_group_name_rules(async_client: AsyncClient, as_user: Headers) -> None:
    await _create_group(async_client, as_user, "ops", "alice")

    invalid = await async_client.post(
        "/api/v1/groups", json={"name": "no spaces"}, headers=as_user("alice")
    )
    assert invalid.status_code == 422
    assert invalid.json()["error"] == "InvalidNameError"

    taken = await async_client.post(
        "/api/v1/groups", json={"name": "ops"}, headers=as_user("bob")
    )
    assert taken.status_code == 409

    renamed = await async_client.put(
        "/api/v1/groups/ops", json={"name": "platform"}, headers=as_user("alice")
    )
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "platform"

    default_rename = await async_client.put(
        "/api/v1/groups/everyone", json={"name": "all"}, headers=as_user("alice")
    )
    assert default_rename.status_code == 403


async def test_list_groups_without_default(async_client: AsyncClient, as_user: Headers) -> None:
    await _create_group(async_client, as_user, "ops", "alice")

    everything = await async_client.get("/api/v1/groups", headers=as_user("alice"))
    attachable = await async_client.get(
        "/api/v1/groups", params={"withoutDefault": "true"}, headers=as_user("alice")
    )

    assert [g["name"] for g in everything.json()] == ["everyone", "ops"]
    assert [g["name"] for g in attachable.json()] == ["ops"]


async def test_delete_group_notifies_affected_projects(
    async_client: AsyncClient, as_user: Headers, publisher: InMemoryEventPublisher
) -> None:
    await _create_group(async_client, as_user, "ops", "alice")
    created = await async_client.post(
        "/api/v1/projects",
        json={"key": "PRJ", "name": "Proj", "groups": [{"name": "ops", "level": 6}]},
        headers=as_user("alice"),
    )
    assert created.status_code == 201, created.text

    forbidden = await async_client.delete("/api/v1/groups/ops", headers=as_user("bob"))
    assert forbidden.status_code == 403

    deleted = await async_client.delete("/api/v1/groups/ops", headers=as_user("alice"))
    assert deleted.status_code == 204

    missing = await async_client.get("/api/v1/groups/ops", headers=as_user("alice"))
    assert missing.status_code == 404
    [event] = publisher.of_type("project.permission.deleted")
    assert (event.project_key, event.group_name, event.level) == ("PRJ", "ops", 6)
