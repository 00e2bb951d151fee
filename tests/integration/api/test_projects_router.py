"""Integration tests covering project routes and permission checks."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from httpx import AsyncClient

from authz_core.infra.events import InMemoryEventPublisher

pytestmark = pytest.mark.asyncio

Headers = Callable[[str], dict[str, str]]


async def _create_project(client: AsyncClient, as_user: Headers, owner: str, **payload) -> dict:
    body = {"key": "PRJ", "name": "Proj", **payload}
    response = await client.post("/api/v1/projects", json=body, headers=as_user(owner))
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_project_returns_detail(
    async_client: AsyncClient, as_user: Headers, publisher: InMemoryEventPublisher
) -> None:
    created = await _create_project(
        async_client,
        as_user,
        "alice",
        groups=[{"name": "everyone", "level": 7}],
        variables=[{"name": "REGION", "value": "eu"}],
    )

    assert created["key"] == "PRJ"
    assert created["permissions"] == {
        "level": 7,
        "readable": True,
        "writable": True,
        "executable": True,
    }
    assert [(g["group_name"], g["level"]) for g in created["groups"]] == [
        ("Proj", 7),
        ("everyone", 4),
    ]
    assert sorted(k["name"] for k in created["keys"]) == ["proj-pgp-prj", "proj-ssh-prj"]
    assert created["variables"] == [{"name": "REGION", "type": "string"}]
    assert len(publisher.of_type("project.created")) == 1


async def test_create_project_errors(async_client: AsyncClient, as_user: Headers) -> None:
    await _create_project(async_client, as_user, "alice")

    duplicate = await async_client.post(
        "/api/v1/projects", json={"key": "PRJ", "name": "Again"}, headers=as_user("bob")
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "ProjectExistsError"

    bad_key = await async_client.post(
        "/api/v1/projects", json={"key": "lower", "name": "Lower"}, headers=as_user("bob")
    )
    assert bad_key.status_code == 422
    assert bad_key.json()["error"] == "InvalidKeyError"

    bad_level = await async_client.post(
        "/api/v1/projects",
        json={"key": "NEW", "name": "New", "groups": [{"name": "x", "level": 3}]},
        headers=as_user("bob"),
    )
    assert bad_level.status_code == 422
    assert bad_level.json()["error"] == "InvalidLevelError"


async def test_project_access_follows_group_grants(
    async_client: AsyncClient, as_user: Headers
) -> None:
    await _create_project(async_client, as_user, "alice")

    outsider = await async_client.get("/api/v1/projects/PRJ", headers=as_user("bob"))
    assert outsider.status_code == 403
    assert (await async_client.get("/api/v1/projects", headers=as_user("bob"))).json() == []

    attached = await async_client.post(
        "/api/v1/projects/PRJ/groups",
        json={"group_name": "everyone", "level": "READ_WRITE_EXECUTE"},
        headers=as_user("alice"),
    )
    assert attached.status_code == 200, attached.text
    assert attached.json()["level"] == 4

    reader = await async_client.get("/api/v1/projects/PRJ", headers=as_user("bob"))
    assert reader.status_code == 200
    assert reader.json()["permissions"]["level"] == 4

    listed = (await async_client.get("/api/v1/projects", headers=as_user("bob"))).json()
    assert [(p["key"], p["permissions"]["writable"]) for p in listed] == [("PRJ", False)]

    rename = await async_client.put(
        "/api/v1/projects/PRJ", json={"name": "Nope"}, headers=as_user("bob")
    )
    assert rename.status_code == 403

    detached = await async_client.delete(
        "/api/v1/projects/PRJ/groups/everyone", headers=as_user("alice")
    )
    assert detached.status_code == 204
    again = await async_client.get("/api/v1/projects/PRJ", headers=as_user("bob"))
    assert again.status_code == 403


async def test_update_and_delete_project(
    async_client: AsyncClient, as_user: Headers, publisher: InMemoryEventPublisher
) -> None:
    await _create_project(async_client, as_user, "alice")

    renamed = await async_client.put(
        "/api/v1/projects/PRJ", json={"name": "Renamed"}, headers=as_user("alice")
    )
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Renamed"

    deleted = await async_client.delete("/api/v1/projects/PRJ", headers=as_user("alice"))
    assert deleted.status_code == 204

    missing = await async_client.get("/api/v1/projects/PRJ", headers=as_user("alice"))
    assert missing.status_code == 404
    assert [event.type for event in publisher.events] == [
        "project.created",
        "project.updated",
        "project.deleted",
    ]
