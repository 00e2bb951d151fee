from __future__ import annotations

import json
import logging

import pytest

from authz_core.infra.events import (
    InMemoryEventPublisher,
    LoggingEventPublisher,
    ProjectCreated,
    ProjectDeleted,
    ProjectPermissionDeleted,
    publish_safely,
)

pytestmark = pytest.mark.asyncio


class _FailingPublisher:
    def __init__(self, fail_on: set[str]) -> None:
        self.fail_on = fail_on
        self.delivered: list[str] = []

    async def publish(self, event) -> None:
        if event.project_key in self.fail_on:
            raise ConnectionError("broker unavailable")
        self.delivered.append(event.project_key)


def _deleted(key: str) -> ProjectPermissionDeleted:
    return ProjectPermissionDeleted(
        project_key=key, project_id=1, group_id=2, group_name="ops", level=6
    )


async def test_publish_safely_continues_after_failure(caplog: pytest.LogCaptureFixture) -> None:
    publisher = _FailingPublisher(fail_on={"B"})

    with caplog.at_level(logging.ERROR, logger="authz_core.infra.events.publisher"):
        delivered = await publish_safely(publisher, [_deleted("A"), _deleted("B"), _deleted("C")])

    assert delivered == 2
    assert publisher.delivered == ["A", "C"]
    assert any(record.getMessage() == "event.publish.failed" for record in caplog.records)


async def test_publish_safely_without_publisher() -> None:
    assert await publish_safely(None, [_deleted("A")]) == 0


async def test_in_memory_publisher_filters_by_type() -> None:
    publisher = InMemoryEventPublisher()
    await publisher.publish(
        ProjectCreated(project_key="PRJ", project_id=1, project_name="Proj", group_ids=[2])
    )
    await publisher.publish(ProjectDeleted(project_key="PRJ", project_id=1))

    assert [event.type for event in publisher.events] == ["project.created", "project.deleted"]
    assert len(publisher.of_type("project.deleted")) == 1


async def test_logging_publisher_writes_payload(caplog: pytest.LogCaptureFixture) -> None:
    publisher = LoggingEventPublisher()

    with caplog.at_level(logging.INFO, logger="authz_core.events"):
        await publisher.publish(ProjectDeleted(project_key="PRJ", project_id=9, username="alice"))

    record = caplog.records[-1]
    assert record.getMessage() == "project.deleted"
    payload = json.loads(record.payload)
    assert payload["project_id"] == 9
    assert payload["username"] == "alice"
