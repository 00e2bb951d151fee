"""Event publisher seam.

Publication happens after the transaction commits and is best-effort: a
publisher failure is logged and never reverses or fails the operation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from authz_core.common.logging import log_context

from .models import AuthzEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class EventPublisher(Protocol):
    async def publish(self, event: AuthzEvent) -> None: ...


class LoggingEventPublisher:
    """Default publisher: writes each event to the log."""

    def __init__(self, logger_name: str = "authz_core.events") -> None:
        self._logger = logging.getLogger(logger_name)

    async def publish(self, event: AuthzEvent) -> None:
        self._logger.info(
            event.type,
            extra=log_context(event_id=event.event_id, payload=event.model_dump_json()),
        )


class InMemoryEventPublisher:
    """Collects events in order; handy for tests and local tooling."""

    def __init__(self) -> None:
        self.events: list[AuthzEvent] = []

    async def publish(self, event: AuthzEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[AuthzEvent]:
        return [event for event in self.events if event.type == event_type]


async def publish_safely(publisher: EventPublisher | None, events: Iterable[AuthzEvent]) -> int:
    """Publish ``events`` one by one; return how many were delivered."""

    if publisher is None:
        return 0
    delivered = 0
    for event in events:
        try:
            await publisher.publish(event)
        except Exception:
            logger.exception(
                "event.publish.failed",
                extra=log_context(project_key=event.project_key, event_type=event.type),
            )
            continue
        delivered += 1
    return delivered


__all__ = [
    "EventPublisher",
    "InMemoryEventPublisher",
    "LoggingEventPublisher",
    "publish_safely",
]
