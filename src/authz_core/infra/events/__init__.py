"""Post-commit notifications."""

from .models import (
    AuthzEvent,
    ProjectCreated,
    ProjectDeleted,
    ProjectPermissionDeleted,
    ProjectUpdated,
)
from .publisher import EventPublisher, InMemoryEventPublisher, LoggingEventPublisher, publish_safely

__all__ = [
    "AuthzEvent",
    "EventPublisher",
    "InMemoryEventPublisher",
    "LoggingEventPublisher",
    "ProjectCreated",
    "ProjectDeleted",
    "ProjectPermissionDeleted",
    "ProjectUpdated",
    "publish_safely",
]
