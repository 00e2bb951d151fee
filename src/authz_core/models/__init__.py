"""Central exports for authz-core SQLAlchemy models."""

from .group import Group, GroupMembership
from .project import (
    KeyType,
    Project,
    ProjectGroupGrant,
    ProjectKey,
    ProjectVariable,
    VariableType,
)
from .user import User

__all__ = [
    "Group",
    "GroupMembership",
    "KeyType",
    "Project",
    "ProjectGroupGrant",
    "ProjectKey",
    "ProjectVariable",
    "User",
    "VariableType",
]
