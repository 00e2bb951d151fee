"""Domain primitives shared across features."""

from .errors import (
    AlreadyMemberError,
    AuthzError,
    ConflictError,
    DefaultGroupError,
    ForbiddenError,
    GroupNotFoundError,
    InsufficientAdminsError,
    InvalidInputError,
    InvalidKeyError,
    InvalidLevelError,
    InvalidNameError,
    InvariantViolationError,
    NameConflictError,
    NotAMemberError,
    NotFoundError,
    ProjectExistsError,
    ProjectNotFoundError,
    StorageFailureError,
    UserNotFoundError,
)
from .default_group import DefaultGroup, is_default_group
from .permissions import GRANTABLE_LEVELS, PermissionLevel, Permissions, grantable_level

__all__ = [
    "AlreadyMemberError",
    "AuthzError",
    "ConflictError",
    "DefaultGroup",
    "DefaultGroupError",
    "ForbiddenError",
    "GRANTABLE_LEVELS",
    "GroupNotFoundError",
    "InsufficientAdminsError",
    "InvalidInputError",
    "InvalidKeyError",
    "InvalidLevelError",
    "InvalidNameError",
    "InvariantViolationError",
    "NameConflictError",
    "NotAMemberError",
    "NotFoundError",
    "PermissionLevel",
    "Permissions",
    "ProjectExistsError",
    "ProjectNotFoundError",
    "StorageFailureError",
    "UserNotFoundError",
    "grantable_level",
    "is_default_group",
]
