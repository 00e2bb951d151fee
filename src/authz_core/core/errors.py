"""Domain error taxonomy shared by every authz-core service.

Services raise these; the HTTP adapter maps each category to a status code in
:mod:`authz_core.common.exceptions`. Every error carries a ``context`` mapping
with the identifiers of the entities involved so callers can render a precise
message.
"""

from __future__ import annotations

from typing import Any


class AuthzError(Exception):
    """Base class for authz-core domain errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = {k: v for k, v in context.items() if v is not None}


# ---------------------------------------------------------------------------
# Caller errors (never retried)
# ---------------------------------------------------------------------------


class InvalidInputError(AuthzError):
    """Raised when a name, key or level is malformed."""


class InvalidNameError(InvalidInputError):
    """Raised when a group or project name fails validation."""


class InvalidKeyError(InvalidInputError):
    """Raised when a project key does not match the configured pattern."""


class InvalidLevelError(InvalidInputError):
    """Raised when a permission level is outside the defined enumeration."""


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


class ConflictError(AuthzError):
    """Raised when an identifier collides with an existing entity."""


class NameConflictError(ConflictError):
    """Raised when a group name is already taken."""


class AlreadyMemberError(ConflictError):
    """Raised when a user is already a member of the group."""


class ProjectExistsError(ConflictError):
    """Raised when a project key is already taken."""


class DefaultGroupError(ConflictError):
    """Raised when an operation is not allowed on the default group."""


# ---------------------------------------------------------------------------
# Missing entities
# ---------------------------------------------------------------------------


class NotFoundError(AuthzError):
    """Raised when a referenced entity does not exist."""


class GroupNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class ProjectNotFoundError(NotFoundError):
    pass


class NotAMemberError(NotFoundError):
    """Raised when the group/user link does not exist."""


# ---------------------------------------------------------------------------
# Invariants, rights, storage
# ---------------------------------------------------------------------------


class InvariantViolationError(AuthzError):
    """Raised when an operation would break a group invariant."""


class InsufficientAdminsError(InvariantViolationError):
    """Raised when a group would be left without an admin."""


class ForbiddenError(AuthzError):
    """Raised when the caller lacks the rights for an operation."""


class StorageFailureError(AuthzError):
    """Raised when the storage layer fails for reasons other than a conflict."""


__all__ = [
    "AlreadyMemberError",
    "AuthzError",
    "ConflictError",
    "DefaultGroupError",
    "ForbiddenError",
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
    "ProjectExistsError",
    "ProjectNotFoundError",
    "StorageFailureError",
    "UserNotFoundError",
]
