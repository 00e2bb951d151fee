from __future__ import annotations

import pytest

from authz_core.common.exceptions import status_for_error
from authz_core.core.errors import (
    AlreadyMemberError,
    AuthzError,
    DefaultGroupError,
    ForbiddenError,
    GroupNotFoundError,
    InsufficientAdminsError,
    InvalidKeyError,
    InvalidLevelError,
    NameConflictError,
    NotAMemberError,
    ProjectExistsError,
    StorageFailureError,
)


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (InvalidLevelError("bad"), 422),
        (InvalidKeyError("bad"), 422),
        (NameConflictError("taken"), 409),
        (AlreadyMemberError("dup"), 409),
        (ProjectExistsError("dup"), 409),
        (DefaultGroupError("no"), 409),
        (InsufficientAdminsError("last"), 409),
        (GroupNotFoundError("missing"), 404),
        (NotAMemberError("missing"), 404),
        (ForbiddenError("no"), 403),
        (StorageFailureError("down"), 503),
        (AuthzError("other"), 500),
    ],
)
def test_status_for_error(error: AuthzError, status_code: int) -> None:
    assert status_for_error(error) == status_code


def test_error_context_drops_missing_values() -> None:
    error = InsufficientAdminsError("last admin", group_id=1, user_id=None)

    assert error.message == "last admin"
    assert error.context == {"group_id": 1}
    assert str(error) == "last admin"
