"""Permission levels and the derived read/write/execute view."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from .errors import InvalidLevelError


class PermissionLevel(IntEnum):
    """Ordered grant levels; higher values include lower ones."""

    NONE = 0
    READ = 4
    READ_WRITE = 6
    READ_WRITE_EXECUTE = 7

    @classmethod
    def parse(cls, value: Any) -> PermissionLevel:
        """Return the level for ``value`` or raise :class:`InvalidLevelError`."""

        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidLevelError(f"Invalid permission level {value!r}", level=value)
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
            try:
                value = int(name)
            except ValueError:
                raise InvalidLevelError(
                    f"Invalid permission level {value!r}", level=value
                ) from None
        try:
            return cls(value)
        except (ValueError, TypeError):
            raise InvalidLevelError(f"Invalid permission level {value!r}", level=value) from None


GRANTABLE_LEVELS = frozenset(
    {PermissionLevel.READ, PermissionLevel.READ_WRITE, PermissionLevel.READ_WRITE_EXECUTE}
)


def grantable_level(value: Any) -> PermissionLevel:
    """Parse ``value`` and reject levels that cannot be stored on a grant."""

    level = PermissionLevel.parse(value)
    if level not in GRANTABLE_LEVELS:
        raise InvalidLevelError(f"Permission level {level.name} cannot be granted", level=int(level))
    return level


@dataclass(frozen=True)
class Permissions:
    """Effective access on one project."""

    level: PermissionLevel
    readable: bool
    writable: bool
    executable: bool

    @classmethod
    def from_level(cls, level: PermissionLevel | int) -> Permissions:
        level = PermissionLevel(level)
        return cls(
            level=level,
            readable=level >= PermissionLevel.READ,
            writable=level >= PermissionLevel.READ_WRITE,
            executable=level >= PermissionLevel.READ_WRITE_EXECUTE,
        )


__all__ = ["GRANTABLE_LEVELS", "PermissionLevel", "Permissions", "grantable_level"]
