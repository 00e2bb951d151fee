"""The process-wide default group, passed explicitly to services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DefaultGroup:
    """Identity of the group every user joins on first use."""

    id: int
    name: str

    def matches(self, *, group_id: int | None = None, name: str | None = None) -> bool:
        if group_id is not None and group_id == self.id:
            return True
        return name is not None and name == self.name


def is_default_group(
    default_group: DefaultGroup | None,
    *,
    group_id: int | None = None,
    name: str | None = None,
) -> bool:
    if default_group is None:
        return False
    return default_group.matches(group_id=group_id, name=name)


__all__ = ["DefaultGroup", "is_default_group"]
