"""Inputs for project provisioning."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import Field

from authz_core.common.schema import BaseSchema
from authz_core.models import KeyType, VariableType


class GroupGrantSpec(BaseSchema):
    """A group reference with the level it should hold on the new project.

    ``level`` stays loosely typed here; the orchestrator parses it so an
    undefined level surfaces as ``InvalidLevelError``.
    """

    id: int | None = None
    name: str | None = None
    level: int | str

    @property
    def clean_name(self) -> str | None:
        if self.name is None:
            return None
        stripped = self.name.strip()
        return stripped or None

    @property
    def is_empty(self) -> bool:
        return self.id is None and self.clean_name is None


class KeySpec(BaseSchema):
    name: str = Field(min_length=1)
    type: KeyType


class VariableSpec(BaseSchema):
    name: str = Field(min_length=1)
    type: VariableType = VariableType.STRING
    value: str = ""


class ProjectCreate(BaseSchema):
    key: str
    name: str
    groups: list[GroupGrantSpec] = Field(default_factory=list)
    keys: list[KeySpec] = Field(default_factory=list)
    variables: list[VariableSpec] = Field(default_factory=list)


class ProjectRename(BaseSchema):
    name: str = Field(min_length=1, max_length=255)


class ProjectGroupAttach(BaseSchema):
    """Attach an existing group to a project at ``level``."""

    group_name: str = Field(min_length=1)
    level: int | str


class PermissionsOut(BaseSchema):
    level: int
    readable: bool
    writable: bool
    executable: bool


class ProjectGroupOut(BaseSchema):
    group_id: int
    group_name: str
    level: int


class ProjectKeyOut(BaseSchema):
    name: str
    type: KeyType
    public: str = ""
    key_id: str | None = None


class ProjectVariableOut(BaseSchema):
    name: str
    type: VariableType


class ProjectOut(BaseSchema):
    id: int
    key: str
    name: str
    permissions: PermissionsOut | None = None


class ProjectDetailOut(ProjectOut):
    groups: list[ProjectGroupOut] = Field(default_factory=list)
    keys: list[ProjectKeyOut] = Field(default_factory=list)
    variables: list[ProjectVariableOut] = Field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ProjectLoadOptions:
    """Which related collections to load alongside a project."""

    with_groups: bool = False
    with_keys: bool = False
    with_variables: bool = False


__all__ = [
    "GroupGrantSpec",
    "KeySpec",
    "PermissionsOut",
    "ProjectCreate",
    "ProjectDetailOut",
    "ProjectGroupAttach",
    "ProjectGroupOut",
    "ProjectKeyOut",
    "ProjectLoadOptions",
    "ProjectOut",
    "ProjectRename",
    "ProjectVariableOut",
    "VariableSpec",
]
