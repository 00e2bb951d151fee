"""Projects, their group grants, keys and variables."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authz_core.core.permissions import PermissionLevel
from authz_core.db import Base, IntegerPrimaryKeyMixin, TimestampMixin

from .group import Group


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class KeyType(str, Enum):
    SSH = "ssh"
    PGP = "pgp"


class VariableType(str, Enum):
    STRING = "string"
    TEXT = "text"
    PASSWORD = "password"
    KEY = "key"


class Project(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A tenant whose access is granted to groups."""

    __tablename__ = "projects"

    key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    grants: Mapped[list[ProjectGroupGrant]] = relationship(
        "ProjectGroupGrant", back_populates="project", passive_deletes=True, lazy="raise"
    )
    keys: Mapped[list[ProjectKey]] = relationship(
        "ProjectKey",
        passive_deletes=True,
        lazy="raise",
        order_by="ProjectKey.name",
    )
    variables: Mapped[list[ProjectVariable]] = relationship(
        "ProjectVariable",
        passive_deletes=True,
        lazy="raise",
        order_by="ProjectVariable.name",
    )

    def __repr__(self) -> str:
        return f"Project(id={self.id!r}, key={self.key!r})"


class ProjectGroupGrant(TimestampMixin, Base):
    """Permission level held by one group on one project."""

    __tablename__ = "project_group_grants"

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True
    )
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    project: Mapped[Project] = relationship("Project", back_populates="grants", lazy="raise")
    group: Mapped[Group] = relationship(Group, lazy="joined", innerjoin=True)

    __table_args__ = (
        Index("project_group_grants_group_id_idx", "group_id"),
        CheckConstraint("level IN (4, 6, 7)", name="level"),
    )

    @property
    def permission(self) -> PermissionLevel:
        return PermissionLevel(self.level)


class ProjectKey(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "project_keys"

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[KeyType] = mapped_column(
        SAEnum(
            KeyType,
            name="project_key_type",
            native_enum=False,
            length=10,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    public: Mapped[str] = mapped_column(Text, nullable=False, default="")
    private: Mapped[str] = mapped_column(Text, nullable=False, default="")
    key_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (UniqueConstraint("project_id", "name"),)


class ProjectVariable(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "project_variables"

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[VariableType] = mapped_column(
        SAEnum(
            VariableType,
            name="project_variable_type",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (UniqueConstraint("project_id", "name"),)


__all__ = [
    "KeyType",
    "Project",
    "ProjectGroupGrant",
    "ProjectKey",
    "ProjectVariable",
    "VariableType",
]
