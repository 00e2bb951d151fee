"""Group and membership models."""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authz_core.db import Base, IntegerPrimaryKeyMixin, TimestampMixin

from .user import User


class Group(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Named set of users; admins manage membership."""

    __tablename__ = "groups"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    memberships: Mapped[list[GroupMembership]] = relationship(
        "GroupMembership",
        back_populates="group",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (
        # At most one default group.
        Index(
            "groups_is_default_uidx",
            "is_default",
            unique=True,
            sqlite_where=text("is_default"),
            postgresql_where=text("is_default"),
        ),
    )

    def __repr__(self) -> str:
        return f"Group(id={self.id!r}, name={self.name!r})"


class GroupMembership(TimestampMixin, Base):
    """Link between a user and a group, flagged admin or not."""

    __tablename__ = "group_memberships"

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    group: Mapped[Group] = relationship(
        "Group", back_populates="memberships", lazy="joined", innerjoin=True
    )
    user: Mapped[User] = relationship(User, lazy="joined", innerjoin=True)

    __table_args__ = (Index("group_memberships_user_id_idx", "user_id"),)


__all__ = ["Group", "GroupMembership"]
