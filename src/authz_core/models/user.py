"""Minimal identity table backing the user registry."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, validates

from authz_core.db import Base, IntegerPrimaryKeyMixin, TimestampMixin


def _clean_username(value: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        msg = "Username must not be empty"
        raise ValueError(msg)
    return cleaned


class User(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A known principal; identity itself is managed elsewhere."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    fullname: Mapped[str | None] = mapped_column(String(255), nullable=True)

    @validates("username")
    def _validate_username(self, _key: str, value: str) -> str:
        return _clean_username(value)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r})"


__all__ = ["User"]
