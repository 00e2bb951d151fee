"""User lookups consumed by the authorization core."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.core.errors import UserNotFoundError
from authz_core.models import User


@runtime_checkable
class IdentityRegistry(Protocol):
    """Resolves user identities; the core never creates users itself."""

    async def get_by_id(self, user_id: int) -> User | None: ...

    async def get_by_username(self, username: str) -> User | None: ...

    async def resolve_username(self, username: str) -> int: ...


class UsersRepository:
    """Identity registry backed by the ``users`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        stmt = select(User).where(User.username == username.strip())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def resolve_username(self, username: str) -> int:
        user = await self.get_by_username(username)
        if user is None:
            raise UserNotFoundError(f"User {username!r} not found", username=username)
        return user.id

    async def require(self, user_id: int) -> User:
        user = await self.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found", user_id=user_id)
        return user

    async def list_by_usernames(self, usernames: Iterable[str]) -> list[User]:
        names = sorted({name.strip() for name in usernames if name and name.strip()})
        if not names:
            return []
        stmt = select(User).where(User.username.in_(names)).order_by(User.username)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, *, username: str, fullname: str | None = None) -> User:
        user = User(username=username, fullname=fullname)
        self._session.add(user)
        await self._session.flush()
        await self._session.refresh(user)
        return user


__all__ = ["IdentityRegistry", "UsersRepository"]
