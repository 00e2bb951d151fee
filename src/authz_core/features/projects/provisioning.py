"""Collaborators that attach keys and variables to a freshly inserted project.

Both run inside the provisioning transaction; any exception they raise
aborts project creation.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authz_core.common.logging import log_context
from authz_core.core.errors import ConflictError, InvalidNameError
from authz_core.db import is_unique_violation
from authz_core.models import KeyType, Project, ProjectKey, ProjectVariable, VariableType

from .repository import ProjectsRepository
from .schemas import KeySpec, VariableSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeyMaterial:
    public: str = ""
    private: str = ""
    key_id: str | None = None


@runtime_checkable
class KeyMaterialGenerator(Protocol):
    async def generate(self, key_type: KeyType, name: str) -> KeyMaterial: ...


class DeferredKeyMaterialGenerator:
    """Stores key rows without material; an external key service fills them in."""

    async def generate(self, key_type: KeyType, name: str) -> KeyMaterial:
        return KeyMaterial()


@runtime_checkable
class KeyProvisioner(Protocol):
    async def provision(self, project: Project, keys: Sequence[KeySpec]) -> list[ProjectKey]: ...


@runtime_checkable
class VariableProvisioner(Protocol):
    async def provision(
        self, project: Project, variables: Sequence[VariableSpec]
    ) -> list[ProjectVariable]: ...


def default_key_name(key_type: KeyType, project_key: str) -> str:
    return f"proj-{key_type.value}-{project_key.lower()}"


def with_default_keys(project_key: str, keys: Sequence[KeySpec]) -> list[KeySpec]:
    """Append an ssh and a pgp key when the request does not carry one."""

    result = list(keys)
    present = {KeyType(spec.type) for spec in result}
    for key_type in (KeyType.SSH, KeyType.PGP):
        if key_type not in present:
            result.append(KeySpec(name=default_key_name(key_type, project_key), type=key_type))
    return result


class StoredKeyProvisioner:
    def __init__(
        self,
        *,
        session: AsyncSession,
        generator: KeyMaterialGenerator | None = None,
    ) -> None:
        self._repo = ProjectsRepository(session)
        self._generator = generator or DeferredKeyMaterialGenerator()

    async def provision(self, project: Project, keys: Sequence[KeySpec]) -> list[ProjectKey]:
        created: list[ProjectKey] = []
        for spec in keys:
            key_type = KeyType(spec.type)
            material = await self._generator.generate(key_type, spec.name)
            row = ProjectKey(
                project_id=project.id,
                name=spec.name,
                type=key_type,
                public=material.public,
                private=material.private,
                key_id=material.key_id,
            )
            try:
                created.append(await self._repo.add_key(row))
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise ConflictError(
                        f"Key {spec.name!r} already exists on project",
                        project_key=project.key,
                        key_name=spec.name,
                    ) from exc
                raise
        logger.debug(
            "project.keys.provisioned",
            extra=log_context(project_id=project.id, count=len(created)),
        )
        return created


class StoredVariableProvisioner:
    def __init__(self, *, session: AsyncSession) -> None:
        self._repo = ProjectsRepository(session)

    async def provision(
        self, project: Project, variables: Sequence[VariableSpec]
    ) -> list[ProjectVariable]:
        created: list[ProjectVariable] = []
        for spec in variables:
            name = spec.name.strip()
            if not name:
                raise InvalidNameError("Variable name must not be empty", project_key=project.key)
            row = ProjectVariable(
                project_id=project.id,
                name=name,
                type=VariableType(spec.type),
                value=spec.value,
            )
            try:
                created.append(await self._repo.add_variable(row))
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise ConflictError(
                        f"Variable {name!r} already exists on project",
                        project_key=project.key,
                        variable_name=name,
                    ) from exc
                raise
        return created


__all__ = [
    "DeferredKeyMaterialGenerator",
    "KeyMaterial",
    "KeyMaterialGenerator",
    "KeyProvisioner",
    "StoredKeyProvisioner",
    "StoredVariableProvisioner",
    "VariableProvisioner",
    "default_key_name",
    "with_default_keys",
]
