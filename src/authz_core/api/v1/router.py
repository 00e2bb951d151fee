"""API router composition for the authz-core FastAPI application."""

from __future__ import annotations

from fastapi import APIRouter

from authz_core.features.groups.router import router as groups_router
from authz_core.features.memberships.router import router as memberships_router
from authz_core.features.memberships.router import users_router
from authz_core.features.projects.router import router as projects_router

api_router = APIRouter(prefix="/v1")
api_router.include_router(groups_router)
api_router.include_router(memberships_router)
api_router.include_router(users_router)
api_router.include_router(projects_router)

__all__ = ["api_router"]
