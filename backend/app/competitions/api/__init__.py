"""FastAPI routers for competition groups."""

from __future__ import annotations

from fastapi import APIRouter

from app.competitions.api import groups

router = APIRouter(prefix="/api/competitions/v1")

router.include_router(groups.router)

__all__ = ["router"]
