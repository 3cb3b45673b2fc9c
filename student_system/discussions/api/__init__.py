"""FastAPI routers for the discussions domain."""

from __future__ import annotations

from fastapi import APIRouter

from student_system.discussions.api import admin, comments, discussions

router = APIRouter()

router.include_router(discussions.router)
router.include_router(comments.router)
router.include_router(admin.router)

__all__ = ["router"]
