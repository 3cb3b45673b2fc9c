"""FastAPI routers for the events domain."""

from __future__ import annotations

from fastapi import APIRouter

from student_system.events.api import events, feedback

router = APIRouter()

router.include_router(events.router)
router.include_router(feedback.router)

__all__ = ["router"]
