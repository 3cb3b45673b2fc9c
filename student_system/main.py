"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from student_system.api import auth, profile, users
from student_system.api.errors import install_error_handlers
from student_system.discussions.api import router as discussions_router
from student_system.events.api import router as events_router
from student_system.infra import postgres
from student_system.obs import init as obs_init
from student_system.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	await postgres.ensure_schema()
	try:
		yield
	finally:
		await postgres.close_pool()


_DEV_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"]


def _cors_origins() -> list[str]:
	origins = list(settings.cors_allow_origins)
	# Credentials are allowed, so a wildcard cannot be passed through.
	if not origins or "*" in origins:
		return list(_DEV_ORIGINS) if settings.is_dev() else []
	return origins


app = FastAPI(title="Student System API", lifespan=lifespan)
install_error_handlers(app)
app.add_middleware(
	CORSMiddleware,
	allow_origins=_cors_origins(),
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
	expose_headers=["X-Request-Id"],
)

obs_init(app)


@app.get("/health", tags=["ops"])
async def health() -> dict[str, str]:
	return {"status": "ok", "service": settings.service_name}


app.include_router(auth.router, tags=["identity"])
app.include_router(profile.router, tags=["profile"])
app.include_router(users.router, tags=["users"])
app.include_router(discussions_router)
app.include_router(events_router)
