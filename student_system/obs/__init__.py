"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from student_system.obs import logging as obs_logging
from student_system.obs import middleware
from student_system.settings import settings

_logging_configured = False


def init(app: FastAPI) -> None:
	"""Install request instrumentation and the /metrics endpoint on ``app``."""
	global _logging_configured
	middleware.install(app, enabled=settings.obs_enabled)
	if settings.obs_enabled and not _logging_configured:
		obs_logging.configure_logging()
		_logging_configured = True

	@app.get("/metrics", include_in_schema=False)
	async def metrics_endpoint() -> Response:
		return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = ["init"]
