"""Error translation and global handlers that attach the request id to JSON errors."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from student_system.domain.exceptions import StudentSystemError
from student_system.obs import logging as obs_logging


class ApiError(HTTPException):
	"""HTTP error carrying a stable ``detail`` code plus a human-readable message."""

	def __init__(self, status_code: int, detail: str, message: str | None = None) -> None:
		super().__init__(status_code=status_code, detail=detail)
		self.message = message


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, StudentSystemError):
		return ApiError(exc.status_code, exc.detail, exc.message)
	obs_logging.get_logger(__name__).exception("unhandled_domain_error")
	return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Unexpected server error")


def _request_id(request: Request) -> str:
	return getattr(request.state, "request_id", None) or obs_logging.current_request_id() or "unknown"


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"detail": exc.detail, "request_id": _request_id(request)}
		message = getattr(exc, "message", None)
		if message:
			payload["message"] = message
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {
			"detail": "validation_error",
			"message": "Validation failed",
			"errors": jsonable_errors(exc),
			"request_id": _request_id(request),
		}
		return JSONResponse(status_code=422, content=payload)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
	errors = []
	for error in exc.errors():
		errors.append(
			{
				"loc": list(error.get("loc", ())),
				"msg": str(error.get("msg", "")),
				"type": str(error.get("type", "")),
			}
		)
	return errors
