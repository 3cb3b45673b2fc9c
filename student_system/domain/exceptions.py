"""Error taxonomy shared by the identity, discussions, and events domains."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class StudentSystemError(Exception):
	"""Base class for domain errors.

	``detail`` is the stable machine-readable kind, ``message`` the text shown
	to people.
	"""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "error"
	message: str = "Request could not be completed"

	def __init__(self, detail: str | None = None, message: str | None = None) -> None:
		super().__init__(message or detail or self.message)
		if detail:
			self.detail = detail
		if message:
			self.message = message


class ValidationError(StudentSystemError):
	"""Malformed or out-of-range input."""

	status_code = _HTTP_422
	detail = "validation_error"
	message = "Validation failed"


class BadRequestError(StudentSystemError):
	"""Well-formed input the server still cannot act on, such as a bad third-party credential."""

	status_code = status.HTTP_400_BAD_REQUEST
	detail = "bad_request"
	message = "Bad request"


class InvalidGoogleTokenError(BadRequestError):
	detail = "invalid_google_token"
	message = "Invalid Google token"


class UnauthorizedError(StudentSystemError):
	status_code = status.HTTP_401_UNAUTHORIZED
	detail = "unauthorized"
	message = "Authentication required"


class ForbiddenError(StudentSystemError):
	"""Authenticated, but a role, verification, or ownership check failed."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"
	message = "You do not have permission to perform this action"


class NotFoundError(StudentSystemError):
	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"
	message = "Resource not found"


class ConflictError(StudentSystemError):
	status_code = status.HTTP_409_CONFLICT
	detail = "conflict"
	message = "Request conflicts with the current state"


class AlreadyApprovedError(ConflictError):
	detail = "already_approved"
	message = "Event is already approved"


class AlreadyRejectedError(ConflictError):
	detail = "already_rejected"
	message = "Event is already rejected"


class AlreadyReportedError(ConflictError):
	detail = "already_reported"
	message = "You have already reported this content"


class DuplicateEmailError(ConflictError):
	detail = "duplicate_email"
	message = "An account with this email already exists"


class DiscussionLockedError(StudentSystemError):
	status_code = status.HTTP_403_FORBIDDEN
	detail = "discussion_locked"
	message = "This discussion is locked"


class RateLimitedError(StudentSystemError):
	status_code = status.HTTP_429_TOO_MANY_REQUESTS
	detail = "rate_limited"
	message = "Too many requests, slow down"


class UpstreamFailure(StudentSystemError):
	"""A best-effort external call (image store, mailer) failed.

	Services catch and log this; it never fails the primary operation.
	"""

	status_code = status.HTTP_502_BAD_GATEWAY
	detail = "upstream_failure"
	message = "External service call failed"

	def __init__(self, upstream: str, operation: str, message: str | None = None) -> None:
		super().__init__(message=message or f"{upstream} {operation} failed")
		self.upstream = upstream
		self.operation = operation
