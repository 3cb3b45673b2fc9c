"""Authentication helpers for FastAPI endpoints.

Bearer JWTs are verified and the user is re-read from the identity store so
role and verification changes apply immediately. In development the
``X-User-*`` headers are accepted instead, for local tools and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from student_system.domain.identity import models, policy
from student_system.domain.identity.repo import UsersRepository
from student_system.infra import jwt as jwt_helper
from student_system.settings import settings

_bearer_scheme = HTTPBearer(auto_error=False)
_repository = UsersRepository()

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	role: str = "student"
	is_email_verified: bool = False
	is_google_user: bool = False
	name: Optional[str] = None
	email: Optional[str] = None

	def has_role(self, role: str) -> bool:
		return self.role == role

	@property
	def is_admin(self) -> bool:
		return self.role == "admin"

	@property
	def is_verified(self) -> bool:
		return self.is_email_verified or self.is_google_user

	@classmethod
	def from_user(cls, user: models.User) -> "AuthenticatedUser":
		return cls(
			id=str(user.id),
			role=user.role,
			is_email_verified=user.is_email_verified,
			is_google_user=user.is_google_user,
			name=user.name,
			email=user.email,
		)


def _unauthorized(detail: str = "invalid_token") -> HTTPException:
	return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def authenticate(token: str) -> AuthenticatedUser:
	"""Resolve a bearer credential to the current user or raise 401."""
	try:
		payload = jwt_helper.decode_access(token)
		user_id = UUID(str(payload.get("sub")))
	except (InvalidTokenError, ValueError):
		raise _unauthorized()
	user = await _repository.get_user(user_id)
	if user is None:
		raise _unauthorized("user_not_found")
	return AuthenticatedUser.from_user(user)


def _dev_user(
	x_user_id: Optional[str],
	x_user_role: Optional[str],
	x_user_verified: Optional[str],
	x_user_google: Optional[str],
) -> AuthenticatedUser | None:
	if not settings.is_dev() or not x_user_id:
		return None
	role = (x_user_role or "student").strip().lower()
	if role not in models.ROLES:
		raise _unauthorized("invalid_role_header")
	return AuthenticatedUser(
		id=x_user_id,
		role=role,
		is_email_verified=(x_user_verified or "").strip().lower() in _TRUE_VALUES,
		is_google_user=(x_user_google or "").strip().lower() in _TRUE_VALUES,
	)


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
	x_user_verified: Optional[str] = Header(default=None, alias="X-User-Verified"),
	x_user_google: Optional[str] = Header(default=None, alias="X-User-Google"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser | None:
	"""Like ``get_current_user`` but anonymous callers resolve to None."""
	if credentials and credentials.scheme.lower() == "bearer":
		try:
			return await authenticate(credentials.credentials)
		except HTTPException:
			return None
	return _dev_user(x_user_id, x_user_role, x_user_verified, x_user_google)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
	x_user_verified: Optional[str] = Header(default=None, alias="X-User-Verified"),
	x_user_google: Optional[str] = Header(default=None, alias="X-User-Google"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	if credentials and credentials.scheme.lower() == "bearer":
		return await authenticate(credentials.credentials)
	user = _dev_user(x_user_id, x_user_role, x_user_verified, x_user_google)
	if user is not None:
		return user
	raise _unauthorized("access_token_required")


async def require_verified_user(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
	if not policy.require_verified(user):
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="email_verification_required")
	return user


def require_roles(*required: str, verified: bool = True):
	"""Return a dependency enforcing verification and one of the given roles.

	Usage:
		@router.put("/{event_id}/approve")
		async def approve(user = Depends(require_roles("admin"))): ...
	"""
	required_set = {str(r).strip() for r in required if str(r).strip()}

	async def _dep(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
		if verified and not policy.require_verified(user):
			raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="email_verification_required")
		if not policy.authorize(user, required_set):
			raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="insufficient_role")
		return user

	return _dep
