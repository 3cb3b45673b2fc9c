"""Account registration, login, verification, and admin user management."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from jwt import InvalidTokenError

from student_system.api.pagination import Pagination, page_window
from student_system.domain.exceptions import (
	BadRequestError,
	ForbiddenError,
	InvalidGoogleTokenError,
	NotFoundError,
	UnauthorizedError,
	UpstreamFailure,
	ValidationError,
)
from student_system.domain.identity import models, schemas
from student_system.domain.identity.repo import UsersRepository
from student_system.infra import jwt as jwt_helper
from student_system.infra.auth import AuthenticatedUser
from student_system.infra.google import GoogleTokenVerifier, default_google_verifier
from student_system.infra.images import ImageStore, default_image_store
from student_system.infra.mailer import Mailer, default_mailer, mask_email
from student_system.infra.password import check_needs_rehash, hash_password, verify_password
from student_system.obs import metrics as obs_metrics
from student_system.settings import settings

logger = logging.getLogger(__name__)

IMAGE_RELEASE_FAILED = "image_release_failed"


def to_response(user: models.User) -> schemas.UserResponse:
	return schemas.UserResponse(
		id=user.id,
		name=user.name,
		email=user.email,
		role=user.role,
		is_email_verified=user.is_email_verified,
		is_google_user=user.is_google_user,
		profile_image_url=user.profile_image_url,
		created_at=user.created_at,
		updated_at=user.updated_at,
	)


class IdentityService:
	"""Business logic for accounts. Email delivery is best-effort."""

	def __init__(
		self,
		repository: UsersRepository | None = None,
		mailer: Mailer | None = None,
		google_verifier: GoogleTokenVerifier | None = None,
		image_store: ImageStore | None = None,
	) -> None:
		self.repo = repository or UsersRepository()
		self.mailer = mailer or default_mailer()
		self.google = google_verifier or default_google_verifier()
		self.images = image_store or default_image_store()

	async def register(self, payload: schemas.RegisterRequest) -> schemas.RegisterResponse:
		if payload.role not in models.SELF_REGISTER_ROLES:
			raise ForbiddenError("role_not_allowed", "Admin accounts cannot be self-registered")
		user = await self.repo.create_user(
			name=payload.name,
			email=str(payload.email),
			password_hash=hash_password(payload.password),
			role=payload.role,
		)
		obs_metrics.inc_identity_register(user.role)
		await self._send_verification(user)
		return schemas.RegisterResponse(
			message="Registration successful. Please check your email to verify your account.",
			user=to_response(user),
		)

	async def login(self, payload: schemas.LoginRequest) -> schemas.AuthResponse:
		user = await self.repo.get_user_by_email(str(payload.email))
		if user is None or not user.password_hash or not verify_password(user.password_hash, payload.password):
			obs_metrics.inc_identity_login("rejected")
			raise UnauthorizedError("invalid_credentials", "Invalid email or password")
		if check_needs_rehash(user.password_hash):
			user = await self.repo.update_user(user.id, password_hash=hash_password(payload.password)) or user
		obs_metrics.inc_identity_login("ok")
		token = jwt_helper.encode_access(str(user.id), user.role)
		return schemas.AuthResponse(access_token=token, user=to_response(user))

	async def verify_email(self, token: str) -> schemas.UserResponse:
		try:
			claims = jwt_helper.decode_email_verification(token)
			user_id = UUID(str(claims.get("sub")))
		except (InvalidTokenError, ValueError):
			raise ValidationError("invalid_verification_token", "Invalid or expired verification token")
		user = await self.repo.get_user(user_id)
		if user is None or user.email != str(claims.get("email", "")).lower():
			raise ValidationError("invalid_verification_token", "Invalid or expired verification token")
		if user.is_email_verified:
			return to_response(user)
		updated = await self.repo.update_user(user.id, is_email_verified=True)
		if updated is None:
			raise NotFoundError("user_not_found", "User not found")
		try:
			await self.mailer.send_welcome(updated.email, updated.name)
		except UpstreamFailure as exc:
			self._log_upstream(exc, email=updated.email)
		return to_response(updated)

	async def resend_verification(self, email: str) -> schemas.MessageResponse:
		user = await self.repo.get_user_by_email(email)
		# Same answer whether or not the account exists.
		if user is not None and not user.is_verified:
			await self._send_verification(user)
		return schemas.MessageResponse(message="If the account exists, a verification email has been sent.")

	async def google_login(self, payload: schemas.GoogleLoginRequest) -> schemas.GoogleAuthResponse:
		"""Sign in with a Google ID token, creating a verified account on first use."""
		claims = await self.google.verify(payload.id_token)
		google_email = str(claims.get("email") or "").strip().lower()
		if not google_email or claims.get("email_verified") is False:
			raise InvalidGoogleTokenError()
		if google_email != str(payload.email).lower():
			raise BadRequestError("google_email_mismatch", "Email mismatch with Google account")
		user = await self.repo.get_user_by_email(google_email)
		created = user is None
		if user is None:
			user = await self.repo.create_user(
				name=payload.name or str(claims.get("name") or google_email),
				email=google_email,
				password_hash=None,
				role=payload.role,
				is_email_verified=True,
				is_google_user=True,
			)
			obs_metrics.inc_identity_register(user.role)
			try:
				await self.mailer.send_welcome(user.email, user.name)
			except UpstreamFailure as exc:
				self._log_upstream(exc, email=user.email)
		obs_metrics.inc_identity_login("google")
		return schemas.GoogleAuthResponse(
			message="Google account registered successfully" if created else "Google login successful",
			created=created,
			access_token=jwt_helper.encode_access(str(user.id), user.role),
			user=to_response(user),
		)

	async def get_profile(self, auth_user: AuthenticatedUser) -> schemas.UserResponse:
		return to_response(await self._require_user(auth_user.id))

	async def verification_status(self, auth_user: AuthenticatedUser) -> schemas.VerificationStatusResponse:
		user = await self._require_user(auth_user.id)
		return schemas.VerificationStatusResponse(
			is_email_verified=user.is_email_verified,
			is_google_user=user.is_google_user,
			email=user.email,
		)

	async def update_name(self, auth_user: AuthenticatedUser, name: str) -> schemas.UserResponse:
		name = name.strip()
		if len(name) < 2:
			raise ValidationError("invalid_name", "Name must be between 2 and 50 characters")
		updated = await self.repo.update_user(UUID(auth_user.id), name=name)
		if updated is None:
			raise NotFoundError("user_not_found", "User not found")
		return to_response(updated)

	async def set_profile_image(self, auth_user: AuthenticatedUser, image_url: str) -> schemas.ProfileImageResponse:
		image_url = image_url.strip()
		if not image_url.startswith(("https://", "http://")):
			raise ValidationError("invalid_image_url", "Image URL must be an http(s) URL")
		user = await self._require_user(auth_user.id)
		warnings: list[str] = []
		if user.profile_image_url != image_url:
			warnings = await self._release_profile_image(user)
		updated = await self.repo.update_user(user.id, profile_image_url=image_url)
		if updated is None:
			raise NotFoundError("user_not_found", "User not found")
		return schemas.ProfileImageResponse(
			message="Profile image updated successfully", user=to_response(updated), warnings=warnings
		)

	async def remove_profile_image(self, auth_user: AuthenticatedUser) -> schemas.ProfileImageResponse:
		user = await self._require_user(auth_user.id)
		warnings = await self._release_profile_image(user)
		updated = await self.repo.update_user(user.id, profile_image_url=None)
		if updated is None:
			raise NotFoundError("user_not_found", "User not found")
		return schemas.ProfileImageResponse(
			message="Profile image removed successfully", user=to_response(updated), warnings=warnings
		)

	# ------------------------------------------------------------------
	# Admin

	async def list_users(
		self,
		*,
		role: Optional[str] = None,
		search: Optional[str] = None,
		page: int = 1,
		limit: int = 10,
	) -> schemas.UserListResponse:
		if role and role not in models.ROLES:
			raise ValidationError("invalid_role", "Invalid role filter")
		offset, limit = page_window(page, limit)
		users, total = await self.repo.list_users(role=role, search=search, offset=offset, limit=limit)
		return schemas.UserListResponse(
			users=[to_response(user) for user in users],
			pagination=Pagination.build(page=page, limit=limit, total=total),
		)

	async def get_user(self, user_id: UUID) -> schemas.UserResponse:
		return to_response(await self._require_user(str(user_id)))

	async def create_user(self, payload: schemas.AdminUserCreateRequest) -> schemas.UserResponse:
		user = await self.repo.create_user(
			name=payload.name,
			email=str(payload.email),
			password_hash=hash_password(payload.password),
			role=payload.role,
			is_email_verified=payload.is_email_verified,
		)
		obs_metrics.inc_identity_register(user.role)
		return to_response(user)

	async def update_user(
		self,
		actor: AuthenticatedUser,
		user_id: UUID,
		payload: schemas.AdminUserUpdateRequest,
	) -> schemas.UserResponse:
		fields = payload.model_dump(exclude_unset=True, exclude_none=True)
		if "name" in fields:
			fields["name"] = fields["name"].strip()
		if fields.get("role") and str(user_id) == actor.id and fields["role"] != "admin":
			raise ForbiddenError("cannot_demote_self", "You cannot change your own admin role")
		await self._require_user(str(user_id))
		updated = await self.repo.update_user(user_id, **fields)
		if updated is None:
			raise NotFoundError("user_not_found", "User not found")
		return to_response(updated)

	async def toggle_verification(self, user_id: UUID) -> schemas.UserResponse:
		user = await self._require_user(str(user_id))
		updated = await self.repo.update_user(user.id, is_email_verified=not user.is_email_verified)
		if updated is None:
			raise NotFoundError("user_not_found", "User not found")
		return to_response(updated)

	async def delete_user(self, actor: AuthenticatedUser, user_id: UUID) -> None:
		if str(user_id) == actor.id:
			raise ForbiddenError("cannot_delete_self", "You cannot delete your own account")
		if not await self.repo.delete_user(user_id):
			raise NotFoundError("user_not_found", "User not found")

	async def user_stats(self) -> schemas.UserStatsResponse:
		counts = await self.repo.count_users()
		return schemas.UserStatsResponse(
			total=counts.get("total", 0),
			verified=counts.get("verified", 0),
			students=counts.get("student", 0),
			clubs=counts.get("club", 0),
			admins=counts.get("admin", 0),
		)

	# ------------------------------------------------------------------
	# Internal helpers

	async def _require_user(self, user_id: str) -> models.User:
		try:
			parsed = UUID(str(user_id))
		except ValueError:
			raise NotFoundError("user_not_found", "User not found")
		user = await self.repo.get_user(parsed)
		if user is None:
			raise NotFoundError("user_not_found", "User not found")
		return user

	async def _send_verification(self, user: models.User) -> None:
		token = jwt_helper.encode_email_verification(str(user.id), user.email)
		link = f"{settings.frontend_url.rstrip('/')}/verify-email?token={token}"
		try:
			await self.mailer.send_verification(user.email, user.name, link)
		except UpstreamFailure as exc:
			self._log_upstream(exc, email=user.email)

	async def _release_profile_image(self, user: models.User) -> list[str]:
		# Google accounts keep their provider-hosted picture.
		if not user.profile_image_url or user.is_google_user:
			return []
		try:
			await self.images.release(user.profile_image_url)
		except UpstreamFailure as exc:
			obs_metrics.inc_upstream_failure(exc.upstream, exc.operation)
			logger.warning(
				"image_release_failed",
				extra={"user_id": str(user.id), "image_url": user.profile_image_url, "error": str(exc)},
			)
			return [IMAGE_RELEASE_FAILED]
		return []

	def _log_upstream(self, exc: UpstreamFailure, *, email: str) -> None:
		obs_metrics.inc_upstream_failure(exc.upstream, exc.operation)
		logger.warning(
			"upstream_failure",
			extra={"upstream": exc.upstream, "operation": exc.operation, "to_hash": mask_email(email), "error": str(exc)},
		)
