"""Account registration, login, and email verification endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from student_system.api.errors import to_http_error
from student_system.domain.identity import schemas
from student_system.domain.identity.service import IdentityService
from student_system.infra.auth import AuthenticatedUser, get_current_user, require_roles

router = APIRouter(prefix="/api/auth", tags=["auth"])
_service = IdentityService()


@router.post("/register", response_model=schemas.RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: schemas.RegisterRequest) -> schemas.RegisterResponse:
	try:
		return await _service.register(payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/login", response_model=schemas.AuthResponse)
async def login(payload: schemas.LoginRequest) -> schemas.AuthResponse:
	try:
		return await _service.login(payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/verify-email", response_model=schemas.UserResponse)
async def verify_email(token: str = Query(..., min_length=1)) -> schemas.UserResponse:
	try:
		return await _service.verify_email(token)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/resend-verification", response_model=schemas.MessageResponse)
async def resend_verification(payload: schemas.ResendVerificationRequest) -> schemas.MessageResponse:
	try:
		return await _service.resend_verification(str(payload.email))
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/google", response_model=schemas.GoogleAuthResponse)
async def google_login(payload: schemas.GoogleLoginRequest, response: Response) -> schemas.GoogleAuthResponse:
	try:
		result = await _service.google_login(payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
	if result.created:
		response.status_code = status.HTTP_201_CREATED
	return result


@router.get("/profile", response_model=schemas.UserResponse)
async def profile(auth_user: AuthenticatedUser = Depends(get_current_user)) -> schemas.UserResponse:
	try:
		return await _service.get_profile(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/verification-status", response_model=schemas.VerificationStatusResponse)
async def verification_status(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.VerificationStatusResponse:
	try:
		return await _service.verification_status(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/admin-only", response_model=schemas.MessageResponse)
async def admin_only(auth_user: AuthenticatedUser = Depends(require_roles("admin"))) -> schemas.MessageResponse:
	return schemas.MessageResponse(message="Admin access granted")


@router.get("/club-or-admin", response_model=schemas.MessageResponse)
async def club_or_admin(
	auth_user: AuthenticatedUser = Depends(require_roles("club", "admin")),
) -> schemas.MessageResponse:
	return schemas.MessageResponse(message="Club or admin access granted")
