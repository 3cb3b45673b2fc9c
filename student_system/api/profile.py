"""Self-service profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from student_system.api.errors import to_http_error
from student_system.domain.identity import schemas
from student_system.domain.identity.service import IdentityService
from student_system.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/api/profile", tags=["profile"])
_service = IdentityService()


@router.get("", response_model=schemas.UserResponse)
async def get_profile(auth_user: AuthenticatedUser = Depends(get_current_user)) -> schemas.UserResponse:
	try:
		return await _service.get_profile(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/name", response_model=schemas.UserResponse)
async def update_name(
	payload: schemas.UpdateNameRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.UserResponse:
	try:
		return await _service.update_name(auth_user, payload.name)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/image", response_model=schemas.ProfileImageResponse)
async def set_profile_image(
	payload: schemas.ProfileImageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ProfileImageResponse:
	try:
		return await _service.set_profile_image(auth_user, payload.image_url)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/remove-image", response_model=schemas.ProfileImageResponse)
async def remove_profile_image(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ProfileImageResponse:
	try:
		return await _service.remove_profile_image(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc
