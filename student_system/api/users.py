"""Admin user management endpoints."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from student_system.api.errors import to_http_error
from student_system.domain.identity import schemas
from student_system.domain.identity.service import IdentityService
from student_system.infra.auth import AuthenticatedUser, require_roles

router = APIRouter(prefix="/api/users", tags=["users"])
_service = IdentityService()
_admin = require_roles("admin")


@router.get("", response_model=schemas.UserListResponse)
async def list_users(
	role: Optional[str] = Query(default=None),
	search: Optional[str] = Query(default=None, max_length=100),
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(_admin),
) -> schemas.UserListResponse:
	try:
		return await _service.list_users(role=role, search=search, page=page, limit=limit)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/stats/overview", response_model=schemas.UserStatsResponse)
async def user_stats(auth_user: AuthenticatedUser = Depends(_admin)) -> schemas.UserStatsResponse:
	try:
		return await _service.user_stats()
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
	payload: schemas.AdminUserCreateRequest,
	auth_user: AuthenticatedUser = Depends(_admin),
) -> schemas.UserResponse:
	try:
		return await _service.create_user(payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{user_id}", response_model=schemas.UserResponse)
async def get_user(user_id: UUID, auth_user: AuthenticatedUser = Depends(_admin)) -> schemas.UserResponse:
	try:
		return await _service.get_user(user_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{user_id}", response_model=schemas.UserResponse)
async def update_user(
	user_id: UUID,
	payload: schemas.AdminUserUpdateRequest,
	auth_user: AuthenticatedUser = Depends(_admin),
) -> schemas.UserResponse:
	try:
		return await _service.update_user(auth_user, user_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{user_id}/toggle-verification", response_model=schemas.UserResponse)
async def toggle_verification(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(_admin),
) -> schemas.UserResponse:
	try:
		return await _service.toggle_verification(user_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: UUID, auth_user: AuthenticatedUser = Depends(_admin)) -> Response:
	try:
		await _service.delete_user(auth_user, user_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return Response(status_code=status.HTTP_204_NO_CONTENT)
