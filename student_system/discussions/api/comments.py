"""Comment routes nested under a discussion."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from student_system.api.errors import to_http_error
from student_system.discussions.domain.services import DiscussionsService
from student_system.discussions.schemas import dto
from student_system.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/api/discussions/{discussion_id}/comments", tags=["discussions:comments"])
_service = DiscussionsService()


@router.post("", response_model=dto.CommentCreatedResponse, status_code=status.HTTP_201_CREATED)
async def add_comment_endpoint(
	discussion_id: UUID,
	payload: dto.CommentCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CommentCreatedResponse:
	try:
		return await _service.add_comment(auth_user, discussion_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{comment_id}", response_model=dto.CommentEnvelope)
async def update_comment_endpoint(
	discussion_id: UUID,
	comment_id: UUID,
	payload: dto.CommentUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CommentEnvelope:
	try:
		return await _service.update_comment(auth_user, discussion_id, comment_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/{comment_id}", response_model=dto.MessageResponse)
async def delete_comment_endpoint(
	discussion_id: UUID,
	comment_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.delete_comment(auth_user, discussion_id, comment_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{comment_id}/like", response_model=dto.LikeToggleResponse)
async def toggle_comment_like_endpoint(
	discussion_id: UUID,
	comment_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.LikeToggleResponse:
	try:
		return await _service.toggle_comment_like(auth_user, discussion_id, comment_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{comment_id}/report", response_model=dto.MessageResponse)
async def report_comment_endpoint(
	discussion_id: UUID,
	comment_id: UUID,
	payload: dto.ReportRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.report_comment(auth_user, discussion_id, comment_id, payload.reason)
	except Exception as exc:
		raise to_http_error(exc) from exc
