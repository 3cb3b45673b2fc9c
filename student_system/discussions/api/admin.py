"""Admin moderation and reporting routes for discussions."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from student_system.api.errors import to_http_error
from student_system.discussions.domain.services import DiscussionsService
from student_system.discussions.schemas import dto
from student_system.infra.auth import AuthenticatedUser, require_roles

router = APIRouter(prefix="/api/admin/discussions", tags=["discussions:admin"])
_service = DiscussionsService()
_admin = require_roles("admin")


@router.get("/reported", response_model=dto.ReportedDiscussionListResponse)
async def list_reported_discussions_endpoint(
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(_admin),
) -> dto.ReportedDiscussionListResponse:
	try:
		return await _service.list_reported_discussions(page=page, limit=limit)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/reported-comments", response_model=dto.ReportedCommentListResponse)
async def list_reported_comments_endpoint(
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(_admin),
) -> dto.ReportedCommentListResponse:
	try:
		return await _service.list_reported_comments(page=page, limit=limit)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/stats", response_model=dto.DiscussionStatsResponse)
async def discussion_stats_endpoint(auth_user: AuthenticatedUser = Depends(_admin)) -> dto.DiscussionStatsResponse:
	try:
		return await _service.discussion_stats()
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/users/{user_id}", response_model=dto.UserActivityResponse)
async def user_activity_endpoint(
	user_id: UUID,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(_admin),
) -> dto.UserActivityResponse:
	try:
		return await _service.user_activity(user_id, page=page, limit=limit)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{discussion_id}/moderate", response_model=dto.DiscussionModeratedResponse)
async def moderate_discussion_endpoint(
	discussion_id: UUID,
	payload: dto.DiscussionModerateRequest,
	auth_user: AuthenticatedUser = Depends(_admin),
) -> dto.DiscussionModeratedResponse:
	try:
		return await _service.moderate_discussion(auth_user, discussion_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{discussion_id}/comments/{comment_id}/moderate", response_model=dto.CommentModeratedResponse)
async def moderate_comment_endpoint(
	discussion_id: UUID,
	comment_id: UUID,
	payload: dto.CommentModerateRequest,
	auth_user: AuthenticatedUser = Depends(_admin),
) -> dto.CommentModeratedResponse:
	try:
		return await _service.moderate_comment(auth_user, discussion_id, comment_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
