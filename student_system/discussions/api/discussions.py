"""Discussion routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from student_system.api.errors import to_http_error
from student_system.discussions.domain.services import DiscussionsService
from student_system.discussions.schemas import dto
from student_system.infra.auth import AuthenticatedUser, get_current_user, get_optional_user, require_roles

router = APIRouter(prefix="/api/discussions", tags=["discussions"])
_service = DiscussionsService()


@router.get("", response_model=dto.DiscussionListResponse)
async def list_discussions_endpoint(
	category: Optional[str] = Query(default=None),
	search: Optional[str] = Query(default=None, max_length=200),
	sort: str = Query(default="recent"),
	author: Optional[UUID] = Query(default=None),
	tags: Optional[str] = Query(default=None, description="Comma separated tag list"),
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=100),
	viewer: AuthenticatedUser | None = Depends(get_optional_user),
) -> dto.DiscussionListResponse:
	try:
		return await _service.list_discussions(
			viewer,
			category=category,
			search=search,
			sort=sort,
			author_id=author,
			tags=tags,
			page=page,
			limit=limit,
		)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/stats/overview", response_model=dto.OverviewStatsResponse)
async def overview_stats_endpoint() -> dto.OverviewStatsResponse:
	try:
		return await _service.overview_stats()
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("", response_model=dto.DiscussionResponse, status_code=status.HTTP_201_CREATED)
async def create_discussion_endpoint(
	payload: dto.DiscussionCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.DiscussionResponse:
	try:
		return await _service.create_discussion(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{discussion_id}", response_model=dto.DiscussionDetailResponse)
async def get_discussion_endpoint(
	discussion_id: UUID,
	viewer: AuthenticatedUser | None = Depends(get_optional_user),
) -> dto.DiscussionDetailResponse:
	try:
		return await _service.get_discussion(viewer, discussion_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{discussion_id}", response_model=dto.DiscussionResponse)
async def update_discussion_endpoint(
	discussion_id: UUID,
	payload: dto.DiscussionUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.DiscussionResponse:
	try:
		return await _service.update_discussion(auth_user, discussion_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/{discussion_id}", response_model=dto.MessageResponse)
async def delete_discussion_endpoint(
	discussion_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.delete_discussion(auth_user, discussion_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{discussion_id}/like", response_model=dto.LikeToggleResponse)
async def toggle_discussion_like_endpoint(
	discussion_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.LikeToggleResponse:
	try:
		return await _service.toggle_discussion_like(auth_user, discussion_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{discussion_id}/report", response_model=dto.MessageResponse)
async def report_discussion_endpoint(
	discussion_id: UUID,
	payload: dto.ReportRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.report_discussion(auth_user, discussion_id, payload.reason)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{discussion_id}/moderate", response_model=dto.DiscussionModeratedResponse)
async def moderate_discussion_endpoint(
	discussion_id: UUID,
	payload: dto.DiscussionModerateRequest,
	auth_user: AuthenticatedUser = Depends(require_roles("admin")),
) -> dto.DiscussionModeratedResponse:
	try:
		return await _service.moderate_discussion(auth_user, discussion_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
