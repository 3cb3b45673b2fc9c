"""Event routes: submission, approval, views, and dashboards."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from student_system.api.errors import to_http_error
from student_system.events.domain.services import EventsService
from student_system.events.schemas import dto
from student_system.infra.auth import AuthenticatedUser, get_current_user, require_roles, require_verified_user

router = APIRouter(prefix="/api/events", tags=["events"])
_service = EventsService()


@router.get("", response_model=dto.EventListResponse)
async def list_events_endpoint(
	category: Optional[str] = Query(default=None),
	event_type: Optional[str] = Query(default=None),
	search: Optional[str] = Query(default=None, max_length=200),
	upcoming: bool = Query(default=True),
	start_date: Optional[datetime] = Query(default=None),
	end_date: Optional[datetime] = Query(default=None),
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=100),
) -> dto.EventListResponse:
	try:
		return await _service.list_public(
			category=category,
			event_type=event_type,
			search=search,
			upcoming=upcoming,
			start_date=start_date,
			end_date=end_date,
			page=page,
			limit=limit,
		)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("", response_model=dto.EventEnvelope, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
	payload: dto.EventCreateRequest,
	auth_user: AuthenticatedUser = Depends(require_roles("club", "admin")),
) -> dto.EventEnvelope:
	try:
		return await _service.create_event(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/my/events", response_model=dto.EventListResponse)
async def list_my_events_endpoint(
	status_filter: Optional[str] = Query(default=None, alias="status"),
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(require_roles("club", "admin")),
) -> dto.EventListResponse:
	try:
		return await _service.list_mine(auth_user, status=status_filter, page=page, limit=limit)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/admin/all", response_model=dto.AdminEventListResponse)
async def list_admin_events_endpoint(
	status_filter: Optional[str] = Query(default=None, alias="status"),
	category: Optional[str] = Query(default=None),
	event_type: Optional[str] = Query(default=None),
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(require_roles("admin")),
) -> dto.AdminEventListResponse:
	try:
		return await _service.list_admin(
			auth_user,
			status=status_filter,
			category=category,
			event_type=event_type,
			page=page,
			limit=limit,
		)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/stats/overview", response_model=dto.EventStatsResponse)
async def stats_overview_endpoint(
	auth_user: AuthenticatedUser = Depends(require_roles("admin")),
) -> dto.EventStatsResponse:
	try:
		return await _service.stats_overview(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/stats/my", response_model=dto.MyEventStatsResponse)
async def stats_mine_endpoint(
	auth_user: AuthenticatedUser = Depends(require_roles("club")),
) -> dto.MyEventStatsResponse:
	try:
		return await _service.stats_mine(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/stats/my/detailed", response_model=dto.DetailedEventStatsResponse)
async def stats_mine_detailed_endpoint(
	auth_user: AuthenticatedUser = Depends(require_roles("club")),
) -> dto.DetailedEventStatsResponse:
	try:
		return await _service.stats_mine_detailed(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{event_id}", response_model=dto.EventEnvelope)
async def get_event_endpoint(event_id: UUID) -> dto.EventEnvelope:
	try:
		return await _service.get_event(event_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{event_id}", response_model=dto.EventEnvelope)
async def update_event_endpoint(
	event_id: UUID,
	payload: dto.EventUpdateRequest,
	auth_user: AuthenticatedUser = Depends(require_verified_user),
) -> dto.EventEnvelope:
	try:
		return await _service.update_event(auth_user, event_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/{event_id}", response_model=dto.MessageResponse)
async def delete_event_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(require_verified_user),
) -> dto.MessageResponse:
	try:
		return await _service.delete_event(auth_user, event_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{event_id}/approve", response_model=dto.EventEnvelope)
async def approve_event_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(require_roles("admin")),
) -> dto.EventEnvelope:
	try:
		return await _service.approve_event(auth_user, event_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{event_id}/reject", response_model=dto.EventEnvelope)
async def reject_event_endpoint(
	event_id: UUID,
	payload: dto.RejectRequest | None = None,
	auth_user: AuthenticatedUser = Depends(require_roles("admin")),
) -> dto.EventEnvelope:
	try:
		return await _service.reject_event(auth_user, event_id, payload.reason if payload else None)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{event_id}/view", response_model=dto.ViewResponse)
async def record_view_endpoint(
	event_id: UUID,
	payload: dto.ViewRequest | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ViewResponse:
	try:
		return await _service.record_view(auth_user, event_id, payload.platform if payload else "mobile")
	except Exception as exc:
		raise to_http_error(exc) from exc
