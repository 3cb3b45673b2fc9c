"""Admin feedback thread attached to an event."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from student_system.api.errors import to_http_error
from student_system.events.domain.services import EventsService
from student_system.events.schemas import dto
from student_system.infra.auth import AuthenticatedUser, require_roles, require_verified_user

router = APIRouter(prefix="/api/events/{event_id}/feedback", tags=["events:feedback"])
_service = EventsService()


@router.post("", response_model=dto.EventEnvelope)
async def send_feedback_endpoint(
	event_id: UUID,
	payload: dto.FeedbackRequest,
	auth_user: AuthenticatedUser = Depends(require_roles("admin")),
) -> dto.EventEnvelope:
	try:
		return await _service.send_feedback(auth_user, event_id, payload.message)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("", response_model=dto.FeedbackListResponse)
async def list_feedback_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(require_verified_user),
) -> dto.FeedbackListResponse:
	try:
		return await _service.list_feedback(auth_user, event_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{feedback_id}/read", response_model=dto.FeedbackReadResponse)
async def mark_feedback_read_endpoint(
	event_id: UUID,
	feedback_id: UUID,
	auth_user: AuthenticatedUser = Depends(require_verified_user),
) -> dto.FeedbackReadResponse:
	try:
		return await _service.mark_feedback_read(auth_user, event_id, feedback_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
