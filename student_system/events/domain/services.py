"""Service layer for the event approval workflow."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from student_system.api.pagination import Pagination, page_window
from student_system.domain.exceptions import ForbiddenError, NotFoundError, UpstreamFailure, ValidationError
from student_system.domain.identity import policy
from student_system.events.domain import lifecycle, stats
from student_system.events.domain import repo as repo_module
from student_system.events.domain.models import CATEGORIES, EVENT_TYPES, STATUSES, Event
from student_system.events.schemas import dto
from student_system.infra.auth import AuthenticatedUser
from student_system.infra.images import ImageStore, default_image_store
from student_system.obs import metrics as obs_metrics
from student_system.settings import settings

logger = logging.getLogger(__name__)

IMAGE_RELEASE_FAILED = "image_release_failed"

# Fields an update may set back to null.
_NULLABLE_FIELDS = frozenset(
	{"registration_deadline", "max_attendees", "contact_email", "contact_phone", "image_url"}
)
_SCHEDULE_FIELDS = frozenset({"start_date_time", "end_date_time"})
_REGISTRATION_FIELDS = frozenset({"registration_required", "registration_deadline"})


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _choice(value: Optional[str], allowed: tuple[str, ...], name: str) -> Optional[str]:
	if value in (None, "", "all"):
		return None
	if value not in allowed:
		raise ValidationError(f"invalid_{name}", f"Invalid {name.replace('_', ' ')} filter")
	return value


class EventsService:
	"""Event creation, approval transitions, views, feedback, and statistics.

	The image store is injected. Releasing an image is best-effort: a failure
	shows up in the response ``warnings`` and never fails the operation.
	"""

	def __init__(
		self,
		repository: repo_module.EventsRepository | None = None,
		image_store: ImageStore | None = None,
	) -> None:
		self.repo = repository or repo_module.EventsRepository()
		self.images = image_store or default_image_store()

	@staticmethod
	def to_response(event: Event) -> dto.EventResponse:
		return dto.EventResponse(
			id=event.id,
			title=event.title,
			description=event.description,
			organizer=event.organizer,
			location=event.location,
			start_date_time=event.start_date_time,
			end_date_time=event.end_date_time,
			category=event.category,
			event_type=event.event_type,
			created_by=event.created_by,
			status=event.status_name,
			is_approved=event.is_approved,
			approved_by=event.approved_by,
			approved_at=event.approved_at,
			rejected_by=event.rejected_by,
			rejected_at=event.rejected_at,
			rejection_reason=event.rejection_reason,
			registration_required=event.registration_required,
			registration_deadline=event.registration_deadline,
			max_attendees=event.max_attendees,
			tags=list(event.tags),
			image_url=event.image_url,
			contact_email=event.contact_email,
			contact_phone=event.contact_phone,
			is_public=event.is_public,
			attendee_count=len(event.attendees),
			view_count=event.view_count,
			unread_feedback_count=sum(1 for feedback in event.admin_feedback if not feedback.is_read),
			created_at=event.created_at,
			updated_at=event.updated_at,
		)

	# ------------------------------------------------------------------
	# Helpers

	async def _require_event(self, event_id: UUID) -> Event:
		event = await self.repo.get(event_id)
		if event is None:
			raise NotFoundError("event_not_found", "Event not found")
		return event

	async def _release_image(self, image_url: str, *, event_id: UUID, trigger: str) -> Optional[str]:
		"""Release a stored image; returns a warning code instead of raising."""
		try:
			await self.images.release(image_url)
			return None
		except UpstreamFailure as exc:
			obs_metrics.inc_upstream_failure(exc.upstream, exc.operation)
			logger.warning(
				"image_release_failed",
				extra={"event_id": str(event_id), "trigger": trigger, "image_url": image_url, "error": str(exc)},
			)
			return IMAGE_RELEASE_FAILED

	@staticmethod
	def _assert_admin(auth_user: AuthenticatedUser) -> None:
		policy.assert_verified(auth_user)
		policy.assert_roles(auth_user, "admin")

	@staticmethod
	def _apply_update(
		event: Event,
		actor: AuthenticatedUser,
		fields: dict[str, Any],
		*,
		now: datetime,
	) -> Event:
		lifecycle.assert_can_update(actor, event)
		approval = fields.get("is_approved")
		if approval is not None and not policy.is_admin(actor):
			raise ForbiddenError("approval_admin_only", "Only admins can change approval status")
		for name, value in fields.items():
			if name == "is_approved":
				continue
			if value is None and name not in _NULLABLE_FIELDS:
				continue
			if name == "contact_email" and value is not None:
				value = str(value).lower()
			setattr(event, name, value)
		if _SCHEDULE_FIELDS & fields.keys() or _REGISTRATION_FIELDS & fields.keys():
			lifecycle.validate_schedule(
				start=event.start_date_time,
				end=event.end_date_time,
				registration_required=event.registration_required,
				registration_deadline=event.registration_deadline,
				now=now,
				require_future_start=bool(_SCHEDULE_FIELDS & fields.keys()),
			)
		if approval is not None:
			lifecycle.set_approval(event, approval, UUID(actor.id), now=now)
		event.updated_at = now
		return event

	# ------------------------------------------------------------------
	# Commands

	async def create_event(
		self,
		auth_user: AuthenticatedUser,
		payload: dto.EventCreateRequest,
		*,
		now: Optional[datetime] = None,
	) -> dto.EventEnvelope:
		policy.assert_verified(auth_user)
		policy.assert_roles(auth_user, "club", "admin")
		now = now or _now()
		lifecycle.validate_schedule(
			start=payload.start_date_time,
			end=payload.end_date_time,
			registration_required=payload.registration_required,
			registration_deadline=payload.registration_deadline,
			now=now,
		)
		event = Event(
			id=uuid4(),
			title=payload.title,
			description=payload.description,
			organizer=payload.organizer,
			location=payload.location,
			start_date_time=payload.start_date_time,
			end_date_time=payload.end_date_time,
			category=payload.category,
			event_type=payload.event_type,
			created_by=UUID(auth_user.id),
			registration_required=payload.registration_required,
			registration_deadline=payload.registration_deadline,
			max_attendees=payload.max_attendees,
			tags=list(payload.tags),
			image_url=payload.image_url,
			contact_email=str(payload.contact_email).lower() if payload.contact_email else None,
			contact_phone=payload.contact_phone,
			is_public=payload.is_public,
			created_at=now,
			updated_at=now,
		)
		await self.repo.insert(event)
		obs_metrics.inc_event_created(event.event_type)
		logger.info("event_created", extra={"event_id": str(event.id), "created_by": auth_user.id})
		return dto.EventEnvelope(
			message="Event created successfully and submitted for approval",
			event=self.to_response(event),
		)

	async def approve_event(self, auth_user: AuthenticatedUser, event_id: UUID) -> dto.EventEnvelope:
		self._assert_admin(auth_user)
		event, _ = await self.repo.mutate(event_id, lambda e: lifecycle.approve(e, UUID(auth_user.id)))
		obs_metrics.inc_event_transition("approve")
		logger.info("event_approved", extra={"event_id": str(event_id), "admin_id": auth_user.id})
		return dto.EventEnvelope(message="Event approved successfully", event=self.to_response(event))

	async def reject_event(
		self,
		auth_user: AuthenticatedUser,
		event_id: UUID,
		reason: Optional[str] = None,
	) -> dto.EventEnvelope:
		self._assert_admin(auth_user)
		event, _ = await self.repo.mutate(event_id, lambda e: lifecycle.reject(e, UUID(auth_user.id), reason))
		obs_metrics.inc_event_transition("reject")
		logger.info("event_rejected", extra={"event_id": str(event_id), "admin_id": auth_user.id})
		return dto.EventEnvelope(message="Event rejected successfully", event=self.to_response(event))

	async def update_event(
		self,
		auth_user: AuthenticatedUser,
		event_id: UUID,
		payload: dto.EventUpdateRequest,
	) -> dto.EventEnvelope:
		policy.assert_verified(auth_user)
		fields = payload.model_dump(exclude_unset=True)
		now = _now()
		current = await self._require_event(event_id)
		# Dry run so nothing external happens for an update that would be refused.
		self._apply_update(current.model_copy(deep=True), auth_user, fields, now=now)
		warnings: list[str] = []
		new_image = fields.get("image_url")
		if "image_url" in fields and current.image_url and new_image != current.image_url:
			warning = await self._release_image(current.image_url, event_id=event_id, trigger="replaced")
			if warning:
				warnings.append(warning)
		event, _ = await self.repo.mutate(event_id, lambda e: self._apply_update(e, auth_user, fields, now=now))
		if fields.get("is_approved") is not None:
			obs_metrics.inc_event_transition("approve" if fields["is_approved"] else "unapprove")
		return dto.EventEnvelope(
			message="Event updated successfully", event=self.to_response(event), warnings=warnings
		)

	async def record_view(
		self,
		auth_user: AuthenticatedUser,
		event_id: UUID,
		platform: str = "mobile",
	) -> dto.ViewResponse:
		window = timedelta(minutes=settings.event_view_dedup_minutes)
		event, recorded = await self.repo.mutate(
			event_id,
			lambda e: lifecycle.record_view(e, UUID(auth_user.id), platform, window=window),
		)
		obs_metrics.inc_event_view(platform, recorded=recorded)
		return dto.ViewResponse(message="View tracked successfully", view_count=event.view_count, recorded=recorded)

	async def send_feedback(self, auth_user: AuthenticatedUser, event_id: UUID, message: str) -> dto.EventEnvelope:
		self._assert_admin(auth_user)
		event, _ = await self.repo.mutate(
			event_id, lambda e: lifecycle.add_feedback(e, UUID(auth_user.id), message)
		)
		obs_metrics.inc_event_feedback()
		return dto.EventEnvelope(message="Feedback sent successfully", event=self.to_response(event))

	async def list_feedback(self, auth_user: AuthenticatedUser, event_id: UUID) -> dto.FeedbackListResponse:
		policy.assert_verified(auth_user)
		event = await self._require_event(event_id)
		lifecycle.assert_can_read_feedback(auth_user, event)
		return dto.FeedbackListResponse(
			feedback=[dto.FeedbackResponse.model_validate(item.model_dump()) for item in event.admin_feedback]
		)

	async def mark_feedback_read(
		self,
		auth_user: AuthenticatedUser,
		event_id: UUID,
		feedback_id: UUID,
	) -> dto.FeedbackReadResponse:
		policy.assert_verified(auth_user)

		def _mark(event: Event) -> None:
			lifecycle.assert_can_mark_feedback(auth_user, event)
			lifecycle.mark_feedback_read(event, feedback_id)

		await self.repo.mutate(event_id, _mark)
		return dto.FeedbackReadResponse(message="Feedback marked as read", feedback_id=feedback_id)

	async def delete_event(self, auth_user: AuthenticatedUser, event_id: UUID) -> dto.MessageResponse:
		policy.assert_verified(auth_user)
		event = await self._require_event(event_id)
		lifecycle.assert_can_delete(auth_user, event)
		warnings: list[str] = []
		if event.image_url:
			warning = await self._release_image(event.image_url, event_id=event_id, trigger="deleted")
			if warning:
				warnings.append(warning)
		if not await self.repo.delete(event_id):
			raise NotFoundError("event_not_found", "Event not found")
		logger.info("event_deleted", extra={"event_id": str(event_id), "actor_id": auth_user.id})
		return dto.MessageResponse(message="Event deleted successfully", warnings=warnings)

	# ------------------------------------------------------------------
	# Queries

	async def get_event(self, event_id: UUID) -> dto.EventEnvelope:
		return dto.EventEnvelope(event=self.to_response(await self._require_event(event_id)))

	async def list_public(
		self,
		*,
		category: Optional[str] = None,
		event_type: Optional[str] = None,
		search: Optional[str] = None,
		upcoming: bool = True,
		start_date: Optional[datetime] = None,
		end_date: Optional[datetime] = None,
		page: int = 1,
		limit: int = 10,
	) -> dto.EventListResponse:
		starts_after = start_date if start_date is not None else (_now() if upcoming else None)
		query = repo_module.EventQuery(
			status="approved",
			category=_choice(category, CATEGORIES, "category"),
			event_type=_choice(event_type, EVENT_TYPES, "event_type"),
			search=(search or "").strip() or None,
			starts_after=starts_after,
			ends_before=end_date,
			order="start_asc",
		)
		offset, limit = page_window(page, limit)
		events, total = await self.repo.list(query, offset=offset, limit=limit)
		return dto.EventListResponse(
			events=[self.to_response(event) for event in events],
			pagination=Pagination.build(page=page, limit=limit, total=total),
		)

	async def list_mine(
		self,
		auth_user: AuthenticatedUser,
		*,
		status: Optional[str] = None,
		page: int = 1,
		limit: int = 10,
	) -> dto.EventListResponse:
		policy.assert_verified(auth_user)
		policy.assert_roles(auth_user, "club", "admin")
		query = repo_module.EventQuery(
			status=_choice(status, STATUSES, "status"),
			created_by=UUID(auth_user.id),
		)
		offset, limit = page_window(page, limit)
		events, total = await self.repo.list(query, offset=offset, limit=limit)
		return dto.EventListResponse(
			events=[self.to_response(event) for event in events],
			pagination=Pagination.build(page=page, limit=limit, total=total),
		)

	async def list_admin(
		self,
		auth_user: AuthenticatedUser,
		*,
		status: Optional[str] = None,
		category: Optional[str] = None,
		event_type: Optional[str] = None,
		page: int = 1,
		limit: int = 10,
	) -> dto.AdminEventListResponse:
		self._assert_admin(auth_user)
		query = repo_module.EventQuery(
			status=_choice(status, STATUSES, "status"),
			category=_choice(category, CATEGORIES, "category"),
			event_type=_choice(event_type, EVENT_TYPES, "event_type"),
		)
		offset, limit = page_window(page, limit)
		events, total = await self.repo.list(query, offset=offset, limit=limit)
		return dto.AdminEventListResponse(
			events=[self.to_response(event) for event in events],
			pagination=Pagination.build(page=page, limit=limit, total=total),
			statistics=stats.status_statistics(await self.repo.list_all()),
		)

	async def stats_overview(self, auth_user: AuthenticatedUser) -> dto.EventStatsResponse:
		self._assert_admin(auth_user)
		return stats.overview(await self.repo.list_all(), now=_now())

	async def stats_mine(self, auth_user: AuthenticatedUser) -> dto.MyEventStatsResponse:
		policy.assert_verified(auth_user)
		policy.assert_roles(auth_user, "club")
		events = await self.repo.list_all(created_by=UUID(auth_user.id))
		return stats.creator_overview(events, now=_now())

	async def stats_mine_detailed(self, auth_user: AuthenticatedUser) -> dto.DetailedEventStatsResponse:
		policy.assert_verified(auth_user)
		policy.assert_roles(auth_user, "club")
		events = await self.repo.list_all(created_by=UUID(auth_user.id))
		return stats.creator_detail(events, now=_now())
