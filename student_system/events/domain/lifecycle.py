"""Event approval workflow, schedule validation, views, and admin feedback.

Pure functions over an in-memory ``Event``; storage and authorization
lookups happen in the service.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

from student_system.domain.exceptions import (
	AlreadyApprovedError,
	AlreadyRejectedError,
	ForbiddenError,
	NotFoundError,
	ValidationError,
)
from student_system.domain.identity import policy
from student_system.domain.identity.policy import Principal
from student_system.events.domain.models import (
	DEFAULT_REJECTION_REASON,
	PLATFORMS,
	Approved,
	Event,
	EventView,
	Feedback,
	Pending,
	Rejected,
)

VIEW_DEDUP_WINDOW = timedelta(minutes=60)
MAX_REJECTION_REASON_LENGTH = 500
MAX_FEEDBACK_LENGTH = 1000


def _now(now: Optional[datetime]) -> datetime:
	return now or datetime.now(timezone.utc)


def validate_schedule(
	*,
	start: datetime,
	end: datetime,
	registration_required: bool,
	registration_deadline: Optional[datetime],
	now: Optional[datetime] = None,
	require_future_start: bool = True,
) -> None:
	if end <= start:
		raise ValidationError("invalid_schedule", "End date and time must be after start date and time")
	if require_future_start and start <= _now(now):
		raise ValidationError("start_in_past", "Event start date must be in the future")
	if registration_required and registration_deadline is not None and registration_deadline >= start:
		raise ValidationError("invalid_registration_deadline", "Registration deadline must be before event start time")


def approve(event: Event, admin_id: UUID, *, now: Optional[datetime] = None) -> Event:
	if event.is_approved:
		raise AlreadyApprovedError()
	timestamp = _now(now)
	event.status = Approved(by=admin_id, at=timestamp)
	event.updated_at = timestamp
	return event


def reject(event: Event, admin_id: UUID, reason: Optional[str] = None, *, now: Optional[datetime] = None) -> Event:
	if event.is_rejected:
		raise AlreadyRejectedError()
	reason = (reason or "").strip()
	if len(reason) > MAX_REJECTION_REASON_LENGTH:
		raise ValidationError(
			"rejection_reason_too_long",
			f"Rejection reason cannot exceed {MAX_REJECTION_REASON_LENGTH} characters",
		)
	timestamp = _now(now)
	event.status = Rejected(by=admin_id, at=timestamp, reason=reason or DEFAULT_REJECTION_REASON)
	event.updated_at = timestamp
	return event


def set_approval(event: Event, approved: bool, actor_id: UUID, *, now: Optional[datetime] = None) -> Event:
	"""Apply an explicit ``is_approved`` value carried by an edit.

	``True`` approves and clears any rejection. ``False`` drops approval; a
	rejected event stays rejected.
	"""
	timestamp = _now(now)
	if approved:
		event.status = Approved(by=actor_id, at=timestamp)
	elif isinstance(event.status, Approved):
		event.status = Pending()
	event.updated_at = timestamp
	return event


def record_view(
	event: Event,
	viewer_id: UUID,
	platform: str = "mobile",
	*,
	now: Optional[datetime] = None,
	window: timedelta = VIEW_DEDUP_WINDOW,
) -> bool:
	"""Append a view unless the viewer already has one inside ``window``.

	Returns True when a view was recorded.
	"""
	if platform not in PLATFORMS:
		raise ValidationError("invalid_platform", "Platform must be web or mobile")
	timestamp = _now(now)
	cutoff = timestamp - window
	for view in event.views:
		if str(view.user_id) == str(viewer_id) and view.viewed_at > cutoff:
			return False
	event.views.append(EventView(user_id=viewer_id, viewed_at=timestamp, platform=platform))
	return True


def add_feedback(event: Event, admin_id: UUID, message: str, *, now: Optional[datetime] = None) -> Feedback:
	message = (message or "").strip()
	if not message or len(message) > MAX_FEEDBACK_LENGTH:
		raise ValidationError("invalid_feedback", f"Message must be between 1 and {MAX_FEEDBACK_LENGTH} characters")
	feedback = Feedback(id=uuid4(), message=message, sent_by=admin_id, sent_at=_now(now))
	event.admin_feedback.append(feedback)
	return feedback


def mark_feedback_read(event: Event, feedback_id: UUID) -> Feedback:
	for feedback in event.admin_feedback:
		if str(feedback.id) == str(feedback_id):
			feedback.is_read = True
			return feedback
	raise NotFoundError("feedback_not_found", "Feedback message not found")


# ----------------------------------------------------------------------
# Authorization


def assert_can_update(actor: Principal, event: Event) -> None:
	if not policy.is_owner_or_admin(actor, event.created_by):
		raise ForbiddenError("not_event_creator", "You can only update events you created")
	if event.is_approved and not policy.is_admin(actor):
		raise ForbiddenError("event_approved", "Cannot update approved event. Contact admin for changes.")


def assert_can_delete(actor: Principal, event: Event) -> None:
	if not policy.is_owner_or_admin(actor, event.created_by):
		raise ForbiddenError("not_event_creator", "You can only delete events you created")


def assert_can_read_feedback(actor: Principal, event: Event) -> None:
	if not policy.is_owner_or_admin(actor, event.created_by):
		raise ForbiddenError("not_event_creator", "You can only view feedback for your own events")


def assert_can_mark_feedback(actor: Principal, event: Event) -> None:
	if str(event.created_by) != str(actor.id):
		raise ForbiddenError("not_event_creator", "You can only mark feedback for your own events as read")
