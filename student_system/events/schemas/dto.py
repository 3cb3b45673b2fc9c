"""Pydantic schemas for the events API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from student_system.api.pagination import Pagination
from student_system.events.domain.models import EventCategory, EventType, Platform


def _aware(value: Optional[datetime]) -> Optional[datetime]:
	if value is not None and value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value


def _clean_tags(value: Optional[List[str]]) -> Optional[List[str]]:
	if value is None:
		return None
	cleaned = [tag.strip() for tag in value if tag and tag.strip()]
	for tag in cleaned:
		if len(tag) > 50:
			raise ValueError("Tag cannot exceed 50 characters")
	return cleaned


class EventCreateRequest(BaseModel):
	title: str = Field(..., min_length=1, max_length=100)
	description: str = Field(..., min_length=1, max_length=1000)
	organizer: str = Field(..., min_length=1, max_length=100)
	location: str = Field(..., min_length=1, max_length=200)
	start_date_time: datetime
	end_date_time: datetime
	category: EventCategory = "other"
	event_type: EventType
	max_attendees: Optional[int] = Field(default=None, ge=1, le=10000)
	registration_required: bool = False
	registration_deadline: Optional[datetime] = None
	contact_email: Optional[EmailStr] = None
	contact_phone: Optional[str] = Field(default=None, max_length=20)
	is_public: bool = True
	tags: List[str] = Field(default_factory=list)
	image_url: Optional[str] = Field(default=None, max_length=2048)

	@field_validator("title", "description", "organizer", "location")
	@classmethod
	def _strip(cls, value: str) -> str:
		value = value.strip()
		if not value:
			raise ValueError("Field cannot be blank")
		return value

	@field_validator("tags")
	@classmethod
	def _tags(cls, value: List[str]) -> List[str]:
		return _clean_tags(value) or []

	@field_validator("start_date_time", "end_date_time", "registration_deadline")
	@classmethod
	def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
		return _aware(value)


class EventUpdateRequest(BaseModel):
	"""Partial update; only fields present in the body are applied."""

	title: Optional[str] = Field(default=None, min_length=1, max_length=100)
	description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
	organizer: Optional[str] = Field(default=None, min_length=1, max_length=100)
	location: Optional[str] = Field(default=None, min_length=1, max_length=200)
	start_date_time: Optional[datetime] = None
	end_date_time: Optional[datetime] = None
	category: Optional[EventCategory] = None
	event_type: Optional[EventType] = None
	max_attendees: Optional[int] = Field(default=None, ge=1, le=10000)
	registration_required: Optional[bool] = None
	registration_deadline: Optional[datetime] = None
	contact_email: Optional[EmailStr] = None
	contact_phone: Optional[str] = Field(default=None, max_length=20)
	is_public: Optional[bool] = None
	tags: Optional[List[str]] = None
	image_url: Optional[str] = Field(default=None, max_length=2048)
	is_approved: Optional[bool] = None

	@field_validator("title", "description", "organizer", "location")
	@classmethod
	def _strip(cls, value: Optional[str]) -> Optional[str]:
		if value is None:
			return None
		value = value.strip()
		if not value:
			raise ValueError("Field cannot be blank")
		return value

	@field_validator("tags")
	@classmethod
	def _tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
		return _clean_tags(value)

	@field_validator("start_date_time", "end_date_time", "registration_deadline")
	@classmethod
	def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
		return _aware(value)


class RejectRequest(BaseModel):
	reason: Optional[str] = Field(default=None, max_length=500)


class ViewRequest(BaseModel):
	platform: Platform = "mobile"


class FeedbackRequest(BaseModel):
	message: str = Field(..., min_length=1, max_length=1000)


class FeedbackResponse(BaseModel):
	id: UUID
	message: str
	sent_by: UUID
	sent_at: datetime
	is_read: bool


class EventResponse(BaseModel):
	id: UUID
	title: str
	description: str
	organizer: str
	location: str
	start_date_time: datetime
	end_date_time: datetime
	category: str
	event_type: str
	created_by: UUID
	status: str
	is_approved: bool
	approved_by: Optional[UUID] = None
	approved_at: Optional[datetime] = None
	rejected_by: Optional[UUID] = None
	rejected_at: Optional[datetime] = None
	rejection_reason: Optional[str] = None
	registration_required: bool
	registration_deadline: Optional[datetime] = None
	max_attendees: Optional[int] = None
	tags: List[str]
	image_url: Optional[str] = None
	contact_email: Optional[str] = None
	contact_phone: Optional[str] = None
	is_public: bool
	attendee_count: int
	view_count: int
	unread_feedback_count: int
	created_at: datetime
	updated_at: datetime


class EventEnvelope(BaseModel):
	message: Optional[str] = None
	event: EventResponse
	# Side effects that failed after the main change was saved.
	warnings: List[str] = Field(default_factory=list)


class EventListResponse(BaseModel):
	events: List[EventResponse]
	pagination: Pagination


class StatusStatistics(BaseModel):
	total_events: int
	approved_events: int
	pending_events: int
	rejected_events: int


class AdminEventListResponse(EventListResponse):
	statistics: StatusStatistics


class ViewResponse(BaseModel):
	message: str
	view_count: int
	recorded: bool


class FeedbackListResponse(BaseModel):
	feedback: List[FeedbackResponse]


class FeedbackReadResponse(BaseModel):
	message: str
	feedback_id: UUID


class MessageResponse(BaseModel):
	message: str
	warnings: List[str] = Field(default_factory=list)


class CountBucket(BaseModel):
	key: str
	count: int


class EventOverview(StatusStatistics):
	upcoming_events: int
	this_month_events: int


class EventStatsResponse(BaseModel):
	overview: EventOverview
	category_stats: List[CountBucket]
	event_type_stats: List[CountBucket]


class ViewStats(BaseModel):
	total_views: int
	avg_views_per_event: float
	most_viewed_event: int


class MyEventStatsResponse(EventStatsResponse):
	view_stats: ViewStats


class TopViewedEvent(BaseModel):
	id: UUID
	title: str
	view_count: int
	start_date_time: datetime
	is_approved: bool


class DetailedEventStatsResponse(BaseModel):
	top_viewed_events: List[TopViewedEvent]
	recent_views: List[CountBucket]
	views_by_platform: List[CountBucket]
