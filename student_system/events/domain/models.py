"""Domain models for events and their approval workflow."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

EventCategory = Literal["academic", "cultural", "sports", "workshop", "seminar", "social", "other"]
EventType = Literal["university", "club"]
Platform = Literal["web", "mobile"]
StatusName = Literal["pending", "approved", "rejected"]

CATEGORIES: tuple[str, ...] = ("academic", "cultural", "sports", "workshop", "seminar", "social", "other")
EVENT_TYPES: tuple[str, ...] = ("university", "club")
PLATFORMS: tuple[str, ...] = ("web", "mobile")
STATUSES: tuple[str, ...] = ("pending", "approved", "rejected")

DEFAULT_REJECTION_REASON = "No reason provided"


class Pending(BaseModel):
	state: Literal["pending"] = "pending"


class Approved(BaseModel):
	state: Literal["approved"] = "approved"
	by: UUID
	at: datetime


class Rejected(BaseModel):
	state: Literal["rejected"] = "rejected"
	by: UUID
	at: datetime
	reason: str = DEFAULT_REJECTION_REASON


EventStatus = Annotated[Union[Pending, Approved, Rejected], Field(discriminator="state")]


class EventView(BaseModel):
	user_id: UUID
	viewed_at: datetime
	platform: Platform = "mobile"


class Feedback(BaseModel):
	id: UUID
	message: str
	sent_by: UUID
	sent_at: datetime
	is_read: bool = False


class Event(BaseModel):
	"""An event submission. Approval state lives in ``status`` only."""

	id: UUID
	title: str
	description: str
	organizer: str
	location: str
	start_date_time: datetime
	end_date_time: datetime
	category: EventCategory = "other"
	event_type: EventType
	created_by: UUID
	status: EventStatus = Field(default_factory=Pending)
	registration_required: bool = False
	registration_deadline: Optional[datetime] = None
	max_attendees: Optional[int] = None
	tags: list[str] = Field(default_factory=list)
	image_url: Optional[str] = None
	contact_email: Optional[str] = None
	contact_phone: Optional[str] = None
	is_public: bool = True
	attendees: list[UUID] = Field(default_factory=list)
	views: list[EventView] = Field(default_factory=list)
	admin_feedback: list[Feedback] = Field(default_factory=list)
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def view_count(self) -> int:
		return len(self.views)

	@property
	def status_name(self) -> str:
		return self.status.state

	@property
	def is_approved(self) -> bool:
		return isinstance(self.status, Approved)

	@property
	def is_rejected(self) -> bool:
		return isinstance(self.status, Rejected)

	@property
	def approved_by(self) -> Optional[UUID]:
		return self.status.by if isinstance(self.status, Approved) else None

	@property
	def approved_at(self) -> Optional[datetime]:
		return self.status.at if isinstance(self.status, Approved) else None

	@property
	def rejected_by(self) -> Optional[UUID]:
		return self.status.by if isinstance(self.status, Rejected) else None

	@property
	def rejected_at(self) -> Optional[datetime]:
		return self.status.at if isinstance(self.status, Rejected) else None

	@property
	def rejection_reason(self) -> Optional[str]:
		return self.status.reason if isinstance(self.status, Rejected) else None
