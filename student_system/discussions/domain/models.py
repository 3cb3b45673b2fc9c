"""Domain models for discussions and their comment trees."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

DiscussionCategory = Literal["general", "academic", "events", "technical", "announcements", "help"]
CATEGORIES: tuple[str, ...] = ("general", "academic", "events", "technical", "announcements", "help")

DiscussionAction = Literal["approve", "delete", "pin", "unpin", "lock", "unlock"]
CommentAction = Literal["approve", "delete"]


class Like(BaseModel):
	user_id: UUID
	created_at: datetime


class Report(BaseModel):
	user_id: UUID
	reason: str
	created_at: datetime


class Comment(BaseModel):
	"""A node in a discussion's comment tree.

	Replies live inside ``replies``; ``parent_comment`` keeps the id the
	author asked to reply to, even when the node ended up at the top level.
	"""

	id: UUID
	content: str
	author_id: UUID
	created_at: datetime
	updated_at: datetime
	likes: list[Like] = Field(default_factory=list)
	is_reported: bool = False
	reported_by: list[Report] = Field(default_factory=list)
	is_deleted: bool = False
	parent_comment: Optional[UUID] = None
	replies: list[Comment] = Field(default_factory=list)

	model_config = ConfigDict(from_attributes=True)

	@property
	def like_count(self) -> int:
		return len(self.likes)

	def is_liked_by(self, user_id: UUID | str | None) -> bool:
		if user_id is None:
			return False
		return any(str(like.user_id) == str(user_id) for like in self.likes)

	def has_reported(self, user_id: UUID | str) -> bool:
		return any(str(report.user_id) == str(user_id) for report in self.reported_by)


class Discussion(BaseModel):
	"""A forum post owning its whole comment tree."""

	id: UUID
	title: str
	content: str
	author_id: UUID
	category: DiscussionCategory = "general"
	tags: list[str] = Field(default_factory=list)
	likes: list[Like] = Field(default_factory=list)
	comments: list[Comment] = Field(default_factory=list)
	view_count: int = 0
	is_reported: bool = False
	reported_by: list[Report] = Field(default_factory=list)
	is_deleted: bool = False
	is_pinned: bool = False
	is_locked: bool = False
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@property
	def like_count(self) -> int:
		return len(self.likes)

	def is_liked_by(self, user_id: UUID | str | None) -> bool:
		if user_id is None:
			return False
		return any(str(like.user_id) == str(user_id) for like in self.likes)

	def has_reported(self, user_id: UUID | str) -> bool:
		return any(str(report.user_id) == str(user_id) for report in self.reported_by)


Comment.model_rebuild()
