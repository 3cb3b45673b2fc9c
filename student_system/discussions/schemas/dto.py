"""Pydantic schemas for the discussions API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from student_system.api.pagination import Pagination
from student_system.discussions.domain.models import CommentAction, DiscussionAction, DiscussionCategory


class DiscussionCreateRequest(BaseModel):
	title: str = Field(..., max_length=200)
	content: str
	category: DiscussionCategory = "general"
	tags: List[str] = Field(default_factory=list, max_length=20)


class DiscussionUpdateRequest(BaseModel):
	title: Optional[str] = Field(default=None, max_length=200)
	content: Optional[str] = None
	category: Optional[DiscussionCategory] = None
	tags: Optional[List[str]] = Field(default=None, max_length=20)


class CommentCreateRequest(BaseModel):
	content: str
	parent_comment: Optional[UUID] = None

	@field_validator("parent_comment", mode="before")
	@classmethod
	def _blank_parent(cls, value):
		if isinstance(value, str) and not value.strip():
			return None
		return value


class CommentUpdateRequest(BaseModel):
	content: str


class ReportRequest(BaseModel):
	reason: str = Field(..., max_length=500)


class DiscussionModerateRequest(BaseModel):
	action: DiscussionAction
	reason: Optional[str] = Field(default=None, max_length=500)


class CommentModerateRequest(BaseModel):
	action: CommentAction
	reason: Optional[str] = Field(default=None, max_length=500)


class ReportResponse(BaseModel):
	user_id: UUID
	reason: str
	created_at: datetime


class CommentResponse(BaseModel):
	id: UUID
	content: str
	author_id: UUID
	parent_comment: Optional[UUID] = None
	created_at: datetime
	updated_at: datetime
	like_count: int
	is_liked_by_user: bool
	is_reported: bool
	is_deleted: bool
	replies: List[CommentResponse] = Field(default_factory=list)


class DiscussionResponse(BaseModel):
	id: UUID
	title: str
	content: str
	author_id: UUID
	category: str
	tags: List[str]
	view_count: int
	like_count: int
	comment_count: int
	is_liked_by_user: bool
	is_reported: bool
	is_pinned: bool
	is_locked: bool
	created_at: datetime
	updated_at: datetime


class DiscussionDetailResponse(DiscussionResponse):
	comments: List[CommentResponse] = Field(default_factory=list)


class DiscussionListResponse(BaseModel):
	discussions: List[DiscussionResponse]
	pagination: Pagination


class CommentCreatedResponse(BaseModel):
	comment: CommentResponse
	total_comments: int


class CommentEnvelope(BaseModel):
	comment: CommentResponse


class LikeToggleResponse(BaseModel):
	like_count: int
	is_liked: bool


class MessageResponse(BaseModel):
	message: str


class DiscussionModerationSummary(BaseModel):
	id: UUID
	title: str
	is_reported: bool
	is_deleted: bool
	is_pinned: bool
	is_locked: bool


class DiscussionModeratedResponse(BaseModel):
	message: str
	discussion: DiscussionModerationSummary


class CommentModerationSummary(BaseModel):
	id: UUID
	content: str
	is_reported: bool
	is_deleted: bool


class CommentModeratedResponse(BaseModel):
	message: str
	comment: CommentModerationSummary


class ReportedDiscussionResponse(DiscussionResponse):
	reported_by: List[ReportResponse]


class ReportedDiscussionListResponse(BaseModel):
	discussions: List[ReportedDiscussionResponse]
	pagination: Pagination


class DiscussionRef(BaseModel):
	id: UUID
	title: str
	author_id: UUID


class ReportedCommentResponse(BaseModel):
	id: UUID
	content: str
	author_id: UUID
	created_at: datetime
	reported_by: List[ReportResponse]
	discussion: DiscussionRef


class ReportedCommentListResponse(BaseModel):
	comments: List[ReportedCommentResponse]
	pagination: Pagination


class CategoryCount(BaseModel):
	category: str
	count: int


class RecentActivity(BaseModel):
	discussions: int
	comments: int


class DiscussionStatsResponse(BaseModel):
	total_discussions: int
	reported_discussions: int
	pinned_discussions: int
	locked_discussions: int
	reported_comments_count: int
	category_stats: List[CategoryCount]
	recent_activity: RecentActivity


class OverviewStatsResponse(BaseModel):
	total_discussions: int
	total_comments: int
	category_stats: List[CategoryCount]


class UserCommentResponse(BaseModel):
	id: UUID
	content: str
	created_at: datetime
	discussion: DiscussionRef


class UserActivityResponse(BaseModel):
	user_id: UUID
	discussions: List[DiscussionResponse]
	comments: List[UserCommentResponse]
	total_discussions: int
	total_comments: int
	pagination: Pagination


CommentResponse.model_rebuild()
