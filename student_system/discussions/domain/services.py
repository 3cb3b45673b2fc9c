"""Service layer for discussions and their comment trees."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

from student_system.api.pagination import Pagination, page_window
from student_system.discussions.domain import comment_tree, moderation, policies
from student_system.discussions.domain import repo as repo_module
from student_system.discussions.domain.models import Comment, Discussion
from student_system.discussions.schemas import dto
from student_system.domain.exceptions import ValidationError
from student_system.infra import rate_limit
from student_system.infra.auth import AuthenticatedUser
from student_system.obs import metrics as obs_metrics
from student_system.settings import settings

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("recent", "popular", "most_liked", "most_commented")
RECENT_ACTIVITY_DAYS = 7


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _category_stats(discussions: list[Discussion]) -> list[dto.CategoryCount]:
	counts: dict[str, int] = {}
	for discussion in discussions:
		counts[discussion.category] = counts.get(discussion.category, 0) + 1
	ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
	return [dto.CategoryCount(category=category, count=count) for category, count in ordered]


def _latest_report(comment: Comment) -> datetime:
	return max(report.created_at for report in comment.reported_by)


class DiscussionsService:
	"""Discussion CRUD, comment tree mutations, and admin moderation."""

	def __init__(self, repository: repo_module.DiscussionsRepository | None = None) -> None:
		self.repo = repository or repo_module.DiscussionsRepository()

	# ------------------------------------------------------------------
	# Presentation

	@classmethod
	def comment_to_response(cls, comment: Comment, viewer_id: Optional[str]) -> dto.CommentResponse:
		return dto.CommentResponse(
			id=comment.id,
			content=comment.content,
			author_id=comment.author_id,
			parent_comment=comment.parent_comment,
			created_at=comment.created_at,
			updated_at=comment.updated_at,
			like_count=comment.like_count,
			is_liked_by_user=comment.is_liked_by(viewer_id),
			is_reported=comment.is_reported,
			is_deleted=comment.is_deleted,
			replies=[cls.comment_to_response(reply, viewer_id) for reply in comment.replies],
		)

	@staticmethod
	def discussion_to_response(discussion: Discussion, viewer_id: Optional[str]) -> dto.DiscussionResponse:
		return dto.DiscussionResponse(
			id=discussion.id,
			title=discussion.title,
			content=discussion.content,
			author_id=discussion.author_id,
			category=discussion.category,
			tags=list(discussion.tags),
			view_count=discussion.view_count,
			like_count=discussion.like_count,
			comment_count=comment_tree.comment_count(discussion),
			is_liked_by_user=discussion.is_liked_by(viewer_id),
			is_reported=discussion.is_reported,
			is_pinned=discussion.is_pinned,
			is_locked=discussion.is_locked,
			created_at=discussion.created_at,
			updated_at=discussion.updated_at,
		)

	@classmethod
	def discussion_to_detail(cls, discussion: Discussion, viewer_id: Optional[str]) -> dto.DiscussionDetailResponse:
		summary = cls.discussion_to_response(discussion, viewer_id)
		return dto.DiscussionDetailResponse(
			**summary.model_dump(),
			comments=[cls.comment_to_response(comment, viewer_id) for comment in discussion.comments],
		)

	@staticmethod
	def _moderation_summary(discussion: Discussion) -> dto.DiscussionModerationSummary:
		return dto.DiscussionModerationSummary(
			id=discussion.id,
			title=discussion.title,
			is_reported=discussion.is_reported,
			is_deleted=discussion.is_deleted,
			is_pinned=discussion.is_pinned,
			is_locked=discussion.is_locked,
		)

	# ------------------------------------------------------------------
	# Discussions

	async def create_discussion(
		self,
		auth_user: AuthenticatedUser,
		payload: dto.DiscussionCreateRequest,
	) -> dto.DiscussionResponse:
		now = _now()
		discussion = Discussion(
			id=uuid4(),
			title=moderation.clean_title(payload.title),
			content=moderation.clean_content(payload.content),
			author_id=UUID(auth_user.id),
			category=moderation.clean_category(payload.category),
			tags=moderation.clean_tags(payload.tags),
			created_at=now,
			updated_at=now,
		)
		await self.repo.insert(discussion)
		obs_metrics.inc_discussion_created(discussion.category)
		return self.discussion_to_response(discussion, auth_user.id)

	async def list_discussions(
		self,
		viewer: AuthenticatedUser | None,
		*,
		category: Optional[str] = None,
		search: Optional[str] = None,
		sort: str = "recent",
		author_id: Optional[UUID] = None,
		tags: Optional[str] = None,
		page: int = 1,
		limit: int = 10,
	) -> dto.DiscussionListResponse:
		if sort not in SORT_OPTIONS:
			raise ValidationError("invalid_sort", f"Sort must be one of: {', '.join(SORT_OPTIONS)}")
		query = repo_module.DiscussionQuery(
			category=None if category in (None, "", "all") else category,
			search=(search or "").strip() or None,
			author_id=author_id,
			tags=[tag.strip() for tag in (tags or "").split(",") if tag.strip()],
			sort=sort,
		)
		offset, limit = page_window(page, limit)
		discussions, total = await self.repo.list(query, offset=offset, limit=limit)
		viewer_id = viewer.id if viewer else None
		return dto.DiscussionListResponse(
			discussions=[self.discussion_to_response(discussion, viewer_id) for discussion in discussions],
			pagination=Pagination.build(page=page, limit=limit, total=total),
		)

	async def get_discussion(
		self,
		viewer: AuthenticatedUser | None,
		discussion_id: UUID,
	) -> dto.DiscussionDetailResponse:
		"""Fetch a discussion with its annotated tree; every fetch counts as a view."""

		def _view(discussion: Discussion) -> None:
			policies.require_visible(discussion)
			moderation.increment_view_count(discussion)

		discussion, _ = await self.repo.mutate(discussion_id, _view)
		return self.discussion_to_detail(discussion, viewer.id if viewer else None)

	async def update_discussion(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
		payload: dto.DiscussionUpdateRequest,
	) -> dto.DiscussionResponse:
		def _update(discussion: Discussion) -> None:
			policies.require_visible(discussion)
			policies.assert_can_edit_discussion(auth_user, discussion)
			if payload.title is not None:
				discussion.title = moderation.clean_title(payload.title)
			if payload.content is not None:
				discussion.content = moderation.clean_content(payload.content)
			if payload.category is not None:
				discussion.category = moderation.clean_category(payload.category)
			if payload.tags is not None:
				discussion.tags = moderation.clean_tags(payload.tags)
			discussion.updated_at = _now()

		discussion, _ = await self.repo.mutate(discussion_id, _update)
		return self.discussion_to_response(discussion, auth_user.id)

	async def delete_discussion(self, auth_user: AuthenticatedUser, discussion_id: UUID) -> dto.MessageResponse:
		def _delete(discussion: Discussion) -> None:
			policies.require_visible(discussion)
			policies.assert_can_delete_discussion(auth_user, discussion)
			moderation.soft_delete(discussion)

		await self.repo.mutate(discussion_id, _delete)
		return dto.MessageResponse(message="Discussion deleted successfully")

	async def toggle_discussion_like(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
	) -> dto.LikeToggleResponse:
		def _toggle(discussion: Discussion) -> comment_tree.LikeToggleResult:
			policies.require_visible(discussion)
			return comment_tree.toggle_like(discussion, UUID(auth_user.id))

		_, result = await self.repo.mutate(discussion_id, _toggle)
		obs_metrics.inc_like_toggled("discussion", liked=result.is_liked)
		return dto.LikeToggleResponse(like_count=result.like_count, is_liked=result.is_liked)

	async def report_discussion(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
		reason: str,
	) -> dto.MessageResponse:
		await rate_limit.enforce("report", auth_user.id, limit=settings.report_rate_limit_per_minute)

		def _report(discussion: Discussion) -> None:
			policies.require_visible(discussion)
			comment_tree.report(discussion, UUID(auth_user.id), reason)

		await self.repo.mutate(discussion_id, _report)
		obs_metrics.inc_report_filed("discussion")
		return dto.MessageResponse(message="Discussion reported successfully")

	async def moderate_discussion(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
		payload: dto.DiscussionModerateRequest,
	) -> dto.DiscussionModeratedResponse:
		policies.assert_can_moderate(auth_user)

		def _moderate(discussion: Discussion) -> None:
			moderation.moderate(discussion, payload.action)

		discussion, _ = await self.repo.mutate(discussion_id, _moderate)
		obs_metrics.inc_moderation_action("discussion", payload.action)
		logger.info(
			"discussion_moderated",
			extra={"discussion_id": str(discussion_id), "action": payload.action, "admin_id": auth_user.id},
		)
		return dto.DiscussionModeratedResponse(
			message=f"Discussion {payload.action} applied successfully",
			discussion=self._moderation_summary(discussion),
		)

	# ------------------------------------------------------------------
	# Comments

	async def add_comment(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
		payload: dto.CommentCreateRequest,
	) -> dto.CommentCreatedResponse:
		await rate_limit.enforce("comment", auth_user.id, limit=settings.comment_rate_limit_per_minute)

		def _add(discussion: Discussion) -> Comment:
			policies.require_visible(discussion)
			return comment_tree.add_comment(
				discussion,
				content=payload.content,
				author_id=UUID(auth_user.id),
				parent_comment_id=payload.parent_comment,
			)

		discussion, comment = await self.repo.mutate(discussion_id, _add)
		placement = "top_level" if comment.parent_comment is None else "reply"
		if comment.parent_comment is not None and any(c.id == comment.id for c in discussion.comments):
			placement = "fallback"
		obs_metrics.inc_comment_created(placement)
		return dto.CommentCreatedResponse(
			comment=self.comment_to_response(comment, auth_user.id),
			total_comments=comment_tree.comment_count(discussion),
		)

	async def update_comment(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
		comment_id: UUID,
		payload: dto.CommentUpdateRequest,
	) -> dto.CommentEnvelope:
		def _edit(discussion: Discussion) -> Comment:
			policies.require_visible(discussion)
			comment = policies.require_live_comment(comment_tree.get_comment_by_id(discussion, comment_id))
			policies.assert_can_edit_comment(auth_user, comment)
			return comment_tree.edit_comment(comment, payload.content)

		_, comment = await self.repo.mutate(discussion_id, _edit)
		return dto.CommentEnvelope(comment=self.comment_to_response(comment, auth_user.id))

	async def delete_comment(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
		comment_id: UUID,
	) -> dto.MessageResponse:
		def _delete(discussion: Discussion) -> None:
			policies.require_visible(discussion)
			comment = policies.require_live_comment(comment_tree.get_comment_by_id(discussion, comment_id))
			policies.assert_can_delete_comment(auth_user, comment)
			comment_tree.soft_delete(comment)

		await self.repo.mutate(discussion_id, _delete)
		return dto.MessageResponse(message="Comment deleted successfully")

	async def toggle_comment_like(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
		comment_id: UUID,
	) -> dto.LikeToggleResponse:
		def _toggle(discussion: Discussion) -> comment_tree.LikeToggleResult:
			policies.require_visible(discussion)
			comment = policies.require_live_comment(comment_tree.get_comment_by_id(discussion, comment_id))
			return comment_tree.toggle_like(comment, UUID(auth_user.id))

		_, result = await self.repo.mutate(discussion_id, _toggle)
		obs_metrics.inc_like_toggled("comment", liked=result.is_liked)
		return dto.LikeToggleResponse(like_count=result.like_count, is_liked=result.is_liked)

	async def report_comment(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
		comment_id: UUID,
		reason: str,
	) -> dto.MessageResponse:
		await rate_limit.enforce("report", auth_user.id, limit=settings.report_rate_limit_per_minute)

		def _report(discussion: Discussion) -> None:
			policies.require_visible(discussion)
			comment = policies.require_live_comment(comment_tree.get_comment_by_id(discussion, comment_id))
			comment_tree.report(comment, UUID(auth_user.id), reason)

		await self.repo.mutate(discussion_id, _report)
		obs_metrics.inc_report_filed("comment")
		return dto.MessageResponse(message="Comment reported successfully")

	async def moderate_comment(
		self,
		auth_user: AuthenticatedUser,
		discussion_id: UUID,
		comment_id: UUID,
		payload: dto.CommentModerateRequest,
	) -> dto.CommentModeratedResponse:
		policies.assert_can_moderate(auth_user)

		def _moderate(discussion: Discussion) -> Comment:
			comment = comment_tree.require_comment(discussion, comment_id)
			comment_tree.moderate_comment(comment, payload.action)
			return comment

		_, comment = await self.repo.mutate(discussion_id, _moderate)
		obs_metrics.inc_moderation_action("comment", payload.action)
		logger.info(
			"comment_moderated",
			extra={
				"discussion_id": str(discussion_id),
				"comment_id": str(comment_id),
				"action": payload.action,
				"admin_id": auth_user.id,
			},
		)
		return dto.CommentModeratedResponse(
			message=f"Comment {payload.action} applied successfully",
			comment=dto.CommentModerationSummary(
				id=comment.id,
				content=comment.content,
				is_reported=comment.is_reported,
				is_deleted=comment.is_deleted,
			),
		)

	# ------------------------------------------------------------------
	# Admin reporting

	async def list_reported_discussions(self, *, page: int = 1, limit: int = 10) -> dto.ReportedDiscussionListResponse:
		offset, limit = page_window(page, limit)
		query = repo_module.DiscussionQuery(reported_only=True)
		discussions, total = await self.repo.list(query, offset=offset, limit=limit)
		items = [
			dto.ReportedDiscussionResponse(
				**self.discussion_to_response(discussion, None).model_dump(),
				reported_by=[dto.ReportResponse.model_validate(r.model_dump()) for r in discussion.reported_by],
			)
			for discussion in discussions
		]
		return dto.ReportedDiscussionListResponse(
			discussions=items,
			pagination=Pagination.build(page=page, limit=limit, total=total),
		)

	async def list_reported_comments(self, *, page: int = 1, limit: int = 10) -> dto.ReportedCommentListResponse:
		"""Reported, non-deleted comments at any depth, most recent report first."""
		reported: list[tuple[Comment, Discussion]] = []
		for discussion in await self.repo.list_active():
			for comment in comment_tree.iter_comments(discussion):
				if comment.is_reported and not comment.is_deleted and comment.reported_by:
					reported.append((comment, discussion))
		reported.sort(key=lambda pair: _latest_report(pair[0]), reverse=True)
		offset, limit = page_window(page, limit)
		items = [
			dto.ReportedCommentResponse(
				id=comment.id,
				content=comment.content,
				author_id=comment.author_id,
				created_at=comment.created_at,
				reported_by=[dto.ReportResponse.model_validate(r.model_dump()) for r in comment.reported_by],
				discussion=dto.DiscussionRef(id=discussion.id, title=discussion.title, author_id=discussion.author_id),
			)
			for comment, discussion in reported[offset : offset + limit]
		]
		return dto.ReportedCommentListResponse(
			comments=items,
			pagination=Pagination.build(page=page, limit=limit, total=len(reported)),
		)

	async def discussion_stats(self, *, now: Optional[datetime] = None) -> dto.DiscussionStatsResponse:
		discussions = await self.repo.list_active()
		week_ago = (now or _now()) - timedelta(days=RECENT_ACTIVITY_DAYS)
		reported_comments = 0
		recent_comments = 0
		for discussion in discussions:
			for comment in comment_tree.iter_comments(discussion):
				if comment.is_deleted:
					continue
				if comment.is_reported:
					reported_comments += 1
				if comment.created_at >= week_ago:
					recent_comments += 1
		return dto.DiscussionStatsResponse(
			total_discussions=len(discussions),
			reported_discussions=sum(1 for d in discussions if d.is_reported),
			pinned_discussions=sum(1 for d in discussions if d.is_pinned),
			locked_discussions=sum(1 for d in discussions if d.is_locked),
			reported_comments_count=reported_comments,
			category_stats=_category_stats(discussions),
			recent_activity=dto.RecentActivity(
				discussions=sum(1 for d in discussions if d.created_at >= week_ago),
				comments=recent_comments,
			),
		)

	async def overview_stats(self) -> dto.OverviewStatsResponse:
		discussions = await self.repo.list_active()
		return dto.OverviewStatsResponse(
			total_discussions=len(discussions),
			total_comments=sum(comment_tree.comment_count(d) for d in discussions),
			category_stats=_category_stats(discussions),
		)

	async def user_activity(self, user_id: UUID, *, page: int = 1, limit: int = 10) -> dto.UserActivityResponse:
		offset, limit = page_window(page, limit)
		query = repo_module.DiscussionQuery(author_id=user_id)
		discussions, total_discussions = await self.repo.list(query, offset=offset, limit=limit)
		comments: list[tuple[Comment, Discussion]] = []
		for discussion in await self.repo.list_active():
			for comment in comment_tree.iter_comments(discussion):
				if not comment.is_deleted and str(comment.author_id) == str(user_id):
					comments.append((comment, discussion))
		comments.sort(key=lambda pair: pair[0].created_at, reverse=True)
		return dto.UserActivityResponse(
			user_id=user_id,
			discussions=[self.discussion_to_response(discussion, None) for discussion in discussions],
			comments=[
				dto.UserCommentResponse(
					id=comment.id,
					content=comment.content,
					created_at=comment.created_at,
					discussion=dto.DiscussionRef(
						id=discussion.id, title=discussion.title, author_id=discussion.author_id
					),
				)
				for comment, discussion in comments[offset : offset + limit]
			],
			total_discussions=total_discussions,
			total_comments=len(comments),
			pagination=Pagination.build(page=page, limit=limit, total=max(total_discussions, len(comments))),
		)
