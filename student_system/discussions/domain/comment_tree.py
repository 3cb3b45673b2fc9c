"""Pure operations over a discussion's comment tree.

Every function mutates the in-memory ``Discussion``/``Comment`` passed in and
never touches storage; the service runs them inside one atomic document
mutation so a failure leaves the stored tree untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional, Union
from uuid import UUID, uuid4

from student_system.discussions.domain.models import Comment, Discussion, Like, Report
from student_system.domain.exceptions import (
	AlreadyReportedError,
	DiscussionLockedError,
	NotFoundError,
	ValidationError,
)

logger = logging.getLogger(__name__)

Likeable = Union[Comment, Discussion]

MAX_REPORT_REASON_LENGTH = 500


@dataclass(slots=True)
class LikeToggleResult:
	like_count: int
	is_liked: bool


def _now(now: Optional[datetime]) -> datetime:
	return now or datetime.now(timezone.utc)


def _same(left: UUID | str, right: UUID | str) -> bool:
	return str(left) == str(right)


def _search(nodes: Iterable[Comment], comment_id: UUID | str) -> Optional[Comment]:
	for node in nodes:
		if _same(node.id, comment_id):
			return node
		found = _search(node.replies, comment_id)
		if found is not None:
			return found
	return None


def get_comment_by_id(discussion: Discussion, comment_id: UUID | str) -> Optional[Comment]:
	"""Find a comment anywhere in the tree.

	Top-level comments are checked first, then each top-level branch is
	searched depth-first in insertion order. Returns None when absent.
	"""
	for comment in discussion.comments:
		if _same(comment.id, comment_id):
			return comment
	for comment in discussion.comments:
		found = _search(comment.replies, comment_id)
		if found is not None:
			return found
	return None


def require_comment(discussion: Discussion, comment_id: UUID | str) -> Comment:
	comment = get_comment_by_id(discussion, comment_id)
	if comment is None:
		raise NotFoundError("comment_not_found", "Comment not found")
	return comment


def iter_comments(discussion: Discussion) -> Iterator[Comment]:
	"""Yield every node, depth-first."""
	stack = list(reversed(discussion.comments))
	while stack:
		node = stack.pop()
		yield node
		stack.extend(reversed(node.replies))


def comment_count(discussion: Discussion) -> int:
	return sum(1 for comment in iter_comments(discussion) if not comment.is_deleted)


def _clean_content(content: str) -> str:
	content = (content or "").strip()
	if not content:
		raise ValidationError("empty_comment", "Comment content is required")
	return content


def add_comment(
	discussion: Discussion,
	*,
	content: str,
	author_id: UUID,
	parent_comment_id: UUID | None = None,
	now: Optional[datetime] = None,
) -> Comment:
	"""Insert a new comment, as a reply when ``parent_comment_id`` resolves.

	An unresolvable parent id falls back to a top-level comment that still
	records the requested parent.
	"""
	if discussion.is_deleted:
		raise NotFoundError("discussion_not_found", "Discussion not found")
	if discussion.is_locked:
		raise DiscussionLockedError()
	content = _clean_content(content)
	timestamp = _now(now)
	comment = Comment(
		id=uuid4(),
		content=content,
		author_id=author_id,
		created_at=timestamp,
		updated_at=timestamp,
		parent_comment=parent_comment_id,
	)
	if parent_comment_id is not None:
		parent = get_comment_by_id(discussion, parent_comment_id)
		if parent is not None:
			parent.replies.append(comment)
			return comment
		logger.warning(
			"comment_parent_not_found",
			extra={"discussion_id": str(discussion.id), "parent_comment_id": str(parent_comment_id)},
		)
	discussion.comments.append(comment)
	return comment


def edit_comment(comment: Comment, content: str, *, now: Optional[datetime] = None) -> Comment:
	comment.content = _clean_content(content)
	comment.updated_at = _now(now)
	return comment


def toggle_like(target: Likeable, user_id: UUID, *, now: Optional[datetime] = None) -> LikeToggleResult:
	"""Remove the user's like if present, otherwise add one."""
	remaining = [like for like in target.likes if not _same(like.user_id, user_id)]
	if len(remaining) != len(target.likes):
		target.likes = remaining
		return LikeToggleResult(like_count=len(target.likes), is_liked=False)
	target.likes.append(Like(user_id=user_id, created_at=_now(now)))
	return LikeToggleResult(like_count=len(target.likes), is_liked=True)


def report(target: Likeable, user_id: UUID, reason: str, *, now: Optional[datetime] = None) -> None:
	"""File one report per user; a repeat raises AlreadyReportedError."""
	reason = (reason or "").strip()
	if not reason:
		raise ValidationError("report_reason_required", "Report reason is required")
	if len(reason) > MAX_REPORT_REASON_LENGTH:
		raise ValidationError(
			"report_reason_too_long", f"Report reason cannot exceed {MAX_REPORT_REASON_LENGTH} characters"
		)
	if target.has_reported(user_id):
		raise AlreadyReportedError()
	target.reported_by.append(Report(user_id=user_id, reason=reason, created_at=_now(now)))
	target.is_reported = True


def clear_reports(target: Likeable) -> None:
	target.is_reported = False
	target.reported_by = []


def soft_delete(comment: Comment) -> None:
	# Replies stay attached and visible.
	comment.is_deleted = True


def moderate_comment(comment: Comment, action: str) -> None:
	if action == "approve":
		clear_reports(comment)
	elif action == "delete":
		soft_delete(comment)
	else:
		raise ValidationError("invalid_action", "Invalid moderation action")
