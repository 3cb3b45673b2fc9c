"""Authorization policies for discussion operations."""

from __future__ import annotations

from student_system.discussions.domain.models import Comment, Discussion
from student_system.domain.exceptions import ForbiddenError, NotFoundError
from student_system.domain.identity import policy
from student_system.domain.identity.policy import Principal


def require_visible(discussion: Discussion | None) -> Discussion:
	"""Deleted discussions are invisible to every read and write path."""
	if discussion is None or discussion.is_deleted:
		raise NotFoundError("discussion_not_found", "Discussion not found")
	return discussion


def require_live_comment(comment: Comment | None) -> Comment:
	if comment is None or comment.is_deleted:
		raise NotFoundError("comment_not_found", "Comment not found")
	return comment


def assert_can_edit_discussion(user: Principal, discussion: Discussion) -> None:
	if not policy.is_owner_or_admin(user, discussion.author_id):
		raise ForbiddenError("not_discussion_author", "You can only edit your own discussions")


def assert_can_delete_discussion(user: Principal, discussion: Discussion) -> None:
	if not policy.is_owner_or_admin(user, discussion.author_id):
		raise ForbiddenError("not_discussion_author", "You can only delete your own discussions")


def assert_can_edit_comment(user: Principal, comment: Comment) -> None:
	if str(comment.author_id) != str(user.id):
		raise ForbiddenError("not_comment_author", "You can only edit your own comments")


def assert_can_delete_comment(user: Principal, comment: Comment) -> None:
	if not policy.is_owner_or_admin(user, comment.author_id):
		raise ForbiddenError("not_comment_author", "You can only delete your own comments")


def assert_can_moderate(user: Principal) -> None:
	if not policy.is_admin(user):
		raise ForbiddenError("admin_role_required", "Admin access required")
