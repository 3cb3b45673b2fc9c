"""Discussion-level flags and admin moderation actions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from student_system.discussions.domain import comment_tree
from student_system.discussions.domain.models import CATEGORIES, Discussion
from student_system.domain.exceptions import ValidationError

MAX_TITLE_LENGTH = 200
MAX_TAG_LENGTH = 50

_FLAG_ACTIONS = {
	"pin": ("is_pinned", True),
	"unpin": ("is_pinned", False),
	"lock": ("is_locked", True),
	"unlock": ("is_locked", False),
}


def clean_title(title: str) -> str:
	title = (title or "").strip()
	if not title:
		raise ValidationError("title_required", "Title and content are required")
	if len(title) > MAX_TITLE_LENGTH:
		raise ValidationError("title_too_long", f"Title cannot exceed {MAX_TITLE_LENGTH} characters")
	return title


def clean_content(content: str) -> str:
	content = (content or "").strip()
	if not content:
		raise ValidationError("content_required", "Title and content are required")
	return content


def clean_category(category: Optional[str]) -> str:
	category = category or "general"
	if category not in CATEGORIES:
		raise ValidationError("invalid_category", "Invalid discussion category")
	return category


def clean_tags(tags: Iterable[str] | None) -> list[str]:
	cleaned: list[str] = []
	for tag in tags or ():
		tag = tag.strip()
		if not tag:
			continue
		if len(tag) > MAX_TAG_LENGTH:
			raise ValidationError("tag_too_long", f"Tags cannot exceed {MAX_TAG_LENGTH} characters")
		if tag not in cleaned:
			cleaned.append(tag)
	return cleaned


def increment_view_count(discussion: Discussion) -> int:
	discussion.view_count += 1
	return discussion.view_count


def soft_delete(discussion: Discussion, *, now: Optional[datetime] = None) -> None:
	discussion.is_deleted = True
	discussion.updated_at = now or datetime.now(timezone.utc)


def moderate(discussion: Discussion, action: str, *, now: Optional[datetime] = None) -> None:
	"""Apply an admin action. ``approve`` clears reports; the rest flip one flag."""
	if action == "approve":
		comment_tree.clear_reports(discussion)
	elif action == "delete":
		discussion.is_deleted = True
	elif action in _FLAG_ACTIONS:
		attribute, value = _FLAG_ACTIONS[action]
		setattr(discussion, attribute, value)
	else:
		raise ValidationError("invalid_action", "Invalid moderation action")
	discussion.updated_at = now or datetime.now(timezone.utc)
