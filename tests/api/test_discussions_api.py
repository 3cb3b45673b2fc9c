"""Route-level tests for the discussions, comments, and moderation endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest

from student_system.api.pagination import Pagination
from student_system.discussions.api import admin as admin_api
from student_system.discussions.api import comments as comments_api
from student_system.discussions.api import discussions as discussions_api
from student_system.discussions.schemas import dto
from student_system.domain.exceptions import AlreadyReportedError, DiscussionLockedError, NotFoundError


@pytest.fixture()
def user_headers() -> dict[str, str]:
	return {"X-User-Id": str(uuid4()), "X-User-Role": "student", "X-User-Verified": "true"}


@pytest.fixture()
def admin_headers() -> dict[str, str]:
	return {"X-User-Id": str(uuid4()), "X-User-Role": "admin", "X-User-Verified": "true"}


def _comment(content: str = "Hello", *, parent: UUID | None = None) -> dto.CommentResponse:
	now = datetime.now(timezone.utc)
	return dto.CommentResponse(
		id=uuid4(),
		content=content,
		author_id=uuid4(),
		parent_comment=parent,
		created_at=now,
		updated_at=now,
		like_count=0,
		is_liked_by_user=False,
		is_reported=False,
		is_deleted=False,
	)


def _discussion() -> dto.DiscussionResponse:
	now = datetime.now(timezone.utc)
	return dto.DiscussionResponse(
		id=uuid4(),
		title="Library hours",
		content="Is the library open on Sunday?",
		author_id=uuid4(),
		category="general",
		tags=["library"],
		view_count=0,
		like_count=0,
		comment_count=0,
		is_liked_by_user=False,
		is_reported=False,
		is_pinned=False,
		is_locked=False,
		created_at=now,
		updated_at=now,
	)


@pytest.mark.asyncio
async def test_list_discussions_is_public(api_client, monkeypatch):
	listing = dto.DiscussionListResponse(
		discussions=[_discussion()],
		pagination=Pagination.build(page=1, limit=5, total=1),
	)

	class StubService:
		async def list_discussions(self, viewer, **kwargs):
			assert viewer is None
			assert kwargs["category"] == "general"
			assert kwargs["sort"] == "popular"
			assert kwargs["limit"] == 5
			return listing

	monkeypatch.setattr(discussions_api, "_service", StubService())

	resp = await api_client.get("/api/discussions", params={"category": "general", "sort": "popular", "limit": 5})

	assert resp.status_code == 200
	body = resp.json()
	assert body["discussions"][0]["title"] == "Library hours"
	assert body["pagination"]["total_items"] == 1


@pytest.mark.asyncio
async def test_create_discussion_requires_auth(api_client):
	resp = await api_client.post("/api/discussions", json={"title": "Hi", "content": "There"})
	assert resp.status_code == 401
	assert resp.json()["detail"] == "access_token_required"


@pytest.mark.asyncio
async def test_create_discussion(api_client, monkeypatch, user_headers):
	created = _discussion()

	class StubService:
		async def create_discussion(self, auth_user, payload):
			assert auth_user.id == user_headers["X-User-Id"]
			assert payload.tags == ["library"]
			return created

	monkeypatch.setattr(discussions_api, "_service", StubService())

	resp = await api_client.post(
		"/api/discussions",
		json={"title": "Library hours", "content": "Open Sunday?", "tags": ["library"]},
		headers=user_headers,
	)
	assert resp.status_code == 201
	assert resp.json()["id"] == str(created.id)


@pytest.mark.asyncio
async def test_reply_is_created(api_client, monkeypatch, user_headers):
	discussion_id = uuid4()
	parent_id = uuid4()
	reply = _comment("Agreed", parent=parent_id)

	class StubService:
		async def add_comment(self, auth_user, target_id, payload):
			assert target_id == discussion_id
			assert payload.parent_comment == parent_id
			return dto.CommentCreatedResponse(comment=reply, total_comments=2)

	monkeypatch.setattr(comments_api, "_service", StubService())

	resp = await api_client.post(
		f"/api/discussions/{discussion_id}/comments",
		json={"content": "Agreed", "parent_comment": str(parent_id)},
		headers=user_headers,
	)
	assert resp.status_code == 201
	body = resp.json()
	assert body["total_comments"] == 2
	assert body["comment"]["parent_comment"] == str(parent_id)


@pytest.mark.asyncio
async def test_blank_parent_is_a_top_level_comment(api_client, monkeypatch, user_headers):
	discussion_id = uuid4()

	class StubService:
		async def add_comment(self, auth_user, target_id, payload):
			assert payload.parent_comment is None
			return dto.CommentCreatedResponse(comment=_comment("First!"), total_comments=1)

	monkeypatch.setattr(comments_api, "_service", StubService())

	resp = await api_client.post(
		f"/api/discussions/{discussion_id}/comments",
		json={"content": "First!", "parent_comment": ""},
		headers=user_headers,
	)
	assert resp.status_code == 201
	assert resp.json()["comment"]["parent_comment"] is None


@pytest.mark.asyncio
async def test_locked_discussion_maps_to_403(api_client, monkeypatch, user_headers):
	class StubService:
		async def add_comment(self, auth_user, discussion_id, payload):
			raise DiscussionLockedError()

	monkeypatch.setattr(comments_api, "_service", StubService())

	resp = await api_client.post(
		f"/api/discussions/{uuid4()}/comments", json={"content": "Hello"}, headers=user_headers
	)
	assert resp.status_code == 403
	assert resp.json()["detail"] == "discussion_locked"


@pytest.mark.asyncio
async def test_repeat_report_maps_to_409(api_client, monkeypatch, user_headers):
	class StubService:
		async def report_comment(self, auth_user, discussion_id, comment_id, reason):
			assert reason == "spam"
			raise AlreadyReportedError()

	monkeypatch.setattr(comments_api, "_service", StubService())

	resp = await api_client.post(
		f"/api/discussions/{uuid4()}/comments/{uuid4()}/report", json={"reason": "spam"}, headers=user_headers
	)
	assert resp.status_code == 409
	assert resp.json()["detail"] == "already_reported"


@pytest.mark.asyncio
async def test_missing_comment_maps_to_404(api_client, monkeypatch, user_headers):
	class StubService:
		async def toggle_comment_like(self, auth_user, discussion_id, comment_id):
			raise NotFoundError("comment_not_found", "Comment not found")

	monkeypatch.setattr(comments_api, "_service", StubService())

	resp = await api_client.post(f"/api/discussions/{uuid4()}/comments/{uuid4()}/like", headers=user_headers)
	assert resp.status_code == 404
	body = resp.json()
	assert body["detail"] == "comment_not_found"
	assert body["message"] == "Comment not found"


@pytest.mark.asyncio
async def test_comment_like_toggle(api_client, monkeypatch, user_headers):
	class StubService:
		async def toggle_comment_like(self, auth_user, discussion_id, comment_id):
			return dto.LikeToggleResponse(like_count=1, is_liked=True)

	monkeypatch.setattr(comments_api, "_service", StubService())

	resp = await api_client.post(f"/api/discussions/{uuid4()}/comments/{uuid4()}/like", headers=user_headers)
	assert resp.status_code == 200
	assert resp.json() == {"like_count": 1, "is_liked": True}


@pytest.mark.asyncio
async def test_moderation_routes_require_admin(api_client, user_headers):
	resp = await api_client.get("/api/admin/discussions/reported", headers=user_headers)
	assert resp.status_code == 403
	assert resp.json()["detail"] == "insufficient_role"

	resp = await api_client.put(
		f"/api/discussions/{uuid4()}/moderate", json={"action": "pin"}, headers=user_headers
	)
	assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_moderates_comment(api_client, monkeypatch, admin_headers):
	discussion_id = uuid4()
	comment_id = uuid4()

	class StubService:
		async def moderate_comment(self, auth_user, target_discussion, target_comment, payload):
			assert auth_user.is_admin
			assert (target_discussion, target_comment) == (discussion_id, comment_id)
			return dto.CommentModeratedResponse(
				message="Comment delete applied successfully",
				comment=dto.CommentModerationSummary(
					id=comment_id, content="Rude", is_reported=True, is_deleted=True
				),
			)

	monkeypatch.setattr(admin_api, "_service", StubService())

	resp = await api_client.put(
		f"/api/admin/discussions/{discussion_id}/comments/{comment_id}/moderate",
		json={"action": "delete"},
		headers=admin_headers,
	)
	assert resp.status_code == 200
	assert resp.json()["comment"]["is_deleted"] is True


@pytest.mark.asyncio
async def test_invalid_moderation_action_is_422(api_client, admin_headers):
	resp = await api_client.put(
		f"/api/admin/discussions/{uuid4()}/moderate", json={"action": "archive"}, headers=admin_headers
	)
	assert resp.status_code == 422
	assert resp.json()["detail"] == "validation_error"
