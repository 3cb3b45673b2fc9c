from __future__ import annotations

from uuid import UUID, uuid4

import pytest

from student_system.discussions.domain.models import Discussion
from student_system.discussions.domain.services import DiscussionsService
from student_system.discussions.schemas import dto
from student_system.domain.exceptions import (
	AlreadyReportedError,
	DiscussionLockedError,
	ForbiddenError,
	NotFoundError,
	RateLimitedError,
	ValidationError,
)
from student_system.infra.auth import AuthenticatedUser
from student_system.settings import settings


class _FakeDiscussionsRepo:
	"""In-memory repository; ``mutate`` commits only when ``fn`` returns."""

	def __init__(self) -> None:
		self.items: dict[UUID, Discussion] = {}

	async def insert(self, discussion: Discussion) -> Discussion:
		self.items[discussion.id] = discussion.model_copy(deep=True)
		return discussion

	async def get(self, discussion_id: UUID) -> Discussion | None:
		found = self.items.get(discussion_id)
		return found.model_copy(deep=True) if found else None

	async def mutate(self, discussion_id: UUID, fn):
		if discussion_id not in self.items:
			raise NotFoundError("discussion_not_found", "Discussion not found")
		working = self.items[discussion_id].model_copy(deep=True)
		result = fn(working)
		self.items[discussion_id] = working
		return working, result

	async def list(self, query, *, offset: int, limit: int):
		rows = [d for d in self.items.values() if not d.is_deleted]
		if query.category:
			rows = [d for d in rows if d.category == query.category]
		if query.author_id:
			rows = [d for d in rows if d.author_id == query.author_id]
		if query.reported_only:
			rows = [d for d in rows if d.is_reported]
		rows.sort(key=lambda d: (d.is_pinned, d.created_at), reverse=True)
		return rows[offset : offset + limit], len(rows)

	async def list_active(self):
		return [d for d in self.items.values() if not d.is_deleted]


def _user(role: str = "student") -> AuthenticatedUser:
	return AuthenticatedUser(id=str(uuid4()), role=role, is_email_verified=True)


@pytest.fixture()
def repo() -> _FakeDiscussionsRepo:
	return _FakeDiscussionsRepo()


@pytest.fixture()
def service(repo) -> DiscussionsService:
	return DiscussionsService(repository=repo)


async def _create(service: DiscussionsService, author: AuthenticatedUser, **overrides) -> dto.DiscussionResponse:
	fields = dict(title="Study group?", content="Anyone up for calculus revision?", category="academic")
	fields.update(overrides)
	return await service.create_discussion(author, dto.DiscussionCreateRequest(**fields))


@pytest.mark.asyncio
async def test_create_discussion_cleans_tags(service):
	created = await _create(service, _user(), tags=[" math ", "", "math", "exams"])
	assert created.tags == ["math", "exams"]
	assert created.comment_count == 0


@pytest.mark.asyncio
async def test_create_discussion_requires_title(service):
	with pytest.raises(ValidationError):
		await _create(service, _user(), title="   ")


@pytest.mark.asyncio
async def test_get_discussion_counts_views(service):
	created = await _create(service, _user())
	await service.get_discussion(None, created.id)
	detail = await service.get_discussion(_user(), created.id)
	assert detail.view_count == 2


@pytest.mark.asyncio
async def test_reply_threading_and_detail_annotations(service):
	author = _user()
	created = await _create(service, author)
	top = await service.add_comment(author, created.id, dto.CommentCreateRequest(content="First"))
	reply = await service.add_comment(
		_user(), created.id, dto.CommentCreateRequest(content="Reply", parent_comment=top.comment.id)
	)
	await service.toggle_comment_like(author, created.id, reply.comment.id)

	detail = await service.get_discussion(author, created.id)

	assert reply.total_comments == 2
	assert len(detail.comments) == 1
	nested = detail.comments[0].replies[0]
	assert nested.id == reply.comment.id
	assert nested.is_liked_by_user is True
	assert nested.like_count == 1


@pytest.mark.asyncio
async def test_reply_to_unknown_parent_lands_top_level(service):
	author = _user()
	created = await _create(service, author)
	await service.add_comment(author, created.id, dto.CommentCreateRequest(content="First"))
	orphan = await service.add_comment(
		author, created.id, dto.CommentCreateRequest(content="Orphan", parent_comment=uuid4())
	)

	detail = await service.get_discussion(author, created.id)
	assert len(detail.comments) == 2
	assert detail.comments[-1].id == orphan.comment.id


@pytest.mark.asyncio
async def test_locked_discussion_blocks_comments(service):
	author = _user()
	admin = _user("admin")
	created = await _create(service, author)

	await service.moderate_discussion(admin, created.id, dto.DiscussionModerateRequest(action="lock"))
	with pytest.raises(DiscussionLockedError):
		await service.add_comment(author, created.id, dto.CommentCreateRequest(content="Hello"))

	await service.moderate_discussion(admin, created.id, dto.DiscussionModerateRequest(action="unlock"))
	added = await service.add_comment(author, created.id, dto.CommentCreateRequest(content="Hello"))
	assert added.total_comments == 1


@pytest.mark.asyncio
async def test_only_author_edits_comment(service):
	author = _user()
	created = await _create(service, author)
	added = await service.add_comment(author, created.id, dto.CommentCreateRequest(content="Draft"))

	with pytest.raises(ForbiddenError):
		await service.update_comment(
			_user("admin"), created.id, added.comment.id, dto.CommentUpdateRequest(content="Hijack")
		)

	edited = await service.update_comment(author, created.id, added.comment.id, dto.CommentUpdateRequest(content="Final"))
	assert edited.comment.content == "Final"


@pytest.mark.asyncio
async def test_admin_deletes_comment_and_it_stays_in_tree(service, repo):
	author = _user()
	created = await _create(service, author)
	parent = await service.add_comment(author, created.id, dto.CommentCreateRequest(content="Parent"))
	await service.add_comment(author, created.id, dto.CommentCreateRequest(content="Child", parent_comment=parent.comment.id))

	with pytest.raises(ForbiddenError):
		await service.delete_comment(_user(), created.id, parent.comment.id)
	await service.delete_comment(_user("admin"), created.id, parent.comment.id)

	detail = await service.get_discussion(author, created.id)
	assert detail.comment_count == 1
	assert detail.comments[0].is_deleted is True
	assert len(detail.comments[0].replies) == 1
	with pytest.raises(NotFoundError):
		await service.toggle_comment_like(author, created.id, parent.comment.id)


@pytest.mark.asyncio
async def test_double_report_conflicts_and_is_not_persisted(service, repo):
	author = _user()
	reporter = _user()
	created = await _create(service, author)

	await service.report_discussion(reporter, created.id, "Off topic")
	with pytest.raises(AlreadyReportedError):
		await service.report_discussion(reporter, created.id, "Still off topic")

	assert len(repo.items[created.id].reported_by) == 1


@pytest.mark.asyncio
async def test_reported_comments_listing_and_approval(service):
	author = _user()
	admin = _user("admin")
	created = await _create(service, author)
	parent = await service.add_comment(author, created.id, dto.CommentCreateRequest(content="Fine"))
	nested = await service.add_comment(
		author, created.id, dto.CommentCreateRequest(content="Rude", parent_comment=parent.comment.id)
	)
	await service.report_comment(_user(), created.id, nested.comment.id, "Insulting")

	reported = await service.list_reported_comments()
	assert [item.id for item in reported.comments] == [nested.comment.id]
	assert reported.comments[0].discussion.id == created.id

	moderated = await service.moderate_comment(
		admin, created.id, nested.comment.id, dto.CommentModerateRequest(action="approve")
	)
	assert moderated.comment.is_reported is False
	assert (await service.list_reported_comments()).comments == []


@pytest.mark.asyncio
async def test_moderation_requires_admin(service):
	created = await _create(service, _user())
	with pytest.raises(ForbiddenError):
		await service.moderate_discussion(_user(), created.id, dto.DiscussionModerateRequest(action="pin"))


@pytest.mark.asyncio
async def test_deleted_discussion_is_hidden(service):
	author = _user()
	created = await _create(service, author)
	await service.delete_discussion(author, created.id)

	with pytest.raises(NotFoundError):
		await service.get_discussion(author, created.id)
	listing = await service.list_discussions(None)
	assert listing.discussions == []


@pytest.mark.asyncio
async def test_list_rejects_unknown_sort(service):
	with pytest.raises(ValidationError):
		await service.list_discussions(None, sort="oldest")


@pytest.mark.asyncio
async def test_comment_rate_limit(service, monkeypatch):
	monkeypatch.setattr(settings, "comment_rate_limit_per_minute", 2)
	author = _user()
	created = await _create(service, author)

	await service.add_comment(author, created.id, dto.CommentCreateRequest(content="one"))
	await service.add_comment(author, created.id, dto.CommentCreateRequest(content="two"))
	with pytest.raises(RateLimitedError):
		await service.add_comment(author, created.id, dto.CommentCreateRequest(content="three"))


@pytest.mark.asyncio
async def test_stats_cover_nested_comments(service):
	author = _user()
	admin = _user("admin")
	first = await _create(service, author)
	await _create(service, author, category="general")
	top = await service.add_comment(author, first.id, dto.CommentCreateRequest(content="a"))
	nested = await service.add_comment(author, first.id, dto.CommentCreateRequest(content="b", parent_comment=top.comment.id))
	await service.report_comment(_user(), first.id, nested.comment.id, "spam")
	await service.moderate_discussion(admin, first.id, dto.DiscussionModerateRequest(action="pin"))

	admin_stats = await service.discussion_stats()
	assert admin_stats.total_discussions == 2
	assert admin_stats.pinned_discussions == 1
	assert admin_stats.reported_comments_count == 1
	assert admin_stats.recent_activity.comments == 2

	overview = await service.overview_stats()
	assert overview.total_comments == 2

	activity = await service.user_activity(UUID(author.id))
	assert activity.total_discussions == 2
	assert activity.total_comments == 2
