from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from student_system.domain.exceptions import (
	AlreadyApprovedError,
	ForbiddenError,
	NotFoundError,
	UpstreamFailure,
	ValidationError,
)
from student_system.events.domain.models import Event
from student_system.events.domain.services import EventsService
from student_system.events.schemas import dto
from student_system.infra.auth import AuthenticatedUser


class _FakeEventsRepo:
	"""In-memory stand-in honouring the all-or-nothing ``mutate`` contract."""

	def __init__(self) -> None:
		self.events: dict[UUID, Event] = {}

	async def insert(self, event: Event) -> Event:
		self.events[event.id] = event.model_copy(deep=True)
		return event

	async def get(self, event_id: UUID) -> Event | None:
		event = self.events.get(event_id)
		return event.model_copy(deep=True) if event else None

	async def mutate(self, event_id: UUID, fn):
		if event_id not in self.events:
			raise NotFoundError("event_not_found", "Event not found")
		working = self.events[event_id].model_copy(deep=True)
		result = fn(working)
		self.events[event_id] = working
		return working.model_copy(deep=True), result

	async def delete(self, event_id: UUID) -> bool:
		return self.events.pop(event_id, None) is not None

	async def list(self, query, *, offset: int, limit: int):
		items = [
			event
			for event in self.events.values()
			if (query.status is None or event.status_name == query.status)
			and (query.created_by is None or event.created_by == query.created_by)
		]
		return items[offset : offset + limit], len(items)

	async def list_all(self, *, created_by=None):
		return [event for event in self.events.values() if created_by is None or event.created_by == created_by]


class _RecordingImageStore:
	def __init__(self, *, fail: bool = False) -> None:
		self.fail = fail
		self.released: list[str] = []

	async def release(self, image_url: str) -> None:
		self.released.append(image_url)
		if self.fail:
			raise UpstreamFailure("image_store", "release", "boom")


def _user(role: str = "club", *, verified: bool = True) -> AuthenticatedUser:
	return AuthenticatedUser(id=str(uuid4()), role=role, is_email_verified=verified)


def _payload(**overrides) -> dto.EventCreateRequest:
	start = datetime.now(timezone.utc) + timedelta(days=5)
	fields = dict(
		title="Hackathon",
		description="24 hours of building",
		organizer="CS Society",
		location="Library",
		start_date_time=start,
		end_date_time=start + timedelta(hours=24),
		category="workshop",
		event_type="club",
		image_url="https://res.cloudinary.com/demo/image/upload/v1700000000/events/poster.png",
	)
	fields.update(overrides)
	return dto.EventCreateRequest(**fields)


@pytest.fixture()
def repo() -> _FakeEventsRepo:
	return _FakeEventsRepo()


@pytest.fixture()
def images() -> _RecordingImageStore:
	return _RecordingImageStore()


@pytest.fixture()
def service(repo, images) -> EventsService:
	return EventsService(repository=repo, image_store=images)


@pytest.mark.asyncio
async def test_create_event_starts_pending(service, repo):
	club = _user()
	envelope = await service.create_event(club, _payload())

	assert envelope.event.status == "pending"
	assert envelope.event.is_approved is False
	assert envelope.event.created_by == UUID(club.id)
	assert envelope.event.id in repo.events


@pytest.mark.asyncio
async def test_create_event_rejects_past_start(service, repo):
	start = datetime.now(timezone.utc) - timedelta(hours=2)
	with pytest.raises(ValidationError):
		await service.create_event(_user(), _payload(start_date_time=start, end_date_time=start + timedelta(hours=4)))
	assert repo.events == {}


@pytest.mark.asyncio
async def test_create_event_rejects_late_registration_deadline(service):
	start = datetime.now(timezone.utc) + timedelta(days=5)
	with pytest.raises(ValidationError):
		await service.create_event(
			_user(),
			_payload(registration_required=True, registration_deadline=start + timedelta(hours=1)),
		)


@pytest.mark.asyncio
async def test_create_event_requires_verified_club_or_admin(service):
	with pytest.raises(ForbiddenError):
		await service.create_event(_user("student"), _payload())
	with pytest.raises(ForbiddenError):
		await service.create_event(_user(verified=False), _payload())


@pytest.mark.asyncio
async def test_approve_then_reject(service):
	admin = _user("admin")
	created = await service.create_event(_user(), _payload())

	approved = await service.approve_event(admin, created.event.id)
	assert approved.event.is_approved is True
	with pytest.raises(AlreadyApprovedError):
		await service.approve_event(admin, created.event.id)

	rejected = await service.reject_event(admin, created.event.id, "Clashes with exams")
	assert rejected.event.is_approved is False
	assert rejected.event.approved_by is None
	assert rejected.event.rejected_by == UUID(admin.id)
	assert rejected.event.rejection_reason == "Clashes with exams"


@pytest.mark.asyncio
async def test_only_admin_approves(service):
	created = await service.create_event(_user(), _payload())
	with pytest.raises(ForbiddenError):
		await service.approve_event(_user(), created.event.id)


@pytest.mark.asyncio
async def test_approved_event_is_locked_for_its_creator(service):
	club = _user()
	admin = _user("admin")
	created = await service.create_event(club, _payload())
	await service.approve_event(admin, created.event.id)

	with pytest.raises(ForbiddenError):
		await service.update_event(club, created.event.id, dto.EventUpdateRequest(title="x"))

	updated = await service.update_event(admin, created.event.id, dto.EventUpdateRequest(title="x"))
	assert updated.event.title == "x"
	assert updated.event.is_approved is True


@pytest.mark.asyncio
async def test_creator_cannot_self_approve_through_update(service, repo):
	club = _user()
	created = await service.create_event(club, _payload())

	with pytest.raises(ForbiddenError):
		await service.update_event(club, created.event.id, dto.EventUpdateRequest(is_approved=True))
	assert repo.events[created.event.id].status_name == "pending"


@pytest.mark.asyncio
async def test_failed_update_leaves_event_untouched(service, repo, images):
	club = _user()
	created = await service.create_event(club, _payload())
	past = datetime.now(timezone.utc) - timedelta(days=1)

	with pytest.raises(ValidationError):
		await service.update_event(
			club,
			created.event.id,
			dto.EventUpdateRequest(
				title="Moved",
				start_date_time=past,
				image_url="https://res.cloudinary.com/demo/image/upload/v1/events/other.png",
			),
		)

	stored = repo.events[created.event.id]
	assert stored.title == "Hackathon"
	assert images.released == []


@pytest.mark.asyncio
async def test_replacing_image_releases_old_one(service, images):
	club = _user()
	created = await service.create_event(club, _payload())
	old_url = created.event.image_url
	new_url = "https://res.cloudinary.com/demo/image/upload/v1700000001/events/poster2.png"

	updated = await service.update_event(club, created.event.id, dto.EventUpdateRequest(image_url=new_url))

	assert updated.event.image_url == new_url
	assert images.released == [old_url]
	assert updated.warnings == []


@pytest.mark.asyncio
async def test_image_release_failure_does_not_block_update(repo, caplog):
	images = _RecordingImageStore(fail=True)
	service = EventsService(repository=repo, image_store=images)
	club = _user()
	created = await service.create_event(club, _payload())
	old_url = created.event.image_url
	new_url = "https://res.cloudinary.com/demo/image/upload/v1700000002/events/poster3.png"

	with caplog.at_level("WARNING"):
		updated = await service.update_event(
			club, created.event.id, dto.EventUpdateRequest(title="Hackathon 2", image_url=new_url)
		)

	assert updated.message == "Event updated successfully"
	assert updated.warnings == ["image_release_failed"]
	assert updated.event.image_url == new_url
	stored = repo.events[created.event.id]
	assert stored.title == "Hackathon 2"
	assert stored.image_url == new_url
	assert images.released == [old_url]
	assert any(record.message == "image_release_failed" for record in caplog.records)


@pytest.mark.asyncio
async def test_image_release_failure_does_not_block_delete(repo, caplog):
	images = _RecordingImageStore(fail=True)
	service = EventsService(repository=repo, image_store=images)
	club = _user()
	created = await service.create_event(club, _payload())

	with caplog.at_level("WARNING"):
		response = await service.delete_event(club, created.event.id)

	assert response.message == "Event deleted successfully"
	assert response.warnings == ["image_release_failed"]
	assert repo.events == {}
	assert len(images.released) == 1
	assert any(record.message == "image_release_failed" for record in caplog.records)


@pytest.mark.asyncio
async def test_delete_missing_event(service):
	with pytest.raises(NotFoundError):
		await service.delete_event(_user(), uuid4())


@pytest.mark.asyncio
async def test_views_are_deduplicated(service):
	created = await service.create_event(_user(), _payload())
	viewer = _user("student")

	first = await service.record_view(viewer, created.event.id, "web")
	second = await service.record_view(viewer, created.event.id, "web")
	other = await service.record_view(_user("student"), created.event.id)

	assert (first.view_count, first.recorded) == (1, True)
	assert (second.view_count, second.recorded) == (1, False)
	assert other.view_count == 2


@pytest.mark.asyncio
async def test_feedback_flow(service):
	club = _user()
	admin = _user("admin")
	created = await service.create_event(club, _payload())

	sent = await service.send_feedback(admin, created.event.id, "Please add a contact email")
	assert sent.event.unread_feedback_count == 1

	listed = await service.list_feedback(club, created.event.id)
	feedback_id = listed.feedback[0].id

	with pytest.raises(ForbiddenError):
		await service.mark_feedback_read(admin, created.event.id, feedback_id)

	read = await service.mark_feedback_read(club, created.event.id, feedback_id)
	assert read.feedback_id == feedback_id
	assert (await service.get_event(created.event.id)).event.unread_feedback_count == 0


@pytest.mark.asyncio
async def test_list_admin_includes_statistics(service):
	admin = _user("admin")
	first = await service.create_event(_user(), _payload())
	second = await service.create_event(_user(), _payload(title="Career Fair"))
	await service.create_event(_user(), _payload(title="Open Mic"))
	await service.approve_event(admin, first.event.id)
	await service.reject_event(admin, second.event.id)

	listing = await service.list_admin(admin)

	assert listing.pagination.total_items == 3
	assert listing.statistics.total_events == 3
	assert listing.statistics.pending_events == 1
	assert listing.statistics.approved_events == 1
	assert listing.statistics.rejected_events == 1


@pytest.mark.asyncio
async def test_list_admin_rejects_unknown_status(service):
	with pytest.raises(ValidationError):
		await service.list_admin(_user("admin"), status="archived")
