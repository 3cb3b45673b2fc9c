"""End-to-end route tests for events against an in-memory repository."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from student_system.domain.exceptions import NotFoundError, UpstreamFailure
from student_system.events.api import events as events_api
from student_system.events.api import feedback as feedback_api
from student_system.events.domain.models import Event
from student_system.events.domain.services import EventsService
from student_system.infra.images import NullImageStore


class _MemoryEventsRepo:
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
		return working, result

	async def delete(self, event_id: UUID) -> bool:
		return self.events.pop(event_id, None) is not None

	async def list(self, query, *, offset: int, limit: int):
		rows = [
			event
			for event in self.events.values()
			if (query.status is None or event.status_name == query.status)
			and (query.created_by is None or event.created_by == query.created_by)
			and (query.starts_after is None or event.start_date_time >= query.starts_after)
		]
		rows.sort(key=lambda event: event.start_date_time)
		return rows[offset : offset + limit], len(rows)

	async def list_all(self, *, created_by=None):
		return [e for e in self.events.values() if created_by is None or e.created_by == created_by]


def _headers(role: str, *, verified: bool = True, user_id: str | None = None) -> dict[str, str]:
	return {
		"X-User-Id": user_id or str(uuid4()),
		"X-User-Role": role,
		"X-User-Verified": "true" if verified else "false",
	}


def _event_body(**overrides) -> dict:
	start = datetime.now(timezone.utc) + timedelta(days=7)
	body = {
		"title": "Spring Concert",
		"description": "Live music on the lawn",
		"organizer": "Music Club",
		"location": "Main Lawn",
		"start_date_time": start.isoformat(),
		"end_date_time": (start + timedelta(hours=3)).isoformat(),
		"category": "cultural",
		"event_type": "club",
	}
	body.update(overrides)
	return body


@pytest.fixture()
def service(monkeypatch) -> EventsService:
	service = EventsService(repository=_MemoryEventsRepo(), image_store=NullImageStore())
	monkeypatch.setattr(events_api, "_service", service)
	monkeypatch.setattr(feedback_api, "_service", service)
	return service


@pytest.mark.asyncio
async def test_event_approval_flow(api_client, service):
	club = _headers("club")
	admin = _headers("admin")

	resp = await api_client.post("/api/events", json=_event_body(), headers=club)
	assert resp.status_code == 201
	event_id = resp.json()["event"]["id"]
	assert resp.json()["event"]["status"] == "pending"

	public = await api_client.get("/api/events")
	assert public.json()["events"] == []

	resp = await api_client.put(f"/api/events/{event_id}/approve", headers=admin)
	assert resp.status_code == 200
	assert resp.json()["event"]["is_approved"] is True

	resp = await api_client.put(f"/api/events/{event_id}/approve", headers=admin)
	assert resp.status_code == 409
	assert resp.json()["detail"] == "already_approved"

	public = await api_client.get("/api/events")
	assert [item["id"] for item in public.json()["events"]] == [event_id]

	resp = await api_client.put(f"/api/events/{event_id}/reject", headers=admin)
	assert resp.status_code == 200
	rejected = resp.json()["event"]
	assert rejected["is_approved"] is False
	assert rejected["approved_by"] is None
	assert rejected["rejected_by"] == admin["X-User-Id"]
	assert rejected["rejection_reason"] == "No reason provided"


@pytest.mark.asyncio
async def test_past_start_is_rejected(api_client, service):
	start = datetime.now(timezone.utc) - timedelta(days=1)
	body = _event_body(
		start_date_time=start.isoformat(),
		end_date_time=(start + timedelta(hours=2)).isoformat(),
	)
	resp = await api_client.post("/api/events", json=body, headers=_headers("club"))
	assert resp.status_code == 422
	assert resp.json()["detail"] == "start_in_past"


@pytest.mark.asyncio
async def test_students_and_unverified_clubs_cannot_create(api_client, service):
	resp = await api_client.post("/api/events", json=_event_body(), headers=_headers("student"))
	assert resp.status_code == 403
	assert resp.json()["detail"] == "insufficient_role"

	resp = await api_client.post("/api/events", json=_event_body(), headers=_headers("club", verified=False))
	assert resp.status_code == 403
	assert resp.json()["detail"] == "email_verification_required"


@pytest.mark.asyncio
async def test_approved_event_edit_is_admin_only(api_client, service):
	club = _headers("club")
	admin = _headers("admin")
	event_id = (await api_client.post("/api/events", json=_event_body(), headers=club)).json()["event"]["id"]
	await api_client.put(f"/api/events/{event_id}/approve", headers=admin)

	resp = await api_client.put(f"/api/events/{event_id}", json={"title": "x"}, headers=club)
	assert resp.status_code == 403
	assert resp.json()["detail"] == "event_approved"

	resp = await api_client.put(f"/api/events/{event_id}", json={"title": "x"}, headers=admin)
	assert resp.status_code == 200
	assert resp.json()["event"]["title"] == "x"


@pytest.mark.asyncio
async def test_view_tracking_deduplicates(api_client, service):
	event_id = (
		await api_client.post("/api/events", json=_event_body(), headers=_headers("club"))
	).json()["event"]["id"]
	viewer = _headers("student", verified=False)

	first = await api_client.post(f"/api/events/{event_id}/view", json={"platform": "web"}, headers=viewer)
	second = await api_client.post(f"/api/events/{event_id}/view", headers=viewer)

	assert first.json() == {"message": "View tracked successfully", "view_count": 1, "recorded": True}
	assert second.json()["view_count"] == 1
	assert second.json()["recorded"] is False


@pytest.mark.asyncio
async def test_feedback_endpoints(api_client, service):
	club_id = str(uuid4())
	club = _headers("club", user_id=club_id)
	admin = _headers("admin")
	event_id = (await api_client.post("/api/events", json=_event_body(), headers=club)).json()["event"]["id"]

	resp = await api_client.post(f"/api/events/{event_id}/feedback", json={"message": "Add a map"}, headers=club)
	assert resp.status_code == 403

	resp = await api_client.post(f"/api/events/{event_id}/feedback", json={"message": "Add a map"}, headers=admin)
	assert resp.status_code == 200

	listed = await api_client.get(f"/api/events/{event_id}/feedback", headers=club)
	feedback_id = listed.json()["feedback"][0]["id"]

	resp = await api_client.put(f"/api/events/{event_id}/feedback/{feedback_id}/read", headers=club)
	assert resp.status_code == 200
	assert resp.json()["feedback_id"] == feedback_id

	resp = await api_client.put(f"/api/events/{event_id}/feedback/{uuid4()}/read", headers=club)
	assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_and_missing_event(api_client, service):
	club = _headers("club")
	event_id = (await api_client.post("/api/events", json=_event_body(), headers=club)).json()["event"]["id"]

	resp = await api_client.delete(f"/api/events/{event_id}", headers=_headers("club"))
	assert resp.status_code == 403

	resp = await api_client.delete(f"/api/events/{event_id}", headers=club)
	assert resp.status_code == 200

	resp = await api_client.get(f"/api/events/{event_id}")
	assert resp.status_code == 404
	assert resp.json()["detail"] == "event_not_found"


@pytest.mark.asyncio
async def test_admin_listing_and_club_stats(api_client, service):
	club = _headers("club")
	await api_client.post("/api/events", json=_event_body(), headers=club)

	resp = await api_client.get("/api/events/admin/all", headers=_headers("admin"))
	assert resp.status_code == 200
	assert resp.json()["statistics"]["pending_events"] == 1

	resp = await api_client.get("/api/events/stats/my", headers=club)
	assert resp.status_code == 200
	assert resp.json()["overview"]["total_events"] == 1

	resp = await api_client.get("/api/events/stats/my", headers=_headers("admin"))
	assert resp.status_code == 403


class _UnavailableImageStore:
	async def release(self, image_url: str) -> None:
		raise UpstreamFailure("image_store", "release", "timeout")


@pytest.mark.asyncio
async def test_delete_reports_image_release_warning(api_client, monkeypatch):
	service = EventsService(repository=_MemoryEventsRepo(), image_store=_UnavailableImageStore())
	monkeypatch.setattr(events_api, "_service", service)
	club = _headers("club")
	body = _event_body(image_url="https://res.cloudinary.com/demo/image/upload/v1700000000/events/concert.jpg")
	event_id = (await api_client.post("/api/events", json=body, headers=club)).json()["event"]["id"]

	resp = await api_client.delete(f"/api/events/{event_id}", headers=club)
	assert resp.status_code == 200
	assert resp.json() == {"message": "Event deleted successfully", "warnings": ["image_release_failed"]}

	resp = await api_client.get(f"/api/events/{event_id}")
	assert resp.status_code == 404
