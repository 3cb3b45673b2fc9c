"""Async repository for event documents."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, TypeVar
from uuid import UUID

import asyncpg

from student_system.domain.exceptions import NotFoundError
from student_system.events.domain.models import Event
from student_system.infra.postgres import get_pool

T = TypeVar("T")

_ORDERS = {
	"start_asc": "start_at ASC, created_at ASC",
	"created_desc": "created_at DESC",
}


@dataclass(slots=True)
class EventQuery:
	status: Optional[str] = None
	category: Optional[str] = None
	event_type: Optional[str] = None
	search: Optional[str] = None
	created_by: Optional[UUID] = None
	starts_after: Optional[datetime] = None
	ends_before: Optional[datetime] = None
	order: str = "created_desc"


def _to_model(record: asyncpg.Record | None) -> Event | None:
	if record is None:
		return None
	return Event.model_validate(record["doc"])


def _columns(event: Event) -> tuple:
	return (
		event.id,
		event.created_by,
		event.status_name,
		event.category,
		event.event_type,
		event.start_date_time,
		event.end_date_time,
		event.view_count,
		event.created_at,
		event.model_dump(mode="json"),
	)


def _where(query: EventQuery) -> tuple[str, list[object]]:
	clauses: list[str] = []
	values: list[object] = []
	for column, value in (
		("status", query.status),
		("category", query.category),
		("event_type", query.event_type),
		("created_by", query.created_by),
	):
		if value:
			values.append(value)
			clauses.append(f"{column} = ${len(values)}")
	if query.starts_after is not None:
		values.append(query.starts_after)
		clauses.append(f"start_at >= ${len(values)}")
	if query.ends_before is not None:
		values.append(query.ends_before)
		clauses.append(f"end_at <= ${len(values)}")
	if query.search:
		values.append(f"%{query.search}%")
		idx = len(values)
		clauses.append(
			f"(doc->>'title' ILIKE ${idx} OR doc->>'description' ILIKE ${idx} "
			f"OR doc->>'organizer' ILIKE ${idx} OR doc->>'location' ILIKE ${idx})"
		)
	where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
	return where, values


class EventsRepository:
	"""Data access for the ``events`` table."""

	async def insert(self, event: Event) -> Event:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO events (id, created_by, status, category, event_type, start_at, end_at, view_count, created_at, doc)
				VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
				""",
				*_columns(event),
			)
		return event

	async def get(self, event_id: UUID) -> Event | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT doc FROM events WHERE id=$1", event_id)
		return _to_model(record)

	async def mutate(self, event_id: UUID, fn: Callable[[Event], T]) -> tuple[Event, T]:
		"""Apply ``fn`` to the locked document; a raise rolls everything back."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				record = await conn.fetchrow("SELECT doc FROM events WHERE id=$1 FOR UPDATE", event_id)
				event = _to_model(record)
				if event is None:
					raise NotFoundError("event_not_found", "Event not found")
				result = fn(event)
				await conn.execute(
					"""
					UPDATE events
					SET created_by=$2, status=$3, category=$4, event_type=$5, start_at=$6, end_at=$7,
						view_count=$8, created_at=$9, doc=$10
					WHERE id=$1
					""",
					*_columns(event),
				)
		return event, result

	async def delete(self, event_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute("DELETE FROM events WHERE id=$1", event_id)
		return status.endswith(" 1")

	async def list(self, query: EventQuery, *, offset: int, limit: int) -> tuple[list[Event], int]:
		where, values = _where(query)
		order = _ORDERS.get(query.order, _ORDERS["created_desc"])
		pool = await get_pool()
		async with pool.acquire() as conn:
			total = await conn.fetchval(f"SELECT COUNT(*) FROM events {where}", *values)
			rows = await conn.fetch(
				f"SELECT doc FROM events {where} ORDER BY {order} OFFSET ${len(values) + 1} LIMIT ${len(values) + 2}",
				*values,
				offset,
				limit,
			)
		return [Event.model_validate(row["doc"]) for row in rows], int(total or 0)

	async def list_all(self, *, created_by: Optional[UUID] = None) -> list[Event]:
		"""Every event, optionally for one creator. Used for statistics."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			if created_by is None:
				rows = await conn.fetch("SELECT doc FROM events ORDER BY created_at DESC")
			else:
				rows = await conn.fetch(
					"SELECT doc FROM events WHERE created_by=$1 ORDER BY created_at DESC", created_by
				)
		return [Event.model_validate(row["doc"]) for row in rows]
