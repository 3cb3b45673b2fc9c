"""Async repository for discussion documents.

Each discussion, comment tree included, is one JSONB document. Mutations lock
the row, apply a pure function to the parsed document, and write it back in
the same transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar
from uuid import UUID

import asyncpg

from student_system.discussions.domain.models import Discussion
from student_system.domain.exceptions import NotFoundError
from student_system.infra.postgres import get_pool

T = TypeVar("T")

_SORT_CLAUSES = {
	"recent": "is_pinned DESC, created_at DESC",
	"popular": "is_pinned DESC, (doc->>'view_count')::int DESC, created_at DESC",
	"most_liked": "is_pinned DESC, jsonb_array_length(doc->'likes') DESC, created_at DESC",
	"most_commented": "is_pinned DESC, jsonb_array_length(doc->'comments') DESC, created_at DESC",
}


@dataclass(slots=True)
class DiscussionQuery:
	category: Optional[str] = None
	search: Optional[str] = None
	author_id: Optional[UUID] = None
	tags: list[str] = field(default_factory=list)
	sort: str = "recent"
	reported_only: bool = False


def _to_model(record: asyncpg.Record | None) -> Discussion | None:
	if record is None:
		return None
	return Discussion.model_validate(record["doc"])


def _columns(discussion: Discussion) -> tuple:
	return (
		discussion.id,
		discussion.author_id,
		discussion.category,
		discussion.is_deleted,
		discussion.is_reported,
		discussion.is_pinned,
		discussion.created_at,
		discussion.model_dump(mode="json"),
	)


def _where(query: DiscussionQuery) -> tuple[str, list[object]]:
	clauses = ["is_deleted = FALSE"]
	values: list[object] = []
	if query.category:
		values.append(query.category)
		clauses.append(f"category = ${len(values)}")
	if query.author_id:
		values.append(query.author_id)
		clauses.append(f"author_id = ${len(values)}")
	if query.tags:
		values.append(list(query.tags))
		clauses.append(f"(doc->'tags') ?| ${len(values)}::text[]")
	if query.search:
		values.append(f"%{query.search}%")
		idx = len(values)
		clauses.append(
			f"(doc->>'title' ILIKE ${idx} OR doc->>'content' ILIKE ${idx} "
			f"OR EXISTS (SELECT 1 FROM jsonb_array_elements_text(doc->'tags') tag WHERE tag ILIKE ${idx}))"
		)
	if query.reported_only:
		clauses.append("is_reported = TRUE")
	return " AND ".join(clauses), values


class DiscussionsRepository:
	"""Data access for the ``discussions`` table."""

	async def insert(self, discussion: Discussion) -> Discussion:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO discussions (id, author_id, category, is_deleted, is_reported, is_pinned, created_at, doc)
				VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
				""",
				*_columns(discussion),
			)
		return discussion

	async def get(self, discussion_id: UUID) -> Discussion | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT doc FROM discussions WHERE id=$1", discussion_id)
		return _to_model(record)

	async def mutate(
		self,
		discussion_id: UUID,
		fn: Callable[[Discussion], T],
	) -> tuple[Discussion, T]:
		"""Apply ``fn`` to the locked document and persist the result.

		When ``fn`` raises, the transaction rolls back and nothing is written.
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				record = await conn.fetchrow("SELECT doc FROM discussions WHERE id=$1 FOR UPDATE", discussion_id)
				discussion = _to_model(record)
				if discussion is None:
					raise NotFoundError("discussion_not_found", "Discussion not found")
				result = fn(discussion)
				await conn.execute(
					"""
					UPDATE discussions
					SET author_id=$2, category=$3, is_deleted=$4, is_reported=$5, is_pinned=$6, created_at=$7, doc=$8
					WHERE id=$1
					""",
					*_columns(discussion),
				)
		return discussion, result

	async def list(self, query: DiscussionQuery, *, offset: int, limit: int) -> tuple[list[Discussion], int]:
		where, values = _where(query)
		order = _SORT_CLAUSES.get(query.sort, _SORT_CLAUSES["recent"])
		if query.reported_only:
			order = (
				"(SELECT MAX((report->>'created_at')::timestamptz) "
				"FROM jsonb_array_elements(doc->'reported_by') report) DESC NULLS LAST, created_at DESC"
			)
		pool = await get_pool()
		async with pool.acquire() as conn:
			total = await conn.fetchval(f"SELECT COUNT(*) FROM discussions WHERE {where}", *values)
			rows = await conn.fetch(
				f"SELECT doc FROM discussions WHERE {where} ORDER BY {order} "
				f"OFFSET ${len(values) + 1} LIMIT ${len(values) + 2}",
				*values,
				offset,
				limit,
			)
		return [Discussion.model_validate(row["doc"]) for row in rows], int(total or 0)

	async def list_active(self) -> list[Discussion]:
		"""Every non-deleted discussion, newest first. Used by admin reporting."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch("SELECT doc FROM discussions WHERE is_deleted = FALSE ORDER BY created_at DESC")
		return [Discussion.model_validate(row["doc"]) for row in rows]
