"""Async repository for user accounts."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

import asyncpg

from student_system.domain.exceptions import DuplicateEmailError
from student_system.domain.identity import models
from student_system.infra.postgres import get_pool

_UPDATABLE_COLUMNS = frozenset(
	{"name", "role", "is_email_verified", "is_google_user", "password_hash", "profile_image_url"}
)


class UsersRepository:
	"""Thin data-access layer around asyncpg for the ``users`` table."""

	async def create_user(
		self,
		*,
		name: str,
		email: str,
		password_hash: str | None,
		role: str,
		is_email_verified: bool = False,
		is_google_user: bool = False,
	) -> models.User:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO users (id, name, email, password_hash, role, is_email_verified, is_google_user)
					VALUES ($1, $2, $3, $4, $5, $6, $7)
					RETURNING *
					""",
					uuid4(),
					name,
					email.lower(),
					password_hash,
					role,
					is_email_verified,
					is_google_user,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise DuplicateEmailError() from exc
		return models.User.model_validate(dict(record))

	async def get_user(self, user_id: UUID) -> models.User | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM users WHERE id=$1", user_id)
		return models.User.model_validate(dict(record)) if record else None

	async def get_user_by_email(self, email: str) -> models.User | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM users WHERE email=$1", email.lower())
		return models.User.model_validate(dict(record)) if record else None

	async def update_user(self, user_id: UUID, **fields: Any) -> models.User | None:
		unknown = set(fields) - _UPDATABLE_COLUMNS
		if unknown:
			raise ValueError(f"unknown columns: {sorted(unknown)}")
		if not fields:
			return await self.get_user(user_id)
		assignments: list[str] = []
		values: list[object] = [user_id]
		for column, value in fields.items():
			values.append(value)
			assignments.append(f"{column}=${len(values)}")
		values.append(datetime.now(timezone.utc))
		assignments.append(f"updated_at=${len(values)}")
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				f"UPDATE users SET {', '.join(assignments)} WHERE id=$1 RETURNING *",
				*values,
			)
		return models.User.model_validate(dict(record)) if record else None

	async def delete_user(self, user_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute("DELETE FROM users WHERE id=$1", user_id)
		return status.endswith(" 1")

	async def list_users(
		self,
		*,
		role: Optional[str] = None,
		search: Optional[str] = None,
		offset: int = 0,
		limit: int = 10,
	) -> tuple[list[models.User], int]:
		clauses: list[str] = []
		values: list[object] = []
		if role:
			values.append(role)
			clauses.append(f"role=${len(values)}")
		if search:
			values.append(f"%{search}%")
			clauses.append(f"(name ILIKE ${len(values)} OR email ILIKE ${len(values)})")
		where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
		pool = await get_pool()
		async with pool.acquire() as conn:
			total = await conn.fetchval(f"SELECT COUNT(*) FROM users {where}", *values)
			rows = await conn.fetch(
				f"SELECT * FROM users {where} ORDER BY created_at DESC OFFSET ${len(values) + 1} LIMIT ${len(values) + 2}",
				*values,
				offset,
				limit,
			)
		return [models.User.model_validate(dict(row)) for row in rows], int(total or 0)

	async def count_users(self) -> dict[str, int]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT role, COUNT(*) AS total,
					COUNT(*) FILTER (WHERE is_email_verified OR is_google_user) AS verified
				FROM users GROUP BY role
				"""
			)
		counts: dict[str, int] = {"total": 0, "verified": 0}
		for row in rows:
			counts[row["role"]] = int(row["total"])
			counts["total"] += int(row["total"])
			counts["verified"] += int(row["verified"])
		return counts
