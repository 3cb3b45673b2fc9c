"""AsyncPG pool management and schema bootstrap."""

from __future__ import annotations

import json
from typing import Optional

import asyncpg

from student_system.settings import settings

_pool: Optional[asyncpg.pool.Pool] = None

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
	id UUID PRIMARY KEY,
	name TEXT NOT NULL,
	email TEXT NOT NULL UNIQUE,
	password_hash TEXT,
	role TEXT NOT NULL DEFAULT 'student',
	is_email_verified BOOLEAN NOT NULL DEFAULT FALSE,
	is_google_user BOOLEAN NOT NULL DEFAULT FALSE,
	profile_image_url TEXT,
	created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
	updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS discussions (
	id UUID PRIMARY KEY,
	author_id UUID NOT NULL,
	category TEXT NOT NULL,
	is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
	is_reported BOOLEAN NOT NULL DEFAULT FALSE,
	is_pinned BOOLEAN NOT NULL DEFAULT FALSE,
	created_at TIMESTAMPTZ NOT NULL,
	doc JSONB NOT NULL
);
CREATE INDEX IF NOT EXISTS discussions_listing_idx ON discussions (is_deleted, is_pinned DESC, created_at DESC);
CREATE INDEX IF NOT EXISTS discussions_category_idx ON discussions (category);
CREATE INDEX IF NOT EXISTS discussions_author_idx ON discussions (author_id);

CREATE TABLE IF NOT EXISTS events (
	id UUID PRIMARY KEY,
	created_by UUID NOT NULL,
	status TEXT NOT NULL,
	category TEXT NOT NULL,
	event_type TEXT NOT NULL,
	start_at TIMESTAMPTZ NOT NULL,
	end_at TIMESTAMPTZ NOT NULL,
	view_count INTEGER NOT NULL DEFAULT 0,
	created_at TIMESTAMPTZ NOT NULL,
	doc JSONB NOT NULL
);
CREATE INDEX IF NOT EXISTS events_status_start_idx ON events (status, start_at);
CREATE INDEX IF NOT EXISTS events_created_by_idx ON events (created_by);
"""


async def _init_connection(conn: asyncpg.Connection) -> None:
	await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			init=_init_connection,
		)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None
	return _pool


async def ensure_schema() -> None:
	pool = await get_pool()
	async with pool.acquire() as conn:
		await conn.execute(SCHEMA_SQL)


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None
