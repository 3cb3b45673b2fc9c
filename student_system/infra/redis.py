"""Shared Redis handle.

Modules import ``redis_client`` once; tests swap the connection underneath it
with ``set_redis_client`` (fakeredis) and every importer sees the swap.
"""

from __future__ import annotations

import redis.asyncio as redis

from student_system.settings import settings


class RedisHandle:
	def __init__(self, client: redis.Redis) -> None:
		self._client = client

	@property
	def client(self) -> redis.Redis:
		return self._client

	def swap(self, client: redis.Redis) -> None:
		self._client = client

	def __getattr__(self, name: str):
		return getattr(self._client, name)


redis_client = RedisHandle(redis.from_url(settings.redis_url, decode_responses=True))


def set_redis_client(client: redis.Redis | RedisHandle) -> None:
	if isinstance(client, RedisHandle):
		client = client.client
	redis_client.swap(client)
