"""Fixed-window rate limits kept in Redis, keyed by action kind and user."""

from __future__ import annotations

import time
from typing import Optional

from student_system.domain.exceptions import RateLimitedError
from student_system.infra.redis import redis_client
from student_system.obs import metrics as obs_metrics


def _window_key(kind: str, actor_id: str, window: int, now: float) -> str:
	return f"rl:{kind}:{actor_id}:{window}:{int(now // window)}"


async def hit(kind: str, actor_id: str, *, window_seconds: int = 60, now: Optional[float] = None) -> int:
	"""Count one attempt and return the attempts seen in the current window."""
	window = max(1, int(window_seconds))
	key = _window_key(kind, actor_id, window, now or time.time())
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	return int(count)


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> bool:
	if limit <= 0:
		return False
	return await hit(kind, actor_id, window_seconds=window_seconds, now=now) <= limit


async def enforce(kind: str, actor_id: str, *, limit: int, window_seconds: int = 60) -> None:
	"""Raise RateLimitedError once ``actor_id`` exceeds ``limit`` for ``kind``."""
	if not await allow(kind, actor_id, limit=limit, window_seconds=window_seconds):
		obs_metrics.inc_rate_limited(kind)
		raise RateLimitedError(f"{kind}_rate_limited")
