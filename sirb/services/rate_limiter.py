"""
sirb/services/rate_limiter.py
Abuse throttling.

Two independent limiters live here:

1. Store-backed sliding window (`check_rate_limit`): counts the rows a user
   created in the trailing window. The check and the caller's insert are not
   atomic, so a burst of concurrent requests can overrun the limit slightly.

2. Pluggable attempt limiter (`RateLimiterBackend`) for upload slot issuance:
   in-process timestamp lists for single-instance deployments, or a Redis
   sorted-set window shared by every worker when REDIS_URL is set.
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, Optional

from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import redis.asyncio as redis

from sirb.config import settings
from sirb.errors import RateLimitError
from sirb.orm.base import utcnow
from sirb.orm.comment import Comment, QuizComment
from sirb.orm.report import Report
from sirb import messages

logger = logging.getLogger(__name__)

# Per-IP request throttling for routes decorated with @ip_limiter.limit(...)
ip_limiter = Limiter(key_func=get_remote_address)


# =============================================================================
# Store-backed limiter
# =============================================================================

RATE_LIMITED_MESSAGES = {
    "comment": messages.COMMENT_RATE_LIMITED,
    "report": messages.REPORT_RATE_LIMITED,
}


async def _count_recent(db: AsyncSession, action: str, user_id: int, since) -> int:
    if action == "comment":
        total = 0
        for model in (Comment, QuizComment):
            result = await db.execute(
                select(func.count(model.id)).where(
                    model.user_id == user_id,
                    model.created_at >= since
                )
            )
            total += result.scalar() or 0
        return total

    if action == "report":
        result = await db.execute(
            select(func.count(Report.id)).where(
                Report.reporter_user_id == user_id,
                Report.created_at >= since
            )
        )
        return result.scalar() or 0

    raise ValueError(f"Unknown rate-limited action: {action}")


async def check_rate_limit(
    db: AsyncSession,
    user_id: int,
    action: str,
    limit: int = 5
) -> None:
    """
    Raise RateLimitError when the user created `limit` or more rows of the
    action's type within the trailing window.
    """
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    since = utcnow() - timedelta(seconds=window)
    count = await _count_recent(db, action, user_id, since)

    if count >= limit:
        logger.warning(f"Rate limit hit: user={user_id} action={action} count={count} limit={limit}")
        raise RateLimitError(RATE_LIMITED_MESSAGES.get(action, messages.RATE_LIMITED), retry_after=window)


# =============================================================================
# Pluggable attempt limiter
# =============================================================================

@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_seconds: int


class RateLimiterBackend:
    """Record an attempt under `key` and report whether it fits the window."""

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        raise NotImplementedError


class InMemoryRateLimiter(RateLimiterBackend):
    """
    Process-local limiter. State resets on restart and is not shared
    between workers.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._hits: Dict[str, List[float]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            cutoff = now - window_seconds
            timestamps = [t for t in self._hits.get(key, []) if t > cutoff]

            if len(timestamps) >= limit:
                self._hits[key] = timestamps
                reset = int(timestamps[0] + window_seconds - now) + 1
                return RateLimitResult(allowed=False, remaining=0, reset_seconds=max(0, reset))

            timestamps.append(now)
            self._hits[key] = timestamps
            return RateLimitResult(
                allowed=True,
                remaining=limit - len(timestamps),
                reset_seconds=window_seconds
            )

    def reset(self) -> None:
        self._hits.clear()


class RedisRateLimiter(RateLimiterBackend):
    """
    Sliding window over a Redis sorted set, consistent across workers.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0"):
        self.redis_url = redis_url
        self._redis: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Establish Redis connection."""
        self._redis = redis.from_url(self.redis_url, decode_responses=True)

    def _make_key(self, key: str) -> str:
        return f"ratelimit:{key}"

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        if not self._redis:
            await self.connect()

        redis_key = self._make_key(key)
        now = time.time()

        # Drop entries outside the window, then count what is left
        await self._redis.zremrangebyscore(redis_key, 0, now - window_seconds)
        current_count = await self._redis.zcard(redis_key)

        if current_count >= limit:
            ttl = await self._redis.ttl(redis_key)
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_seconds=max(0, ttl if ttl > 0 else window_seconds)
            )

        await self._redis.zadd(redis_key, {f"{now}:{uuid.uuid4().hex}": now})
        await self._redis.expire(redis_key, window_seconds)

        return RateLimitResult(
            allowed=True,
            remaining=max(0, limit - current_count - 1),
            reset_seconds=window_seconds
        )

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


_upload_limiter: Optional[RateLimiterBackend] = None


def get_upload_rate_limiter() -> RateLimiterBackend:
    """FastAPI dependency: the shared upload limiter for this process."""
    global _upload_limiter
    if _upload_limiter is None:
        if settings.REDIS_URL:
            logger.info("Upload rate limiting backed by Redis")
            _upload_limiter = RedisRateLimiter(settings.REDIS_URL)
        else:
            _upload_limiter = InMemoryRateLimiter()
    return _upload_limiter
