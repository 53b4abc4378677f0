"""
Redis-backed store for serialized review aggregates.
"""

from __future__ import annotations

import hashlib
import json
from typing import Iterable, Mapping, Optional, Tuple, Union

import redis.asyncio as redis

from shared.logging import get_logger


CACHE_KEY_PREFIX = "reviews:aggregate:"
DEFAULT_AGGREGATE_TTL = 7 * 24 * 60 * 60

QueryItems = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def make_cache_key(params: QueryItems) -> str:
    """
    Derive the cache key for a request from its query parameters.

    Parameters are ordered by name before serialization so that the same
    request with a reordered query string maps to the same key. Repeated
    names keep their relative order.
    """
    items = list(params.items()) if isinstance(params, Mapping) else list(params)
    ordered = sorted(items, key=lambda item: item[0])
    canonical = json.dumps(ordered, separators=(",", ":"), ensure_ascii=False)
    return CACHE_KEY_PREFIX + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ReviewCache:
    """Best-effort get/put store; every Redis failure is logged and swallowed."""

    def __init__(self, redis_url: str, *, ttl_seconds: int = DEFAULT_AGGREGATE_TTL) -> None:
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("reviews.cache")
        self._redis = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
        )

    async def close(self) -> None:
        """Close Redis connections."""
        try:
            await self._redis.aclose()
        except Exception as exc:  # pragma: no cover - close is best effort
            self.logger.debug("Redis close failed", error=str(exc))

    async def get(self, key: str) -> Optional[str]:
        """Return the serialized aggregate stored under ``key``, if any."""
        try:
            value = await self._redis.get(key)
        except Exception as exc:
            self.logger.error("Redis read failed", key=key, error=str(exc))
            return None

        if not value:
            return None
        return value

    async def put(self, key: str, value: str) -> bool:
        """Store a serialized aggregate with the configured TTL."""
        try:
            await self._redis.set(key, value, ex=self.ttl_seconds)
        except Exception as exc:
            self.logger.error("Redis write failed", key=key, error=str(exc))
            return False

        self.logger.debug("Cached review aggregate", key=key, ttl=self.ttl_seconds)
        return True

    async def ping(self) -> bool:
        """Return True when Redis responds to a ping."""
        try:
            return bool(await self._redis.ping())
        except Exception as exc:
            self.logger.error("Redis health check failed", error=str(exc))
            return False
