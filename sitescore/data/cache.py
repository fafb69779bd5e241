"""Redis cache for warehouse reads.

Entries are fresh for `ttl_seconds`. They are kept for `stale_ttl_seconds` so a
failed warehouse query can still be answered with the last good result.
`invalidate()` drops every entry under the cache's prefix.
"""

import hashlib
import json
import logging
import time
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from sitescore.config import settings

logger = logging.getLogger(__name__)


class QueryCache:
    def __init__(
        self,
        prefix: str = "sitescore:warehouse",
        ttl_seconds: int | None = None,
        stale_ttl_seconds: int | None = None,
        client: redis.Redis | None = None,
    ):
        self.prefix = prefix
        self.ttl_seconds = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.stale_ttl_seconds = (
            settings.cache_stale_ttl_seconds if stale_ttl_seconds is None else stale_ttl_seconds
        )
        self._client = client

    def _redis(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(settings.redis_url, decode_responses=True)
        return self._client

    def key(self, name: str, **params: Any) -> str:
        """Deterministic key for a query name and its parameters."""
        if not params:
            return f"{self.prefix}:{name}"
        raw = json.dumps({k: str(v) for k, v in params.items()}, sort_keys=True)
        h = hashlib.sha256(raw.encode()).hexdigest()[:16]
        return f"{self.prefix}:{name}:{h}"

    async def _load(self, key: str) -> dict | None:
        try:
            raw = await self._redis().get(key)
        except RedisError:
            logger.warning("Redis unavailable, skipping cache read for %s", key)
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def get(self, name: str, **params: Any) -> Any | None:
        """Cached value if it is younger than the TTL."""
        key = self.key(name, **params)
        entry = await self._load(key)
        if entry is None:
            return None
        if time.time() - entry["stored_at"] >= self.ttl_seconds:
            logger.debug("Cache expired: %s", key)
            return None
        logger.debug("Cache hit: %s", key)
        return entry["value"]

    async def get_stale(self, name: str, **params: Any) -> Any | None:
        """Cached value regardless of age."""
        entry = await self._load(self.key(name, **params))
        return None if entry is None else entry["value"]

    async def set(self, name: str, value: Any, **params: Any) -> None:
        key = self.key(name, **params)
        payload = json.dumps({"stored_at": time.time(), "value": value}, default=str)
        try:
            await self._redis().setex(key, self.stale_ttl_seconds, payload)
        except RedisError:
            logger.warning("Failed to write cache for %s", key)

    async def invalidate(self) -> int:
        """Delete every entry under this cache's prefix. Returns the count."""
        client = self._redis()
        deleted = 0
        try:
            keys = [key async for key in client.scan_iter(match=f"{self.prefix}:*")]
            if keys:
                deleted = await client.delete(*keys)
        except RedisError:
            logger.warning("Redis unavailable, cache for %s not cleared", self.prefix)
            return 0
        logger.info("Cleared %d cache entries under %s", deleted, self.prefix)
        return deleted
