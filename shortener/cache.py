"""Redis read-through cache for short-key resolution.

Only active mappings are cached. The cache never decides whether a query
succeeds: the store's conditional increment does, and a failed increment
evicts the stale entry.

Flow Diagram — cached query()
=============================
::
    ┌─────────────┐
    │ get(short)   │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ store   │  │ use     │
│ lookup  │  │ cached  │
│ + put() │  │ long url│
└────┬────┘  └────┬────┘
     └─────┬──────┘
           ▼
    ┌─────────────┐
    │ increment in │── 0 rows ──▶ invalidate + NOT_FOUND
    │ store        │
    └─────────────┘

Functions:
    connect_cache():  Build a MappingCache from a Redis URL.
"""

import redis.asyncio as redis
from prometheus_client import Counter

from shortener.enums import CacheStatus
from shortener.logging_config import get_logger
from shortener.schemas import CachedMapping, MappingRecord

__all__ = ["DEFAULT_CACHE_TTL_SECONDS", "MappingCache", "connect_cache"]

DEFAULT_CACHE_TTL_SECONDS = 3600  # 1 hour
KEY_PREFIX = "url:"

CACHE_LOOKUPS_TOTAL = Counter(
    "shortener_cache_lookups_total",
    "Short-key cache lookups",
    ["cache_hit"],
)
REDIS_OPERATIONS_TOTAL = Counter(
    "shortener_redis_operations_total",
    "Total Redis operations",
)

logger = get_logger("cache")


class MappingCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS) -> None:
        self._client = client
        self._ttl = ttl_seconds

    @staticmethod
    def _key(short_key: str) -> str:
        return f"{KEY_PREFIX}{short_key}"

    async def get(self, short_key: str) -> CachedMapping | None:
        raw = await self._client.get(self._key(short_key))
        REDIS_OPERATIONS_TOTAL.inc()
        if raw is None:
            CACHE_LOOKUPS_TOTAL.labels(cache_hit=CacheStatus.MISS).inc()
            return None
        try:
            cached = CachedMapping.model_validate_json(raw)
        except ValueError as exc:
            logger.error(f"Cache deserialization error for {short_key}: {exc}")
            await self.invalidate(short_key)
            return None
        CACHE_LOOKUPS_TOTAL.labels(cache_hit=CacheStatus.HIT).inc()
        return cached

    async def put(self, record: MappingRecord) -> None:
        payload = CachedMapping.model_validate(record)
        await self._client.setex(self._key(record.short_url), self._ttl, payload.model_dump_json())
        REDIS_OPERATIONS_TOTAL.inc()

    async def invalidate(self, short_key: str) -> None:
        await self._client.delete(self._key(short_key))
        REDIS_OPERATIONS_TOTAL.inc()

    async def clear(self) -> None:
        keys = [key async for key in self._client.scan_iter(match=f"{KEY_PREFIX}*")]
        if keys:
            await self._client.delete(*keys)
        REDIS_OPERATIONS_TOTAL.inc()

    async def ping(self) -> None:
        await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()


def connect_cache(redis_url: str, ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS) -> MappingCache:
    client = redis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    return MappingCache(client, ttl_seconds)
