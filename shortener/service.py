"""Mapping service: the core of the URL shortener.

``UrlShortener`` owns the lifecycle of every mapping between a long URL and
the short key minted for it under the service's own authority.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────────────────┐
    │                      UrlShortener                         │
    │  add / query / info / deactivate / clear / close          │
    └──────┬──────────────────┬──────────────────┬─────────────┘
           ▼                  ▼                  ▼
    ┌─────────────┐   ┌──────────────┐   ┌───────────────┐
    │ parse_url   │   │ key generator │   │ MappingStore  │
    │ (urls.py)   │   │ (keygen.py)   │   │ (+ optional   │
    │             │   │               │   │  MappingCache)│
    └─────────────┘   └──────────────┘   └───────────────┘

Mapping Lifecycle
=================
::
    Absent ──add()──▶ Active ──deactivate()──▶ Inactive
                        ▲                          │
                        └────────── add() ─────────┘

add() Flow
==========
::
    ┌─────────────┐
    │ parse (http/ │── bad ──▶ URL_SYNTAX
    │ https only)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ base == own │── yes ──▶ DOMAIN
    │ base?       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ _lookup_info │── found ──▶ reactivate if needed
    └──────┬──────┘
           ▼ absent
    ┌─────────────┐
    │ draw key,    │◀─── taken ───┐
    │ insert both  │──────────────┘
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ "<scheme>:// │
    │  <short>"    │
    └─────────────┘

How to Use
===========
**Step 1 — Create**::
    shortener = await UrlShortener.create("sqlite+aiosqlite:///s.db", "example.com:3000")

**Step 2 — Shorten and resolve**::
    short = (await shortener.add("http://foo.com/bar")).value
    long = (await shortener.query(short)).value   # "http://foo.com/bar"

**Step 3 — Inspect and hide**::
    record = await shortener.info("http://foo.com/bar")
    await shortener.deactivate(short)

**Step 4 — Release resources**::
    await shortener.close()

Key Behaviours
===============
- Validation always finishes before anything is written.
- Re-adding a long URL returns the original short URL and reactivates it.
- Short keys are never reused; the store's primary key is the final check.
- query() counts through one atomic conditional UPDATE.
- Absence is reported as NOT_FOUND by the public methods only;
  _lookup_info returns None.
"""

import logging
import time
from collections.abc import Awaitable
from typing import Any, TypeVar

from prometheus_client import Counter, Histogram

from shortener.cache import MappingCache
from shortener.enums import RequestStatus
from shortener.errors import ErrorKind, ShortenerError
from shortener.keygen import KeyGenerator, generate_short_key
from shortener.logging_config import get_logger
from shortener.schemas import MappingRecord, UrlValue
from shortener.store import MappingStore
from shortener.urls import WEB_SCHEMES, UrlComponents, authority_error, parse_url

__all__ = ["UrlShortener"]

T = TypeVar("T")


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

OPERATIONS_TOTAL = Counter(
    "shortener_operations_total",
    "Mapping service operations by outcome",
    ["operation", "status"],
)
OPERATION_DURATION = Histogram(
    "shortener_operation_duration_seconds",
    "Time taken by mapping service operations",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
KEY_COLLISIONS_TOTAL = Counter(
    "shortener_key_collisions_total",
    "Generated short keys that were already taken",
)


def _status_for(exc: ShortenerError) -> RequestStatus:
    if exc.kind is ErrorKind.NOT_FOUND:
        return RequestStatus.NOT_FOUND
    return RequestStatus.VALIDATION_ERROR


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================

class UrlShortener:
    """Shortens, resolves, describes and deactivates URLs under one service base.

    Example:
        >>> shortener = await UrlShortener.create(store_url, "example.com:3000")
        >>> (await shortener.add("http://foo.com/bar")).value
        'http://example.com:3000/1x2y3z'
    """

    def __init__(
        self,
        base: str,
        store: MappingStore,
        cache: MappingCache | None = None,
        key_generator: KeyGenerator = generate_short_key,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self.base = base.lower()
        self._store = store
        self._cache = cache
        self._generate = key_generator
        self._logger = logger or get_logger("service")

    @classmethod
    async def create(
        cls,
        store_url: str,
        service_base: str,
        *,
        cache: MappingCache | None = None,
        key_generator: KeyGenerator = generate_short_key,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> "UrlShortener":
        """Validate configuration, connect to the store and build a service.

        Args:
            store_url: SQLAlchemy async connection URL of the mapping store.
            service_base: ``host[:port]`` under which short URLs are minted.
            cache: Optional Redis lookup cache.
            key_generator: Candidate short-key source; replaceable in tests.
            logger: Optional logger.

        Raises:
            ShortenerError: ``BAD_SERVICE_BASE`` or ``BAD_STORE_URL``.
        """
        error = authority_error(service_base) if isinstance(service_base, str) else "missing service base"
        if error:
            raise ShortenerError(ErrorKind.BAD_SERVICE_BASE, error)
        store = await MappingStore.connect(store_url)
        return cls(service_base, store, cache=cache, key_generator=key_generator, logger=logger)

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def add(self, long_url: str) -> UrlValue:
        """Return the short URL for ``long_url``, creating or reactivating the mapping.

        Raises:
            ShortenerError: ``URL_SYNTAX`` or ``DOMAIN``.
        """
        return await self._measure("add", self._add(long_url))

    async def query(self, short_url: str) -> UrlValue:
        """Resolve an active short URL and count the resolution.

        Raises:
            ShortenerError: ``URL_SYNTAX``, ``DOMAIN`` or ``NOT_FOUND``.
        """
        return await self._measure("query", self._query(short_url))

    async def info(self, url: str) -> MappingRecord:
        """Describe the mapping for a long or short URL, active or not.

        Raises:
            ShortenerError: ``URL_SYNTAX`` or ``NOT_FOUND``.
        """
        return await self._measure("info", self._info(url))

    async def deactivate(self, url: str) -> dict[str, Any]:
        """Hide the mapping for a long or short URL from query().

        Raises:
            ShortenerError: ``URL_SYNTAX`` or ``NOT_FOUND``.
        """
        return await self._measure("deactivate", self._deactivate(url))

    async def clear(self) -> dict[str, Any]:
        """Remove every mapping. Administrative; short keys may be reissued afterwards."""
        await self._store.clear()
        if self._cache is not None:
            await self._cache.clear()
        self._logger.info("Cleared all mappings")
        return {}

    async def ping(self) -> None:
        await self._store.ping()

    async def close(self) -> dict[str, Any]:
        await self._store.close()
        if self._cache is not None:
            await self._cache.close()
        return {}

    @property
    def cache(self) -> MappingCache | None:
        return self._cache

    # ========================================================================
    # OPERATION BODIES
    # ========================================================================

    async def _add(self, long_url: str) -> UrlValue:
        components = parse_url(long_url, WEB_SCHEMES)
        if components.base == self.base:
            raise ShortenerError(ErrorKind.DOMAIN, f"url {long_url} has same base {self.base} as shortener")

        info = await self._lookup_info(components)
        if info is None:
            info = await self._allocate(components)
            self._logger.info(f"Created mapping {info.short_url} -> {info.long_url}")
        elif not info.is_active:
            await self._store.set_active(info.short_url, True)
            self._logger.info(f"Reactivated mapping {info.short_url}")

        return UrlValue(value=f"{components.scheme}://{info.short_url}")

    async def _query(self, short_url: str) -> UrlValue:
        components = parse_url(short_url, WEB_SCHEMES)
        if components.base != self.base:
            raise ShortenerError(ErrorKind.DOMAIN, f"url {short_url} differs from domain {self.base}")

        short_key = components.key
        long_key = await self._resolve_active(short_key)
        if long_key is None or not await self._store.increment_count(short_key):
            if self._cache is not None:
                await self._cache.invalidate(short_key)
            raise ShortenerError(ErrorKind.NOT_FOUND, f"{short_url} not found")

        return UrlValue(value=f"{components.scheme}://{long_key}")

    async def _info(self, url: str) -> MappingRecord:
        components = parse_url(url)
        info = await self._lookup_info(components)
        if info is None:
            raise ShortenerError(ErrorKind.NOT_FOUND, f"{url} not found")
        return info

    async def _deactivate(self, url: str) -> dict[str, Any]:
        components = parse_url(url)
        info = await self._lookup_info(components)
        if info is None:
            raise ShortenerError(ErrorKind.NOT_FOUND, f"{url} not found")
        if info.is_active:
            await self._store.set_active(info.short_url, False)
            self._logger.info(f"Deactivated mapping {info.short_url}")
        if self._cache is not None:
            await self._cache.invalidate(info.short_url)
        return {}

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _lookup_info(self, components: UrlComponents) -> MappingRecord | None:
        """Find the record for either form of a URL; None when there is none."""
        key = components.key
        if components.base == self.base:
            short_key = key
        else:
            short_key = await self._store.find_short_key(key)
            if short_key is None:
                return None
        return await self._store.find_info(short_key)

    async def _resolve_active(self, short_key: str) -> str | None:
        if self._cache is not None:
            cached = await self._cache.get(short_key)
            if cached is not None:
                return cached.long_url

        info = await self._store.find_info(short_key)
        if info is None or not info.is_active:
            return None
        if self._cache is not None:
            await self._cache.put(info)
        return info.long_url

    async def _allocate(self, components: UrlComponents) -> MappingRecord:
        """Mint a short key for a new long URL and persist the mapping.

        Candidates already present are skipped without an insert. An insert
        that still loses (concurrent writer) is followed by a fresh lookup:
        if the long URL was added meanwhile its record is returned, otherwise
        another key is drawn.
        """
        long_key = components.key
        attempts = 0
        while True:
            attempts += 1
            short_key = self._generate(self.base)
            if await self._store.short_key_exists(short_key):
                KEY_COLLISIONS_TOTAL.inc()
                self._logger.debug(f"Short key {short_key} taken, drawing again")
                continue

            info = await self._store.insert_mapping(short_key, long_key)
            if info is not None:
                if attempts > 1:
                    self._logger.debug(f"Allocated {short_key} after {attempts} attempts")
                return info

            KEY_COLLISIONS_TOTAL.inc()
            existing = await self._lookup_info(components)
            if existing is not None:
                self._logger.debug(f"Concurrent add of {long_key} won; reusing {existing.short_url}")
                return existing

    async def _measure(self, operation: str, call: Awaitable[T]) -> T:
        start_time = time.perf_counter()
        try:
            result = await call
        except ShortenerError as exc:
            OPERATIONS_TOTAL.labels(operation=operation, status=_status_for(exc)).inc()
            self._logger.warning(f"{operation} failed: {exc.code}: {exc.message}")
            raise
        except Exception as exc:
            OPERATIONS_TOTAL.labels(operation=operation, status=RequestStatus.ERROR).inc()
            self._logger.error(f"{operation} error: {exc}")
            raise
        finally:
            OPERATION_DURATION.labels(operation=operation).observe(time.perf_counter() - start_time)
        OPERATIONS_TOTAL.labels(operation=operation, status=RequestStatus.SUCCESS).inc()
        return result
