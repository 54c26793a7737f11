"""DNS-TXT outcome caches.

The DNS-TXT strategy is the only one with network latency, so its outcomes
are cached by query name (``_tenant.<host>``).  Both ``resolved`` and
``no_match`` outcomes are cached; ``error`` outcomes never are.

Caching ``no_match`` means a TXT record published after a negative lookup
stays invisible until the entry expires.  Size ``cache_ttl`` with that
window in mind.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import ValidationError
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from fastapi_tenant_chain.core.types import OutcomeKind, ResolutionOutcome

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    OutcomeLoader = Callable[[], Awaitable[ResolutionOutcome]]

logger = logging.getLogger(__name__)

_CACHEABLE = frozenset({OutcomeKind.RESOLVED, OutcomeKind.NO_MATCH})


def is_cacheable(outcome: ResolutionOutcome) -> bool:
    return outcome.kind in _CACHEABLE


class DnsCache(ABC):
    """Get-or-populate cache keyed by DNS query name."""

    @abstractmethod
    async def get_or_resolve(
        self, query_name: str, lookup: OutcomeLoader
    ) -> ResolutionOutcome:
        """Return the cached outcome for *query_name*, or await *lookup* and store it."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources.  No-op by default."""


class NullDnsCache(DnsCache):
    """Passthrough cache used when caching is disabled."""

    async def get_or_resolve(
        self, query_name: str, lookup: OutcomeLoader
    ) -> ResolutionOutcome:
        return await lookup()


@dataclass(frozen=True)
class _Entry:
    outcome: ResolutionOutcome
    expires_at: float


class InMemoryDnsCache(DnsCache):
    """Process-local TTL cache.

    The lock guards only dict access, never the awaited lookup, so
    concurrent misses for the same name may each hit DNS once; the last
    write wins, which is harmless because the key is the query name alone.

    Args:
        ttl: Entry lifetime in seconds.  ``0`` disables storage.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(self, ttl: float = 300, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        logger.info("InMemoryDnsCache initialised ttl=%ss", ttl)

    def get(self, query_name: str) -> ResolutionOutcome | None:
        """Return a live cached outcome, dropping it if expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(query_name)
            if entry is None:
                return None
            if entry.expires_at <= now:
                del self._entries[query_name]
                return None
            return entry.outcome

    def put(self, query_name: str, outcome: ResolutionOutcome) -> bool:
        """Store *outcome* if cacheable.  Returns True when stored."""
        if self.ttl <= 0 or not is_cacheable(outcome):
            return False
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            self._entries[query_name] = _Entry(outcome, now + self.ttl)
        return True

    async def get_or_resolve(
        self, query_name: str, lookup: OutcomeLoader
    ) -> ResolutionOutcome:
        cached = self.get(query_name)
        with self._lock:
            if cached is not None:
                self._hits += 1
            else:
                self._misses += 1
        if cached is not None:
            logger.debug("DNS cache hit %s", query_name)
            return cached

        logger.debug("DNS cache miss %s", query_name)
        outcome = await lookup()
        self.put(query_name, outcome)
        return outcome

    def invalidate(self, query_name: str) -> bool:
        with self._lock:
            return self._entries.pop(query_name, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"hits": self._hits, "misses": self._misses, "size": len(self._entries)}

    def _purge_expired(self, now: float) -> None:
        expired = [name for name, entry in self._entries.items() if entry.expires_at <= now]
        for name in expired:
            del self._entries[name]


class RedisDnsCache(DnsCache):
    """Shared cache for multi-process deployments.

    Outcomes are stored as JSON under ``{prefix}:dns:{query_name}`` with
    ``SETEX``.  Redis failures are logged and degrade to a direct lookup;
    they never fail resolution.

    Args:
        redis_url: Redis connection URL (e.g. ``redis://localhost:6379/0``).
        ttl: Entry lifetime in seconds.
        key_prefix: Namespace prefix applied to every key.
        max_connections: Maximum Redis connections in the pool.
    """

    def __init__(
        self,
        redis_url: str,
        ttl: int = 300,
        key_prefix: str = "tenant_chain",
        max_connections: int = 10,
    ) -> None:
        self._redis: aioredis.Redis = aioredis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=max_connections,
        )
        self.ttl = ttl
        self._prefix = key_prefix
        logger.info("RedisDnsCache initialised ttl=%ds prefix=%s", ttl, key_prefix)

    def _key(self, query_name: str) -> str:
        return f"{self._prefix}:dns:{query_name}"

    async def _load(self, key: str) -> ResolutionOutcome | None:
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            logger.error("Redis GET failed key=%s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return ResolutionOutcome.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable DNS cache entry key=%s", key)
            return None

    async def get_or_resolve(
        self, query_name: str, lookup: OutcomeLoader
    ) -> ResolutionOutcome:
        key = self._key(query_name)
        cached = await self._load(key)
        if cached is not None:
            logger.debug("DNS cache hit key=%s", key)
            return cached

        outcome = await lookup()
        if self.ttl > 0 and is_cacheable(outcome):
            try:
                await self._redis.setex(key, self.ttl, outcome.model_dump_json())
            except RedisError as exc:
                logger.error("Redis SETEX failed key=%s: %s", key, exc)
        return outcome

    async def invalidate(self, query_name: str) -> bool:
        try:
            return bool(await self._redis.delete(self._key(query_name)))
        except RedisError as exc:
            logger.error("Redis DELETE failed key=%s: %s", self._key(query_name), exc)
            return False

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("RedisDnsCache connection closed")


__all__ = [
    "DnsCache",
    "InMemoryDnsCache",
    "NullDnsCache",
    "RedisDnsCache",
    "is_cacheable",
]
