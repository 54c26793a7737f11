"""DNS outcome caches: in-memory TTL cache and the Redis-backed cache."""
from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import RedisError

from fastapi_tenant_chain.cache.dns_cache import (
    InMemoryDnsCache,
    NullDnsCache,
    RedisDnsCache,
    is_cacheable,
)
from fastapi_tenant_chain.core.types import ResolutionOutcome

RESOLVED = ResolutionOutcome.resolved("dns_txt", "acme", query_name="_tenant.acme.com")
NO_MATCH = ResolutionOutcome.no_match("dns_txt", "record_absent")
ERROR = ResolutionOutcome.error("dns_txt", "timeout")


class CountingLoader:
    """Zero-argument async loader that counts invocations."""

    def __init__(self, outcome: ResolutionOutcome) -> None:
        self.outcome = outcome
        self.calls = 0

    async def __call__(self) -> ResolutionOutcome:
        self.calls += 1
        return self.outcome


class YieldingLoader(CountingLoader):
    """Loader that yields to the event loop before answering."""

    async def __call__(self) -> ResolutionOutcome:
        self.calls += 1
        await asyncio.sleep(0)
        return self.outcome


def test_is_cacheable() -> None:
    assert is_cacheable(RESOLVED)
    assert is_cacheable(NO_MATCH)
    assert not is_cacheable(ERROR)
    assert not is_cacheable(ResolutionOutcome.skipped("header", "header_not_allowed"))


# ---------------------------------------------------------------------------
# NullDnsCache
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_null_cache_always_loads() -> None:
    cache = NullDnsCache()
    loader = CountingLoader(RESOLVED)
    await cache.get_or_resolve("_tenant.acme.com", loader)
    await cache.get_or_resolve("_tenant.acme.com", loader)
    assert loader.calls == 2
    await cache.close()


# ---------------------------------------------------------------------------
# InMemoryDnsCache
# ---------------------------------------------------------------------------

class TestInMemoryDnsCache:

    @pytest.mark.asyncio
    async def test_hit_within_ttl(self, clock) -> None:
        cache = InMemoryDnsCache(ttl=60, clock=clock)
        loader = CountingLoader(RESOLVED)
        first = await cache.get_or_resolve("_tenant.acme.com", loader)
        clock.advance(59)
        second = await cache.get_or_resolve("_tenant.acme.com", loader)
        assert first == second == RESOLVED
        assert loader.calls == 1
        assert cache.stats() == {"hits": 1, "misses": 1, "size": 1}

    @pytest.mark.asyncio
    async def test_expiry(self, clock) -> None:
        cache = InMemoryDnsCache(ttl=60, clock=clock)
        loader = CountingLoader(RESOLVED)
        await cache.get_or_resolve("_tenant.acme.com", loader)
        clock.advance(60)
        assert cache.get("_tenant.acme.com") is None
        await cache.get_or_resolve("_tenant.acme.com", loader)
        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_negative_outcomes_are_cached(self, clock) -> None:
        cache = InMemoryDnsCache(ttl=60, clock=clock)
        loader = CountingLoader(NO_MATCH)
        await cache.get_or_resolve("_tenant.none.io", loader)
        outcome = await cache.get_or_resolve("_tenant.none.io", loader)
        assert outcome.reason == "record_absent"
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_errors_are_not_cached(self, clock) -> None:
        cache = InMemoryDnsCache(ttl=60, clock=clock)
        loader = CountingLoader(ERROR)
        await cache.get_or_resolve("_tenant.slow.io", loader)
        await cache.get_or_resolve("_tenant.slow.io", loader)
        assert loader.calls == 2
        assert cache.stats()["size"] == 0

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_storage(self, clock) -> None:
        cache = InMemoryDnsCache(ttl=0, clock=clock)
        loader = CountingLoader(RESOLVED)
        await cache.get_or_resolve("_tenant.acme.com", loader)
        await cache.get_or_resolve("_tenant.acme.com", loader)
        assert loader.calls == 2

    def test_put_purges_expired_entries(self, clock) -> None:
        cache = InMemoryDnsCache(ttl=10, clock=clock)
        cache.put("_tenant.old.io", RESOLVED)
        clock.advance(11)
        cache.put("_tenant.new.io", RESOLVED)
        assert cache.stats()["size"] == 1

    def test_invalidate_and_clear(self, clock) -> None:
        cache = InMemoryDnsCache(ttl=10, clock=clock)
        cache.put("_tenant.a.io", RESOLVED)
        cache.put("_tenant.b.io", NO_MATCH)
        assert cache.invalidate("_tenant.a.io")
        assert not cache.invalidate("_tenant.a.io")
        cache.clear()
        assert cache.get("_tenant.b.io") is None

    def test_negative_ttl_rejected(self) -> None:
        with pytest.raises(ValueError):
            InMemoryDnsCache(ttl=-1)

    @pytest.mark.asyncio
    async def test_concurrent_misses_on_one_name(self, clock) -> None:
        cache = InMemoryDnsCache(ttl=60, clock=clock)
        loader = YieldingLoader(RESOLVED)

        outcomes = await asyncio.gather(
            *(cache.get_or_resolve("_tenant.acme.com", loader) for _ in range(10))
        )

        assert all(outcome == RESOLVED for outcome in outcomes)
        # No single-flight: every concurrent miss performs its own lookup
        assert loader.calls == 10
        assert cache.stats() == {"hits": 0, "misses": 10, "size": 1}

        again = await cache.get_or_resolve("_tenant.acme.com", loader)
        assert again == RESOLVED
        assert loader.calls == 10
        assert cache.stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_distinct_names(self, clock) -> None:
        cache = InMemoryDnsCache(ttl=60, clock=clock)
        loaders = {
            f"_tenant.t{i}.io": YieldingLoader(
                ResolutionOutcome.resolved("dns_txt", f"t{i}")
            )
            for i in range(5)
        }

        rounds = 3
        outcomes = await asyncio.gather(
            *(
                cache.get_or_resolve(name, loader)
                for _ in range(rounds)
                for name, loader in loaders.items()
            )
        )

        by_name = list(loaders) * rounds
        for name, outcome in zip(by_name, outcomes, strict=True):
            assert outcome.identifier == name.split(".")[1]
        stats = cache.stats()
        assert stats["hits"] + stats["misses"] == rounds * len(loaders)
        assert stats["size"] == len(loaders)

    def test_stats_consistent_across_threads(self) -> None:
        cache = InMemoryDnsCache(ttl=60)
        names = [f"_tenant.t{i % 4}.io" for i in range(200)]

        def resolve(name: str) -> ResolutionOutcome:
            return asyncio.run(cache.get_or_resolve(name, CountingLoader(NO_MATCH)))

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(resolve, names))

        assert all(outcome == NO_MATCH for outcome in outcomes)
        stats = cache.stats()
        assert stats["hits"] + stats["misses"] == len(names)
        assert stats["size"] == 4


# ---------------------------------------------------------------------------
# RedisDnsCache
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_redis():
    with patch("fastapi_tenant_chain.cache.dns_cache.aioredis.from_url") as mock_from_url:
        redis = AsyncMock()
        mock_from_url.return_value = redis
        yield redis


@pytest.fixture
def redis_cache(mock_redis) -> RedisDnsCache:
    return RedisDnsCache("redis://localhost:6379/0", ttl=120, key_prefix="test")


class TestRedisDnsCache:

    @pytest.mark.asyncio
    async def test_hit_returns_stored_outcome(self, redis_cache, mock_redis) -> None:
        mock_redis.get = AsyncMock(return_value=RESOLVED.model_dump_json())
        loader = CountingLoader(NO_MATCH)
        outcome = await redis_cache.get_or_resolve("_tenant.acme.com", loader)
        assert outcome == RESOLVED
        assert loader.calls == 0
        mock_redis.get.assert_awaited_once_with("test:dns:_tenant.acme.com")

    @pytest.mark.asyncio
    async def test_miss_stores_with_ttl(self, redis_cache, mock_redis) -> None:
        mock_redis.get = AsyncMock(return_value=None)
        mock_redis.setex = AsyncMock(return_value=True)
        outcome = await redis_cache.get_or_resolve("_tenant.acme.com", CountingLoader(RESOLVED))
        assert outcome == RESOLVED
        mock_redis.setex.assert_awaited_once_with(
            "test:dns:_tenant.acme.com", 120, RESOLVED.model_dump_json()
        )

    @pytest.mark.asyncio
    async def test_error_not_stored(self, redis_cache, mock_redis) -> None:
        mock_redis.get = AsyncMock(return_value=None)
        mock_redis.setex = AsyncMock()
        await redis_cache.get_or_resolve("_tenant.slow.io", CountingLoader(ERROR))
        mock_redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_failure_degrades_to_lookup(self, redis_cache, mock_redis) -> None:
        mock_redis.get = AsyncMock(side_effect=RedisError("conn refused"))
        mock_redis.setex = AsyncMock(side_effect=RedisError("conn refused"))
        loader = CountingLoader(RESOLVED)
        outcome = await redis_cache.get_or_resolve("_tenant.acme.com", loader)
        assert outcome == RESOLVED
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_discarded(self, redis_cache, mock_redis) -> None:
        mock_redis.get = AsyncMock(return_value="{not json")
        mock_redis.setex = AsyncMock()
        loader = CountingLoader(NO_MATCH)
        outcome = await redis_cache.get_or_resolve("_tenant.none.io", loader)
        assert outcome == NO_MATCH
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_invalidate(self, redis_cache, mock_redis) -> None:
        mock_redis.delete = AsyncMock(return_value=1)
        assert await redis_cache.invalidate("_tenant.acme.com")
        mock_redis.delete = AsyncMock(side_effect=RedisError("err"))
        assert not await redis_cache.invalidate("_tenant.acme.com")

    @pytest.mark.asyncio
    async def test_close(self, redis_cache, mock_redis) -> None:
        await redis_cache.close()
        mock_redis.aclose.assert_awaited_once()
