"""
Pruebas de la caché de respuestas de búsqueda (memoria y Redis).
"""

import asyncio

import pytest

from query_service.config import SEARCH_STRATEGIES
from query_service.models import QueryMetadata, SearchOptions, SearchQuery, SearchResponse
from query_service.utils import SearchCacheManager


def make_response(total_count: int = 1) -> SearchResponse:
    return SearchResponse(
        total_count=total_count,
        query_metadata=QueryMetadata(
            original_query="ai",
            processed_query="ai",
            query_embedding=[0.1, 0.2],
            strategy=SEARCH_STRATEGIES["hybrid_balanced"],
        ),
    )


def test_cache_key_is_normalized():
    key = SearchCacheManager.get_search_cache_key(SearchQuery(query="  AI Tools "))

    assert key.startswith("search:")
    assert len(key) == len("search:") + 16
    assert key == SearchCacheManager.get_search_cache_key(SearchQuery(query="ai tools"))


def test_cache_key_depends_on_options_and_filters():
    base = SearchCacheManager.get_search_cache_key(SearchQuery(query="ai"))

    assert base != SearchCacheManager.get_search_cache_key(
        SearchQuery(query="ai", options=SearchOptions(limit=5))
    )
    assert base != SearchCacheManager.get_search_cache_key(
        SearchQuery.model_validate({"query": "ai", "filters": {"categories": ["Machine Learning"]}})
    )


def test_redis_backend_requires_connection():
    with pytest.raises(ValueError):
        SearchCacheManager(backend="redis")


def test_zero_ttl_disables_cache():
    assert not SearchCacheManager(ttl_seconds=0).enabled


async def test_memory_get_and_set():
    cache = SearchCacheManager()

    assert await cache.get("search:abc") is None
    await cache.set("search:abc", make_response(7))

    cached = await cache.get("search:abc")
    assert cached.total_count == 7
    assert cache.size() == 1


async def test_memory_returns_copies():
    cache = SearchCacheManager()
    await cache.set("search:abc", make_response())

    first = await cache.get("search:abc")
    first.performance.cache_status = "hit"

    second = await cache.get("search:abc")
    assert second.performance.cache_status == "miss"


async def test_memory_entries_expire():
    cache = SearchCacheManager(ttl_seconds=0.05)
    await cache.set("search:abc", make_response())

    await asyncio.sleep(0.1)

    assert await cache.get("search:abc") is None
    assert cache.size() == 0


async def test_sweep_removes_expired_entries():
    cache = SearchCacheManager(ttl_seconds=0.05)
    await cache.set("search:a", make_response())
    await cache.set("search:b", make_response())

    await asyncio.sleep(0.1)

    assert await cache.sweep_expired() == 2
    assert cache.size() == 0


async def test_oldest_entry_is_evicted():
    cache = SearchCacheManager(max_entries=2)
    for key in ("search:a", "search:b", "search:c"):
        await cache.set(key, make_response())

    assert cache.size() == 2
    assert await cache.get("search:a") is None
    assert await cache.get("search:c") is not None


async def test_disabled_cache_stores_nothing():
    cache = SearchCacheManager(enabled=False)
    await cache.set("search:abc", make_response())

    assert await cache.get("search:abc") is None


async def test_memory_clear():
    cache = SearchCacheManager()
    await cache.set("search:a", make_response())
    await cache.set("search:b", make_response())

    assert await cache.clear() == 2
    assert cache.size() == 0


async def test_redis_backend_round_trip(fake_redis):
    cache = SearchCacheManager(backend="redis", redis_conn=fake_redis, ttl_seconds=120)

    await cache.set("search:abc", make_response(3))

    assert fake_redis.expirations["search:abc"] == 120
    cached = await cache.get("search:abc")
    assert cached.total_count == 3


async def test_redis_clear_only_removes_search_keys(fake_redis):
    cache = SearchCacheManager(backend="redis", redis_conn=fake_redis)
    await cache.set("search:a", make_response())
    await cache.set("search:b", make_response())
    fake_redis.data["catalog:services:1"] = "{}"

    assert await cache.clear() == 2
    assert list(fake_redis.data) == ["catalog:services:1"]


async def test_redis_errors_are_cache_misses(fake_redis):
    cache = SearchCacheManager(backend="redis", redis_conn=fake_redis)
    fake_redis.unavailable = True

    await cache.set("search:abc", make_response())
    assert await cache.get("search:abc") is None
    assert await cache.clear() == 0


def test_from_settings(query_settings, fake_redis):
    settings = query_settings.model_copy(update={"cache_backend": "redis", "cache_ttl_seconds": 60})

    cache = SearchCacheManager.from_settings(settings, redis_conn=fake_redis)

    assert cache.backend == "redis"
    assert cache.ttl_seconds == 60
    assert cache.enabled
