"""
Unit tests for the quota-aware cache.
"""
import asyncio
from datetime import date

import pytest

from core.errors import ExternalServiceError, QuotaExceededError
from services.caching.quota_cache import QuotaAwareCache, make_cache_key
from services.caching.quota_counter import QuotaCounter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class CountingRequest:
    """Coroutine function that counts its calls."""

    def __init__(self, response="payload", error=None):
        self.response = response
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def counter():
    return QuotaCounter(quota_limit=1000, today=lambda: date(2024, 1, 1))


@pytest.fixture
def cache(counter, clock):
    return QuotaAwareCache(quota_counter=counter, max_size=10, default_ttl=60, timer=clock)


class TestCacheKey:

    def test_params_are_sorted(self):
        assert make_cache_key("videos", {"b": 2, "a": 1}) == make_cache_key("videos", {"a": 1, "b": 2})
        assert make_cache_key("videos", {"a": 1}) == 'videos:{"a": 1}'


class TestCaching:

    def test_second_request_is_served_from_cache(self, cache, counter):
        request = CountingRequest()

        first = asyncio.run(cache.cached_request(request, "videos", {"id": "x"}, quota_cost=5))
        second = asyncio.run(cache.cached_request(request, "videos", {"id": "x"}, quota_cost=5))

        assert request.calls == 1
        assert first.from_cache is False
        assert second.from_cache is True
        assert second.response == "payload"
        assert counter.used == 5

    def test_entry_expires_after_ttl(self, cache, clock):
        request = CountingRequest()

        asyncio.run(cache.cached_request(request, "videos", {"id": "x"}, ttl=30))
        clock.advance(29)
        assert asyncio.run(cache.cached_request(request, "videos", {"id": "x"}, ttl=30)).from_cache is True

        clock.advance(2)
        result = asyncio.run(cache.cached_request(request, "videos", {"id": "x"}, ttl=30))
        assert result.from_cache is False
        assert request.calls == 2

    def test_quota_charged_per_uncached_call(self, cache, counter):
        for i in range(4):
            asyncio.run(cache.cached_request(CountingRequest(), "search", {"q": i}, quota_cost=5, api_type="search"))

        assert counter.used == 20
        assert counter.snapshot()["by_type"] == {"search": 20}

    def test_bypass_cache_refetches(self, cache):
        request = CountingRequest()
        asyncio.run(cache.cached_request(request, "videos", {"id": "x"}))
        result = asyncio.run(cache.cached_request(request, "videos", {"id": "x"}, bypass_cache=True))

        assert request.calls == 2
        assert result.from_cache is False

    def test_failures_are_not_cached(self, cache, counter):
        failing = CountingRequest(error=ExternalServiceError("boom"))
        for _ in range(2):
            with pytest.raises(ExternalServiceError):
                asyncio.run(cache.cached_request(failing, "videos", {"id": "x"}))

        assert failing.calls == 2
        # Charged on issuance
        assert counter.used == 2
        assert cache.stats()["size"] == 0

    def test_provider_quota_error_propagates(self, cache):
        request = CountingRequest(error=QuotaExceededError(api_type="videos"))
        with pytest.raises(QuotaExceededError):
            asyncio.run(cache.cached_request(request, "videos", {"id": "x"}))
        assert cache.stats()["size"] == 0


class TestQuotaGuard:

    def test_exhausted_quota_blocks_uncached_requests(self, clock):
        counter = QuotaCounter(quota_limit=10, today=lambda: date(2024, 1, 1))
        cache = QuotaAwareCache(quota_counter=counter, timer=clock)
        counter.record(10, "search")
        request = CountingRequest()

        with pytest.raises(QuotaExceededError):
            asyncio.run(cache.cached_request(request, "videos", {"id": "x"}))
        assert request.calls == 0

        result = asyncio.run(cache.cached_request(request, "videos", {"id": "x"}, force_network=True))
        assert result.response == "payload"
        assert request.calls == 1

    def test_cached_entries_still_served_when_exhausted(self, clock):
        counter = QuotaCounter(quota_limit=10, today=lambda: date(2024, 1, 1))
        cache = QuotaAwareCache(quota_counter=counter, timer=clock)
        request = CountingRequest()

        asyncio.run(cache.cached_request(request, "videos", {"id": "x"}))
        counter.record(10, "search")

        assert asyncio.run(cache.cached_request(request, "videos", {"id": "x"})).from_cache is True

    def test_zero_cost_requests_ignore_the_guard(self, clock):
        counter = QuotaCounter(quota_limit=10, today=lambda: date(2024, 1, 1))
        cache = QuotaAwareCache(quota_counter=counter, timer=clock)
        counter.record(10, "search")

        result = asyncio.run(cache.cached_request(CountingRequest(), "action", {"id": "x"}, quota_cost=0))
        assert result.response == "payload"


class TestCoalescing:

    def test_identical_concurrent_requests_share_one_call(self, cache, counter):
        calls = []

        async def slow_request():
            calls.append(1)
            await asyncio.sleep(0.01)
            return {"items": [1]}

        async def scenario():
            return await asyncio.gather(
                cache.cached_request(slow_request, "videos", {"id": "x"}, quota_cost=3),
                cache.cached_request(slow_request, "videos", {"id": "x"}, quota_cost=3),
            )

        first, second = asyncio.run(scenario())

        assert len(calls) == 1
        assert first.response == second.response == {"items": [1]}
        assert [first.from_inflight, second.from_inflight].count(True) == 1
        assert first.from_cache is False and second.from_cache is False
        assert counter.used == 3
        assert cache.stats()["coalesced"] == 1
        assert cache.stats()["inflight"] == 0

    def test_errors_reach_every_waiter(self, cache):
        async def failing_request():
            await asyncio.sleep(0.01)
            raise ExternalServiceError("down")

        async def scenario():
            return await asyncio.gather(
                cache.cached_request(failing_request, "videos", {"id": "x"}),
                cache.cached_request(failing_request, "videos", {"id": "x"}),
                return_exceptions=True,
            )

        results = asyncio.run(scenario())
        assert all(isinstance(result, ExternalServiceError) for result in results)
        assert cache.stats()["inflight"] == 0

    def test_cancelled_waiter_does_not_cancel_shared_call(self, cache):
        release = None

        async def gated_request():
            await release.wait()
            return "done"

        async def scenario():
            nonlocal release
            release = asyncio.Event()
            first = asyncio.ensure_future(cache.cached_request(gated_request, "videos", {"id": "x"}))
            await asyncio.sleep(0)
            second = asyncio.ensure_future(cache.cached_request(gated_request, "videos", {"id": "x"}))
            await asyncio.sleep(0)

            first.cancel()
            release.set()
            result = await second
            with pytest.raises(asyncio.CancelledError):
                await first
            return result

        result = asyncio.run(scenario())
        assert result.response == "done"
        assert result.from_inflight is True
        assert cache.stats()["inflight"] == 0


class TestMaintenance:

    def test_invalidate_removes_one_entry(self, cache):
        request = CountingRequest()
        asyncio.run(cache.cached_request(request, "videos", {"id": "x"}))
        asyncio.run(cache.cached_request(request, "videos", {"id": "y"}))

        assert cache.invalidate("videos", {"id": "x"}) is True
        assert cache.invalidate("videos", {"id": "x"}) is False
        assert cache.stats()["size"] == 1

    def test_reset_keeps_quota(self, cache, counter):
        asyncio.run(cache.cached_request(CountingRequest(), "videos", {"id": "x"}, quota_cost=7))
        cache.reset()

        stats = cache.stats()
        assert stats["size"] == 0
        assert stats["quota"]["used"] == 7

    def test_stats_counts_hits_and_misses(self, cache):
        request = CountingRequest()
        asyncio.run(cache.cached_request(request, "videos", {"id": "x"}))
        asyncio.run(cache.cached_request(request, "videos", {"id": "x"}))

        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["max_size"] == 10

    def test_possibly_cached_is_advisory(self, cache):
        request = CountingRequest()
        fresh = asyncio.run(cache.cached_request(request, "videos", {"id": "x"}))
        cached = asyncio.run(cache.cached_request(request, "videos", {"id": "x"}))

        assert cached.possibly_cached is True
        # A fast fresh call looks cached by latency but is not
        assert fresh.from_cache is False
