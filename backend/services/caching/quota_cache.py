"""
Quota-aware cache for metered external calls.

Wraps a request coroutine with TTL caching, daily quota accounting and
request coalescing: concurrent identical requests share one outbound call.
"""
import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from cachetools import TLRUCache

from core.config import CACHE_MAX_SIZE, CACHE_TTL_DEFAULT, POSSIBLY_CACHED_MS
from core.errors import QuotaExceededError
from services.caching.quota_counter import QuotaCounter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Stored response of one outbound call"""
    key: str
    value: Any
    stored_at: float
    ttl: float  # seconds
    quota_cost: int


@dataclass
class CachedResponse:
    """Result of cached_request plus where it came from"""
    response: Any
    from_cache: bool = False
    from_inflight: bool = False
    elapsed_ms: float = 0.0

    @property
    def possibly_cached(self) -> bool:
        """Latency hint only; from_cache is authoritative."""
        return self.from_cache or self.elapsed_ms < POSSIBLY_CACHED_MS


def make_cache_key(endpoint_key: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Build the cache key from an endpoint name and its parameters."""
    return f"{endpoint_key}:{json.dumps(params or {}, sort_keys=True, default=str)}"


def _entry_expiry(key: str, entry: CacheEntry, now: float) -> float:
    return entry.stored_at + entry.ttl


class QuotaAwareCache:
    """TTL cache with quota accounting and in-flight de-duplication."""

    def __init__(
        self,
        quota_counter: Optional[QuotaCounter] = None,
        max_size: int = CACHE_MAX_SIZE,
        default_ttl: float = CACHE_TTL_DEFAULT,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.quota_counter = quota_counter or QuotaCounter()
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.timer = timer
        self._entries = TLRUCache(maxsize=max_size, ttu=_entry_expiry, timer=timer)
        self._inflight: Dict[str, "asyncio.Future[Any]"] = {}
        self.hits = 0
        self.misses = 0
        self.coalesced = 0

    def _lookup(self, key: str) -> Optional[CacheEntry]:
        # TLRUCache drops expired entries on access
        return self._entries.get(key)

    async def cached_request(
        self,
        request_fn: Callable[[], Awaitable[Any]],
        endpoint_key: str,
        params: Optional[Dict[str, Any]] = None,
        ttl: Optional[float] = None,
        quota_cost: int = 1,
        api_type: str = "other",
        bypass_cache: bool = False,
        force_network: bool = False,
    ) -> CachedResponse:
        """
        Return a cached response or make the request.

        Args:
            request_fn: Coroutine function performing the outbound call
            endpoint_key: Name of the endpoint, first part of the cache key
            params: Request parameters, serialized into the cache key
            ttl: Seconds the response stays valid (default from config)
            quota_cost: Units charged when the call is actually made
            api_type: Bucket for the quota breakdown
            bypass_cache: Skip the lookup but still store the fresh response
            force_network: Make the call even if the daily quota is used up

        Raises:
            QuotaExceededError: If the local quota is exhausted or the provider reports it
        """
        started = time.perf_counter()
        key = make_cache_key(endpoint_key, params)

        if not bypass_cache:
            entry = self._lookup(key)
            if entry is not None:
                self.hits += 1
                logger.debug(f"Cache hit: {key}")
                return CachedResponse(entry.value, from_cache=True, elapsed_ms=_elapsed_ms(started))

            pending = self._inflight.get(key)
            if pending is not None:
                self.coalesced += 1
                logger.debug(f"Joining in-flight request: {key}")
                # shield keeps the shared call alive if this waiter is cancelled
                response = await asyncio.shield(pending)
                return CachedResponse(response, from_inflight=True, elapsed_ms=_elapsed_ms(started))

        self.misses += 1
        if quota_cost and not force_network and self.quota_counter.has_exceeded_limit():
            logger.warning(f"Daily quota exhausted, refusing uncached request: {key}")
            raise QuotaExceededError(api_type=api_type)

        logger.debug(f"Cache miss: {key}")
        self.quota_counter.record(quota_cost, api_type)

        task = asyncio.ensure_future(self._fetch(key, request_fn, ttl, quota_cost))
        task.add_done_callback(_consume_exception)
        self._inflight[key] = task

        response = await asyncio.shield(task)
        return CachedResponse(response, elapsed_ms=_elapsed_ms(started))

    async def _fetch(
        self,
        key: str,
        request_fn: Callable[[], Awaitable[Any]],
        ttl: Optional[float],
        quota_cost: int,
    ) -> Any:
        try:
            response = await request_fn()
        except QuotaExceededError:
            logger.error(f"Provider reported quota exhaustion for {key}")
            raise
        except Exception as e:
            logger.warning(f"Request failed, not caching {key}: {e}")
            raise
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

        self._entries[key] = CacheEntry(
            key=key,
            value=response,
            stored_at=self.timer(),
            ttl=self.default_ttl if ttl is None else ttl,
            quota_cost=quota_cost,
        )
        return response

    def invalidate(self, endpoint_key: str, params: Optional[Dict[str, Any]] = None) -> bool:
        """Remove one entry; returns True if it was present."""
        return self._entries.pop(make_cache_key(endpoint_key, params), None) is not None

    def reset(self) -> None:
        """Clear all cached entries. In-flight requests and quota are untouched."""
        self._entries.clear()
        logger.info("Cache cleared")

    def stats(self) -> Dict[str, Any]:
        self._entries.expire()
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "coalesced": self.coalesced,
            "inflight": len(self._inflight),
            "quota": self.quota_counter.snapshot(),
        }


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _consume_exception(task: "asyncio.Future[Any]") -> None:
    # Waiters may all have been cancelled; mark the error as retrieved
    if not task.cancelled():
        task.exception()
