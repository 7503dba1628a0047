"""
Shared service instances for API routes.

Routes receive these through FastAPI's Depends so tests can override them.
"""
from typing import AsyncIterator, Callable, Optional

from fastapi import Depends

from core.ai_client import BaseAIClient, create_client
from core.database import get_db
from services.caching.quota_cache import QuotaAwareCache
from services.caching.quota_counter import QuotaCounter, SqliteQuotaStore
from services.ingestion.youtube_metadata import YouTubeMetadataClient

ClientFactory = Callable[[str], BaseAIClient]

_cache: Optional[QuotaAwareCache] = None


def get_cache() -> QuotaAwareCache:
    """Application-wide cache, with its quota counter persisted in SQLite."""
    global _cache
    if _cache is None:
        counter = QuotaCounter(store=SqliteQuotaStore(get_db()))
        _cache = QuotaAwareCache(quota_counter=counter)
    return _cache


def get_client_factory() -> ClientFactory:
    return create_client


async def get_youtube_client(
    cache: QuotaAwareCache = Depends(get_cache),
) -> AsyncIterator[YouTubeMetadataClient]:
    """YouTube Data API client metered through the application cache."""
    client = YouTubeMetadataClient(cache)
    try:
        yield client
    finally:
        await client.aclose()
