"""
Quota, cache and currency API routes.
"""
from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_cache
from api.models.responses import CacheStatsResponse, CurrencyInfo, QuotaResponse
from services.caching.quota_cache import QuotaAwareCache
from services.pricing.cost_accountant import get_supported_currencies

router = APIRouter()


@router.get("/quota", response_model=QuotaResponse)
async def get_quota(cache: QuotaAwareCache = Depends(get_cache)):
    """Today's quota usage for the YouTube Data API."""
    return cache.quota_counter.snapshot()


@router.get("/cache", response_model=CacheStatsResponse)
async def get_cache_stats(cache: QuotaAwareCache = Depends(get_cache)):
    return cache.stats()


@router.post("/cache/clear")
async def clear_cache(cache: QuotaAwareCache = Depends(get_cache)):
    """Drop all cached responses. Quota already spent is kept."""
    cache.reset()
    return {"success": True, "message": "Cache cleared"}


@router.get("/currencies", response_model=List[CurrencyInfo])
async def list_currencies():
    return get_supported_currencies()
