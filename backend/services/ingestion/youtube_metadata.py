"""
YouTube Data API v3 lookups.

Every lookup goes through the quota-aware cache so repeated or concurrent
requests for the same video, channel or search spend quota only once.
"""
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from core.config import (
    CACHE_TTL_CHANNEL_INFO,
    CACHE_TTL_SEARCH,
    CACHE_TTL_VIDEO_DETAILS,
    CACHE_TTL_VIDEOS,
    QUOTA_COST_CHANNEL_INFO,
    QUOTA_COST_SEARCH,
    QUOTA_COST_VIDEO_INFO,
    YOUTUBE_API_BASE_URL,
    YOUTUBE_API_KEY,
)
from core.errors import ConfigurationError, ExternalServiceError, QuotaExceededError
from models.processing_models import VideoMetadata
from services.caching.quota_cache import QuotaAwareCache

logger = logging.getLogger(__name__)

QUOTA_ERROR_REASONS = {"quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded"}


def extract_video_id(url: str) -> Optional[str]:
    """Extract video ID from various YouTube URL formats, or accept a bare ID."""
    if re.fullmatch(r"[a-zA-Z0-9_-]{11}", url or ""):
        return url

    patterns = [
        r'(?:youtube\.com\/watch\?v=|youtu\.be\/|youtube\.com\/embed\/)([a-zA-Z0-9_-]{11})',
        r'youtube\.com\/watch\?.*v=([a-zA-Z0-9_-]{11})',
    ]

    for pattern in patterns:
        match = re.search(pattern, url or "")
        if match:
            return match.group(1)
    return None


class YouTubeMetadataClient:
    """Fetches video and channel metadata from the YouTube Data API."""

    def __init__(
        self,
        cache: QuotaAwareCache,
        api_key: Optional[str] = YOUTUBE_API_KEY,
        base_url: str = YOUTUBE_API_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.cache = cache
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.client = http_client or httpx.AsyncClient(timeout=30)

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise ConfigurationError("YOUTUBE_API_KEY is not set")

        try:
            response = await self.client.get(
                f"{self.base_url}/{endpoint}",
                params={**params, "key": self.api_key},
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"YouTube API request failed: {e}", provider="youtube") from e

        if response.status_code in (403, 429):
            reasons = {
                error.get("reason")
                for error in (_error_body(response).get("errors") or [])
            }
            if response.status_code == 429 or reasons & QUOTA_ERROR_REASONS:
                raise QuotaExceededError(
                    "YouTube API quota exceeded. Please try again tomorrow.",
                    api_type=endpoint,
                )
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"YouTube API error {response.status_code}: {response.text[:500]}",
                provider="youtube",
                status_code=response.status_code,
            )
        return response.json()

    async def get_video_details(self, video_id: str, force_network: bool = False) -> Optional[VideoMetadata]:
        """Snippet of one video, or None if it does not exist."""
        params = {"part": "snippet", "id": video_id}
        result = await self.cache.cached_request(
            lambda: self._get("videos", params),
            "videoDetails",
            params,
            ttl=CACHE_TTL_VIDEO_DETAILS,
            quota_cost=QUOTA_COST_VIDEO_INFO,
            api_type="videos",
            force_network=force_network,
        )
        items = result.response.get("items") or []
        if not items:
            logger.info(f"Video not found: {video_id}")
            return None

        snippet = items[0].get("snippet", {})
        return VideoMetadata(
            video_id=video_id,
            title=snippet.get("title"),
            channel_title=snippet.get("channelTitle"),
            published_at=snippet.get("publishedAt"),
            description=snippet.get("description"),
        )

    async def get_channel_info(self, channel_id: str) -> Optional[Dict[str, Any]]:
        params = {"part": "snippet,contentDetails,statistics", "id": channel_id}
        result = await self.cache.cached_request(
            lambda: self._get("channels", params),
            "channelInfo",
            params,
            ttl=CACHE_TTL_CHANNEL_INFO,
            quota_cost=QUOTA_COST_CHANNEL_INFO,
            api_type="channelInfo",
        )
        items = result.response.get("items") or []
        return items[0] if items else None

    async def get_channel_videos(self, channel_id: str, max_results: int = 10) -> List[Dict[str, Any]]:
        """Latest uploads of a channel, read from its uploads playlist."""
        channel = await self.get_channel_info(channel_id)
        if not channel:
            return []

        uploads = channel.get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
        if not uploads:
            return []

        params = {"part": "snippet", "playlistId": uploads, "maxResults": max_results}
        result = await self.cache.cached_request(
            lambda: self._get("playlistItems", params),
            "videos",
            params,
            ttl=CACHE_TTL_VIDEOS,
            quota_cost=QUOTA_COST_VIDEO_INFO,
            api_type="videos",
        )
        return result.response.get("items") or []

    async def search_videos(self, query: str, max_results: int = 10) -> List[Dict[str, Any]]:
        """Search costs 100 units per call; results are cached for a day."""
        params = {"part": "snippet", "q": query, "type": "video", "maxResults": max_results}
        result = await self.cache.cached_request(
            lambda: self._get("search", params),
            "search",
            params,
            ttl=CACHE_TTL_SEARCH,
            quota_cost=QUOTA_COST_SEARCH,
            api_type="search",
        )
        return result.response.get("items") or []

    async def aclose(self) -> None:
        await self.client.aclose()


def _error_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        return response.json().get("error") or {}
    except ValueError:
        return {}
