"""
YouTube video and channel metadata API routes.

Every endpoint spends YouTube Data API quota on a cache miss.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_youtube_client
from api.models.responses import VideoInfoResponse
from services.ingestion.youtube_metadata import YouTubeMetadataClient, extract_video_id

router = APIRouter()


@router.get("/videos/info", response_model=VideoInfoResponse)
async def get_video_info(
    url: str = Query(..., description="YouTube URL or video ID"),
    youtube: YouTubeMetadataClient = Depends(get_youtube_client),
):
    """Title, channel and description of one video."""
    video_id = extract_video_id(url)
    if not video_id:
        raise HTTPException(status_code=400, detail="Invalid YouTube URL")

    metadata = await youtube.get_video_details(video_id)
    if metadata is None:
        raise HTTPException(status_code=404, detail=f"Video not found: {video_id}")

    return VideoInfoResponse(
        video_id=video_id,
        title=metadata.title,
        channel_title=metadata.channel_title,
        published_at=metadata.published_at,
        description=metadata.description,
    )


@router.get("/channels/{channel_id}")
async def get_channel_info(
    channel_id: str,
    youtube: YouTubeMetadataClient = Depends(get_youtube_client),
) -> Dict[str, Any]:
    channel = await youtube.get_channel_info(channel_id)
    if channel is None:
        raise HTTPException(status_code=404, detail=f"Channel not found: {channel_id}")
    return channel


@router.get("/channels/{channel_id}/videos")
async def get_channel_videos(
    channel_id: str,
    max_results: int = Query(10, ge=1, le=50),
    youtube: YouTubeMetadataClient = Depends(get_youtube_client),
) -> List[Dict[str, Any]]:
    """Latest uploads of a channel."""
    return await youtube.get_channel_videos(channel_id, max_results=max_results)


@router.get("/search")
async def search_videos(
    q: str = Query(..., min_length=1, description="Search query"),
    max_results: int = Query(10, ge=1, le=50),
    youtube: YouTubeMetadataClient = Depends(get_youtube_client),
) -> List[Dict[str, Any]]:
    """Video search. Costs 100 quota units per uncached query."""
    return await youtube.search_videos(q, max_results=max_results)
