"""
AI action API routes.
"""
import hashlib
import json
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import ClientFactory, get_cache, get_client_factory
from api.models.requests import EstimateRequest, ProcessActionRequest
from api.models.responses import ActionInfo, EstimateResponse, ProcessActionResponse
from core.ai_client import resolve_model
from core.config import ACTION_RESULT_TTL, DEFAULT_MODEL
from core.errors import ConfigurationError
from models.processing_models import Chapter, ProcessingResult, TokenUsage, VideoMetadata
from services.caching.quota_cache import QuotaAwareCache
from services.pricing.cost_accountant import calculate_cost, estimate_processing_cost
from services.processing.actions import get_all_processors, get_processor_by_id
from services.processing.orchestrator import HierarchicalOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def input_digest(request: ProcessActionRequest) -> str:
    """sha256 over the transcript, chapters and title the action runs on."""
    payload = json.dumps(
        {
            "transcript": request.transcript or "",
            "chapters": [[c.title, c.text] for c in request.chapters or []],
            "video_title": request.video_title or "",
        },
        sort_keys=True,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@router.get("", response_model=List[ActionInfo])
async def list_actions():
    """List available AI actions in display order."""
    return [
        ActionInfo(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            order=definition.order,
            input_type=get_processor_by_id(definition.id).config.input_type.value,
        )
        for definition in get_all_processors()
    ]


@router.post("/process", response_model=ProcessActionResponse)
async def process_action(
    request: ProcessActionRequest,
    cache: QuotaAwareCache = Depends(get_cache),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """
    Run an AI action on a transcript.

    Results are cached per action, video and model; identical concurrent
    requests share a single run.
    """
    processor = get_processor_by_id(request.action_id)
    if processor is None:
        raise HTTPException(status_code=400, detail=f"Unknown action: {request.action_id}")

    if not (request.transcript and request.transcript.strip()) and not request.chapters:
        raise HTTPException(status_code=400, detail="Transcript is required")

    model = request.model or DEFAULT_MODEL
    try:
        resolve_model(model)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    chapters = [Chapter(title=c.title, text=c.text) for c in request.chapters or []]
    video_metadata = VideoMetadata(video_id=request.video_id, title=request.video_title)

    async def run_action() -> ProcessingResult:
        client = client_factory(model)
        try:
            orchestrator = HierarchicalOrchestrator(processor)
            return await orchestrator.process(
                request.transcript,
                chapters,
                video_metadata,
                client,
                request.custom_params,
            )
        finally:
            await client.aclose()

    cached = await cache.cached_request(
        run_action,
        "action",
        {
            "action_id": processor.id,
            "video_id": request.video_id,
            "model": model,
            "custom_params": request.custom_params,
            "input": input_digest(request),
        },
        ttl=ACTION_RESULT_TTL,
        quota_cost=0,
        api_type="ai",
        bypass_cache=request.bypass_cache,
    )

    result: ProcessingResult = cached.response
    original_cost = calculate_cost(result.usage, model, request.currency)
    # Only the request that ran the action pays for it
    reused = cached.from_cache or cached.from_inflight
    cost = calculate_cost(TokenUsage(), model, request.currency) if reused else original_cost
    logger.info(
        f"Action '{processor.id}' for video {request.video_id}: {cost.formatted_cost} "
        f"(from_cache={cached.from_cache}, from_inflight={cached.from_inflight})"
    )

    return ProcessActionResponse(
        action_id=processor.id,
        video_id=request.video_id,
        model=model,
        result=result.text,
        usage=result.usage.to_dict(),
        cost=cost.to_dict(),
        original_cost=original_cost.to_dict(),
        processing_time=result.processing_time,
        metadata={**result.metadata, "possibly_cached": cached.possibly_cached},
        from_cache=cached.from_cache,
        from_inflight=cached.from_inflight,
    )


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_cost(request: EstimateRequest):
    """Estimate the cost of processing a transcript before running an action."""
    if not request.transcript.strip() and not request.chapters:
        raise HTTPException(status_code=400, detail="Transcript is required")

    model = request.model or DEFAULT_MODEL
    chapters = [Chapter(title=c.title, text=c.text) for c in request.chapters or []]
    return estimate_processing_cost(request.transcript, chapters, model, request.currency)
