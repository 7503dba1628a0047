"""
Pydantic response models for API endpoints.
"""
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class ActionInfo(BaseModel):
    """An available AI action."""
    id: str
    name: str
    description: str
    order: int
    input_type: str


class UsageInfo(BaseModel):
    """Token usage of a request."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CostInfo(BaseModel):
    """Monetary cost of a request."""
    model: str
    input_cost: float
    output_cost: float
    total_cost: float
    currency: str
    formatted_cost: str
    usd_total_cost: float


class ProcessActionResponse(BaseModel):
    """Response model for a processed action."""
    success: bool = True
    action_id: str
    video_id: str
    model: str
    result: Any = Field(..., description="Summary text, key point list or topic list")
    usage: UsageInfo
    cost: CostInfo = Field(..., description="Cost incurred by this request, zero when the result was reused")
    original_cost: CostInfo = Field(..., description="Cost of the run that produced the result")
    processing_time: float = Field(..., description="Seconds spent processing")
    metadata: Dict[str, Any] = {}
    from_cache: bool = False
    from_inflight: bool = False


class EstimateResponse(BaseModel):
    """Response model for a cost estimate."""
    model: str
    api_calls: int
    chunk_count: int
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost: CostInfo
    requires_approval: bool
    cheapest_model: Dict[str, Any]


class CurrencyInfo(BaseModel):
    code: str
    symbol: str
    rate: float


class QuotaResponse(BaseModel):
    """Daily quota snapshot."""
    day: str
    used: int
    limit: int
    remaining: int
    percent_used: float
    by_type: Dict[str, int] = {}
    approaching_limit: bool
    exceeded: bool


class CacheStatsResponse(BaseModel):
    size: int
    max_size: int
    hits: int
    misses: int
    coalesced: int
    inflight: int
    quota: QuotaResponse


class ErrorResponse(BaseModel):
    """Error body returned for failed requests."""
    success: bool = False
    error: str
    message: Optional[str] = None
    reset_hint: Optional[str] = None


class VideoInfoResponse(BaseModel):
    """Details of one YouTube video."""
    video_id: str
    title: Optional[str] = None
    channel_title: Optional[str] = None
    published_at: Optional[str] = None
    description: Optional[str] = None
