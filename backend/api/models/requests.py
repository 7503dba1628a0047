"""
Pydantic request models for API endpoints.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ChapterInput(BaseModel):
    """One caller-supplied chapter."""
    title: str = Field(..., description="Chapter title")
    text: str = Field(..., description="Chapter transcript text")


class ProcessActionRequest(BaseModel):
    """Request model for running an AI action on a transcript."""
    video_id: str = Field(..., description="YouTube video ID")
    action_id: str = Field(..., description="Action to run: summary, key_points or topic_extraction")
    transcript: Optional[str] = Field(default=None, description="Full transcript text")
    chapters: Optional[List[ChapterInput]] = Field(default=None, description="Optional chapters")
    video_title: Optional[str] = Field(default=None, description="Video title used in prompts")
    model: Optional[str] = Field(default=None, description="Model name, e.g. google/gemini-1.5-flash")
    currency: str = Field(default="USD", description="Currency for cost reporting")
    custom_params: Dict[str, Any] = Field(default_factory=dict, description="Prompt and generation overrides")
    bypass_cache: bool = Field(default=False, description="Ignore a cached result")


class EstimateRequest(BaseModel):
    """Request model for estimating processing cost."""
    transcript: str = Field(..., description="Full transcript text")
    chapters: Optional[List[ChapterInput]] = Field(default=None, description="Optional chapters")
    model: Optional[str] = Field(default=None, description="Model name")
    currency: str = Field(default="USD", description="Currency for cost reporting")
