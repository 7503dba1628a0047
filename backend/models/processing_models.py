"""
Data models for transcript processing.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class InputType(Enum):
    """What an action processor consumes."""
    FULL_TRANSCRIPT = "FULL_TRANSCRIPT"
    CHAPTERS = "CHAPTERS"


class ProcessingMode(Enum):
    """Orchestration path chosen for one request."""
    WHOLE_DOCUMENT = "whole_document"
    CHAPTER_FANOUT = "chapter_fanout"


@dataclass
class Chunk:
    """Bounded slice of text sized to fit one AI request"""
    content: str
    sequence: int  # 1-based position in the split
    title: Optional[str] = None


@dataclass(frozen=True)
class Chapter:
    """Named segment of a transcript, supplied by the caller"""
    title: str
    text: str


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by the AI provider for one or more calls"""
    prompt_tokens: int = 0
    completion_tokens: int = 0

    def __post_init__(self):
        if self.prompt_tokens < 0 or self.completion_tokens < 0:
            raise ValueError("Token counts must be non-negative")

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class Completion:
    """Raw output of one AI call"""
    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class VideoMetadata:
    """Video details used to fill prompt templates"""
    video_id: Optional[str] = None
    title: Optional[str] = None
    channel_title: Optional[str] = None
    published_at: Optional[str] = None
    description: Optional[str] = None


@dataclass
class ProcessingResult:
    """Final output of an orchestrated action"""
    text: Any  # str for summaries, list of points or topic dicts otherwise
    usage: TokenUsage = field(default_factory=TokenUsage)
    processing_time: float = 0.0  # seconds
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProcessorConfig:
    """Generation settings for one action"""
    input_type: InputType = InputType.FULL_TRANSCRIPT
    max_tokens: int = 1000
    temperature: float = 0.3


@dataclass
class CostEstimate:
    """Monetary cost derived from token usage"""
    model: str
    input_cost: float
    output_cost: float
    total_cost: float
    currency: str = "USD"
    formatted_cost: str = ""
    usd_total_cost: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "input_cost": self.input_cost,
            "output_cost": self.output_cost,
            "total_cost": self.total_cost,
            "currency": self.currency,
            "formatted_cost": self.formatted_cost,
            "usd_total_cost": self.usd_total_cost,
        }
