"""
Cost accounting for AI usage.

Turns token usage into money using static per-1000-token rates, converts
USD amounts to the caller's currency and estimates the cost of an action
before it runs.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from core.config import (
    CHUNK_MAX_TOKENS,
    CHUNK_OVERLAP_TOKENS,
    COST_APPROVAL_THRESHOLD,
    DEFAULT_CURRENCY,
    DEFAULT_MODEL,
)
from models.processing_models import Chapter, CostEstimate, TokenUsage
from services.processing.chunker import estimate_token_count

logger = logging.getLogger(__name__)


# USD per 1000 tokens, keyed by model name without provider prefix
RATES: Dict[str, Dict[str, float]] = {
    "gpt-3.5-turbo": {"input": 0.0015, "output": 0.002},
    "gpt-4": {"input": 0.03, "output": 0.06},
    "gpt-4o": {"input": 0.01, "output": 0.03},
    "gemini-pro": {"input": 0.00125, "output": 0.00375},
    "gemini-1.5-pro": {"input": 0.0025, "output": 0.0075},
    "gemini-1.5-flash": {"input": 0.0005, "output": 0.0015},
    "default": {"input": 0.001, "output": 0.002},
}

# Catalogue used to compare models before processing
MODEL_PRICING: Dict[str, Dict[str, Any]] = {
    "openai/gpt-3.5-turbo": {"input": 0.0005, "output": 0.0015, "name": "GPT-3.5 Turbo"},
    "openai/gpt-4o": {"input": 0.005, "output": 0.015, "name": "GPT-4o"},
    "openai/gpt-4": {"input": 0.03, "output": 0.06, "name": "GPT-4"},
    "google/gemini-pro": {"input": 0.00025, "output": 0.0005, "name": "Gemini Pro"},
    "google/gemini-1.5-pro": {"input": 0.0005, "output": 0.0015, "name": "Gemini 1.5 Pro"},
    "google/gemini-1.5-flash": {"input": 0.00025, "output": 0.0005, "name": "Gemini 1.5 Flash"},
    "deepseek/deepseek-chat": {"input": 0.0005, "output": 0.0025, "name": "DeepSeek Chat"},
}

EXCHANGE_RATES: Dict[str, float] = {
    "USD": 1.0,
    "ILS": 3.65,
    "EUR": 0.92,
    "GBP": 0.78,
    "JPY": 150.5,
    "CAD": 1.35,
    "AUD": 1.52,
}

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "ILS": "₪",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
}

# Output estimates: 20% of input, capped per call
OUTPUT_RATIO = 0.2
MAX_OUTPUT_PER_CALL = 2000
MAX_FINAL_OUTPUT = 4000


def strip_provider(model: Optional[str]) -> str:
    """"google/gemini-1.5-flash" -> "gemini-1.5-flash"."""
    if not model:
        return "default"
    return model.split("/", 1)[1] if "/" in model else model


def normalize_currency(currency: Optional[str]) -> str:
    code = (currency or DEFAULT_CURRENCY).upper()
    if code not in EXCHANGE_RATES:
        logger.warning(f"Unsupported currency {currency}, using USD")
        return "USD"
    return code


def convert_from_usd(amount_usd: float, currency: str = "USD") -> float:
    return amount_usd * EXCHANGE_RATES[normalize_currency(currency)]


def format_cost(amount: float, currency: str = "USD") -> str:
    return f"{CURRENCY_SYMBOLS[normalize_currency(currency)]}{amount:.4f}"


def get_supported_currencies() -> List[Dict[str, Any]]:
    return [
        {"code": code, "symbol": CURRENCY_SYMBOLS[code], "rate": rate}
        for code, rate in EXCHANGE_RATES.items()
    ]


def calculate_cost(usage: TokenUsage, model: Optional[str], currency: str = "USD") -> CostEstimate:
    """
    Calculate the cost of token usage for a model.

    Unknown models are priced with the "default" rates. Amounts are
    converted from USD into the requested currency.
    """
    model_name = strip_provider(model)
    rates = RATES.get(model_name)
    if rates is None:
        logger.debug(f"No rates for model {model}, using default pricing")
        rates = RATES["default"]

    input_cost_usd = usage.prompt_tokens / 1000 * rates["input"]
    output_cost_usd = usage.completion_tokens / 1000 * rates["output"]
    total_usd = input_cost_usd + output_cost_usd

    code = normalize_currency(currency)
    total_cost = convert_from_usd(total_usd, code)
    return CostEstimate(
        model=model_name,
        input_cost=convert_from_usd(input_cost_usd, code),
        output_cost=convert_from_usd(output_cost_usd, code),
        total_cost=total_cost,
        currency=code,
        formatted_cost=format_cost(total_cost, code),
        usd_total_cost=total_usd,
    )


def _catalogue_cost(model_id: str, input_tokens: int, output_tokens: int) -> Dict[str, Any]:
    pricing = MODEL_PRICING[model_id]
    input_cost = input_tokens / 1000 * pricing["input"]
    output_cost = output_tokens / 1000 * pricing["output"]
    return {
        "model": model_id,
        "model_name": pricing["name"],
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
        "input_cost": input_cost,
        "output_cost": output_cost,
        "total_cost": input_cost + output_cost,
    }


def estimate_all_model_costs(input_tokens: int, output_tokens: int) -> List[Dict[str, Any]]:
    """USD cost of the given token counts for every catalogued model, cheapest first."""
    costs = [_catalogue_cost(model_id, input_tokens, output_tokens) for model_id in MODEL_PRICING]
    return sorted(costs, key=lambda cost: cost["total_cost"])


def get_cheapest_model(
    input_tokens: int,
    output_tokens: int,
    model_filter: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    candidates = estimate_all_model_costs(input_tokens, output_tokens)
    if model_filter:
        candidates = [cost for cost in candidates if cost["model"] in model_filter]
    if not candidates:
        fallback = DEFAULT_MODEL if DEFAULT_MODEL in MODEL_PRICING else "google/gemini-1.5-flash"
        return _catalogue_cost(fallback, input_tokens, output_tokens)
    return candidates[0]


@dataclass
class TokenEstimate:
    """Expected calls and tokens for processing one transcript"""
    api_calls: int
    input_tokens: int
    output_tokens: int
    chunk_count: int


def estimate_tokens(
    transcript: str,
    chapters: Optional[Sequence[Chapter]] = None,
    max_tokens_per_chunk: int = CHUNK_MAX_TOKENS,
    overlap_tokens: int = CHUNK_OVERLAP_TOKENS,
) -> TokenEstimate:
    """
    Estimate AI calls and tokens before processing.

    With chapters there is one call per chapter plus one combining call. Long
    transcripts without chapters are estimated as token-budget chunks plus a
    combining call. Everything else is a single call.
    """
    input_tokens = estimate_token_count(transcript or "")

    if chapters:
        chapter_input = 0
        output_tokens = 0
        for chapter in chapters:
            tokens = estimate_token_count(chapter.text)
            chapter_input += tokens
            output_tokens += min(MAX_OUTPUT_PER_CALL, math.ceil(tokens * OUTPUT_RATIO))
        combining_input = math.ceil(chapter_input * OUTPUT_RATIO)
        output_tokens += min(MAX_FINAL_OUTPUT, math.ceil(combining_input * 0.5))
        return TokenEstimate(
            api_calls=len(chapters) + 1,
            input_tokens=chapter_input + combining_input,
            output_tokens=output_tokens,
            chunk_count=len(chapters),
        )

    if input_tokens > max_tokens_per_chunk:
        step = max(1, max_tokens_per_chunk - overlap_tokens)
        chunk_count = math.ceil(input_tokens / step)
        per_chunk_output = min(MAX_OUTPUT_PER_CALL, math.ceil(max_tokens_per_chunk * OUTPUT_RATIO))
        combining_input = per_chunk_output * chunk_count
        return TokenEstimate(
            api_calls=chunk_count + 1,
            input_tokens=input_tokens + (chunk_count - 1) * overlap_tokens + combining_input,
            output_tokens=per_chunk_output * chunk_count + min(MAX_FINAL_OUTPUT, math.ceil(combining_input * 0.5)),
            chunk_count=chunk_count,
        )

    return TokenEstimate(
        api_calls=1,
        input_tokens=input_tokens,
        output_tokens=min(MAX_FINAL_OUTPUT, math.ceil(input_tokens * OUTPUT_RATIO)),
        chunk_count=1,
    )


def estimate_processing_cost(
    transcript: str,
    chapters: Optional[Sequence[Chapter]] = None,
    model: str = DEFAULT_MODEL,
    currency: str = "USD",
    approval_threshold: float = COST_APPROVAL_THRESHOLD,
) -> Dict[str, Any]:
    """Estimated cost of processing a transcript, with an approval flag and the cheapest alternative."""
    tokens = estimate_tokens(transcript, chapters)
    cost = calculate_cost(TokenUsage(tokens.input_tokens, tokens.output_tokens), model, currency)
    cheapest = get_cheapest_model(tokens.input_tokens, tokens.output_tokens)

    return {
        "model": model,
        "api_calls": tokens.api_calls,
        "chunk_count": tokens.chunk_count,
        "input_tokens": tokens.input_tokens,
        "output_tokens": tokens.output_tokens,
        "total_tokens": tokens.input_tokens + tokens.output_tokens,
        "cost": cost.to_dict(),
        "requires_approval": cost.usd_total_cost > approval_threshold,
        "cheapest_model": cheapest,
    }
