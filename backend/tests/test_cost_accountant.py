"""
Unit tests for cost accounting and estimates.
"""
import pytest

from models.processing_models import Chapter, TokenUsage
from services.pricing.cost_accountant import (
    MODEL_PRICING,
    calculate_cost,
    estimate_all_model_costs,
    estimate_processing_cost,
    estimate_tokens,
    get_cheapest_model,
    get_supported_currencies,
    strip_provider,
)


class TestCalculateCost:

    def test_known_model_with_provider_prefix(self):
        cost = calculate_cost(TokenUsage(prompt_tokens=1000, completion_tokens=1000), "google/gemini-1.5-flash")

        assert cost.model == "gemini-1.5-flash"
        assert cost.input_cost == pytest.approx(0.0005)
        assert cost.output_cost == pytest.approx(0.0015)
        assert cost.total_cost == pytest.approx(0.002)
        assert cost.formatted_cost == "$0.0020"

    def test_unknown_model_uses_default_rates(self):
        cost = calculate_cost(TokenUsage(prompt_tokens=1000, completion_tokens=1000), "mystery/model-x")
        assert cost.total_cost == pytest.approx(0.003)

    def test_currency_conversion(self):
        cost = calculate_cost(TokenUsage(prompt_tokens=2000, completion_tokens=0), "gpt-4", currency="EUR")

        assert cost.currency == "EUR"
        assert cost.usd_total_cost == pytest.approx(0.06)
        assert cost.total_cost == pytest.approx(0.06 * 0.92)
        assert cost.formatted_cost.startswith("€")

    def test_unsupported_currency_falls_back_to_usd(self):
        cost = calculate_cost(TokenUsage(prompt_tokens=1000), "gpt-4", currency="XYZ")
        assert cost.currency == "USD"
        assert cost.formatted_cost == "$0.0300"

    def test_zero_usage_costs_nothing(self):
        assert calculate_cost(TokenUsage(), "gpt-4o").total_cost == 0

    def test_strip_provider(self):
        assert strip_provider("openai/gpt-4o") == "gpt-4o"
        assert strip_provider("gpt-4o") == "gpt-4o"
        assert strip_provider(None) == "default"


class TestModelCatalogue:

    def test_all_costs_sorted_cheapest_first(self):
        costs = estimate_all_model_costs(10000, 2000)
        totals = [cost["total_cost"] for cost in costs]
        assert totals == sorted(totals)
        assert costs[-1]["model"] == "openai/gpt-4"

    def test_cheapest_with_filter(self):
        cheapest = get_cheapest_model(1000, 1000, model_filter=["openai/gpt-4", "openai/gpt-4o"])
        assert cheapest["model"] == "openai/gpt-4o"

    def test_filter_matching_nothing_returns_default(self):
        cheapest = get_cheapest_model(1000, 1000, model_filter=["nope/none"])
        assert cheapest["model"] in MODEL_PRICING
        assert cheapest["total_tokens"] == 2000

    def test_supported_currencies(self):
        codes = [currency["code"] for currency in get_supported_currencies()]
        assert codes == ["USD", "ILS", "EUR", "GBP", "JPY", "CAD", "AUD"]


class TestEstimates:

    def test_single_call_for_short_transcript(self):
        estimate = estimate_tokens("a" * 400)

        assert estimate.api_calls == 1
        assert estimate.input_tokens == 100
        assert estimate.output_tokens == 20

    def test_chapters_add_a_combining_call(self):
        chapters = [Chapter("A", "a" * 400), Chapter("B", "b" * 400)]
        estimate = estimate_tokens("", chapters)

        assert estimate.api_calls == 3
        assert estimate.input_tokens == 240
        assert estimate.output_tokens == 60

    def test_long_transcript_is_chunked(self):
        estimate = estimate_tokens("a" * 40000, max_tokens_per_chunk=4000, overlap_tokens=200)

        assert estimate.chunk_count == 3
        assert estimate.api_calls == 4

    def test_requires_approval_above_threshold(self):
        cheap = estimate_processing_cost("a" * 400, model="google/gemini-1.5-flash")
        expensive = estimate_processing_cost("a" * 400000, model="openai/gpt-4")

        assert cheap["requires_approval"] is False
        assert expensive["requires_approval"] is True
        assert expensive["cheapest_model"]["model"] != "openai/gpt-4"
