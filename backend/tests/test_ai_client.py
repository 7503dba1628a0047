"""
Unit tests for AI provider clients.
"""
import asyncio
import json

import httpx
import pytest

from core.ai_client import (
    GeminiClient,
    OllamaClient,
    OpenAICompatibleClient,
    Provider,
    create_client,
    resolve_model,
)
from core.errors import AIProviderError, ConfigurationError, QuotaExceededError


def mock_http(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestResolveModel:

    def test_provider_prefix(self):
        assert resolve_model("google/gemini-1.5-flash") == (Provider.GOOGLE, "gemini-1.5-flash")
        assert resolve_model("ollama/mixtral:latest") == (Provider.OLLAMA, "mixtral:latest")

    def test_short_name(self):
        assert resolve_model("gpt-4o") == (Provider.OPENAI, "gpt-4o")

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            resolve_model("acme/model")

    def test_unknown_short_name(self):
        with pytest.raises(ConfigurationError):
            resolve_model("not-a-model")

    def test_create_client_picks_provider(self):
        assert isinstance(create_client("ollama/llama3"), OllamaClient)
        assert create_client("deepseek/deepseek-chat").provider == Provider.DEEPSEEK


class TestOpenAICompatibleClient:

    def test_parses_text_and_usage(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "hello"}}],
                "usage": {"prompt_tokens": 12, "completion_tokens": 3},
            })

        client = OpenAICompatibleClient("gpt-4o", "https://api.test/v1", "sk-test", http_client=mock_http(handler))
        completion = asyncio.run(client.generate_completion("sys", "user", max_tokens=50, temperature=0.1))

        assert completion.text == "hello"
        assert completion.usage.prompt_tokens == 12
        assert completion.usage.completion_tokens == 3
        assert seen["url"] == "https://api.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["messages"][0] == {"role": "system", "content": "sys"}
        assert seen["body"]["max_tokens"] == 50

    def test_missing_key(self):
        client = OpenAICompatibleClient("gpt-4o", "https://api.test/v1", None, http_client=mock_http(lambda r: httpx.Response(200)))
        with pytest.raises(ConfigurationError):
            asyncio.run(client.generate_completion("sys", "user"))

    def test_rate_limit_is_quota_error(self):
        client = OpenAICompatibleClient(
            "gpt-4o", "https://api.test/v1", "sk-test",
            http_client=mock_http(lambda request: httpx.Response(429, json={"error": "slow down"})),
        )
        with pytest.raises(QuotaExceededError) as exc_info:
            asyncio.run(client.generate_completion("sys", "user"))
        assert exc_info.value.api_type == "ai"

    def test_server_error(self):
        client = OpenAICompatibleClient(
            "gpt-4o", "https://api.test/v1", "sk-test",
            http_client=mock_http(lambda request: httpx.Response(500, text="boom")),
        )
        with pytest.raises(AIProviderError) as exc_info:
            asyncio.run(client.generate_completion("sys", "user"))
        assert exc_info.value.status_code == 500

    def test_unexpected_shape(self):
        client = OpenAICompatibleClient(
            "gpt-4o", "https://api.test/v1", "sk-test",
            http_client=mock_http(lambda request: httpx.Response(200, json={"choices": []})),
        )
        with pytest.raises(AIProviderError):
            asyncio.run(client.generate_completion("sys", "user"))


class TestOllamaClient:

    def test_generate(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["system"] == "sys"
            assert body["options"]["num_predict"] == 1000
            return httpx.Response(200, json={"response": "local", "prompt_eval_count": 8, "eval_count": 2})

        client = OllamaClient("llama3", base_url="http://ollama.test", http_client=mock_http(handler))
        completion = asyncio.run(client.generate_completion("sys", "user", max_tokens=1000))

        assert completion.text == "local"
        assert completion.usage.total_tokens == 10

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused")

        client = OllamaClient("llama3", base_url="http://ollama.test", http_client=mock_http(handler))
        with pytest.raises(AIProviderError):
            asyncio.run(client.generate_completion("sys", "user"))


class TestGeminiClient:

    def test_generate(self):
        def handler(request):
            assert request.url.path.endswith("/models/gemini-1.5-flash:generateContent")
            assert request.url.params["key"] == "g-key"
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "Hi "}, {"text": "there"}]}}],
                "usageMetadata": {"promptTokenCount": 20, "candidatesTokenCount": 5},
            })

        client = GeminiClient("gemini-1.5-flash", base_url="https://gemini.test/v1beta", api_key="g-key",
                              http_client=mock_http(handler))
        completion = asyncio.run(client.generate_completion("sys", "user"))

        assert completion.text == "Hi there"
        assert completion.usage.prompt_tokens == 20
        assert completion.usage.completion_tokens == 5

    def test_model_info(self):
        client = GeminiClient("gemini-1.5-flash", api_key="g-key", max_tokens=321)
        info = client.get_model_info()

        assert info["provider"] == "google"
        assert info["max_tokens"] == 321
