"""
AI provider clients.

Every client exposes the same capability: generate_completion(system_prompt,
user_prompt, ...) -> Completion(text, usage). Providers are resolved from
model names through an explicit registry.
"""
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import httpx

from core.config import (
    AI_REQUEST_TIMEOUT,
    DEEPSEEK_API_KEY,
    DEEPSEEK_BASE_URL,
    GEMINI_API_KEY,
    GEMINI_BASE_URL,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    OLLAMA_BASE_URL,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
)
from core.errors import AIProviderError, ConfigurationError, QuotaExceededError
from models.processing_models import Completion, TokenUsage

logger = logging.getLogger(__name__)


class Provider(Enum):
    """Supported AI providers."""
    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    GOOGLE = "google"
    OLLAMA = "ollama"


# Short model names accepted without a "provider/" prefix
MODEL_REGISTRY: Dict[str, Tuple[Provider, str]] = {
    "gpt-3.5-turbo": (Provider.OPENAI, "gpt-3.5-turbo"),
    "gpt-4": (Provider.OPENAI, "gpt-4"),
    "gpt-4o": (Provider.OPENAI, "gpt-4o"),
    "gemini-pro": (Provider.GOOGLE, "gemini-pro"),
    "gemini-1.5-pro": (Provider.GOOGLE, "gemini-1.5-pro"),
    "gemini-1.5-flash": (Provider.GOOGLE, "gemini-1.5-flash"),
    "deepseek-chat": (Provider.DEEPSEEK, "deepseek-chat"),
    "deepseek-coder": (Provider.DEEPSEEK, "deepseek-coder"),
}


def resolve_model(model: str) -> Tuple[Provider, str]:
    """
    Resolve a model name to its provider and provider-side model id.

    Accepts "provider/model" (e.g. "google/gemini-1.5-flash",
    "ollama/mixtral:latest") or a short name from MODEL_REGISTRY.

    Raises:
        ConfigurationError: If the provider or model is unknown
    """
    if not model or not isinstance(model, str):
        raise ConfigurationError(f"Invalid model name: {model!r}")

    if "/" in model:
        prefix, model_id = model.split("/", 1)
        try:
            provider = Provider(prefix.lower())
        except ValueError:
            raise ConfigurationError(f"Unsupported AI provider: {prefix}")
        if not model_id:
            raise ConfigurationError(f"Missing model id in: {model}")
        return provider, model_id

    if model in MODEL_REGISTRY:
        return MODEL_REGISTRY[model]

    raise ConfigurationError(
        f"Unknown model: {model}. Use 'provider/model' or one of: {', '.join(sorted(MODEL_REGISTRY))}"
    )


class BaseAIClient(ABC):
    """Common HTTP handling for provider clients."""

    provider: Provider

    def __init__(
        self,
        model: str,
        base_url: str,
        api_key: Optional[str] = None,
        max_tokens: int = LLM_MAX_TOKENS,
        temperature: float = LLM_TEMPERATURE,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=AI_REQUEST_TIMEOUT)

    @abstractmethod
    async def generate_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **options: Any,
    ) -> Completion:
        """Generate text for a system/user prompt pair."""

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST a JSON payload and map transport/provider failures to pipeline errors."""
        try:
            response = await self.client.post(url, json=payload, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise AIProviderError(
                f"{self.provider.value} request failed: {e}",
                provider=self.provider.value,
            ) from e

        if response.status_code == 429:
            raise QuotaExceededError(
                f"{self.provider.value} rate limit or quota exceeded for {self.model}",
                api_type="ai",
            )
        if response.status_code >= 400:
            raise AIProviderError(
                f"{self.provider.value} API error {response.status_code}: {response.text[:500]}",
                provider=self.provider.value,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise AIProviderError(
                f"{self.provider.value} returned invalid JSON",
                provider=self.provider.value,
                status_code=response.status_code,
            ) from e

    def _resolve_options(self, max_tokens: Optional[int], temperature: Optional[float]) -> Tuple[int, float]:
        return (
            max_tokens if max_tokens is not None else self.max_tokens,
            temperature if temperature is not None else self.temperature,
        )


class OllamaClient(BaseAIClient):
    """Client for a local Ollama server."""

    provider = Provider.OLLAMA

    def __init__(self, model: str, base_url: str = OLLAMA_BASE_URL, **kwargs):
        super().__init__(model, base_url, **kwargs)

    async def generate_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **options: Any,
    ) -> Completion:
        max_tokens, temperature = self._resolve_options(max_tokens, temperature)
        payload = {
            "model": self.model,
            "system": system_prompt,
            "prompt": user_prompt,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
            "stream": False,
        }

        result = await self._post_json(f"{self.base_url}/api/generate", payload)
        return Completion(
            text=result.get("response", ""),
            usage=TokenUsage(
                prompt_tokens=result.get("prompt_eval_count") or 0,
                completion_tokens=result.get("eval_count") or 0,
            ),
        )


class OpenAICompatibleClient(BaseAIClient):
    """Client for chat-completions APIs (OpenAI, DeepSeek)."""

    def __init__(self, model: str, base_url: str, api_key: Optional[str], provider: Provider = Provider.OPENAI, **kwargs):
        self.provider = provider
        super().__init__(model, base_url, api_key=api_key, **kwargs)

    async def generate_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **options: Any,
    ) -> Completion:
        if not self.api_key:
            raise ConfigurationError(f"API key for {self.provider.value} is not set")

        max_tokens, temperature = self._resolve_options(max_tokens, temperature)
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        result = await self._post_json(f"{self.base_url}/chat/completions", payload, headers=headers)

        try:
            text = result["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise AIProviderError(
                f"Unexpected {self.provider.value} response shape",
                provider=self.provider.value,
            ) from e

        usage = result.get("usage") or {}
        return Completion(
            text=text,
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
            ),
        )


class GeminiClient(BaseAIClient):
    """Client for the Gemini generateContent REST API."""

    provider = Provider.GOOGLE

    def __init__(self, model: str, base_url: str = GEMINI_BASE_URL, api_key: Optional[str] = GEMINI_API_KEY, **kwargs):
        super().__init__(model, base_url, api_key=api_key, **kwargs)

    async def generate_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **options: Any,
    ) -> Completion:
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")

        max_tokens, temperature = self._resolve_options(max_tokens, temperature)
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {
                "maxOutputTokens": max_tokens,
                "temperature": temperature,
            },
        }

        result = await self._post_json(
            f"{self.base_url}/models/{self.model}:generateContent",
            payload,
            params={"key": self.api_key},
        )

        candidates = result.get("candidates") or []
        parts = candidates[0].get("content", {}).get("parts", []) if candidates else []
        text = "".join(part.get("text", "") for part in parts)

        usage = result.get("usageMetadata") or {}
        return Completion(
            text=text,
            usage=TokenUsage(
                prompt_tokens=usage.get("promptTokenCount") or 0,
                completion_tokens=usage.get("candidatesTokenCount") or 0,
            ),
        )


def create_client(
    model: str,
    max_tokens: int = LLM_MAX_TOKENS,
    temperature: float = LLM_TEMPERATURE,
    http_client: Optional[httpx.AsyncClient] = None,
) -> BaseAIClient:
    """Create the client for a model name such as "google/gemini-1.5-flash"."""
    provider, model_id = resolve_model(model)
    common = {"max_tokens": max_tokens, "temperature": temperature, "http_client": http_client}

    if provider is Provider.OPENAI:
        return OpenAICompatibleClient(model_id, OPENAI_BASE_URL, OPENAI_API_KEY, Provider.OPENAI, **common)
    if provider is Provider.DEEPSEEK:
        return OpenAICompatibleClient(model_id, DEEPSEEK_BASE_URL, DEEPSEEK_API_KEY, Provider.DEEPSEEK, **common)
    if provider is Provider.GOOGLE:
        return GeminiClient(model_id, **common)
    return OllamaClient(model_id, **common)
