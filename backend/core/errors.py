"""
Error taxonomy shared by the processing pipeline and the API layer.
"""
from typing import Optional


class InsightsError(Exception):
    """Base class for pipeline errors."""
    pass


class ConfigurationError(InsightsError):
    """Raised when configuration is invalid or a model cannot be resolved."""
    pass


class InputValidationError(InsightsError, ValueError):
    """Raised when request input is empty or malformed. No work is done."""
    pass


class ExternalServiceError(InsightsError):
    """Raised when a call to an external HTTP API fails."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class AIProviderError(ExternalServiceError):
    """Raised when an AI provider call fails (network or provider error)."""
    pass


class QuotaExceededError(InsightsError):
    """
    Raised when a metered API reports quota exhaustion, or when the local
    daily quota counter is already at its limit.

    Callers map this to an HTTP 429 style response. It is never retried.
    """

    def __init__(
        self,
        message: str = "API quota exceeded. Please try again after the daily reset.",
        api_type: Optional[str] = None,
        reset_hint: str = "tomorrow",
    ):
        super().__init__(message)
        self.api_type = api_type
        self.reset_hint = reset_hint
