"""
Configuration validation for the Transcript Insights backend.
Validates prompt files, AI provider settings, database, and settings on startup.
"""
import logging
import requests
from typing import List, Dict, Any

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ConfigValidator:
    """Validates system configuration before serving requests."""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_all(self) -> Dict[str, Any]:
        """
        Run all validation checks.

        Returns:
            {
                "valid": bool,
                "errors": List[str],
                "warnings": List[str]
            }
        """
        self.errors = []
        self.warnings = []

        # Run all checks
        self._validate_prompt_files()
        self._validate_default_model()
        self._validate_database()
        self._validate_config_values()

        return {
            "valid": len(self.errors) == 0,
            "errors": self.errors,
            "warnings": self.warnings
        }

    def raise_if_invalid(self) -> Dict[str, Any]:
        """Run all checks and raise ConfigurationError listing every error."""
        result = self.validate_all()
        if not result["valid"]:
            raise ConfigurationError("; ".join(result["errors"]))
        return result

    def _validate_prompt_files(self):
        """Prompt files are optional; built-in templates are used for missing ones."""
        from core.config import PROMPTS_DIR
        from core.prompt_manager import prompt_manager

        if not PROMPTS_DIR.exists():
            self.warnings.append(
                f"Prompts directory not found: {PROMPTS_DIR}. Using built-in templates."
            )
            return

        for prompt_name in prompt_manager.fallback_templates:
            path = PROMPTS_DIR / f"{prompt_name}.txt"
            if path.exists() and path.stat().st_size == 0:
                self.warnings.append(f"Prompt file is empty: {path.name}")

    def _validate_default_model(self):
        """Check that the default model resolves and its provider is usable."""
        from core.ai_client import Provider, resolve_model
        from core.config import (
            DEFAULT_MODEL,
            DEEPSEEK_API_KEY,
            GEMINI_API_KEY,
            OPENAI_API_KEY,
        )

        try:
            provider, model_id = resolve_model(DEFAULT_MODEL)
        except ConfigurationError as e:
            self.errors.append(f"DEFAULT_MODEL is invalid: {e}")
            return

        required_keys = {
            Provider.OPENAI: ("OPENAI_API_KEY", OPENAI_API_KEY),
            Provider.DEEPSEEK: ("DEEPSEEK_API_KEY", DEEPSEEK_API_KEY),
            Provider.GOOGLE: ("GEMINI_API_KEY", GEMINI_API_KEY),
        }
        if provider in required_keys:
            name, value = required_keys[provider]
            if not value:
                self.warnings.append(
                    f"{name} is not set; requests using {DEFAULT_MODEL} will fail."
                )
        else:
            self._validate_ollama_connection(model_id)

    def _validate_ollama_connection(self, model_id: str):
        """Check that Ollama service is reachable and the model is pulled."""
        from core.config import OLLAMA_BASE_URL

        try:
            response = requests.get(f"{OLLAMA_BASE_URL}/api/tags", timeout=5)
            response.raise_for_status()
        except requests.exceptions.ConnectionError:
            self.errors.append(
                f"Cannot connect to Ollama at {OLLAMA_BASE_URL}. "
                "Ensure Ollama is running: `ollama serve`"
            )
            return
        except requests.exceptions.Timeout:
            self.errors.append(
                f"Ollama connection timeout at {OLLAMA_BASE_URL}. "
                "Check network or Ollama performance."
            )
            return
        except requests.exceptions.RequestException as e:
            self.errors.append(f"Ollama connection error: {e}")
            return

        available_models = [model["name"] for model in response.json().get("models", [])]
        if model_id not in available_models:
            self.errors.append(
                f"Required model not found: {model_id}. "
                f"Pull it with: `ollama pull {model_id}`"
            )

    def _validate_database(self):
        """Check that the database is accessible and the key-value table exists."""
        from core.config import DB_PATH

        if not DB_PATH.exists():
            self.warnings.append(
                f"Database file not found at {DB_PATH}. "
                "Will be created on first run."
            )
            return

        try:
            from core.database import get_db

            result = get_db().execute_one(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
                ("kv_store",)
            )
            if not result:
                self.errors.append("Required database table missing: kv_store.")
        except Exception as e:
            self.errors.append(f"Database connection error: {e}")

    def _validate_config_values(self):
        """Validate configuration value ranges and types."""
        from core.config import (
            CHUNK_MAX_TOKENS,
            CHUNK_OVERLAP_TOKENS,
            LLM_TEMPERATURE,
            MAX_CONCURRENT_REQUESTS,
            QUOTA_WARNING_THRESHOLD,
            YOUTUBE_QUOTA_LIMIT,
            CACHE_MAX_SIZE,
        )

        if CHUNK_MAX_TOKENS <= 0:
            self.errors.append(f"CHUNK_MAX_TOKENS ({CHUNK_MAX_TOKENS}) must be > 0")

        if not (0 <= CHUNK_OVERLAP_TOKENS < CHUNK_MAX_TOKENS):
            self.errors.append(
                f"CHUNK_OVERLAP_TOKENS ({CHUNK_OVERLAP_TOKENS}) must be >= 0 and < CHUNK_MAX_TOKENS ({CHUNK_MAX_TOKENS})"
            )

        if MAX_CONCURRENT_REQUESTS < 1:
            self.errors.append(f"MAX_CONCURRENT_REQUESTS ({MAX_CONCURRENT_REQUESTS}) must be >= 1")

        if YOUTUBE_QUOTA_LIMIT <= 0:
            self.errors.append(f"YOUTUBE_QUOTA_LIMIT ({YOUTUBE_QUOTA_LIMIT}) must be > 0")

        if not (0.0 < QUOTA_WARNING_THRESHOLD <= 1.0):
            self.errors.append(
                f"QUOTA_WARNING_THRESHOLD ({QUOTA_WARNING_THRESHOLD}) must be between 0.0 and 1.0"
            )

        if CACHE_MAX_SIZE < 1:
            self.errors.append(f"CACHE_MAX_SIZE ({CACHE_MAX_SIZE}) must be >= 1")

        # Temperature validation
        if not (0.0 <= LLM_TEMPERATURE <= 1.0):
            self.warnings.append(
                f"LLM_TEMPERATURE ({LLM_TEMPERATURE}) outside normal range [0.0, 1.0]"
            )

# Global validator instance
config_validator = ConfigValidator()
