"""
Unit tests for startup configuration validation.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from core.config_validator import ConfigValidator
from core.errors import ConfigurationError


def quiet_validator():
    """Validator whose checks touch neither the network nor the filesystem."""
    validator = ConfigValidator()
    for check in ("_validate_prompt_files", "_validate_default_model", "_validate_database", "_validate_config_values"):
        setattr(validator, check, MagicMock())
    return validator


class TestRaiseIfInvalid:

    def test_returns_result_with_warnings(self):
        validator = quiet_validator()
        validator._validate_prompt_files.side_effect = lambda: validator.warnings.append("no prompts")

        result = validator.raise_if_invalid()

        assert result["valid"] is True
        assert result["warnings"] == ["no prompts"]

    def test_raises_with_every_error(self):
        validator = quiet_validator()
        validator._validate_default_model.side_effect = lambda: validator.errors.append("bad model")
        validator._validate_database.side_effect = lambda: validator.errors.append("bad db")

        with pytest.raises(ConfigurationError) as exc_info:
            validator.raise_if_invalid()
        assert str(exc_info.value) == "bad model; bad db"

    def test_errors_reset_between_runs(self):
        validator = quiet_validator()
        validator.errors.append("stale")
        assert validator.raise_if_invalid()["errors"] == []


class TestOllamaCheck:

    def test_unreachable(self):
        validator = ConfigValidator()
        with patch("core.config_validator.requests.get", side_effect=requests.exceptions.ConnectionError()):
            validator._validate_ollama_connection("llama3")
        assert "Cannot connect to Ollama" in validator.errors[0]

    def test_model_not_pulled(self):
        response = MagicMock()
        response.json.return_value = {"models": [{"name": "mistral"}]}
        validator = ConfigValidator()
        with patch("core.config_validator.requests.get", return_value=response):
            validator._validate_ollama_connection("llama3")
        assert validator.errors == [
            "Required model not found: llama3. Pull it with: `ollama pull llama3`"
        ]
