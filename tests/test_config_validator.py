"""Tests for configuration validator."""

import os
import pytest
from unittest.mock import patch

from chat_gateway.config_validator import (
    validate_config,
    has_errors,
    ConfigError,
    Severity,
    _resolve_api_key_value,
)


class TestValidateConfig:
    """Tests for validate_config()."""

    def _valid_config(self) -> dict:
        """Return a minimal valid config."""
        return {
            "provider": "openai",
            "api_key": "test-key-123",
            "model_name": "gpt-4o-mini",
            "timeout": 60,
            "options": {"temperature": 0.7, "max_tokens": 2048, "tool_choice": "auto"},
        }

    @patch.dict(os.environ, {}, clear=True)
    def test_valid_config_no_errors(self):
        issues = validate_config(self._valid_config())
        assert issues == []

    @patch.dict(os.environ, {}, clear=True)
    def test_missing_api_key(self):
        config = self._valid_config()
        config["api_key"] = ""
        issues = validate_config(config)
        assert has_errors(issues)
        api_errors = [e for e in issues if e.field == "api_key"]
        assert len(api_errors) == 1
        assert api_errors[0].severity == Severity.ERROR
        assert "OPENAI_API_KEY" in api_errors[0].message

    @patch.dict(os.environ, {"OPENAI_API_KEY": "env-key"}, clear=True)
    def test_env_var_resolves_placeholder(self):
        config = self._valid_config()
        config["api_key"] = "${OPENAI_API_KEY}"
        issues = validate_config(config)
        assert [e for e in issues if e.field == "api_key"] == []

    @patch.dict(os.environ, {}, clear=True)
    def test_placeholder_without_env_var(self):
        config = self._valid_config()
        config["api_key"] = "${OPENAI_API_KEY}"
        issues = validate_config(config)
        assert has_errors(issues)

    @patch.dict(os.environ, {}, clear=True)
    def test_ollama_needs_no_api_key(self):
        config = self._valid_config()
        config["provider"] = "ollama"
        config["api_key"] = ""
        assert not has_errors(validate_config(config))

    @patch.dict(os.environ, {}, clear=True)
    def test_unknown_provider_is_a_warning(self):
        config = self._valid_config()
        config["provider"] = "acme"
        issues = validate_config(config)
        assert not has_errors(issues)
        assert [e.field for e in issues] == ["provider"]
        assert issues[0].severity == Severity.WARNING

    @patch.dict(os.environ, {}, clear=True)
    def test_missing_model(self):
        config = self._valid_config()
        del config["model_name"]
        issues = validate_config(config)
        assert any(e.field == "model_name" for e in issues)

    @patch.dict(os.environ, {}, clear=True)
    def test_base_url_without_scheme(self):
        config = self._valid_config()
        config["base_url"] = "api.deepseek.com"
        issues = validate_config(config)
        assert any(e.field == "base_url" and e.severity == Severity.ERROR for e in issues)

    @pytest.mark.parametrize("timeout", [0, -5, "soon"])
    @patch.dict(os.environ, {}, clear=True)
    def test_bad_timeout(self, timeout):
        config = self._valid_config()
        config["timeout"] = timeout
        issues = validate_config(config)
        assert any(e.field == "timeout" for e in issues)

    @pytest.mark.parametrize(
        "options, field",
        [
            ({"temperature": 2.5}, "options.temperature"),
            ({"temperature": -0.1}, "options.temperature"),
            ({"top_p": 1.5}, "options.top_p"),
            ({"max_tokens": -1}, "options.max_tokens"),
            ({"max_completion_tokens": 1.5}, "options.max_completion_tokens"),
            ({"tool_choice": {"type": "function"}}, "options.tool_choice"),
            ({"thinking": "yes"}, "options.thinking"),
        ],
    )
    @patch.dict(os.environ, {}, clear=True)
    def test_invalid_options(self, options, field):
        config = self._valid_config()
        config["options"] = options
        issues = validate_config(config)
        assert [e.field for e in issues] == [field]

    @patch.dict(os.environ, {}, clear=True)
    def test_options_must_be_mapping(self):
        config = self._valid_config()
        config["options"] = ["temperature"]
        issues = validate_config(config)
        assert [e.field for e in issues] == ["options"]

    @patch.dict(os.environ, {}, clear=True)
    def test_named_tool_choice_is_accepted(self):
        config = self._valid_config()
        config["options"] = {"tool_choice": "get_weather", "thinking": False}
        assert validate_config(config) == []


class TestHasErrors:
    def test_empty(self):
        assert not has_errors([])

    def test_only_warnings(self):
        assert not has_errors([ConfigError("provider", "unknown", Severity.WARNING)])

    def test_with_error(self):
        assert has_errors([
            ConfigError("provider", "unknown", Severity.WARNING),
            ConfigError("api_key", "missing", Severity.ERROR),
        ])


class TestResolveApiKeyValue:
    @patch.dict(os.environ, {"DEEPSEEK_API_KEY": "from-env"}, clear=True)
    def test_provider_env_var_wins(self):
        assert _resolve_api_key_value("deepseek", "literal") == "from-env"

    @patch.dict(os.environ, {}, clear=True)
    def test_literal_value(self):
        assert _resolve_api_key_value("openai", "sk-literal") == "sk-literal"

    @patch.dict(os.environ, {"MY_KEY": "custom"}, clear=True)
    def test_custom_placeholder(self):
        assert _resolve_api_key_value("openai", "${MY_KEY}") == "custom"

    @patch.dict(os.environ, {}, clear=True)
    def test_unterminated_placeholder(self):
        assert _resolve_api_key_value("openai", "${MY_KEY") == ""
