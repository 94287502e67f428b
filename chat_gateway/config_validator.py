"""Configuration validator for startup checks."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from .providers import PROVIDER_DEFAULTS


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ConfigError:
    """A single configuration issue."""
    field: str
    message: str
    severity: Severity


def validate_config(raw_config: Dict[str, Any]) -> List[ConfigError]:
    """Validate raw configuration and return a list of issues.

    Args:
        raw_config: Raw config dict from YAML

    Returns:
        List of ConfigError (empty = valid)
    """
    errors: List[ConfigError] = []
    provider = str(raw_config.get("provider", "openai") or "openai").lower()

    # --- Provider ---
    if provider not in PROVIDER_DEFAULTS:
        errors.append(ConfigError(
            field="provider",
            message=f"unknown provider {provider!r}; base_url must be set explicitly",
            severity=Severity.WARNING,
        ))

    # --- API Key ---
    if provider != "ollama" and not _resolve_api_key_value(provider, raw_config.get("api_key", "")):
        env_key = PROVIDER_DEFAULTS.get(provider, {}).get("env_key") or "API key"
        errors.append(ConfigError(
            field="api_key",
            message=f"{env_key} not set. Set the env var or add api_key to config/config.local.yaml",
            severity=Severity.ERROR,
        ))

    # --- Model ---
    model_name = raw_config.get("model_name", "")
    if not model_name or not isinstance(model_name, str):
        errors.append(ConfigError(
            field="model_name",
            message="model_name must be a non-empty string",
            severity=Severity.ERROR,
        ))

    # --- Base URL ---
    base_url = raw_config.get("base_url", "") or ""
    if base_url and not str(base_url).startswith(("http://", "https://")):
        errors.append(ConfigError(
            field="base_url",
            message=f"base_url must start with http:// or https://, got {base_url!r}",
            severity=Severity.ERROR,
        ))

    # --- Timeout ---
    timeout = raw_config.get("timeout", 60)
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        errors.append(ConfigError(
            field="timeout",
            message=f"timeout must be a positive number, got {timeout}",
            severity=Severity.ERROR,
        ))

    errors.extend(_validate_options(raw_config.get("options") or {}))
    return errors


def _validate_options(options: Dict[str, Any]) -> List[ConfigError]:
    errors: List[ConfigError] = []
    if not isinstance(options, dict):
        return [ConfigError(field="options", message="options must be a mapping", severity=Severity.ERROR)]

    temperature = options.get("temperature", 0)
    if not isinstance(temperature, (int, float)) or temperature < 0 or temperature > 2:
        errors.append(ConfigError(
            field="options.temperature",
            message=f"temperature must be a number between 0 and 2, got {temperature}",
            severity=Severity.ERROR,
        ))

    top_p = options.get("top_p", 0)
    if not isinstance(top_p, (int, float)) or top_p < 0 or top_p > 1:
        errors.append(ConfigError(
            field="options.top_p",
            message=f"top_p must be a number between 0 and 1, got {top_p}",
            severity=Severity.ERROR,
        ))

    for name in ("max_tokens", "max_completion_tokens"):
        value = options.get(name, 0)
        if not isinstance(value, int) or value < 0:
            errors.append(ConfigError(
                field=f"options.{name}",
                message=f"{name} must be a non-negative integer, got {value}",
                severity=Severity.ERROR,
            ))

    tool_choice = options.get("tool_choice", "")
    if tool_choice is not None and not isinstance(tool_choice, str):
        errors.append(ConfigError(
            field="options.tool_choice",
            message="tool_choice must be \"auto\", \"none\", \"required\" or a function name",
            severity=Severity.ERROR,
        ))

    thinking = options.get("thinking")
    if thinking is not None and not isinstance(thinking, bool):
        errors.append(ConfigError(
            field="options.thinking",
            message=f"thinking must be true, false or unset, got {thinking!r}",
            severity=Severity.ERROR,
        ))

    return errors


def has_errors(issues: List[ConfigError]) -> bool:
    """Check if any issues are errors (not just warnings)."""
    return any(e.severity == Severity.ERROR for e in issues)


def _resolve_api_key_value(provider: str, config_api_key: str) -> str:
    """Resolve API key from env or config value without side effects.

    Returns the resolved key string, or empty string if unresolvable.
    """
    env_key = PROVIDER_DEFAULTS.get(provider, {}).get("env_key", "")
    if env_key and os.environ.get(env_key, ""):
        return os.environ[env_key]

    if not config_api_key:
        return ""

    if not config_api_key.startswith("${"):
        return config_api_key

    if config_api_key.endswith("}"):
        return os.environ.get(config_api_key[2:-1], "")

    return ""
