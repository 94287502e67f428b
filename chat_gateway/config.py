"""Configuration loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from .providers.types import ChatOptions

_OPTION_FIELDS = (
    "temperature",
    "top_p",
    "max_tokens",
    "max_completion_tokens",
    "frequency_penalty",
    "presence_penalty",
    "tool_choice",
    "thinking",
)


@dataclass
class ChatConfig:
    """Configuration for one chat backend."""

    api_key: str
    model_name: str = "gpt-4o-mini"
    provider: str = "openai"
    base_url: str = ""  # Empty means https://api.openai.com/v1
    model_id: str = ""
    timeout: float = 60.0
    default_options: ChatOptions = field(default_factory=ChatOptions)


def load_raw_config(config_path: str = "config/config.local.yaml") -> dict:
    """Load raw configuration dictionary from YAML file.

    Priority order:
    1. config.local.yaml (user's local config with secrets)
    2. config.yaml (template/defaults)
    """
    repo_root = Path(__file__).resolve().parents[1]

    def _resolve(candidate: str) -> Path:
        path = Path(candidate)
        if path.exists():
            return path
        alt = repo_root / candidate
        if alt.exists():
            return alt
        return path

    def _load_yaml(path: Path) -> dict:
        if not path.exists():
            return {}
        with open(path) as f:
            data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Config file must be a mapping: {path}")
            return data

    target = _resolve(config_path)

    # Default behavior: load config.yaml first, then overlay config.local.yaml.
    if Path(config_path).name == "config.local.yaml":
        base = _load_yaml(_resolve("config/config.yaml"))
        merged = _deep_merge(base, _load_yaml(target))
        if not merged:
            raise FileNotFoundError(f"Config file not found: {config_path} (also missing fallback config/config.yaml)")
        return merged

    data = _load_yaml(target)
    if not data:
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return data


def _deep_merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(base_value, value)
        else:
            merged[key] = value
    return merged


def options_from_dict(data: Dict[str, Any]) -> ChatOptions:
    values = {name: data[name] for name in _OPTION_FIELDS if data.get(name) is not None}
    return ChatOptions(**values)


def config_from_dict(data: Dict[str, Any]) -> ChatConfig:
    return ChatConfig(
        api_key=data.get("api_key", ""),
        model_name=data.get("model_name", "gpt-4o-mini"),
        provider=data.get("provider", "openai"),
        base_url=data.get("base_url", "") or "",
        model_id=data.get("model_id", "") or "",
        timeout=float(data.get("timeout", 60.0)),
        default_options=options_from_dict(data.get("options") or {}),
    )


def load_config(config_path: str = "config/config.local.yaml") -> ChatConfig:
    """Load chat configuration from YAML file."""
    return config_from_dict(load_raw_config(config_path))
