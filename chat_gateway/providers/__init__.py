"""Provider factory and vendor defaults."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Dict, Optional

from ..observability import ChatObserver
from .base import ChatProvider
from .openai_compat import ChatEventStream, OpenAICompatibleChat
from .vendors import DASHSCOPE_COMPATIBLE_BASE_URL, DEFAULT_BASE_URL

if TYPE_CHECKING:
    from ..config import ChatConfig

PROVIDER_DEFAULTS: Dict[str, Dict[str, str]] = {
    "openai": {"base_url": DEFAULT_BASE_URL, "env_key": "OPENAI_API_KEY"},
    "aliyun": {"base_url": DASHSCOPE_COMPATIBLE_BASE_URL, "env_key": "DASHSCOPE_API_KEY"},
    "deepseek": {"base_url": "https://api.deepseek.com", "env_key": "DEEPSEEK_API_KEY"},
    "moonshot": {"base_url": "https://api.moonshot.cn/v1", "env_key": "MOONSHOT_API_KEY"},
    "siliconflow": {"base_url": "https://api.siliconflow.cn/v1", "env_key": "SILICONFLOW_API_KEY"},
    "ollama": {"base_url": "http://localhost:11434/v1", "env_key": ""},
}


def create_chat(config: "ChatConfig", observer: Optional[ChatObserver] = None) -> OpenAICompatibleChat:
    provider_name = (config.provider or "openai").lower()
    defaults = PROVIDER_DEFAULTS.get(provider_name, {})
    api_key = _resolve_api_key(provider_name, config.api_key)
    base_url = config.base_url or defaults.get("base_url", "")

    return OpenAICompatibleChat(
        api_key=api_key,
        model_name=config.model_name,
        base_url=base_url,
        model_id=config.model_id,
        timeout=config.timeout,
        observer=observer,
    )


def _resolve_api_key(provider: str, api_key: str) -> str:
    defaults = PROVIDER_DEFAULTS.get(provider, {})
    env_key = defaults.get("env_key", "")

    if env_key:
        env_value = os.environ.get(env_key, "")
        if env_value:
            return env_value

    if api_key and not api_key.startswith("${"):
        return api_key

    if api_key.startswith("${") and api_key.endswith("}"):
        env_var = api_key[2:-1]
        resolved = os.environ.get(env_var, "")
        if resolved:
            return resolved

    # Local OpenAI-compatible servers accept any bearer token.
    if provider == "ollama":
        return "ollama"

    if env_key:
        raise ValueError(f"{env_key} not set. Please set the env var or add api_key to config/config.local.yaml")

    raise ValueError("API key not set. Please set the env var or add api_key to config/config.local.yaml")


__all__ = [
    "ChatEventStream",
    "ChatProvider",
    "OpenAICompatibleChat",
    "PROVIDER_DEFAULTS",
    "create_chat",
]
