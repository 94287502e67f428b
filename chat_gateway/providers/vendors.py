"""Vendor detection and transport selection.

All helpers are pure predicates over the model name, base URL and the
conversation; nothing here reads configuration.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .types import TOOL_CHOICE_LITERALS, ChatOptions, Message

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DASHSCOPE_COMPATIBLE_BASE_URL = "https://dashscope.aliyuncs.com/compatible-mode/v1"


def is_aliyun_qwen3_model(model_name: str, base_url: str) -> bool:
    return model_name.startswith("qwen3-") and base_url == DASHSCOPE_COMPATIBLE_BASE_URL


def is_deepseek_model(model_name: str) -> bool:
    # DeepSeek rejects the tool_choice field outright.
    return "deepseek" in model_name.lower()


def has_tool_calls(messages: Iterable[Message]) -> bool:
    return any(msg.tool_calls for msg in messages)


def forces_named_tool(model_name: str, options: Optional[ChatOptions]) -> bool:
    """True when the caller pins one specific function the SDK path cannot express."""
    if options is None or not options.tool_choice:
        return False
    if is_deepseek_model(model_name):
        return False
    return options.tool_choice not in TOOL_CHOICE_LITERALS


def use_raw_path(
    model_name: str,
    base_url: str,
    messages: Iterable[Message],
    options: Optional[ChatOptions] = None,
) -> bool:
    """Pick the hand-built HTTP path over the SDK path for one call.

    Evaluated per call: the conversation grows tool-call history turn over turn.
    """
    return (
        is_aliyun_qwen3_model(model_name, base_url)
        or has_tool_calls(messages)
        or forces_named_tool(model_name, options)
    )
