"""Request builders for the SDK path and the raw HTTP path.

Both builders are pure: identical inputs always produce identical requests.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from openai.types.chat import ChatCompletionMessageParam

from .types import TOOL_CHOICE_LITERALS, ChatOptions, Message, Tool
from .vendors import is_deepseek_model

_NUMERIC_OPTIONS = (
    "temperature",
    "top_p",
    "max_tokens",
    "max_completion_tokens",
    "frequency_penalty",
    "presence_penalty",
)


@dataclass
class StandardChatRequest:
    """Keyword arguments for ``client.chat.completions.create``."""

    params: Dict[str, Any]

    def to_json(self) -> bytes:
        return json.dumps(self.params, ensure_ascii=False, sort_keys=True).encode("utf-8")


@dataclass
class ChatTemplateKwargs:
    enable_thinking: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"enable_thinking": self.enable_thinking}


@dataclass
class RawChatRequest:
    """Vendor-specific request document sent over plain HTTP.

    Zero numbers, empty lists and unset values are left out of the payload.
    ``enable_thinking`` is a DashScope top-level switch, distinct from the
    one nested in ``chat_template_kwargs``.
    """

    model: str
    messages: List[Dict[str, Any]]
    stream: bool = False
    temperature: float = 0.0
    top_p: float = 0.0
    max_tokens: int = 0
    max_completion_tokens: int = 0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    tools: List[Dict[str, Any]] = field(default_factory=list)
    tool_choice: Union[str, Dict[str, Any], None] = None
    chat_template_kwargs: Optional[ChatTemplateKwargs] = None
    enable_thinking: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"model": self.model, "messages": self.messages}
        if self.stream:
            payload["stream"] = True
        for name in _NUMERIC_OPTIONS:
            value = getattr(self, name)
            if value:
                payload[name] = value
        if self.tools:
            payload["tools"] = self.tools
        if self.tool_choice:
            payload["tool_choice"] = self.tool_choice
        if self.chat_template_kwargs is not None:
            payload["chat_template_kwargs"] = self.chat_template_kwargs.to_dict()
        if self.enable_thinking is not None:
            payload["enable_thinking"] = self.enable_thinking
        return payload

    def to_json(self) -> bytes:
        return json.dumps(self.to_payload(), ensure_ascii=False).encode("utf-8")


ChatRequest = Union[StandardChatRequest, RawChatRequest]


def _positive_options(options: Optional[ChatOptions]) -> Dict[str, Any]:
    if options is None:
        return {}
    values: Dict[str, Any] = {}
    for name in _NUMERIC_OPTIONS:
        value = getattr(options, name)
        if value and value > 0:
            values[name] = value
    return values


def _tool_to_dict(tool: Tool, include_empty_parameters: bool) -> Dict[str, Any]:
    function: Dict[str, Any] = {"name": tool.name, "description": tool.description}
    if tool.parameters is not None or include_empty_parameters:
        function["parameters"] = tool.parameters
    return {"type": tool.type or "function", "function": function}


def _to_standard_message(msg: Message) -> ChatCompletionMessageParam:
    if msg.role == "system":
        return {"role": "system", "content": msg.content}
    if msg.role == "assistant":
        message: Dict[str, Any] = {"role": "assistant", "content": msg.content}
        if msg.tool_calls:
            message["tool_calls"] = [tc.to_dict() for tc in msg.tool_calls]
        return message  # type: ignore[return-value]
    if msg.role == "tool":
        return {"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content}
    return {"role": "user", "content": msg.content}


def build_standard_request(
    model_name: str,
    messages: List[Message],
    options: Optional[ChatOptions] = None,
    stream: bool = False,
) -> StandardChatRequest:
    """Build SDK kwargs. ``thinking`` is not expressible here and is ignored."""
    params: Dict[str, Any] = {
        "model": model_name,
        "messages": [_to_standard_message(msg) for msg in messages],
        "stream": stream,
    }
    params.update(_positive_options(options))

    if options is not None:
        if options.tools:
            params["tools"] = [_tool_to_dict(tool, include_empty_parameters=False) for tool in options.tools]
        # Named functions only travel on the raw path.
        if options.tool_choice in TOOL_CHOICE_LITERALS and not is_deepseek_model(model_name):
            params["tool_choice"] = options.tool_choice

    return StandardChatRequest(params=params)


def build_raw_request(
    model_name: str,
    messages: List[Message],
    options: Optional[ChatOptions] = None,
    stream: bool = False,
) -> RawChatRequest:
    request = RawChatRequest(
        model=model_name,
        messages=[msg.to_dict() for msg in messages],
        stream=stream,
    )

    thinking = False
    if options is not None:
        for name, value in _positive_options(options).items():
            setattr(request, name, value)
        if options.thinking is not None:
            thinking = options.thinking

        if options.tools:
            request.tools = [_tool_to_dict(tool, include_empty_parameters=True) for tool in options.tools]

        if options.tool_choice and not is_deepseek_model(model_name):
            if options.tool_choice in TOOL_CHOICE_LITERALS:
                request.tool_choice = options.tool_choice
            else:
                request.tool_choice = {
                    "type": "function",
                    "function": {"name": options.tool_choice},
                }

    request.chat_template_kwargs = ChatTemplateKwargs(enable_thinking=thinking)

    # Synchronous calls must run with thinking disabled, whatever the caller asked.
    if not stream:
        request.enable_thinking = False

    return request
