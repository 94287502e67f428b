"""Vendor-neutral message, tool and response types."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..errors import InvalidMessage

ROLES = frozenset({"system", "user", "assistant", "tool"})
TOOL_CHOICE_LITERALS = frozenset({"auto", "none", "required"})


@dataclass
class FunctionCall:
    """Function name plus its JSON-encoded arguments."""

    name: str = ""
    arguments: str = ""


@dataclass
class ToolCall:
    """A single function invocation requested by the model.

    ``function.arguments`` is kept as the raw JSON string the backend produced.
    While streaming it may be incomplete until the call is finalized.
    """

    id: str = ""
    type: str = "function"
    function: FunctionCall = field(default_factory=FunctionCall)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolCall":
        function = data.get("function") or {}
        return cls(
            id=data.get("id") or "",
            type=data.get("type") or "function",
            function=FunctionCall(
                name=function.get("name") or "",
                arguments=function.get("arguments") or "",
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "function": {
                "name": self.function.name,
                "arguments": self.function.arguments,
            },
        }

    def parsed_arguments(self) -> Dict[str, Any]:
        if not self.function.arguments:
            return {}
        try:
            parsed = json.loads(self.function.arguments)
        except (TypeError, ValueError):
            return {}
        if isinstance(parsed, dict):
            return parsed
        return {}


@dataclass
class Message:
    """One conversation turn."""

    role: str  # "system" | "user" | "assistant" | "tool"
    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_call_id: str = ""
    name: str = ""

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role="system", content=text)

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(role="assistant", content=text)

    @classmethod
    def assistant_tool_calls(cls, calls: List[ToolCall], text: str = "") -> "Message":
        return cls(role="assistant", content=text, tool_calls=list(calls))

    @classmethod
    def tool(cls, tool_call_id: str, content: str, name: str = "") -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id, name=name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            role=data.get("role") or "",
            content=data.get("content") or "",
            tool_calls=[ToolCall.from_dict(tc) for tc in data.get("tool_calls") or []],
            tool_call_id=data.get("tool_call_id") or "",
            name=data.get("name") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        if self.name:
            data["name"] = self.name
        return data


def validate_messages(messages: Iterable[Message]) -> None:
    """Reject conversation shapes no backend can accept."""
    for position, msg in enumerate(messages):
        if msg.role not in ROLES:
            raise InvalidMessage(
                f"message {position} has unknown role {msg.role!r}",
                details={"index": position, "role": msg.role},
            )
        if msg.role == "tool" and not msg.tool_call_id:
            raise InvalidMessage(
                f"tool message {position} is missing tool_call_id",
                details={"index": position},
            )
        if msg.tool_calls:
            seen = set()
            for call in msg.tool_calls:
                if call.id in seen:
                    raise InvalidMessage(
                        f"message {position} repeats tool call id {call.id!r}",
                        details={"index": position, "tool_call_id": call.id},
                    )
                seen.add(call.id)


def messages_from_dicts(items: Iterable[Dict[str, Any]]) -> List[Message]:
    messages = [Message.from_dict(item) for item in items]
    validate_messages(messages)
    return messages


@dataclass
class Tool:
    """Invocable function offered to the model, parameters in JSON Schema."""

    name: str
    description: str = ""
    parameters: Optional[Dict[str, Any]] = None
    type: str = "function"


@dataclass
class ChatOptions:
    """Per-call generation options.

    Numeric fields are only sent when greater than zero; zero means the
    backend default.
    """

    temperature: float = 0.0
    top_p: float = 0.0
    max_tokens: int = 0
    max_completion_tokens: int = 0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    tools: List[Tool] = field(default_factory=list)
    tool_choice: str = ""  # "auto" | "none" | "required" | <function name>
    thinking: Optional[bool] = None


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class ChatResponse:
    """Terminal result of a non-streaming call."""

    content: str = ""
    finish_reason: Optional[str] = None
    usage: Optional[Usage] = None
    tool_calls: List[ToolCall] = field(default_factory=list)


class ResponseType(str, Enum):
    ANSWER = "answer"
    TOOL_CALL_STARTED = "tool_call_started"


@dataclass
class StreamEvent:
    """One unit emitted while streaming."""

    response_type: ResponseType = ResponseType.ANSWER
    content: str = ""
    done: bool = False
    tool_calls: List[ToolCall] = field(default_factory=list)
    data: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "response_type": self.response_type.value,
            "content": self.content,
            "done": self.done,
        }
        if self.tool_calls:
            payload["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.data:
            payload["data"] = dict(self.data)
        return payload


def format_sse(event: StreamEvent) -> str:
    """Render an event as a server-sent-events data frame."""
    return f"data: {json.dumps(event.to_dict(), ensure_ascii=False)}\n\n"


def snapshot_tool_calls(calls: Iterable[ToolCall]) -> List[ToolCall]:
    return [copy.deepcopy(call) for call in calls]
