"""Chat gateway: one chat interface over diverging OpenAI-compatible backends."""

from .config import ChatConfig, load_config
from .errors import BackendError, ChatError, DecodeError, EmptyResponse, InvalidMessage
from .providers import OpenAICompatibleChat, create_chat
from .providers.types import (
    ChatOptions,
    ChatResponse,
    FunctionCall,
    Message,
    ResponseType,
    StreamEvent,
    Tool,
    ToolCall,
    Usage,
)

__all__ = [
    "BackendError",
    "ChatConfig",
    "ChatError",
    "ChatOptions",
    "ChatResponse",
    "DecodeError",
    "EmptyResponse",
    "FunctionCall",
    "InvalidMessage",
    "Message",
    "OpenAICompatibleChat",
    "ResponseType",
    "StreamEvent",
    "Tool",
    "ToolCall",
    "Usage",
    "create_chat",
    "load_config",
]
