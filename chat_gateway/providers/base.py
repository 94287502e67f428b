"""Chat provider protocol."""

from __future__ import annotations

from typing import AsyncIterator, List, Optional, Protocol

from .types import ChatOptions, ChatResponse, Message, StreamEvent


class ChatProvider(Protocol):
    """Protocol for chat backends."""

    @property
    def model_name(self) -> str: ...

    @property
    def model_id(self) -> str: ...

    async def chat(
        self,
        messages: List[Message],
        options: Optional[ChatOptions] = None,
    ) -> ChatResponse: ...

    async def chat_stream(
        self,
        messages: List[Message],
        options: Optional[ChatOptions] = None,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[StreamEvent]: ...
