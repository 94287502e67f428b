"""OpenAI-compatible chat dispatcher.

Non-streaming calls go either through the ``openai`` SDK or through a
hand-built HTTP request, depending on vendor and conversation shape.
Streaming always uses the SDK and reassembles tool calls chunk by chunk.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, List, Optional

import httpx
from openai import AsyncOpenAI

from ..errors import BackendError, DecodeError, EmptyResponse
from ..observability import ChatObserver
from .request_builder import build_raw_request, build_standard_request
from .stream import ToolCallStreamAggregator
from .types import (
    ChatOptions,
    ChatResponse,
    FunctionCall,
    Message,
    StreamEvent,
    ToolCall,
    Usage,
    validate_messages,
)
from .vendors import DEFAULT_BASE_URL, use_raw_path

_STREAM_CLOSED = object()


class OpenAICompatibleChat:
    """Chat client for OpenAI-compatible backends."""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        base_url: str = "",
        model_id: str = "",
        timeout: float = 60.0,
        client: Optional[AsyncOpenAI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        observer: Optional[ChatObserver] = None,
    ) -> None:
        self._model_name = model_name
        self._model_id = model_id
        self.base_url = base_url or ""
        self.api_key = api_key
        self.timeout = timeout
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url or None, timeout=timeout)
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self.observer = observer or ChatObserver()

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def model_id(self) -> str:
        return self._model_id

    async def chat(self, messages: List[Message], options: Optional[ChatOptions] = None) -> ChatResponse:
        validate_messages(messages)
        start_time = time.perf_counter()
        path = "raw" if use_raw_path(self.model_name, self.base_url, messages, options) else "standard"

        try:
            if path == "raw":
                response = await self._chat_with_raw_http(messages, options)
            else:
                response = await self._chat_standard(messages, options)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.observer.log_error(
                error_type="llm_request",
                message=str(e),
                context={"model": self.model_name, "path": path},
            )
            raise

        self.observer.log_llm_request(
            model=self.model_name,
            path=path,
            tokens=response.usage.total_tokens if response.usage else 0,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            finish_reason=response.finish_reason,
        )
        return response

    async def _chat_standard(self, messages: List[Message], options: Optional[ChatOptions]) -> ChatResponse:
        request = build_standard_request(self.model_name, messages, options)
        completion = await self.client.chat.completions.create(**request.params)
        return self._from_openai_completion(completion)

    async def _chat_with_raw_http(self, messages: List[Message], options: Optional[ChatOptions]) -> ChatResponse:
        request = build_raw_request(self.model_name, messages, options, stream=False)
        body = request.to_json()

        url = f"{(self.base_url or DEFAULT_BASE_URL).rstrip('/')}/chat/completions"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        response = await self.http_client.post(url, content=body, headers=headers)
        if response.status_code != 200:
            raise BackendError(response.status_code, response.text)

        try:
            envelope = response.json()
        except ValueError as exc:
            raise DecodeError(f"decode response: {exc}") from exc

        return self._from_raw_envelope(envelope)

    def _from_openai_completion(self, completion: Any) -> ChatResponse:
        if not completion.choices:
            raise EmptyResponse("no response from OpenAI")

        choice = completion.choices[0]
        message = choice.message
        tool_calls: List[ToolCall] = []
        for call in getattr(message, "tool_calls", None) or []:
            function = getattr(call, "function", None)
            if function is None:
                continue
            tool_calls.append(
                ToolCall(
                    id=getattr(call, "id", "") or "",
                    type=str(getattr(call, "type", "") or "function"),
                    function=FunctionCall(
                        name=getattr(function, "name", "") or "",
                        arguments=getattr(function, "arguments", "") or "",
                    ),
                )
            )

        usage = None
        usage_data = getattr(completion, "usage", None)
        if usage_data:
            usage = Usage(
                prompt_tokens=int(getattr(usage_data, "prompt_tokens", 0) or 0),
                completion_tokens=int(getattr(usage_data, "completion_tokens", 0) or 0),
                total_tokens=int(getattr(usage_data, "total_tokens", 0) or 0),
            )

        finish_reason = getattr(choice, "finish_reason", None)
        return ChatResponse(
            content=_normalize_message_content(getattr(message, "content", None)),
            finish_reason=str(finish_reason) if finish_reason else None,
            usage=usage,
            tool_calls=tool_calls,
        )

    def _from_raw_envelope(self, envelope: Any) -> ChatResponse:
        """Decode ``choices[0].message``, ``finish_reason`` and ``usage`` only."""
        if not isinstance(envelope, dict):
            raise DecodeError("decode response: envelope is not an object")

        choices = envelope.get("choices")
        if not choices:
            raise EmptyResponse("no response from API")
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise DecodeError("decode response: malformed choices")

        choice = choices[0]
        message = choice.get("message") or {}
        if not isinstance(message, dict):
            raise DecodeError("decode response: malformed message")

        raw_calls = message.get("tool_calls") or []
        if not isinstance(raw_calls, list) or not all(_is_raw_tool_call(tc) for tc in raw_calls):
            raise DecodeError("decode response: malformed tool_calls")

        usage = None
        usage_data = envelope.get("usage")
        if usage_data is not None:
            if not isinstance(usage_data, dict):
                raise DecodeError("decode response: malformed usage")
            try:
                usage = Usage(
                    prompt_tokens=int(usage_data.get("prompt_tokens") or 0),
                    completion_tokens=int(usage_data.get("completion_tokens") or 0),
                    total_tokens=int(usage_data.get("total_tokens") or 0),
                )
            except (TypeError, ValueError) as exc:
                raise DecodeError(f"decode response: {exc}") from exc

        return ChatResponse(
            content=_normalize_message_content(message.get("content")),
            finish_reason=choice.get("finish_reason"),
            usage=usage,
            tool_calls=[ToolCall.from_dict(tc) for tc in raw_calls],
        )

    async def chat_stream(
        self,
        messages: List[Message],
        options: Optional[ChatOptions] = None,
        timeout: Optional[float] = None,
    ) -> "ChatEventStream":
        """Start a streaming call and return its events.

        Errors raised here happen before any event exists. Once the stream is
        open, failures are logged and the iterator still ends with a final
        ``done`` event carrying every tool call assembled so far.
        """
        validate_messages(messages)
        request = build_standard_request(self.model_name, messages, options, stream=True)
        stream = await self.client.chat.completions.create(**request.params)
        return ChatEventStream(stream, lambda queue: self._pump_stream(stream, queue, timeout))

    async def _pump_stream(self, stream: Any, queue: asyncio.Queue, timeout: Optional[float]) -> None:
        aggregator = ToolCallStreamAggregator()
        start_time = time.perf_counter()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        event_count = 0

        try:
            try:
                iterator = stream.__aiter__()
                while True:
                    chunk = await self._next_chunk(iterator, deadline, loop)
                    if chunk is _STREAM_CLOSED:
                        break
                    for event in aggregator.process_chunk(chunk):
                        await queue.put(event)
                        event_count += 1
            except asyncio.TimeoutError:
                self.observer.log_error(
                    "stream",
                    f"stream timed out after {timeout}s",
                    {"model": self.model_name},
                )
            except Exception as exc:
                self.observer.log_error("stream", f"stream error: {exc}", {"model": self.model_name})

            await queue.put(aggregator.final_event())
            event_count += 1
            self.observer.log_stream_end(
                model=self.model_name,
                event_count=event_count,
                tool_calls=len(aggregator.snapshot()),
                duration_ms=(time.perf_counter() - start_time) * 1000,
            )
            await queue.put(_STREAM_CLOSED)
        finally:
            await _close_stream(stream)

    async def _next_chunk(self, iterator: Any, deadline: Optional[float], loop: asyncio.AbstractEventLoop) -> Any:
        if deadline is None:
            return await _read_next(iterator)
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise asyncio.TimeoutError()
        return await asyncio.wait_for(_read_next(iterator), remaining)

    async def close(self) -> None:
        await self.http_client.aclose()
        await self.client.close()


class ChatEventStream:
    """Async iterator over the events of one streaming call.

    The reader task starts on the first ``__anext__``. ``aclose`` cancels it,
    or closes the SDK stream directly when nothing was read yet.
    """

    def __init__(self, stream: Any, pump: Callable[[asyncio.Queue], Awaitable[None]]) -> None:
        self._stream = stream
        self._pump = pump
        # Unbuffered hand-off: a slow consumer throttles the network reads.
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._drained = False

    def __aiter__(self) -> "ChatEventStream":
        return self

    async def __anext__(self) -> StreamEvent:
        if self._closed:
            raise StopAsyncIteration
        if self._task is None:
            self._task = asyncio.create_task(self._pump(self._queue))

        item = await self._queue.get()
        if item is _STREAM_CLOSED:
            self._closed = True
            self._drained = True
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        if self._task is None:
            if not self._closed:
                self._closed = True
                await _close_stream(self._stream)
            return
        self._closed = True
        # After the closing marker the reader only has the SDK stream left to close.
        if not self._drained and not self._task.done():
            self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)

    async def __aenter__(self) -> "ChatEventStream":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _is_raw_tool_call(item: Any) -> bool:
    """Shape check for one decoded ``tool_calls`` entry; ``arguments`` must stay a JSON string."""
    if not isinstance(item, dict):
        return False
    for key in ("id", "type"):
        if item.get(key) is not None and not isinstance(item[key], str):
            return False
    function = item.get("function")
    if function is None:
        return True
    if not isinstance(function, dict):
        return False
    return all(function.get(key) is None or isinstance(function[key], str) for key in ("name", "arguments"))


async def _read_next(iterator: Any) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _STREAM_CLOSED


async def _close_stream(stream: Any) -> None:
    close = getattr(stream, "close", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result


def _normalize_message_content(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(_extract_text_from_content_item(item) for item in content)
    return str(content)


def _extract_text_from_content_item(item: Any) -> str:
    if item is None:
        return ""
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return str(item.get("text", "") or "")
    return str(getattr(item, "text", "") or "")
