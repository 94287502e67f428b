"""Reassembly of streamed tool-call fragments into ordered invocations."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .types import FunctionCall, ResponseType, StreamEvent, ToolCall, snapshot_tool_calls


class ToolCallStreamAggregator:
    """Turns streamed chat-completion chunks into ``StreamEvent``s.

    One instance per streaming call, owned by the single task reading the
    stream. Chunks are read through ``getattr`` so SDK objects and plain
    namespaces are handled alike.
    """

    def __init__(self) -> None:
        self._calls: Dict[int, ToolCall] = {}
        self._last_names: Dict[int, str] = {}
        self._notified: Dict[int, bool] = {}

    @property
    def has_tool_calls(self) -> bool:
        return bool(self._calls)

    def snapshot(self) -> List[ToolCall]:
        """Copies of all calls seen so far, by ascending index."""
        return snapshot_tool_calls(self._calls[index] for index in sorted(self._calls))

    def process_chunk(self, chunk: Any) -> List[StreamEvent]:
        events: List[StreamEvent] = []
        choices = getattr(chunk, "choices", None) or []
        if not choices:
            return events

        choice = choices[0]
        is_done = bool(getattr(choice, "finish_reason", None))
        delta = getattr(choice, "delta", None)

        if delta is not None:
            for tool_call in getattr(delta, "tool_calls", None) or []:
                started = self._apply_tool_call_delta(tool_call)
                if started is not None:
                    events.append(started)

            content = getattr(delta, "content", None)
            if content:
                events.append(
                    StreamEvent(
                        response_type=ResponseType.ANSWER,
                        content=content,
                        done=is_done,
                        tool_calls=self.snapshot(),
                    )
                )

        if is_done and self._calls:
            events.append(self.final_event())

        return events

    def final_event(self) -> StreamEvent:
        return StreamEvent(
            response_type=ResponseType.ANSWER,
            content="",
            done=True,
            tool_calls=self.snapshot(),
        )

    def _apply_tool_call_delta(self, tool_call: Any) -> Optional[StreamEvent]:
        index = int(getattr(tool_call, "index", 0) or 0)
        entry = self._calls.get(index)
        if entry is None:
            entry = ToolCall(function=FunctionCall())
            self._calls[index] = entry

        call_id = getattr(tool_call, "id", None)
        if call_id:
            entry.id = call_id
        call_type = getattr(tool_call, "type", None)
        if call_type:
            entry.type = call_type

        function = getattr(tool_call, "function", None)
        name_fragment = getattr(function, "name", None) if function is not None else None
        args_fragment = getattr(function, "arguments", None) if function is not None else None

        if name_fragment:
            entry.function.name += name_fragment

        args_updated = False
        if args_fragment:
            entry.function.arguments += args_fragment
            args_updated = True

        # Fires on the first arguments fragment after the name stopped growing,
        # once the id is known.
        event = None
        current_name = entry.function.name
        if (
            current_name
            and current_name == self._last_names.get(index)
            and args_updated
            and not self._notified.get(index)
            and entry.id
        ):
            event = StreamEvent(
                response_type=ResponseType.TOOL_CALL_STARTED,
                content="",
                done=False,
                data={"tool_name": current_name, "tool_call_id": entry.id},
            )
            self._notified[index] = True

        self._last_names[index] = current_name
        return event
