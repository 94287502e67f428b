"""CLI parsing, rendering and entry-point tests."""

from __future__ import annotations

import io
import sys

import pytest
from rich.console import Console

from chat_gateway import cli
from chat_gateway.config import ChatConfig
from chat_gateway.providers.types import (
    ChatResponse,
    FunctionCall,
    Message,
    ResponseType,
    StreamEvent,
    ToolCall,
)


@pytest.fixture
def captured_console(monkeypatch: pytest.MonkeyPatch) -> io.StringIO:
    buffer = io.StringIO()
    monkeypatch.setattr(cli, "console", Console(file=buffer, force_terminal=False, width=120))
    return buffer


class _FakeChat:
    def __init__(self, events=None, response=None) -> None:
        self.events = events or []
        self.response = response
        self.closed = False
        self.stream_args = None

    async def chat(self, messages, options=None):
        return self.response

    async def chat_stream(self, messages, options=None, timeout=None):
        self.stream_args = (messages, options, timeout)

        async def _events():
            for event in self.events:
                yield event

        return _events()

    async def close(self):
        self.closed = True


def test_parser_defaults() -> None:
    args = cli.build_parser().parse_args(["--prompt", "hello"])

    assert args.prompt == "hello"
    assert args.config == "config/config.local.yaml"
    assert args.stream is False
    assert args.thinking is None
    assert args.model is None


def test_parser_thinking_flags() -> None:
    parser = cli.build_parser()

    assert parser.parse_args(["-p", "x", "--thinking"]).thinking is True
    assert parser.parse_args(["-p", "x", "--no-thinking"]).thinking is False


def test_parser_requires_prompt() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_render_tool_calls() -> None:
    assert cli.render_tool_calls([]) is None

    table = cli.render_tool_calls(
        [
            ToolCall(id="c1", function=FunctionCall(name="search", arguments='{"q":"a"}')),
            ToolCall(id="c2", function=FunctionCall(name="fetch", arguments="{}")),
        ]
    )

    assert table is not None
    assert table.row_count == 2


@pytest.mark.asyncio
async def test_run_once_streams_events(monkeypatch, captured_console) -> None:
    call = ToolCall(id="c1", function=FunctionCall(name="search", arguments='{"q":"a"}'))
    fake = _FakeChat(
        events=[
            StreamEvent(response_type=ResponseType.ANSWER, content="Looking [it] up"),
            StreamEvent(
                response_type=ResponseType.TOOL_CALL_STARTED,
                data={"tool_name": "search", "tool_call_id": "c1"},
            ),
            StreamEvent(response_type=ResponseType.ANSWER, done=True, tool_calls=[call]),
        ]
    )
    monkeypatch.setattr(cli, "create_chat", lambda config, observer=None: fake)
    config = ChatConfig(api_key="k", timeout=12.0)

    await cli.run_once(config, [Message.user("hi")], stream=True, verbose=False)

    output = captured_console.getvalue()
    assert "Looking [it] up" in output
    assert "search (c1)" in output
    assert fake.stream_args[2] == 12.0
    assert fake.closed


@pytest.mark.asyncio
async def test_run_once_non_streaming(monkeypatch, captured_console) -> None:
    fake = _FakeChat(response=ChatResponse(content="All done", finish_reason="stop"))
    monkeypatch.setattr(cli, "create_chat", lambda config, observer=None: fake)

    await cli.run_once(ChatConfig(api_key="k"), [Message.user("hi")], stream=False, verbose=False)

    assert "All done" in captured_console.getvalue()
    assert fake.closed


def test_main_applies_overrides(monkeypatch, captured_console) -> None:
    seen = {}

    async def fake_run_once(config, messages, stream, verbose):
        seen.update(config=config, messages=messages, stream=stream, verbose=verbose)

    monkeypatch.setattr(cli, "run_once", fake_run_once)
    monkeypatch.setattr(
        cli,
        "load_raw_config",
        lambda path: {"api_key": "sk-test", "model_name": "gpt-4o-mini", "options": {"temperature": 0.5}},
    )
    monkeypatch.setattr(
        sys,
        "argv",
        ["chat-gateway", "-p", "hi", "-s", "be brief", "-m", "qwen3-32b", "--no-thinking", "--stream"],
    )

    cli.main()

    config = seen["config"]
    assert config.model_name == "qwen3-32b"
    assert config.default_options.thinking is False
    assert config.default_options.temperature == 0.5
    assert [m.role for m in seen["messages"]] == ["system", "user"]
    assert seen["stream"] is True


def test_main_exits_on_config_errors(monkeypatch, captured_console) -> None:
    monkeypatch.setattr(cli, "load_raw_config", lambda path: {"api_key": "", "model_name": "gpt-4o-mini"})
    monkeypatch.setattr(sys, "argv", ["chat-gateway", "-p", "hi"])

    with pytest.raises(SystemExit) as exc_info:
        cli.main()

    assert exc_info.value.code == 1
    assert "[error] api_key" in captured_console.getvalue()
