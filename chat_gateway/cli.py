"""CLI - send one prompt through the chat gateway."""

import asyncio
import json
import sys
from typing import List, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from .config import ChatConfig, config_from_dict, load_raw_config
from .config_validator import has_errors, validate_config
from .errors import ChatError
from .observability import ChatObserver
from .providers import create_chat
from .providers.types import ChatResponse, Message, ResponseType, StreamEvent, ToolCall

console = Console()


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        description="Chat Gateway - send a prompt to an OpenAI-compatible backend"
    )
    parser.add_argument(
        "--config", "-c",
        default="config/config.local.yaml",
        help="Path to configuration file",
    )
    parser.add_argument("--prompt", "-p", required=True, help="User prompt to send")
    parser.add_argument("--system", "-s", default="", help="Optional system prompt")
    parser.add_argument("--model", "-m", help="Override the configured model name")
    parser.add_argument("--base-url", help="Override the configured base URL")
    parser.add_argument(
        "--stream",
        action="store_true",
        help="Stream the answer as it is generated",
    )
    parser.add_argument(
        "--thinking",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable vendor thinking mode (unset: backend default)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log requests and stream summaries",
    )
    return parser


def render_tool_calls(tool_calls: List[ToolCall]) -> Optional[Table]:
    if not tool_calls:
        return None
    table = Table(title="Tool calls", show_header=True, header_style="bold cyan")
    table.add_column("#", style="yellow", width=3)
    table.add_column("ID", style="dim")
    table.add_column("Function", style="cyan")
    table.add_column("Arguments", no_wrap=False)
    for i, call in enumerate(tool_calls, 1):
        table.add_row(str(i), call.id, call.function.name, call.function.arguments)
    return table


def render_event(event: StreamEvent) -> None:
    if event.response_type == ResponseType.TOOL_CALL_STARTED:
        data = event.data or {}
        console.print(f"\n🔧 {data.get('tool_name', '')} ({data.get('tool_call_id', '')})", style="dim")
        return
    if event.content:
        console.print(event.content, end="", markup=False, highlight=False)


async def run_once(config: ChatConfig, messages: List[Message], stream: bool, verbose: bool) -> None:
    chat = create_chat(config, observer=ChatObserver(verbose=verbose))
    try:
        if stream:
            last: Optional[StreamEvent] = None
            events = await chat.chat_stream(messages, config.default_options, timeout=config.timeout)
            async for event in events:
                render_event(event)
                last = event
            console.print()
            table = render_tool_calls(last.tool_calls if last else [])
        else:
            response: ChatResponse = await chat.chat(messages, config.default_options)
            if response.content:
                console.print(Markdown(response.content))
            table = render_tool_calls(response.tool_calls)
            if verbose and response.usage:
                console.print(json.dumps(response.usage.to_dict()), style="dim")
        if table is not None:
            console.print(table)
    finally:
        await chat.close()


def main():
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables from .env file
    load_dotenv()

    args = build_parser().parse_args()

    try:
        raw_config = load_raw_config(args.config)
    except FileNotFoundError as e:
        console.print(f"⚠️ {e}", style="yellow")
        sys.exit(1)

    issues = validate_config(raw_config)
    for issue in issues:
        console.print(f"[{issue.severity.value}] {issue.field}: {issue.message}", style="yellow", markup=False)
    if has_errors(issues):
        sys.exit(1)

    config = config_from_dict(raw_config)
    if args.model:
        config.model_name = args.model
    if args.base_url:
        config.base_url = args.base_url
    if args.thinking is not None:
        config.default_options.thinking = args.thinking

    messages: List[Message] = []
    if args.system:
        messages.append(Message.system(args.system))
    messages.append(Message.user(args.prompt))

    try:
        asyncio.run(run_once(config, messages, stream=args.stream, verbose=args.verbose))
    except ChatError as e:
        console.print(f"\n❌ {e.code}: {e.message}", style="red")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n⚠️ Interrupted.", style="yellow")


if __name__ == "__main__":
    main()
