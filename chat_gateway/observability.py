"""Logging and lightweight metrics for chat calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ChatEvent:
    """A single recorded chat operation."""

    timestamp: datetime
    event_type: str  # "llm_request", "stream_end", "error"
    data: Dict[str, Any]
    duration_ms: Optional[float] = None
    tokens_used: Optional[int] = None


class ChatObserver:
    """
    Records chat requests and stream outcomes.

    Every event is also written to the ``chat_gateway`` logger.
    """

    def __init__(self, verbose: bool = False):
        self.events: List[ChatEvent] = []
        self.logger = logging.getLogger("chat_gateway")
        self.verbose = verbose
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging format and handlers."""
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
        if self.verbose:
            self.logger.setLevel(logging.INFO)
        elif self.logger.level == logging.NOTSET:
            self.logger.setLevel(logging.WARNING)

    def log_llm_request(
        self,
        model: str,
        path: str,
        tokens: int,
        duration_ms: float,
        finish_reason: Optional[str] = None,
    ):
        """
        Log a completed non-streaming request.

        Args:
            model: Model name sent to the backend
            path: "standard" or "raw"
            tokens: Total tokens reported by the backend (0 when absent)
            duration_ms: Request duration in milliseconds
            finish_reason: Finish reason of the first choice
        """
        event = ChatEvent(
            timestamp=datetime.now(),
            event_type="llm_request",
            data={"model": model, "path": path, "finish_reason": finish_reason},
            duration_ms=duration_ms,
            tokens_used=tokens,
        )
        self.events.append(event)
        self.logger.info(f"LLM: {model} | {path} | {tokens} tokens | {duration_ms:.2f}ms")

    def log_stream_end(self, model: str, event_count: int, tool_calls: int, duration_ms: float):
        event = ChatEvent(
            timestamp=datetime.now(),
            event_type="stream_end",
            data={"model": model, "event_count": event_count, "tool_calls": tool_calls},
            duration_ms=duration_ms,
        )
        self.events.append(event)
        self.logger.info(
            f"Stream: {model} | {event_count} events | {tool_calls} tool calls | {duration_ms:.2f}ms"
        )

    def log_error(self, error_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        """
        Log an error event.

        Args:
            error_type: Type of error (e.g., "stream", "llm_api")
            message: Error message
            context: Additional context about the error
        """
        event = ChatEvent(
            timestamp=datetime.now(),
            event_type="error",
            data={"error_type": error_type, "message": message, "context": context or {}},
        )
        self.events.append(event)
        self.logger.error(f"Error ({error_type}): {message}")

    def get_session_stats(self) -> Dict[str, Any]:
        requests = [e for e in self.events if e.event_type == "llm_request"]
        streams = [e for e in self.events if e.event_type == "stream_end"]
        errors = [e for e in self.events if e.event_type == "error"]
        return {
            "total_tokens": sum(e.tokens_used or 0 for e in self.events),
            "total_duration_ms": sum(e.duration_ms or 0 for e in self.events),
            "event_count": len(self.events),
            "llm_requests": len(requests),
            "streams": len(streams),
            "errors": len(errors),
        }

    def clear(self):
        """Clear all recorded events."""
        self.events.clear()
