"""Error types raised by the chat gateway."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ChatError(Exception):
    """Base error with a stable code for callers that map errors to responses."""

    code = "CHAT_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class InvalidMessage(ChatError):
    """Conversation shape rejected before any network call."""

    code = "INVALID_MESSAGE"


class EmptyResponse(ChatError):
    """Backend answered without any choices."""

    code = "EMPTY_RESPONSE"


class BackendError(ChatError):
    """Backend answered with a non-200 status."""

    code = "BACKEND_ERROR"

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(
            f"API request failed with status: {status_code}, body: {body}",
            details={"status_code": status_code, "body": body},
        )
        self.status_code = status_code
        self.body = body


class DecodeError(ChatError):
    """Response envelope could not be decoded."""

    code = "DECODE_ERROR"
