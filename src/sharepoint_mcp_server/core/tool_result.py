"""
Tool result helpers.

Tools return MCP-style result objects: a list of text content items plus
``isError`` when the invocation failed. Authentication and REST failures
are converted here so they never escape the tool boundary.
"""

import json
from typing import Any, Dict

import httpx

from .errors import SharePointAuthError
from .rest import SharePointRequestError
from .validation import ValidationError


def tool_result(payload: Any) -> Dict[str, Any]:
    """Wrap a successful payload; non-string payloads are rendered as JSON."""
    text = payload if isinstance(payload, str) else json.dumps(payload, indent=2, default=str)
    return {"content": [{"type": "text", "text": text}]}


def tool_error(message: str) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": message}], "isError": True}


def describe_error(error: BaseException) -> str:
    """Human-readable message for an error raised inside a tool pipeline."""
    if isinstance(error, ValidationError):
        return f"Validation error: {error}"
    if isinstance(error, SharePointAuthError):
        return str(error)
    if isinstance(error, SharePointRequestError):
        return str(error)
    if isinstance(error, httpx.TimeoutException):
        return "Request timed out - check network connection"
    if isinstance(error, httpx.HTTPError):
        return f"HTTP error: {error}"
    return str(error) or type(error).__name__


def error_result(operation: str, error: BaseException) -> Dict[str, Any]:
    return tool_error(f"Error {operation}: {describe_error(error)}")
