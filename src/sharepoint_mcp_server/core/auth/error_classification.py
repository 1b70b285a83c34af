"""
Token endpoint error classification.

Turns identity-provider failures into actionable messages. Machine-readable
fields (``error`` code, HTTP status) are used first; substring matching on
the error text only applies when the provider gave no error code.
"""

import json
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..errors import TokenExchangeError
from .schemas import TokenErrorResponse

INVALID_CLIENT = "invalid_client"
INVALID_GRANT = "invalid_grant"
FORBIDDEN = "forbidden"
NOT_FOUND = "not_found"
TIMEOUT = "timeout"

_ERROR_CODE_CATEGORIES = {
    "invalid_client": INVALID_CLIENT,
    "unauthorized_client": INVALID_CLIENT,
    "invalid_grant": INVALID_GRANT,
    "access_denied": FORBIDDEN,
    "invalid_resource": NOT_FOUND,
}

_STATUS_CATEGORIES = {
    403: FORBIDDEN,
    404: NOT_FOUND,
    408: TIMEOUT,
    504: TIMEOUT,
}


def category_message(category: str, credential_label: str = "client ID or client secret") -> str:
    return {
        INVALID_CLIENT: f"Invalid client credentials ({credential_label})",
        INVALID_GRANT: "Invalid grant (tenant ID may be incorrect)",
        FORBIDDEN: "Access forbidden - check app permissions",
        NOT_FOUND: "Resource not found - check site URL",
        TIMEOUT: "Request timed out - check network connection",
    }[category]


def _classify_text(text: str) -> Optional[str]:
    lowered = text.lower()
    if "invalid_client" in text:
        return INVALID_CLIENT
    if "invalid_grant" in text:
        return INVALID_GRANT
    if "forbidden" in lowered or "403" in text:
        return FORBIDDEN
    if "not found" in lowered or "404" in text:
        return NOT_FOUND
    if "timeout" in lowered or "timed out" in lowered:
        return TIMEOUT
    return None


def classify(error_code: Optional[str] = None, status: Optional[int] = None, text: str = "") -> Optional[str]:
    """Map a token endpoint failure to one of the known categories, or None."""
    if error_code:
        category = _ERROR_CODE_CATEGORIES.get(error_code.strip().lower())
        if category:
            return category
    if status in _STATUS_CATEGORIES:
        return _STATUS_CATEGORIES[status]
    if not error_code and text:
        return _classify_text(text)
    return None


def _error_body_from_text(text: str) -> TokenErrorResponse:
    try:
        body = json.loads(text)
    except ValueError:
        return TokenErrorResponse()
    if not isinstance(body, dict):
        return TokenErrorResponse()
    try:
        return TokenErrorResponse.model_validate(body)
    except PydanticValidationError:
        return TokenErrorResponse()


def parse_error_body(response: httpx.Response) -> TokenErrorResponse:
    return _error_body_from_text(response.text)


def _build_token_error(error_body: TokenErrorResponse, status: Optional[int], raw_text: str, prefix: str,
                       credential_label: str) -> TokenExchangeError:
    description = error_body.error_description
    text = description or raw_text or ""
    category = classify(error_body.error, status, text)

    detail = description or error_body.error or raw_text or "No error details provided"
    if category:
        message = f"{prefix}: {category_message(category, credential_label)} ({detail})"
    elif status is not None:
        message = f"{prefix}: HTTP {status} - {detail}"
    else:
        message = f"{prefix}: {detail}"

    return TokenExchangeError(
        message,
        status=status,
        description=description,
        error_code=error_body.error,
        category=category,
    )


def token_error_from_response(response: httpx.Response, prefix: str = "Token request failed",
                              credential_label: str = "client ID or client secret") -> TokenExchangeError:
    """Build a TokenExchangeError from a non-2xx token endpoint response."""
    return _build_token_error(parse_error_body(response), response.status_code, response.text, prefix,
                              credential_label)


def token_error_from_text(text: str, prefix: str = "Token request failed",
                          credential_label: str = "client ID or client secret") -> TokenExchangeError:
    """Build a TokenExchangeError from an error body that arrived without its HTTP response."""
    return _build_token_error(_error_body_from_text(text), None, text, prefix, credential_label)


def token_error_from_timeout(error: BaseException, prefix: str = "Token request failed") -> TokenExchangeError:
    return TokenExchangeError(
        f"{prefix}: {category_message(TIMEOUT)} ({type(error).__name__})",
        category=TIMEOUT,
    )
