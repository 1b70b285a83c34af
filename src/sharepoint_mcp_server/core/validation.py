#!/usr/bin/env python3
"""
SharePoint MCP Server - Validation Utilities

Parameter validation and sanitization functions.
"""

import json
from typing import Any, Optional
from urllib.parse import quote, urlparse

class ValidationError(Exception):
    """Custom validation error."""
    pass

def validate_string_param(value: Any, param_name: str, min_length: int = 1, max_length: int = 1000) -> str:
    """Validate and return a string parameter."""
    if not isinstance(value, str):
        raise ValidationError(f"{param_name} must be a string")

    value = value.strip()
    if len(value) < min_length:
        raise ValidationError(f"{param_name} must be at least {min_length} characters long")

    if len(value) > max_length:
        raise ValidationError(f"{param_name} must be no more than {max_length} characters long")

    return value

def validate_integer_param(value: Any, param_name: str, min_value: Optional[int] = None, max_value: Optional[int] = None) -> int:
    """Validate and return an integer parameter."""
    if isinstance(value, bool):
        raise ValidationError(f"{param_name} must be an integer")
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(f"{param_name} must be an integer")

    if min_value is not None and int_value < min_value:
        raise ValidationError(f"{param_name} must be at least {min_value}")

    if max_value is not None and int_value > max_value:
        raise ValidationError(f"{param_name} must be no more than {max_value}")

    return int_value

def validate_json_data(value: Any, param_name: str) -> dict:
    """Validate and return JSON object data."""
    if isinstance(value, dict):
        return value

    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            raise ValidationError(f"{param_name} must be valid JSON")
        if not isinstance(parsed, dict):
            raise ValidationError(f"{param_name} must be a JSON object")
        return parsed

    raise ValidationError(f"{param_name} must be a dictionary or valid JSON string")

def validate_site_url(value: Any, param_name: str = "Site URL") -> str:
    """Validate an absolute http(s) SharePoint site URL and strip the trailing slash."""
    url = validate_string_param(value, param_name, min_length=8, max_length=2048)
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValidationError(f"{param_name} must be an absolute http(s) URL. Received: {url}")
    return url.rstrip("/")

def odata_string_literal(value: str) -> str:
    """Quote a value for use inside an OData key segment such as getByTitle('...')."""
    return quote(value.replace("'", "''"), safe="")

def validate_json_list(value: Any, param_name: str, max_length: Optional[int] = None) -> list:
    """Validate and return a non-empty JSON array."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ValidationError(f"{param_name} must be valid JSON")

    if not isinstance(value, list):
        raise ValidationError(f"{param_name} must be a list or a JSON array")
    if not value:
        raise ValidationError(f"{param_name} must contain at least one entry")
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{param_name} must contain no more than {max_length} entries")
    return value
