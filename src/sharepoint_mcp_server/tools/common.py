"""
Shared helpers for SharePoint management tools.
"""

from typing import Iterable, Optional

from ..core.config import SharePointConfig
from ..core.validation import ValidationError, validate_site_url


def resolve_site_url(url: Optional[str], config: SharePointConfig) -> str:
    """Use the tool argument when given, otherwise the configured site URL."""
    candidate = url or config.site_url
    if not candidate:
        raise ValidationError("url is required when SHAREPOINT_SITE_URL is not configured")
    return validate_site_url(candidate, "url")


def ensure_writable(config: SharePointConfig, action: str, mutating_actions: Iterable[str]) -> None:
    """Refuse mutating actions in read-only mode, before any authentication happens."""
    if config.read_only_mode and action in mutating_actions:
        raise ValidationError(f"Action '{action}' is not allowed in read-only mode")


def require(value, param_name: str, action: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{param_name} is required for {action} action")
    return value
