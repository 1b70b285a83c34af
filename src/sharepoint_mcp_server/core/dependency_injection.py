#!/usr/bin/env python3
"""
SharePoint MCP Server - Dependency Injection Module

Provides module-level access to configuration and the REST client for tools.
"""

from typing import Optional
from .config import SharePointConfig
from .rest import SharePointRestClient

_config: Optional[SharePointConfig] = None
_rest_client: Optional[SharePointRestClient] = None

def set_dependencies(config: SharePointConfig, rest_client: SharePointRestClient) -> None:
    """Set the dependencies for tools to access."""
    global _config, _rest_client
    _config = config
    _rest_client = rest_client

def get_config() -> SharePointConfig:
    """Get the current configuration instance."""
    if _config is None:
        raise RuntimeError("Dependencies not set. Call set_dependencies() first.")
    return _config

def get_rest_client() -> SharePointRestClient:
    """Get the current SharePoint REST client."""
    if _rest_client is None:
        raise RuntimeError("Dependencies not set. Call set_dependencies() first.")
    return _rest_client

def clear_dependencies() -> None:
    """Clear the stored dependencies."""
    global _config, _rest_client
    _config = None
    _rest_client = None
