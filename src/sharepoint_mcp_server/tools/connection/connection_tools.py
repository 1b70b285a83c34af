#!/usr/bin/env python3
"""
Connection Tools for SharePoint MCP Server

Checks that the configured credentials can authenticate against a site.
"""

from typing import Dict, Any, Optional
from fastmcp import Context
from pydantic import Field

from ...core.logging_utils import get_tool_logger
from ...core.tool_result import error_result, tool_result
from ..common import resolve_site_url


async def check_authentication(
    ctx: Context,
    url: Optional[str] = Field(default=None, description="SharePoint site URL (defaults to the configured site)"),
    include_digest: bool = Field(default=True, description="Also request a form digest to verify write access")
) -> Dict[str, Any]:
    """Verify SharePoint authentication without exposing the access token."""
    from ...core.dependency_injection import get_config, get_rest_client
    config = get_config()
    rest_client = get_rest_client()

    tool_logger = get_tool_logger("connection")
    tool_logger.info(f"Checking {config.auth_type} authentication")

    try:
        site_url = resolve_site_url(url, config)
        await ctx.report_progress(10, 100, "Authenticating...")
        headers = await rest_client.prepare_headers(site_url)

        digest_obtained = False
        if include_digest:
            await ctx.report_progress(60, 100, "Requesting form digest...")
            await rest_client.dispatcher.get_digest(site_url, headers)
            digest_obtained = True

        await ctx.report_progress(100, 100, "Authentication verified")
        tool_logger.info("Authentication check succeeded")
        return tool_result({
            "success": True,
            "auth_type": config.auth_type,
            "site_url": site_url,
            "headers": sorted(headers),
            "digest_obtained": digest_obtained,
        })

    except Exception as e:
        tool_logger.error(f"Authentication check failed: {e}")
        await ctx.error(f"Authentication check failed: {e}")
        return error_result("checking authentication", e)
