#!/usr/bin/env python3
"""
Site Management Tools for SharePoint MCP Server

Provides site operations: title, properties and property updates.
"""

from typing import Dict, Any, Optional
from fastmcp import Context
from pydantic import Field

from ...core.logging_utils import get_tool_logger
from ...core.rest import SharePointRestClient
from ...core.tool_result import error_result, tool_result
from ...core.validation import validate_string_param, ValidationError
from ..common import ensure_writable, resolve_site_url

SITE_PROPERTIES = "Id,Title,Description,Url,ServerRelativeUrl,Created,LastItemModifiedDate,Language,WebTemplate"
MUTATING_ACTIONS = {"update_site"}


async def manage_site(
    ctx: Context,
    action: str = Field(description="Operation to perform: get_title, get_site, update_site"),
    url: Optional[str] = Field(default=None, description="SharePoint site URL (defaults to the configured site)"),
    title: Optional[str] = Field(default=None, description="New site title (update_site)"),
    description: Optional[str] = Field(default=None, description="New site description (update_site)")
) -> Dict[str, Any]:
    """SharePoint site operations.

    Actions:
    - get_title: Get the title of the site
    - get_site: Get the main site properties
    - update_site: Update the site title and/or description (requires form digest)
    """
    from ...core.dependency_injection import get_config, get_rest_client
    config = get_config()
    rest_client = get_rest_client()

    tool_logger = get_tool_logger("site")
    tool_logger.info(f"Starting site operation: {action}")

    try:
        await ctx.info(f"Starting site operation: {action}")
        ensure_writable(config, action, MUTATING_ACTIONS)
        site_url = resolve_site_url(url, config)

        if action == "get_title":
            result = await _get_title(rest_client, site_url)
        elif action == "get_site":
            result = await _get_site(rest_client, site_url)
        elif action == "update_site":
            result = await _update_site(rest_client, site_url, title, description)
        else:
            raise ValidationError(f"Unknown action: {action}. Supported: get_title, get_site, update_site")

        await ctx.info(f"Completed site operation: {action}")
        tool_logger.info(f"Completed site operation: {action}")
        return result

    except Exception as e:
        tool_logger.error(f"Error in site operation {action}: {e}")
        await ctx.error(f"Error in site operation {action}: {e}")
        return error_result(f"in site operation {action}", e)


async def _get_title(rest_client: SharePointRestClient, site_url: str) -> Dict[str, Any]:
    data = await rest_client.request_json("GET", site_url, "/_api/web", params={"$select": "Title"}, timeout=8.0)
    return tool_result(f"SharePoint site title: {data['d']['Title']}")


async def _get_site(rest_client: SharePointRestClient, site_url: str) -> Dict[str, Any]:
    data = await rest_client.request_json("GET", site_url, "/_api/web", params={"$select": SITE_PROPERTIES},
                                          timeout=15.0)
    web = data.get("d", {})
    return tool_result({key: web.get(key) for key in SITE_PROPERTIES.split(",")})


async def _update_site(rest_client: SharePointRestClient, site_url: str,
                       title: Optional[str], description: Optional[str]) -> Dict[str, Any]:
    updates: Dict[str, Any] = {}
    if title is not None:
        updates["Title"] = validate_string_param(title, "title", max_length=255)
    if description is not None:
        updates["Description"] = description
    if not updates:
        raise ValidationError("title or description is required for update_site action")

    await rest_client.request_json(
        "POST", site_url, "/_api/web",
        mutating=True,
        json_data={"__metadata": {"type": "SP.Web"}, **updates},
        extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "MERGE"},
        timeout=20.0,
    )
    return tool_result({
        "success": True,
        "message": "Site updated successfully",
        "updated": updates,
    })
