#!/usr/bin/env python3
"""
List Management Tools for SharePoint MCP Server

Provides list operations: enumerate, inspect, create, update and delete lists.
"""

from typing import Dict, Any, List, Optional
from fastmcp import Context
from pydantic import Field

from ...core.logging_utils import get_tool_logger
from ...core.rest import SharePointRestClient
from ...core.tool_result import error_result, tool_result
from ...core.validation import (
    validate_integer_param, validate_json_data, validate_string_param, odata_string_literal, ValidationError
)
from ..common import ensure_writable, require, resolve_site_url

LIST_PROPERTIES = "Title,Id,ItemCount,LastItemModifiedDate,Description,BaseTemplate,Hidden,RootFolder/ServerRelativeUrl"
MUTATING_ACTIONS = {"create_list", "update_list", "delete_list"}
GENERIC_LIST_TEMPLATE = 100


def list_path(list_title: str) -> str:
    return f"/_api/web/lists/getByTitle('{odata_string_literal(list_title)}')"


def format_list(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a verbose OData list entry to the fields tools report."""
    return {
        "Title": raw.get("Title"),
        "URL": (raw.get("RootFolder") or {}).get("ServerRelativeUrl"),
        "ItemCount": raw.get("ItemCount"),
        "LastModified": raw.get("LastItemModifiedDate"),
        "Description": raw.get("Description"),
        "BaseTemplateID": raw.get("BaseTemplate"),
    }


async def manage_lists(
    ctx: Context,
    action: str = Field(description="Operation to perform: list_lists, get_list, create_list, update_list, delete_list"),
    url: Optional[str] = Field(default=None, description="SharePoint site URL (defaults to the configured site)"),
    list_title: Optional[str] = Field(default=None, description="Title of the list (get_list, create_list, update_list, delete_list)"),
    description: Optional[str] = Field(default=None, description="List description (create_list)"),
    template_type: int = Field(default=GENERIC_LIST_TEMPLATE, description="List template: 100 generic list, 101 document library (create_list)"),
    updates: Optional[Any] = Field(default=None, description="Properties to update as a JSON object, e.g. {\"Title\": \"New\"} (update_list)")
) -> Dict[str, Any]:
    """SharePoint list management operations.

    Actions:
    - list_lists: List all non-hidden lists on the site
    - get_list: Get one list by title
    - create_list: Create a list (requires form digest)
    - update_list: Update list properties (requires form digest)
    - delete_list: Delete a list (requires form digest)
    """
    from ...core.dependency_injection import get_config, get_rest_client
    config = get_config()
    rest_client = get_rest_client()

    tool_logger = get_tool_logger("lists")
    tool_logger.info(f"Starting list operation: {action}")

    try:
        await ctx.info(f"Starting list operation: {action}")
        ensure_writable(config, action, MUTATING_ACTIONS)
        site_url = resolve_site_url(url, config)

        if action == "list_lists":
            result = await _list_lists(rest_client, site_url)
        elif action == "get_list":
            result = await _get_list(rest_client, site_url, require(list_title, "list_title", action))
        elif action == "create_list":
            result = await _create_list(rest_client, site_url, require(list_title, "list_title", action),
                                        description, template_type)
        elif action == "update_list":
            result = await _update_list(rest_client, site_url, require(list_title, "list_title", action),
                                        validate_json_data(require(updates, "updates", action), "updates"))
        elif action == "delete_list":
            result = await _delete_list(rest_client, site_url, require(list_title, "list_title", action))
        else:
            raise ValidationError(
                f"Unknown action: {action}. Supported: list_lists, get_list, create_list, update_list, delete_list"
            )

        await ctx.info(f"Completed list operation: {action}")
        tool_logger.info(f"Completed list operation: {action}")
        return result

    except Exception as e:
        tool_logger.error(f"Error in list operation {action}: {e}")
        await ctx.error(f"Error in list operation {action}: {e}")
        return error_result(f"in list operation {action}", e)


async def _list_lists(rest_client: SharePointRestClient, site_url: str) -> Dict[str, Any]:
    data = await rest_client.request_json(
        "GET", site_url, "/_api/web/lists",
        params={"$filter": "Hidden eq false", "$select": LIST_PROPERTIES, "$expand": "RootFolder"},
        timeout=15.0,
    )
    lists: List[Dict[str, Any]] = [format_list(entry) for entry in data.get("d", {}).get("results", [])]
    return tool_result({"count": len(lists), "lists": lists})


async def _get_list(rest_client: SharePointRestClient, site_url: str, list_title: str) -> Dict[str, Any]:
    data = await rest_client.request_json(
        "GET", site_url, list_path(list_title),
        params={"$select": LIST_PROPERTIES, "$expand": "RootFolder"},
        timeout=15.0,
    )
    return tool_result(format_list(data.get("d", {})))


async def _create_list(rest_client: SharePointRestClient, site_url: str, list_title: str,
                       description: Optional[str], template_type: int) -> Dict[str, Any]:
    payload = {
        "__metadata": {"type": "SP.List"},
        "Title": validate_string_param(list_title, "list_title", max_length=255),
        "Description": description or "",
        "BaseTemplate": validate_integer_param(template_type, "template_type", min_value=100),
        "AllowContentTypes": True,
        "ContentTypesEnabled": True,
    }
    data = await rest_client.request_json("POST", site_url, "/_api/web/lists", mutating=True,
                                          json_data=payload, timeout=20.0)
    return tool_result({
        "success": True,
        "message": f"List \"{list_title}\" created successfully",
        "list": format_list(data.get("d", {})),
    })


async def _update_list(rest_client: SharePointRestClient, site_url: str, list_title: str,
                       updates: Dict[str, Any]) -> Dict[str, Any]:
    if not updates:
        raise ValidationError("updates must contain at least one property")
    await rest_client.request_json(
        "POST", site_url, list_path(list_title),
        mutating=True,
        json_data={"__metadata": {"type": "SP.List"}, **updates},
        extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "MERGE"},
        timeout=20.0,
    )
    return tool_result({
        "success": True,
        "message": f"List \"{list_title}\" updated successfully",
        "updated": sorted(updates),
    })


async def _delete_list(rest_client: SharePointRestClient, site_url: str, list_title: str) -> Dict[str, Any]:
    await rest_client.request_json(
        "POST", site_url, list_path(list_title),
        mutating=True,
        extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "DELETE"},
        timeout=20.0,
    )
    return tool_result({"success": True, "message": f"List \"{list_title}\" deleted successfully"})
