#!/usr/bin/env python3
"""
List Item Management Tools for SharePoint MCP Server

Provides list item operations: query, read, create, update and delete,
singly or in batches.
"""

from typing import Dict, Any, List, Optional
import httpx
from fastmcp import Context
from pydantic import Field

from ...core.logging_utils import get_tool_logger
from ...core.rest import SharePointRequestError, SharePointRestClient
from ...core.tool_result import error_result, tool_result
from ...core.validation import validate_integer_param, validate_json_data, validate_json_list, ValidationError
from ..common import ensure_writable, require, resolve_site_url
from ..lists.list_tools import list_path

MUTATING_ACTIONS = {
    "create_item", "update_item", "delete_item",
    "batch_create_items", "batch_update_items", "batch_delete_items",
}
SUPPORTED_ACTIONS = (
    "list_items, get_item, create_item, update_item, delete_item, "
    "batch_create_items, batch_update_items, batch_delete_items"
)
MAX_BATCH_SIZE = 100


async def manage_list_items(
    ctx: Context,
    action: str = Field(description=f"Operation to perform: {SUPPORTED_ACTIONS}"),
    list_title: str = Field(description="Title of the list"),
    url: Optional[str] = Field(default=None, description="SharePoint site URL (defaults to the configured site)"),
    item_id: Optional[int] = Field(default=None, description="Item ID (get_item, update_item, delete_item)"),
    item_data: Optional[Any] = Field(default=None, description="Field values as a JSON object (create_item, update_item)"),
    top: int = Field(default=100, description="Maximum number of items to return (list_items, max 5000)"),
    filter: Optional[str] = Field(default=None, description="OData $filter expression (list_items)"),
    select: Optional[str] = Field(default=None, description="Comma-separated fields to return (list_items)"),
    items: Optional[Any] = Field(default=None, description=f"JSON array of field-value objects (batch_create_items) or of {{\"id\": ..., \"data\": {{...}}}} objects (batch_update_items), at most {MAX_BATCH_SIZE}"),
    item_ids: Optional[Any] = Field(default=None, description=f"JSON array of item IDs (batch_delete_items), at most {MAX_BATCH_SIZE}")
) -> Dict[str, Any]:
    """SharePoint list item operations.

    Actions:
    - list_items: Query items from a list
    - get_item: Get one item by ID
    - create_item: Create an item (requires form digest)
    - update_item: Update an item's fields (requires form digest)
    - delete_item: Delete an item (requires form digest)
    - batch_create_items: Create several items, continuing past individual failures (requires form digest)
    - batch_update_items: Update several items, continuing past individual failures (requires form digest)
    - batch_delete_items: Delete several items, continuing past individual failures (requires form digest)
    """
    from ...core.dependency_injection import get_config, get_rest_client
    config = get_config()
    rest_client = get_rest_client()

    tool_logger = get_tool_logger("items")
    tool_logger.info(f"Starting list item operation: {action} on list {list_title}")

    try:
        await ctx.info(f"Starting list item operation: {action}")
        ensure_writable(config, action, MUTATING_ACTIONS)
        site_url = resolve_site_url(url, config)
        require(list_title, "list_title", action)

        if action == "list_items":
            result = await _list_items(rest_client, site_url, list_title,
                                       validate_integer_param(top, "top", min_value=1, max_value=5000),
                                       filter, select)
        elif action == "get_item":
            result = await _get_item(rest_client, site_url, list_title, _item_id(item_id, action))
        elif action == "create_item":
            result = await _create_item(rest_client, site_url, list_title,
                                        validate_json_data(require(item_data, "item_data", action), "item_data"))
        elif action == "update_item":
            result = await _update_item(rest_client, site_url, list_title, _item_id(item_id, action),
                                        validate_json_data(require(item_data, "item_data", action), "item_data"))
        elif action == "delete_item":
            result = await _delete_item(rest_client, site_url, list_title, _item_id(item_id, action))
        elif action == "batch_create_items":
            result = await _batch_create_items(rest_client, site_url, list_title, _batch_entries(items, "items", action))
        elif action == "batch_update_items":
            result = await _batch_update_items(rest_client, site_url, list_title, _batch_entries(items, "items", action))
        elif action == "batch_delete_items":
            result = await _batch_delete_items(rest_client, site_url, list_title, _batch_entries(item_ids, "item_ids", action))
        else:
            raise ValidationError(f"Unknown action: {action}. Supported: {SUPPORTED_ACTIONS}")

        await ctx.info(f"Completed list item operation: {action}")
        tool_logger.info(f"Completed list item operation: {action}")
        return result

    except Exception as e:
        tool_logger.error(f"Error in list item operation {action}: {e}")
        await ctx.error(f"Error in list item operation {action}: {e}")
        return error_result(f"in list item operation {action}", e)


def _item_id(item_id: Optional[int], action: str) -> int:
    return validate_integer_param(require(item_id, "item_id", action), "item_id", min_value=1)


def _strip_metadata(item: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in item.items() if key != "__metadata" and not isinstance(value, dict)}


async def _list_items(rest_client: SharePointRestClient, site_url: str, list_title: str, top: int,
                      filter_expression: Optional[str], select: Optional[str]) -> Dict[str, Any]:
    params: Dict[str, Any] = {"$top": top}
    if filter_expression:
        params["$filter"] = filter_expression
    if select:
        params["$select"] = select

    data = await rest_client.request_json("GET", site_url, f"{list_path(list_title)}/items",
                                          params=params, timeout=15.0)
    items = [_strip_metadata(item) for item in data.get("d", {}).get("results", [])]
    return tool_result({"list": list_title, "count": len(items), "items": items})


async def _get_item(rest_client: SharePointRestClient, site_url: str, list_title: str, item_id: int) -> Dict[str, Any]:
    data = await rest_client.request_json("GET", site_url, f"{list_path(list_title)}/items({item_id})",
                                          timeout=15.0)
    return tool_result(_strip_metadata(data.get("d", {})))


async def _entity_type(rest_client: SharePointRestClient, site_url: str, list_title: str,
                       auth_headers: Dict[str, str]) -> str:
    data = await rest_client.request_json(
        "GET", site_url, list_path(list_title),
        params={"$select": "ListItemEntityTypeFullName"},
        auth_headers=auth_headers,
        timeout=15.0,
    )
    entity_type = data.get("d", {}).get("ListItemEntityTypeFullName")
    if not entity_type:
        raise ValidationError(f"Could not determine item entity type for list \"{list_title}\"")
    return entity_type


async def _create_item(rest_client: SharePointRestClient, site_url: str, list_title: str,
                       item_data: Dict[str, Any]) -> Dict[str, Any]:
    auth_headers = await rest_client.prepare_headers(site_url, mutating=True)
    entity_type = await _entity_type(rest_client, site_url, list_title, auth_headers)

    data = await rest_client.request_json(
        "POST", site_url, f"{list_path(list_title)}/items",
        mutating=True,
        json_data={"__metadata": {"type": entity_type}, **item_data},
        auth_headers=auth_headers,
        timeout=20.0,
    )
    created = data.get("d", {})
    return tool_result({
        "success": True,
        "message": f"Item successfully created in list \"{list_title}\"",
        "newItem": {
            "id": created.get("ID"),
            "title": created.get("Title") or "(No Title)",
            "created": created.get("Created"),
            "url": f"{site_url}/Lists/{list_title}/DispForm.aspx?ID={created.get('ID')}",
        },
    })


async def _update_item(rest_client: SharePointRestClient, site_url: str, list_title: str, item_id: int,
                       item_data: Dict[str, Any]) -> Dict[str, Any]:
    if not item_data:
        raise ValidationError("item_data must contain at least one field")
    auth_headers = await rest_client.prepare_headers(site_url, mutating=True)
    entity_type = await _entity_type(rest_client, site_url, list_title, auth_headers)

    await rest_client.request_json(
        "POST", site_url, f"{list_path(list_title)}/items({item_id})",
        mutating=True,
        json_data={"__metadata": {"type": entity_type}, **item_data},
        extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "MERGE"},
        auth_headers=auth_headers,
        timeout=20.0,
    )
    return tool_result({
        "success": True,
        "message": f"Item {item_id} in list \"{list_title}\" updated successfully",
        "updated": sorted(item_data),
    })


async def _delete_item(rest_client: SharePointRestClient, site_url: str, list_title: str, item_id: int) -> Dict[str, Any]:
    await rest_client.request_json(
        "POST", site_url, f"{list_path(list_title)}/items({item_id})",
        mutating=True,
        extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "DELETE"},
        timeout=20.0,
    )
    return tool_result({"success": True, "message": f"Item {item_id} deleted from list \"{list_title}\""})


def _batch_entries(value: Any, param_name: str, action: str) -> List[Any]:
    return validate_json_list(require(value, param_name, action), param_name, max_length=MAX_BATCH_SIZE)


def _batch_summary(verb: str, list_title: str, total: int, succeeded: List[Any],
                   failed: List[Dict[str, Any]], key: str) -> Dict[str, Any]:
    return tool_result({
        "success": not failed,
        "message": f"Successfully {verb} {len(succeeded)} out of {total} items in list \"{list_title}\"",
        key: succeeded,
        "failed": failed,
    })


async def _batch_create_items(rest_client: SharePointRestClient, site_url: str, list_title: str,
                              items: List[Any]) -> Dict[str, Any]:
    entries = [validate_json_data(entry, f"items[{index}]") for index, entry in enumerate(items)]
    auth_headers = await rest_client.prepare_headers(site_url, mutating=True)
    entity_type = await _entity_type(rest_client, site_url, list_title, auth_headers)

    created: List[Dict[str, Any]] = []
    failed: List[Dict[str, Any]] = []
    for index, entry in enumerate(entries):
        try:
            data = await rest_client.request_json(
                "POST", site_url, f"{list_path(list_title)}/items",
                mutating=True,
                json_data={"__metadata": {"type": entity_type}, **entry},
                auth_headers=auth_headers,
                timeout=20.0,
            )
        except (SharePointRequestError, httpx.HTTPError) as e:
            failed.append({"index": index, "error": str(e)})
            continue
        item = data.get("d", {})
        created.append({"index": index, "id": item.get("ID"), "title": item.get("Title") or "(No Title)"})

    return _batch_summary("created", list_title, len(entries), created, failed, "created")


async def _batch_update_items(rest_client: SharePointRestClient, site_url: str, list_title: str,
                              items: List[Any]) -> Dict[str, Any]:
    updates = []
    for index, entry in enumerate(items):
        entry = validate_json_data(entry, f"items[{index}]")
        item_id = validate_integer_param(entry.get("id"), f"items[{index}].id", min_value=1)
        data = validate_json_data(entry.get("data"), f"items[{index}].data")
        if not data:
            raise ValidationError(f"items[{index}].data must contain at least one field")
        updates.append((item_id, data))

    auth_headers = await rest_client.prepare_headers(site_url, mutating=True)
    entity_type = await _entity_type(rest_client, site_url, list_title, auth_headers)

    updated: List[int] = []
    failed: List[Dict[str, Any]] = []
    for item_id, data in updates:
        try:
            await rest_client.request_json(
                "POST", site_url, f"{list_path(list_title)}/items({item_id})",
                mutating=True,
                json_data={"__metadata": {"type": entity_type}, **data},
                extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "MERGE"},
                auth_headers=auth_headers,
                timeout=20.0,
            )
        except (SharePointRequestError, httpx.HTTPError) as e:
            failed.append({"id": item_id, "error": str(e)})
            continue
        updated.append(item_id)

    return _batch_summary("updated", list_title, len(updates), updated, failed, "updated")


async def _batch_delete_items(rest_client: SharePointRestClient, site_url: str, list_title: str,
                              item_ids: List[Any]) -> Dict[str, Any]:
    ids = [validate_integer_param(value, f"item_ids[{index}]", min_value=1) for index, value in enumerate(item_ids)]
    auth_headers = await rest_client.prepare_headers(site_url, mutating=True)

    deleted: List[int] = []
    failed: List[Dict[str, Any]] = []
    for item_id in ids:
        try:
            await rest_client.request_json(
                "POST", site_url, f"{list_path(list_title)}/items({item_id})",
                mutating=True,
                extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "DELETE"},
                auth_headers=auth_headers,
                timeout=20.0,
            )
        except (SharePointRequestError, httpx.HTTPError) as e:
            failed.append({"id": item_id, "error": str(e)})
            continue
        deleted.append(item_id)

    return _batch_summary("deleted", list_title, len(ids), deleted, failed, "deleted")
