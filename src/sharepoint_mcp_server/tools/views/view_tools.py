#!/usr/bin/env python3
"""
View Management Tools for SharePoint MCP Server

Provides list view operations and management of the fields a view shows.
"""

from typing import Dict, Any, List, Optional
from fastmcp import Context
from pydantic import Field

from ...core.logging_utils import get_tool_logger
from ...core.rest import SharePointRestClient
from ...core.tool_result import error_result, tool_result
from ...core.validation import (
    odata_string_literal, validate_integer_param, validate_json_data, validate_string_param, ValidationError
)
from ..common import ensure_writable, require, resolve_site_url
from ..lists.list_tools import list_path

MUTATING_ACTIONS = {
    "create_view", "delete_view", "add_view_field", "remove_view_field",
    "remove_all_view_fields", "move_view_field",
}
SUPPORTED_ACTIONS = (
    "list_views, get_view_fields, create_view, delete_view, add_view_field, "
    "remove_view_field, remove_all_view_fields, move_view_field"
)
DEFAULT_ROW_LIMIT = 30


async def manage_views(
    ctx: Context,
    action: str = Field(description=f"Operation to perform: {SUPPORTED_ACTIONS}"),
    list_title: str = Field(description="Title of the list"),
    url: Optional[str] = Field(default=None, description="SharePoint site URL (defaults to the configured site)"),
    view_title: Optional[str] = Field(default=None, description="Title of the view (all actions except list_views and create_view)"),
    view_data: Optional[Any] = Field(default=None, description="JSON object with Title, and optionally ViewFields, ViewQuery, RowLimit, PersonalView, SetAsDefaultView (create_view)"),
    field_name: Optional[str] = Field(default=None, description="Internal name of the field (add_view_field, remove_view_field, move_view_field)"),
    index: Optional[int] = Field(default=None, description="Zero-based target position (move_view_field)"),
    include_hidden: bool = Field(default=False, description="Include hidden views (list_views)")
) -> Dict[str, Any]:
    """SharePoint list view operations.

    Actions:
    - list_views: List the views of a list
    - get_view_fields: List the fields shown by a view
    - create_view: Create a view (requires form digest)
    - delete_view: Delete a view (requires form digest)
    - add_view_field: Show a field in a view (requires form digest)
    - remove_view_field: Stop showing a field in a view (requires form digest)
    - remove_all_view_fields: Clear every field from a view (requires form digest)
    - move_view_field: Move a field to a new position in a view (requires form digest)
    """
    from ...core.dependency_injection import get_config, get_rest_client
    config = get_config()
    rest_client = get_rest_client()

    tool_logger = get_tool_logger("views")
    tool_logger.info(f"Starting view operation: {action} on list {list_title}")

    try:
        await ctx.info(f"Starting view operation: {action}")
        ensure_writable(config, action, MUTATING_ACTIONS)
        site_url = resolve_site_url(url, config)
        require(list_title, "list_title", action)

        if action == "list_views":
            result = await _list_views(rest_client, site_url, list_title, include_hidden)
        elif action == "create_view":
            result = await _create_view(rest_client, site_url, list_title,
                                        validate_json_data(require(view_data, "view_data", action), "view_data"))
        elif action in ("get_view_fields", "delete_view", "remove_all_view_fields"):
            view = _view_title(view_title, action)
            if action == "get_view_fields":
                result = await _get_view_fields(rest_client, site_url, list_title, view)
            elif action == "delete_view":
                result = await _delete_view(rest_client, site_url, list_title, view)
            else:
                await _view_fields_call(rest_client, site_url, list_title, view, "removeAllViewFields")
                result = tool_result({"success": True, "message": f"All fields removed from view \"{view}\""})
        elif action in ("add_view_field", "remove_view_field"):
            view = _view_title(view_title, action)
            name = validate_string_param(require(field_name, "field_name", action), "field_name", max_length=255)
            operation = "addViewField" if action == "add_view_field" else "removeViewField"
            await _view_fields_call(rest_client, site_url, list_title, view, operation, {"strField": name})
            verb = "added to" if action == "add_view_field" else "removed from"
            result = tool_result({"success": True, "message": f"Field \"{name}\" {verb} view \"{view}\""})
        elif action == "move_view_field":
            view = _view_title(view_title, action)
            name = validate_string_param(require(field_name, "field_name", action), "field_name", max_length=255)
            position = validate_integer_param(require(index, "index", action), "index", min_value=0)
            await _view_fields_call(rest_client, site_url, list_title, view, "moveViewFieldTo",
                                    {"field": name, "index": position})
            result = tool_result({"success": True, "message": f"Field \"{name}\" moved to position {position} in view \"{view}\""})
        else:
            raise ValidationError(f"Unknown action: {action}. Supported: {SUPPORTED_ACTIONS}")

        await ctx.info(f"Completed view operation: {action}")
        tool_logger.info(f"Completed view operation: {action}")
        return result

    except Exception as e:
        tool_logger.error(f"Error in view operation {action}: {e}")
        await ctx.error(f"Error in view operation {action}: {e}")
        return error_result(f"in view operation {action}", e)


def _view_title(view_title: Optional[str], action: str) -> str:
    return validate_string_param(require(view_title, "view_title", action), "view_title", max_length=255)


def view_path(list_title: str, view_title: str) -> str:
    return f"{list_path(list_title)}/views/getByTitle('{odata_string_literal(view_title)}')"


def format_view(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "Title": raw.get("Title"),
        "Id": raw.get("Id"),
        "DefaultView": raw.get("DefaultView", False),
        "PersonalView": raw.get("PersonalView", False),
        "Hidden": raw.get("Hidden", False),
        "RowLimit": raw.get("RowLimit"),
        "URL": raw.get("ServerRelativeUrl"),
        "ViewQuery": raw.get("ViewQuery") or "",
    }


def string_collection(values: List[str]) -> Dict[str, Any]:
    return {"__metadata": {"type": "Collection(Edm.String)"}, "results": list(values)}


async def _list_views(rest_client: SharePointRestClient, site_url: str, list_title: str,
                      include_hidden: bool) -> Dict[str, Any]:
    params = None if include_hidden else {"$filter": "Hidden eq false"}
    data = await rest_client.request_json("GET", site_url, f"{list_path(list_title)}/views",
                                          params=params, timeout=15.0)
    views = [format_view(raw) for raw in data.get("d", {}).get("results", [])]
    return tool_result({"list": list_title, "count": len(views), "views": views})


async def _get_view_fields(rest_client: SharePointRestClient, site_url: str, list_title: str,
                           view_title: str) -> Dict[str, Any]:
    data = await rest_client.request_json("GET", site_url, f"{view_path(list_title, view_title)}/viewFields",
                                          timeout=15.0)
    body = data.get("d", {})
    fields = (body.get("Items") or {}).get("results", [])
    return tool_result({"view": view_title, "count": len(fields), "fields": fields})


async def _create_view(rest_client: SharePointRestClient, site_url: str, list_title: str,
                       view_data: Dict[str, Any]) -> Dict[str, Any]:
    title = validate_string_param(view_data.get("Title"), "view_data.Title", max_length=255)
    view_fields = view_data.get("ViewFields") or []
    if not isinstance(view_fields, list) or not all(isinstance(name, str) for name in view_fields):
        raise ValidationError("view_data.ViewFields must be a list of field internal names")
    row_limit = validate_integer_param(view_data.get("RowLimit", DEFAULT_ROW_LIMIT), "view_data.RowLimit",
                                       min_value=1, max_value=5000)

    creation = {
        "__metadata": {"type": "SP.ViewCreationInformation"},
        "Title": title,
        "RowLimit": row_limit,
        "PersonalView": bool(view_data.get("PersonalView", False)),
        "ViewFields": string_collection(view_fields),
    }
    if view_data.get("ViewQuery"):
        creation["Query"] = view_data["ViewQuery"]

    auth_headers = await rest_client.prepare_headers(site_url, mutating=True)
    data = await rest_client.request_json(
        "POST", site_url, f"{list_path(list_title)}/views/add",
        mutating=True,
        json_data={"parameters": creation},
        auth_headers=auth_headers,
        timeout=30.0,
    )
    created = data.get("d", {})

    if view_data.get("SetAsDefaultView"):
        await rest_client.request_json(
            "POST", site_url, view_path(list_title, title),
            mutating=True,
            json_data={"__metadata": {"type": "SP.View"}, "DefaultView": True},
            extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "MERGE"},
            auth_headers=auth_headers,
            timeout=20.0,
        )
        created = {**created, "DefaultView": True}

    return tool_result({
        "success": True,
        "message": f"View \"{title}\" created in list \"{list_title}\"",
        "view": format_view(created),
    })


async def _delete_view(rest_client: SharePointRestClient, site_url: str, list_title: str,
                       view_title: str) -> Dict[str, Any]:
    await rest_client.request_json(
        "POST", site_url, view_path(list_title, view_title),
        mutating=True,
        extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "DELETE"},
        timeout=20.0,
    )
    return tool_result({"success": True, "message": f"View \"{view_title}\" deleted from list \"{list_title}\""})


async def _view_fields_call(rest_client: SharePointRestClient, site_url: str, list_title: str, view_title: str,
                            operation: str, body: Optional[Dict[str, Any]] = None) -> None:
    await rest_client.request_json(
        "POST", site_url, f"{view_path(list_title, view_title)}/viewFields/{operation}",
        mutating=True,
        json_data=body,
        timeout=20.0,
    )
