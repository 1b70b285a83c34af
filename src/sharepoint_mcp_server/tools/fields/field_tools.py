#!/usr/bin/env python3
"""
Field Management Tools for SharePoint MCP Server

Provides list column operations: list, get, create, update and delete.
"""

from typing import Dict, Any, Optional
from xml.sax.saxutils import escape, quoteattr
from fastmcp import Context
from pydantic import Field

from ...core.logging_utils import get_tool_logger
from ...core.rest import SharePointRestClient
from ...core.tool_result import error_result, tool_result
from ...core.validation import odata_string_literal, validate_json_data, validate_string_param, ValidationError
from ..common import ensure_writable, require, resolve_site_url
from ..lists.list_tools import list_path

MUTATING_ACTIONS = {"create_field", "update_field", "delete_field"}
SUPPORTED_ACTIONS = "list_fields, get_field, create_field, update_field, delete_field"

# SP.FieldType values that need their choices declared in schema XML
CHOICE_FIELD_KINDS = {5: "Choice", 15: "MultiChoice"}
# AddFieldInternalNameHint | AddToAllContentTypes
CREATE_FIELD_OPTIONS = 12


async def manage_fields(
    ctx: Context,
    action: str = Field(description=f"Operation to perform: {SUPPORTED_ACTIONS}"),
    list_title: str = Field(description="Title of the list"),
    url: Optional[str] = Field(default=None, description="SharePoint site URL (defaults to the configured site)"),
    field_name: Optional[str] = Field(default=None, description="Internal name or title of the field (get_field, update_field, delete_field)"),
    field_data: Optional[Any] = Field(default=None, description="JSON object with Title, FieldTypeKind, and optionally Required, Description, DefaultValue, Choices (create_field)"),
    updates: Optional[Any] = Field(default=None, description="JSON object of field properties to change (update_field)"),
    confirmation: Optional[str] = Field(default=None, description="Internal name of the field, repeated to confirm deletion (delete_field)")
) -> Dict[str, Any]:
    """SharePoint list field (column) operations.

    Actions:
    - list_fields: List the visible fields of a list
    - get_field: Get one field by internal name or title
    - create_field: Add a field; Choice (5) and MultiChoice (15) fields need Choices (requires form digest)
    - update_field: Change field properties (requires form digest)
    - delete_field: Remove a field; confirmation must repeat its internal name (requires form digest)
    """
    from ...core.dependency_injection import get_config, get_rest_client
    config = get_config()
    rest_client = get_rest_client()

    tool_logger = get_tool_logger("fields")
    tool_logger.info(f"Starting field operation: {action} on list {list_title}")

    try:
        await ctx.info(f"Starting field operation: {action}")
        ensure_writable(config, action, MUTATING_ACTIONS)
        site_url = resolve_site_url(url, config)
        require(list_title, "list_title", action)

        if action == "list_fields":
            result = await _list_fields(rest_client, site_url, list_title)
        elif action == "get_field":
            result = await _get_field(rest_client, site_url, list_title, _field_name(field_name, action))
        elif action == "create_field":
            result = await _create_field(rest_client, site_url, list_title,
                                         validate_json_data(require(field_data, "field_data", action), "field_data"))
        elif action == "update_field":
            result = await _update_field(rest_client, site_url, list_title, _field_name(field_name, action),
                                         validate_json_data(require(updates, "updates", action), "updates"))
        elif action == "delete_field":
            name = _field_name(field_name, action)
            if confirmation != name:
                raise ValidationError(f"Deleting a field requires confirmation equal to its internal name \"{name}\"")
            result = await _delete_field(rest_client, site_url, list_title, name)
        else:
            raise ValidationError(f"Unknown action: {action}. Supported: {SUPPORTED_ACTIONS}")

        await ctx.info(f"Completed field operation: {action}")
        tool_logger.info(f"Completed field operation: {action}")
        return result

    except Exception as e:
        tool_logger.error(f"Error in field operation {action}: {e}")
        await ctx.error(f"Error in field operation {action}: {e}")
        return error_result(f"in field operation {action}", e)


def _field_name(field_name: Optional[str], action: str) -> str:
    return validate_string_param(require(field_name, "field_name", action), "field_name", max_length=255)


def field_path(list_title: str, field_name: str) -> str:
    return f"{list_path(list_title)}/fields/getByInternalNameOrTitle('{odata_string_literal(field_name)}')"


def format_field(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "Title": raw.get("Title"),
        "InternalName": raw.get("InternalName"),
        "Type": raw.get("TypeAsString"),
        "FieldTypeKind": raw.get("FieldTypeKind"),
        "Required": raw.get("Required", False),
        "ReadOnly": raw.get("ReadOnlyField", False),
        "Description": raw.get("Description") or "",
        "Id": raw.get("Id"),
    }


def internal_name_for(title: str) -> str:
    """Default internal name SharePoint would derive from a display title."""
    return "".join(ch for ch in title if ch.isalnum() or ch == "_")


def choice_schema_xml(title: str, internal_name: str, kind: int, choices: list,
                      required: bool = False, description: Optional[str] = None) -> str:
    attributes = [
        f"DisplayName={quoteattr(title)}",
        f"Name={quoteattr(internal_name)}",
        f"Title={quoteattr(title)}",
        f"Type={quoteattr(CHOICE_FIELD_KINDS[kind])}",
        f"Required={quoteattr('TRUE' if required else 'FALSE')}",
    ]
    if description:
        attributes.append(f"Description={quoteattr(description)}")
    options = "".join(f"<CHOICE>{escape(str(choice))}</CHOICE>" for choice in choices)
    return f"<Field {' '.join(attributes)}><CHOICES>{options}</CHOICES></Field>"


async def _list_fields(rest_client: SharePointRestClient, site_url: str, list_title: str) -> Dict[str, Any]:
    data = await rest_client.request_json(
        "GET", site_url, f"{list_path(list_title)}/fields",
        params={"$filter": "Hidden eq false"},
        timeout=15.0,
    )
    fields = [format_field(raw) for raw in data.get("d", {}).get("results", [])]
    return tool_result({"list": list_title, "count": len(fields), "fields": fields})


async def _get_field(rest_client: SharePointRestClient, site_url: str, list_title: str, field_name: str) -> Dict[str, Any]:
    data = await rest_client.request_json("GET", site_url, field_path(list_title, field_name), timeout=15.0)
    return tool_result(format_field(data.get("d", {})))


async def _create_field(rest_client: SharePointRestClient, site_url: str, list_title: str,
                        field_data: Dict[str, Any]) -> Dict[str, Any]:
    title = validate_string_param(field_data.get("Title"), "field_data.Title", max_length=255)
    kind = field_data.get("FieldTypeKind")
    if not isinstance(kind, int) or isinstance(kind, bool):
        raise ValidationError("field_data.FieldTypeKind must be an integer SP.FieldType value")
    choices = field_data.get("Choices")
    if kind in CHOICE_FIELD_KINDS and (not isinstance(choices, list) or not choices):
        raise ValidationError(f"field_data.Choices must be a non-empty list for {CHOICE_FIELD_KINDS[kind]} fields")
    internal_name = field_data.get("InternalName") or internal_name_for(title)
    if not internal_name:
        raise ValidationError(f"Could not derive an internal name from title \"{title}\"")

    auth_headers = await rest_client.prepare_headers(site_url, mutating=True)

    existing = await rest_client.request_json(
        "GET", site_url, f"{list_path(list_title)}/fields",
        params={"$filter": "Title eq '{}'".format(title.replace("'", "''")), "$select": "InternalName"},
        auth_headers=auth_headers,
        timeout=15.0,
    )
    if existing.get("d", {}).get("results"):
        raise ValidationError(f"A field titled \"{title}\" already exists in list \"{list_title}\"")

    if kind in CHOICE_FIELD_KINDS:
        schema_xml = choice_schema_xml(title, internal_name, kind, choices,
                                       bool(field_data.get("Required", False)), field_data.get("Description"))
        data = await rest_client.request_json(
            "POST", site_url, f"{list_path(list_title)}/fields/CreateFieldAsXml",
            mutating=True,
            json_data={"parameters": {
                "__metadata": {"type": "SP.XmlSchemaFieldCreationInformation"},
                "SchemaXml": schema_xml,
                "Options": CREATE_FIELD_OPTIONS,
            }},
            auth_headers=auth_headers,
            timeout=30.0,
        )
        created = data.get("d", {})
    else:
        # Created under the internal name so it sticks, then retitled
        payload = {"__metadata": {"type": "SP.Field"}, "Title": internal_name, "FieldTypeKind": kind}
        for key in ("Required", "Description", "DefaultValue", "EnforceUniqueValues"):
            if key in field_data:
                payload[key] = field_data[key]
        data = await rest_client.request_json(
            "POST", site_url, f"{list_path(list_title)}/fields",
            mutating=True,
            json_data=payload,
            auth_headers=auth_headers,
            timeout=20.0,
        )
        created = data.get("d", {})
        if title != internal_name:
            await rest_client.request_json(
                "POST", site_url, field_path(list_title, created.get("InternalName") or internal_name),
                mutating=True,
                json_data={"__metadata": {"type": "SP.Field"}, "Title": title},
                extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "MERGE"},
                auth_headers=auth_headers,
                timeout=20.0,
            )
            created = {**created, "Title": title}

    return tool_result({
        "success": True,
        "message": f"Field \"{title}\" created in list \"{list_title}\"",
        "field": format_field(created),
    })


async def _update_field(rest_client: SharePointRestClient, site_url: str, list_title: str, field_name: str,
                        updates: Dict[str, Any]) -> Dict[str, Any]:
    if not updates:
        raise ValidationError("updates must contain at least one property")

    payload: Dict[str, Any] = {"__metadata": {"type": "SP.Field"}}
    for key, value in updates.items():
        if key == "Choices":
            if not isinstance(value, list):
                raise ValidationError("updates.Choices must be a list")
            payload["__metadata"] = {"type": "SP.FieldChoice"}
            payload["Choices"] = {"__metadata": {"type": "Collection(Edm.String)"}, "results": value}
        else:
            payload[key] = value

    await rest_client.request_json(
        "POST", site_url, field_path(list_title, field_name),
        mutating=True,
        json_data=payload,
        extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "MERGE"},
        timeout=20.0,
    )
    return tool_result({
        "success": True,
        "message": f"Field \"{field_name}\" in list \"{list_title}\" updated successfully",
        "updated": sorted(updates),
    })


async def _delete_field(rest_client: SharePointRestClient, site_url: str, list_title: str, field_name: str) -> Dict[str, Any]:
    await rest_client.request_json(
        "POST", site_url, field_path(list_title, field_name),
        mutating=True,
        extra_headers={"IF-MATCH": "*", "X-HTTP-Method": "DELETE"},
        timeout=20.0,
    )
    return tool_result({"success": True, "message": f"Field \"{field_name}\" deleted from list \"{list_title}\""})
