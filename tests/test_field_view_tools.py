from __future__ import annotations

import json
from urllib.parse import unquote

import httpx
import pytest

from conftest import SharePointStub, tool_text
from sharepoint_mcp_server.tools import manage_fields, manage_views
from sharepoint_mcp_server.tools.fields.field_tools import choice_schema_xml, internal_name_for


async def _fields(ctx, action: str, **overrides) -> dict:
    arguments = dict(list_title="Tasks", url=None, field_name=None, field_data=None, updates=None, confirmation=None)
    arguments.update(overrides)
    return await manage_fields(ctx, action=action, **arguments)


async def _views(ctx, action: str, **overrides) -> dict:
    arguments = dict(list_title="Tasks", url=None, view_title=None, view_data=None, field_name=None, index=None,
                     include_hidden=False)
    arguments.update(overrides)
    return await manage_views(ctx, action=action, **arguments)


def _path(request: httpx.Request) -> str:
    return unquote(request.url.path)


def test_internal_name_drops_spaces_and_punctuation() -> None:
    assert internal_name_for("Due Date (UTC)") == "DueDateUTC"


def test_choice_schema_xml_escapes_values() -> None:
    xml = choice_schema_xml("Risk & Impact", "RiskImpact", 5, ["Low", "<High>"], required=True)

    assert xml.startswith('<Field DisplayName="Risk &amp; Impact" Name="RiskImpact"')
    assert 'Type="Choice"' in xml and 'Required="TRUE"' in xml
    assert "<CHOICES><CHOICE>Low</CHOICE><CHOICE>&lt;High&gt;</CHOICE></CHOICES>" in xml


@pytest.mark.asyncio
async def test_list_fields_filters_hidden_fields(configure, ctx) -> None:
    def routes(request: httpx.Request):
        if request.method == "GET" and _path(request).endswith("/fields"):
            return httpx.Response(200, json={"d": {"results": [
                {"Title": "Title", "InternalName": "Title", "TypeAsString": "Text", "FieldTypeKind": 2, "Required": True},
            ]}})
        return None

    stub = SharePointStub(routes)
    configure(stub)

    result = await _fields(ctx, "list_fields")

    payload = json.loads(tool_text(result))
    assert payload["fields"] == [{
        "Title": "Title", "InternalName": "Title", "Type": "Text", "FieldTypeKind": 2,
        "Required": True, "ReadOnly": False, "Description": "", "Id": None,
    }]
    assert stub.requests[0].url.params["$filter"] == "Hidden eq false"


@pytest.mark.asyncio
async def test_create_text_field_is_renamed_after_creation(configure, ctx) -> None:
    def routes(request: httpx.Request):
        path = _path(request)
        if request.method == "GET" and path.endswith("/fields"):
            return httpx.Response(200, json={"d": {"results": []}})
        if request.method == "POST" and path.endswith("/fields"):
            return httpx.Response(201, json={"d": {"Title": "DueNote", "InternalName": "DueNote", "FieldTypeKind": 2}})
        if request.method == "POST" and "getByInternalNameOrTitle('DueNote')" in path:
            return httpx.Response(204)
        return None

    stub = SharePointStub(routes)
    configure(stub)

    result = await _fields(ctx, "create_field", field_data={"Title": "Due Note", "FieldTypeKind": 2, "Required": True})

    payload = json.loads(tool_text(result))
    assert payload["field"]["Title"] == "Due Note"
    assert payload["field"]["InternalName"] == "DueNote"
    create, rename = stub.writes()
    assert json.loads(create.content) == {
        "__metadata": {"type": "SP.Field"}, "Title": "DueNote", "FieldTypeKind": 2, "Required": True,
    }
    assert rename.headers["x-http-method"] == "MERGE"
    assert json.loads(rename.content) == {"__metadata": {"type": "SP.Field"}, "Title": "Due Note"}
    duplicate_check = stub.requests[1]
    assert duplicate_check.url.params["$filter"] == "Title eq 'Due Note'"


@pytest.mark.asyncio
async def test_create_choice_field_uses_schema_xml(configure, ctx) -> None:
    def routes(request: httpx.Request):
        path = _path(request)
        if request.method == "GET" and path.endswith("/fields"):
            return httpx.Response(200, json={"d": {"results": []}})
        if request.method == "POST" and path.endswith("/fields/CreateFieldAsXml"):
            return httpx.Response(201, json={"d": {"Title": "Priority", "InternalName": "Priority", "FieldTypeKind": 6}})
        return None

    stub = SharePointStub(routes)
    configure(stub)

    result = await _fields(ctx, "create_field",
                           field_data=json.dumps({"Title": "Priority", "FieldTypeKind": 15, "Choices": ["A", "B"]}))

    assert "isError" not in result
    [create] = stub.writes()
    parameters = json.loads(create.content)["parameters"]
    assert parameters["__metadata"] == {"type": "SP.XmlSchemaFieldCreationInformation"}
    assert parameters["Options"] == 12
    assert 'Type="MultiChoice"' in parameters["SchemaXml"]
    assert "<CHOICE>A</CHOICE><CHOICE>B</CHOICE>" in parameters["SchemaXml"]


@pytest.mark.asyncio
async def test_create_field_rejects_duplicates_and_missing_choices(configure, ctx) -> None:
    def routes(request: httpx.Request):
        if request.method == "GET" and _path(request).endswith("/fields"):
            return httpx.Response(200, json={"d": {"results": [{"InternalName": "Status"}]}})
        return None

    stub = SharePointStub(routes)
    issuer = configure(stub)

    no_choices = await _fields(ctx, "create_field", field_data={"Title": "Stage", "FieldTypeKind": 5})
    assert "Choices must be a non-empty list for Choice fields" in tool_text(no_choices)
    assert issuer.calls == 0

    duplicate = await _fields(ctx, "create_field", field_data={"Title": "Status", "FieldTypeKind": 2})
    assert "already exists" in tool_text(duplicate)
    assert stub.writes() == []


@pytest.mark.asyncio
async def test_update_field_wraps_choices(configure, ctx) -> None:
    stub = SharePointStub(lambda request: httpx.Response(204) if request.method == "POST" else None)
    configure(stub)

    result = await _fields(ctx, "update_field", field_name="Stage", updates={"Choices": ["New", "Done"]})

    assert json.loads(tool_text(result))["updated"] == ["Choices"]
    [update] = stub.writes()
    assert "getByInternalNameOrTitle('Stage')" in _path(update)
    assert json.loads(update.content) == {
        "__metadata": {"type": "SP.FieldChoice"},
        "Choices": {"__metadata": {"type": "Collection(Edm.String)"}, "results": ["New", "Done"]},
    }


@pytest.mark.asyncio
async def test_delete_field_requires_matching_confirmation(configure, ctx) -> None:
    stub = SharePointStub(lambda request: httpx.Response(200) if request.method == "POST" else None)
    issuer = configure(stub)

    refused = await _fields(ctx, "delete_field", field_name="Stage", confirmation="stage")
    assert refused["isError"] is True
    assert issuer.calls == 0

    result = await _fields(ctx, "delete_field", field_name="Stage", confirmation="Stage")
    assert json.loads(tool_text(result))["success"] is True
    [delete] = stub.writes()
    assert delete.headers["x-http-method"] == "DELETE"
    assert delete.headers["if-match"] == "*"


@pytest.mark.asyncio
async def test_field_writes_are_refused_in_read_only_mode(configure, ctx) -> None:
    stub = SharePointStub()
    configure(stub, read_only=True)

    result = await _fields(ctx, "update_field", field_name="Stage", updates={"Required": True})

    assert "read-only mode" in tool_text(result)
    assert stub.requests == []


@pytest.mark.asyncio
async def test_list_views_hides_hidden_views_unless_asked(configure, ctx) -> None:
    def routes(request: httpx.Request):
        if request.method == "GET" and _path(request).endswith("/views"):
            return httpx.Response(200, json={"d": {"results": [{"Title": "All Items", "DefaultView": True}]}})
        return None

    stub = SharePointStub(routes)
    configure(stub)

    visible = await _views(ctx, "list_views")
    everything = await _views(ctx, "list_views", include_hidden=True)

    assert json.loads(tool_text(visible))["views"][0]["DefaultView"] is True
    assert json.loads(tool_text(everything))["count"] == 1
    assert stub.requests[0].url.params["$filter"] == "Hidden eq false"
    assert "$filter" not in stub.requests[1].url.params


@pytest.mark.asyncio
async def test_create_view_then_sets_default(configure, ctx) -> None:
    def routes(request: httpx.Request):
        path = _path(request)
        if request.method == "POST" and path.endswith("/views/add"):
            return httpx.Response(201, json={"d": {"Title": "Open", "RowLimit": 50, "DefaultView": False}})
        if request.method == "POST" and path.endswith("/views/getByTitle('Open')"):
            return httpx.Response(204)
        return None

    stub = SharePointStub(routes)
    issuer = configure(stub)

    result = await _views(ctx, "create_view", view_data={
        "Title": "Open", "ViewFields": ["Title", "Status"], "RowLimit": 50,
        "ViewQuery": "<Where><Neq><FieldRef Name='Status'/><Value Type='Text'>Done</Value></Neq></Where>",
        "SetAsDefaultView": True,
    })

    payload = json.loads(tool_text(result))
    assert payload["view"]["DefaultView"] is True
    create, make_default = stub.writes()
    parameters = json.loads(create.content)["parameters"]
    assert parameters["__metadata"] == {"type": "SP.ViewCreationInformation"}
    assert parameters["ViewFields"] == {"__metadata": {"type": "Collection(Edm.String)"}, "results": ["Title", "Status"]}
    assert parameters["RowLimit"] == 50
    assert parameters["Query"].startswith("<Where>")
    assert make_default.headers["x-http-method"] == "MERGE"
    assert json.loads(make_default.content) == {"__metadata": {"type": "SP.View"}, "DefaultView": True}
    assert issuer.calls == 1


@pytest.mark.asyncio
async def test_get_view_fields_reads_items(configure, ctx) -> None:
    def routes(request: httpx.Request):
        if request.method == "GET" and _path(request).endswith("/views/getByTitle('All Items')/viewFields"):
            return httpx.Response(200, json={"d": {"Items": {"results": ["LinkTitle", "Status"]}}})
        return None

    configure(SharePointStub(routes))

    result = await _views(ctx, "get_view_fields", view_title="All Items")

    assert json.loads(tool_text(result))["fields"] == ["LinkTitle", "Status"]


@pytest.mark.asyncio
async def test_view_field_operations_post_to_the_view_field_collection(configure, ctx) -> None:
    stub = SharePointStub(lambda request: httpx.Response(200) if request.method == "POST" else None)
    configure(stub)

    await _views(ctx, "add_view_field", view_title="All Items", field_name="Status")
    await _views(ctx, "remove_view_field", view_title="All Items", field_name="Status")
    await _views(ctx, "move_view_field", view_title="All Items", field_name="Status", index=0)
    await _views(ctx, "remove_all_view_fields", view_title="All Items")

    writes = stub.writes()
    assert [_path(r).rsplit("/", 1)[-1] for r in writes] == [
        "addViewField", "removeViewField", "moveViewFieldTo", "removeAllViewFields",
    ]
    assert json.loads(writes[0].content) == {"strField": "Status"}
    assert json.loads(writes[2].content) == {"field": "Status", "index": 0}
    assert all(r.headers["x-requestdigest"] == "0x1234@00:30:00" for r in writes)


@pytest.mark.asyncio
async def test_move_view_field_requires_an_index(configure, ctx) -> None:
    stub = SharePointStub()
    configure(stub)

    result = await _views(ctx, "move_view_field", view_title="All Items", field_name="Status")

    assert "index is required for move_view_field action" in tool_text(result)
    assert stub.requests == []
