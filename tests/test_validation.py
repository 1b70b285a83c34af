import pytest

from sharepoint_mcp_server.core.validation import (
    ValidationError,
    odata_string_literal,
    validate_integer_param,
    validate_json_data,
    validate_site_url,
    validate_string_param,
)
from sharepoint_mcp_server.tools.lists.list_tools import list_path


def test_site_url_is_normalised() -> None:
    assert validate_site_url("https://contoso.sharepoint.com/sites/demo/") == "https://contoso.sharepoint.com/sites/demo"


@pytest.mark.parametrize("value", ["contoso.sharepoint.com/sites/demo", "ftp://contoso.sharepoint.com", 42])
def test_site_url_must_be_absolute_http(value) -> None:
    with pytest.raises(ValidationError):
        validate_site_url(value)


def test_list_titles_are_quoted_for_odata_keys() -> None:
    assert odata_string_literal("O'Brien Tasks") == "O%27%27Brien%20Tasks"
    assert list_path("Tasks") == "/_api/web/lists/getByTitle('Tasks')"


def test_json_data_accepts_dicts_and_json_objects() -> None:
    assert validate_json_data({"Title": "a"}, "item_data") == {"Title": "a"}
    assert validate_json_data('{"Title": "a"}', "item_data") == {"Title": "a"}
    with pytest.raises(ValidationError, match="JSON object"):
        validate_json_data("[1, 2]", "item_data")
    with pytest.raises(ValidationError, match="valid JSON"):
        validate_json_data("{", "item_data")


def test_integer_and_string_bounds() -> None:
    assert validate_integer_param("5", "top", min_value=1, max_value=5000) == 5
    with pytest.raises(ValidationError):
        validate_integer_param(True, "item_id")
    with pytest.raises(ValidationError):
        validate_integer_param(0, "item_id", min_value=1)
    assert validate_string_param("  Tasks ", "list_title") == "Tasks"
    with pytest.raises(ValidationError):
        validate_string_param("x" * 256, "list_title", max_length=255)
