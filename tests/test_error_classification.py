from __future__ import annotations

import httpx
import pytest

from sharepoint_mcp_server.core.auth.error_classification import (
    FORBIDDEN,
    INVALID_CLIENT,
    INVALID_GRANT,
    NOT_FOUND,
    TIMEOUT,
    classify,
    parse_error_body,
    token_error_from_response,
    token_error_from_timeout,
)


@pytest.mark.parametrize("error_code, category", [
    ("invalid_client", INVALID_CLIENT),
    ("unauthorized_client", INVALID_CLIENT),
    ("INVALID_GRANT", INVALID_GRANT),
    ("access_denied", FORBIDDEN),
    ("invalid_resource", NOT_FOUND),
])
def test_error_code_wins(error_code, category) -> None:
    assert classify(error_code, status=400, text="timed out 404 forbidden") == category


@pytest.mark.parametrize("status, category", [(403, FORBIDDEN), (404, NOT_FOUND), (408, TIMEOUT), (504, TIMEOUT)])
def test_status_is_used_when_code_is_unknown(status, category) -> None:
    assert classify("some_new_error", status=status) == category


def test_text_only_consulted_without_error_code() -> None:
    assert classify(text="AADSTS90002: Tenant not found") == NOT_FOUND
    assert classify("temporarily_unavailable", status=503, text="Tenant not found") is None


def test_unrecognised_failure_has_no_category() -> None:
    assert classify(status=500, text="something broke") is None


def test_error_body_parsing_tolerates_garbage() -> None:
    assert parse_error_body(httpx.Response(400, text="not json")).error is None
    assert parse_error_body(httpx.Response(400, json=["a", "b"])).error is None
    body = parse_error_body(httpx.Response(400, json={"error": "invalid_grant", "error_codes": [90002],
                                                      "unknown": True}))
    assert body.error == "invalid_grant"
    assert body.error_codes == [90002]


def test_token_error_keeps_provider_description() -> None:
    response = httpx.Response(400, json={"error": "invalid_grant",
                                         "error_description": "AADSTS90002: Tenant 'x' not found."})
    error = token_error_from_response(response)

    assert error.status == 400
    assert error.category == INVALID_GRANT
    assert error.error_code == "invalid_grant"
    assert error.description == "AADSTS90002: Tenant 'x' not found."
    assert str(error) == ("Token request failed: Invalid grant (tenant ID may be incorrect) "
                          "(AADSTS90002: Tenant 'x' not found.)")


def test_unclassified_token_error_reports_status_and_text() -> None:
    error = token_error_from_response(httpx.Response(500, text="upstream exploded"), prefix="Auth failed")
    assert error.category is None
    assert str(error) == "Auth failed: HTTP 500 - upstream exploded"


def test_timeout_error_message() -> None:
    error = token_error_from_timeout(httpx.ReadTimeout("slow"))
    assert error.category == TIMEOUT
    assert "Request timed out - check network connection" in str(error)
