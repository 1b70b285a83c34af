from __future__ import annotations

import httpx
import pytest

from conftest import SITE_URL, contextinfo_body, mock_client
from sharepoint_mcp_server.core.auth.digest import DigestManager
from sharepoint_mcp_server.core.errors import DigestUnavailableError

AUTH_HEADERS = {
    "Authorization": "Bearer XYZ",
    "Accept": "application/json;odata=verbose",
    "content-type": "application/json;odata=verbose",
}


@pytest.mark.asyncio
async def test_digest_request_without_content_type() -> None:
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=contextinfo_body("0x1234@00:30:00"))

    async with mock_client(handler) as client:
        digest = await DigestManager(client).get_digest(SITE_URL + "/", AUTH_HEADERS)

    assert digest == "0x1234@00:30:00"
    [request] = requests
    assert request.method == "POST"
    assert str(request.url) == f"{SITE_URL}/_api/contextinfo"
    assert "content-type" not in request.headers
    assert request.headers["authorization"] == "Bearer XYZ"
    assert request.headers["accept"] == "application/json;odata=verbose"


@pytest.mark.asyncio
async def test_caller_headers_are_not_modified() -> None:
    headers = dict(AUTH_HEADERS)
    async with mock_client(lambda request: httpx.Response(200, json=contextinfo_body())) as client:
        await DigestManager(client).get_digest(SITE_URL, headers)
    assert headers == AUTH_HEADERS


@pytest.mark.asyncio
async def test_every_call_is_a_fresh_round_trip() -> None:
    digests = iter(["0x1@a", "0x2@b"])
    calls = []

    def handler(request):
        calls.append(str(request.url))
        return httpx.Response(200, json=contextinfo_body(next(digests)))

    async with mock_client(handler) as client:
        manager = DigestManager(client)
        first = await manager.get_digest(SITE_URL, AUTH_HEADERS)
        second = await manager.get_digest("https://contoso.sharepoint.com/sites/other", AUTH_HEADERS)

    assert (first, second) == ("0x1@a", "0x2@b")
    assert calls == [f"{SITE_URL}/_api/contextinfo", "https://contoso.sharepoint.com/sites/other/_api/contextinfo"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status, hint", [(401, "check credentials"), (403, "check app permissions"),
                                          (404, "check site URL"), (500, "check app permissions and URL")])
async def test_error_status_is_reported(status, hint) -> None:
    async with mock_client(lambda request: httpx.Response(status, text="denied")) as client:
        with pytest.raises(DigestUnavailableError) as excinfo:
            await DigestManager(client).get_digest(SITE_URL, AUTH_HEADERS)

    assert excinfo.value.status == status
    assert hint in str(excinfo.value)


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"d": {}},
    {"d": {"GetContextWebInformation": {"FormDigestValue": ""}}},
    {"value": "odata-minimal"},
])
async def test_malformed_body_is_rejected(body) -> None:
    async with mock_client(lambda request: httpx.Response(200, json=body)) as client:
        with pytest.raises(DigestUnavailableError, match="invalid digest response format"):
            await DigestManager(client).get_digest(SITE_URL, AUTH_HEADERS)


@pytest.mark.asyncio
async def test_non_json_body_is_rejected() -> None:
    async with mock_client(lambda request: httpx.Response(200, text="<html/>")) as client:
        with pytest.raises(DigestUnavailableError):
            await DigestManager(client).get_digest(SITE_URL, AUTH_HEADERS)


@pytest.mark.asyncio
async def test_timeout_is_reported() -> None:
    def handler(request):
        raise httpx.ConnectTimeout("connect timed out", request=request)

    async with mock_client(handler) as client:
        with pytest.raises(DigestUnavailableError, match="timed out"):
            await DigestManager(client).get_digest(SITE_URL, AUTH_HEADERS)


@pytest.mark.asyncio
async def test_empty_headers_are_rejected_without_a_request() -> None:
    def handler(request):
        raise AssertionError("no request expected")

    async with mock_client(handler) as client:
        with pytest.raises(DigestUnavailableError):
            await DigestManager(client).get_digest(SITE_URL, {})
