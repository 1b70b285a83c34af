from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import parse_qs

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

import sharepoint_mcp_server.core.dependency_injection as di
from sharepoint_mcp_server.core.auth.certificate_store import CertificateStore
from sharepoint_mcp_server.core.auth.dispatcher import CredentialDispatcher
from sharepoint_mcp_server.core.auth.error_classification import token_error_from_text
from sharepoint_mcp_server.core.auth.secret_provider import AppOnlyTokenIssuer
from sharepoint_mcp_server.core.config import SharePointConfig
from sharepoint_mcp_server.core.errors import CertificateStoreError
from sharepoint_mcp_server.core.rest import SharePointRestClient

PFX_PASSWORD = "pfx-pass"
SITE_URL = "https://contoso.sharepoint.com/sites/demo"
TENANT_ID = "11111111-2222-3333-4444-555555555555"
TOKEN_ENDPOINT = f"https://login.microsoftonline.com/{TENANT_ID}/oauth2/v2.0/token"


class CertificateFixture:
    """Throwaway RSA key and self-signed certificate."""

    def __init__(self) -> None:
        self.key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "SharePoint-Server-MCP-Cert")])
        now = datetime.datetime.now(datetime.timezone.utc)
        self.certificate = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(self.key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(days=1))
            .not_valid_after(now + datetime.timedelta(days=30))
            .sign(self.key, hashes.SHA256())
        )

    @property
    def thumbprint(self) -> str:
        return self.certificate.fingerprint(hashes.SHA1()).hex().upper()

    def pfx(self, password: str = PFX_PASSWORD, include_key: bool = True, include_cert: bool = True) -> bytes:
        return pkcs12.serialize_key_and_certificates(
            b"sharepoint-mcp",
            self.key if include_key else None,
            self.certificate if include_cert else None,
            None,
            serialization.BestAvailableEncryption(password.encode("utf-8")),
        )


@pytest.fixture(scope="session")
def certificate() -> CertificateFixture:
    return CertificateFixture()


class FakeContext:
    """Stands in for fastmcp.Context in direct tool calls."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    async def info(self, message: str) -> None:
        self.messages.append(("info", message))

    async def error(self, message: str) -> None:
        self.messages.append(("error", message))

    async def report_progress(self, progress: float, total: float | None = None, message: str | None = None) -> None:
        self.messages.append(("progress", message or ""))


@pytest.fixture
def ctx() -> FakeContext:
    return FakeContext()


class FailingStore(CertificateStore):
    name = "failing store"

    def __init__(self) -> None:
        self.calls = 0

    async def export_pfx(self, thumbprint, password, destination, subject_pattern="*"):
        self.calls += 1
        raise CertificateStoreError("Certificate not found in store")


class RecordingStore(CertificateStore):
    """Writes the given bytes and remembers where."""

    name = "recording store"

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.destinations: list[Path] = []

    async def export_pfx(self, thumbprint, password, destination, subject_pattern="*"):
        self.destinations.append(destination)
        destination.write_bytes(self.data)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def form_data(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def contextinfo_body(digest: str = "0x1234@00:30:00") -> dict:
    return {"d": {"GetContextWebInformation": {"FormDigestValue": digest, "FormDigestTimeoutSeconds": 1800}}}


ACS_FAILURE = json.dumps({"error": "invalid_client", "error_description": "AADSTS7000215: bad secret"})


class StubIssuer(AppOnlyTokenIssuer):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0

    async def get_auth_headers(self, url, client_id, client_secret, realm):
        self.calls += 1
        if self.fail:
            raise token_error_from_text(ACS_FAILURE, prefix="SharePoint authentication failed")
        return {"Authorization": "Bearer acs-token"}


Route = Callable[[httpx.Request], Optional[httpx.Response]]


class SharePointStub:
    """Answers contextinfo, web, list and list item calls; records every request.

    ``routes`` is consulted first and may return None to fall through.
    """

    def __init__(self, routes: Optional[Route] = None) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/_api/contextinfo"):
            return httpx.Response(200, json=contextinfo_body("0x1234@00:30:00"))
        if self.routes is not None:
            response = self.routes(request)
            if response is not None:
                return response
        if request.method == "GET" and path.endswith("/_api/web"):
            return httpx.Response(200, json={"d": {"Title": "Demo Site"}})
        if request.method == "GET" and path.endswith("/_api/web/lists"):
            return httpx.Response(200, json={"d": {"results": [
                {"Title": "Tasks", "ItemCount": 3, "RootFolder": {"ServerRelativeUrl": "/sites/demo/Lists/Tasks"}},
            ]}})
        if request.method == "GET" and "ListItemEntityTypeFullName" in str(request.url):
            return httpx.Response(200, json={"d": {"ListItemEntityTypeFullName": "SP.Data.TasksListItem"}})
        if request.method == "POST" and path.endswith("/items"):
            return httpx.Response(201, json={"d": {"ID": 7, "Title": "Write tests", "Created": "2026-10-18T09:00:00Z"}})
        return httpx.Response(404, json={"error": {"message": {"value": f"No route for {path}"}}})

    def writes(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST" and not r.url.path.endswith("/_api/contextinfo")]


@pytest.fixture
def configure(monkeypatch, tmp_path):
    """Installs config and a REST client whose token comes from a StubIssuer."""
    monkeypatch.chdir(tmp_path)

    def _configure(stub: SharePointStub, issuer: Optional[StubIssuer] = None,
                   read_only: bool = False) -> StubIssuer:
        issuer = issuer or StubIssuer()
        config = SharePointConfig({
            "authType": "secret",
            "clientId": "app-client-id",
            "clientSecret": "s3cr3t",
            "tenantId": TENANT_ID,
            "siteUrl": SITE_URL,
            "read_only": read_only,
        })
        client = mock_client(stub)
        dispatcher = CredentialDispatcher(client, token_issuer=issuer)
        di.set_dependencies(config, SharePointRestClient(config, http_client=client, dispatcher=dispatcher))
        return issuer

    yield _configure
    di.clear_dependencies()


def tool_text(result: dict) -> str:
    return result["content"][0]["text"]
