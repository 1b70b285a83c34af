#!/usr/bin/env python3
"""
SharePoint MCP Server - REST Module

Runs the per-invocation pipeline used by every tool: authenticate, fetch a
form digest for mutating calls, then perform the SharePoint REST call.
Nothing is cached between invocations.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .auth.dispatcher import CredentialDispatcher
from .auth.secret_provider import ODATA_VERBOSE
from .config import SharePointConfig


class SharePointRequestError(Exception):
    """A SharePoint REST call returned an error status."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


def _odata_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or "No error details provided"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, dict):
            return str(message.get("value") or message)
        if message:
            return str(message)
    if isinstance(body, dict) and "odata.error" in body:
        return str(body["odata.error"].get("message", {}).get("value", body["odata.error"]))
    return response.text[:500] or "No error details provided"


class SharePointRestClient:
    """Authenticated access to the SharePoint REST API."""

    def __init__(
        self,
        config: SharePointConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        dispatcher: Optional[CredentialDispatcher] = None,
    ):
        self.config = config
        self.http_client = http_client or httpx.AsyncClient(timeout=30.0)
        self.dispatcher = dispatcher or CredentialDispatcher(self.http_client)
        self.logger = logging.getLogger(__name__)

    async def prepare_headers(self, site_url: str, mutating: bool = False) -> Dict[str, str]:
        """Fresh bearer headers for ``site_url``, plus digest and content type when mutating."""
        site_url = site_url.rstrip("/")
        headers = await self.dispatcher.get_headers(site_url, self.config.to_auth_config())
        if mutating:
            headers["X-RequestDigest"] = await self.dispatcher.get_digest(site_url, headers)
            headers["Content-Type"] = ODATA_VERBOSE
        return headers

    async def request(
        self,
        method: str,
        site_url: str,
        path: str,
        mutating: bool = False,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        extra_headers: Optional[Dict[str, str]] = None,
        timeout: float = 15.0,
        auth_headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Call ``{site_url}{path}``; mutating calls carry a fresh digest.

        ``auth_headers`` from ``prepare_headers`` lets one tool invocation reuse
        its credentials across several calls to the same site.
        """
        site_url = site_url.rstrip("/")
        if auth_headers is None:
            auth_headers = await self.prepare_headers(site_url, mutating=mutating)
        headers = dict(auth_headers)
        if not mutating:
            headers.pop("Content-Type", None)
        if extra_headers:
            headers.update(extra_headers)

        self.logger.info(f"{method} {site_url}{path}")
        return await self.http_client.request(
            method,
            f"{site_url}{path}",
            params=params,
            json=json_data,
            headers=headers,
            timeout=timeout,
        )

    async def request_json(self, method: str, site_url: str, path: str, **kwargs) -> Dict[str, Any]:
        """Like ``request`` but raises SharePointRequestError on failure and decodes the body."""
        response = await self.request(method, site_url, path, **kwargs)
        if response.status_code >= 400:
            raise SharePointRequestError(
                f"SharePoint returned HTTP {response.status_code}: {_odata_error_message(response)}",
                status=response.status_code,
            )
        if not response.content:
            return {}
        return response.json()

    async def close(self):
        """Close the HTTP client."""
        if self.http_client:
            await self.http_client.aclose()
