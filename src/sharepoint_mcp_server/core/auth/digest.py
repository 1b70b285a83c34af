"""
Digest Manager

Fetches SharePoint's form digest (anti-forgery token) for one site URL.
Every call is a fresh round trip; digests are never cached or shared
between sites.
"""

import logging
from typing import Dict

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..errors import DigestUnavailableError
from .schemas import ContextInfoResponse

DIGEST_FAILURE_MESSAGE = "Failed to get request digest required for operations"


class DigestManager:
    """Requests ``X-RequestDigest`` values from ``{site}/_api/contextinfo``."""

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = 30.0):
        self.http_client = http_client
        self.timeout = timeout
        self.logger = logging.getLogger("sharepoint.auth.digest")

    async def get_digest(self, url: str, headers: Dict[str, str]) -> str:
        if not headers:
            raise DigestUnavailableError(f"{DIGEST_FAILURE_MESSAGE}: headers are empty")

        digest_url = f"{url.rstrip('/')}/_api/contextinfo"
        request_headers = {key: value for key, value in headers.items() if key.lower() != "content-type"}
        self.logger.info(f"Requesting digest from: {digest_url}")

        try:
            response = await self.http_client.post(digest_url, headers=request_headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise DigestUnavailableError(
                f"{DIGEST_FAILURE_MESSAGE}: request timed out - check network connection"
            ) from e
        except httpx.HTTPError as e:
            raise DigestUnavailableError(f"{DIGEST_FAILURE_MESSAGE}: {e}") from e

        if response.status_code >= 400:
            hint = {
                401: "check credentials",
                403: "check app permissions",
                404: "check site URL",
            }.get(response.status_code, "check app permissions and URL")
            self.logger.error(f"Digest request failed with HTTP {response.status_code}: {response.text[:500]}")
            raise DigestUnavailableError(
                f"{DIGEST_FAILURE_MESSAGE}: HTTP {response.status_code} - {hint}",
                status=response.status_code,
            )

        try:
            context_info = ContextInfoResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            self.logger.error(f"Unexpected digest response format: {response.text[:500]}")
            raise DigestUnavailableError(f"{DIGEST_FAILURE_MESSAGE}: invalid digest response format",
                                         status=response.status_code) from e

        self.logger.info("Request digest obtained successfully")
        return context_info.form_digest_value
