"""
Secret Credential Provider

Shared-secret (ACS app-only) authentication: exchanges a client id/secret
pair, with the tenant id as realm, for an app-only bearer token. The wire
protocol belongs to Office365-REST-Python-Client's ``ACSTokenProvider``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

import httpx
from office365.runtime.auth.providers.acs_token_provider import ACSTokenProvider
from office365.runtime.http.request_options import RequestOptions

from ..config import SecretAuthConfig
from ..errors import TokenExchangeError
from .error_classification import (
    category_message,
    classify,
    token_error_from_text,
    token_error_from_timeout,
)

ODATA_VERBOSE = "application/json;odata=verbose"
AUTH_FAILURE_PREFIX = "SharePoint authentication failed"


class AppOnlyTokenIssuer(ABC):
    """Issues app-only authorization headers for a SharePoint site."""

    @abstractmethod
    async def get_auth_headers(self, url: str, client_id: str, client_secret: str, realm: str) -> Dict[str, str]:
        """Return headers carrying the app-only token for ``url``."""


class RealmACSTokenProvider(ACSTokenProvider):
    """``ACSTokenProvider`` bound to the configured tenant instead of probing the site for its realm."""

    def __init__(self, url: str, client_id: str, client_secret: str, realm: str):
        super().__init__(url, client_id, client_secret)
        self._configured_realm = realm

    def _get_realm_from_target_url(self):
        return self._configured_realm


class AcsTokenIssuer(AppOnlyTokenIssuer):
    """Azure ACS client-credentials flow used by SharePoint add-in principals."""

    def __init__(self, timeout: float = 30.0,
                 provider_factory: Callable[..., Any] = RealmACSTokenProvider):
        self.timeout = timeout
        self.provider_factory = provider_factory
        self.logger = logging.getLogger("sharepoint.auth.acs")

    async def get_auth_headers(self, url: str, client_id: str, client_secret: str, realm: str) -> Dict[str, str]:
        if not urlparse(url).hostname:
            raise TokenExchangeError(f"Cannot derive SharePoint host from URL: {url}", category="not_found")

        def acquire() -> str:
            provider = self.provider_factory(url, client_id, client_secret, realm)
            request = RequestOptions(url)
            provider.authenticate_request(request)
            return request.headers.get("Authorization", "")

        try:
            authorization = await asyncio.wait_for(asyncio.to_thread(acquire), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise token_error_from_timeout(e, prefix=AUTH_FAILURE_PREFIX) from e
        except ValueError as e:
            # ACSTokenProvider reports token endpoint failures as ValueError(<response body>)
            raise token_error_from_text(str(e), prefix=AUTH_FAILURE_PREFIX) from e

        _, _, token = authorization.partition(" ")
        if not token or token == "None":
            raise TokenExchangeError(f"{AUTH_FAILURE_PREFIX}: No access token in response")
        return {"Authorization": authorization}


class SecretCredentialProvider:
    """Builds authorization headers for shared-secret configurations."""

    def __init__(self, issuer: Optional[AppOnlyTokenIssuer] = None):
        self.issuer = issuer or AcsTokenIssuer()
        self.logger = logging.getLogger("sharepoint.auth.secret")

    async def get_headers(self, url: str, config: SecretAuthConfig) -> Dict[str, str]:
        self.logger.info(f"Authenticating to {url} with client ID {config.client_id[:5]}... "
                         f"and tenant ID {config.tenant_id[:5]}...")
        try:
            issued = await self.issuer.get_auth_headers(url, config.client_id, config.client_secret, config.tenant_id)
        except TokenExchangeError as e:
            self.logger.error(f"App-only token exchange failed: {e}")
            raise
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            self.logger.error(f"App-only token exchange timed out: {e}")
            raise token_error_from_timeout(e, prefix=AUTH_FAILURE_PREFIX) from e
        except (httpx.HTTPError, OSError) as e:
            self.logger.error(f"App-only token exchange failed: {e}")
            raise _classified_transport_error(e) from e

        headers = dict(issued)
        headers["Accept"] = ODATA_VERBOSE
        self.logger.info(f"SharePoint authentication successful, headers: {', '.join(headers)}")
        return headers


def _classified_transport_error(error: Exception) -> TokenExchangeError:
    text = str(error) or type(error).__name__
    category: Optional[str] = classify(text=text)
    detail = category_message(category) if category else text
    return TokenExchangeError(
        f"{AUTH_FAILURE_PREFIX}: {detail}. Verify your configuration and app permissions.",
        category=category,
    )
