"""
Certificate Credential Provider

Azure AD certificate authentication: locate the certificate, try a
confidential-client token request through MSAL, and fall back to a
hand-signed JWT-bearer client assertion posted to the token endpoint.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

import httpx
import msal
from pydantic import ValidationError as PydanticValidationError

from ..config import CertificateAuthConfig
from ..errors import ConfigurationError, TokenExchangeError
from .assertion_signer import AssertionSigner, ParsedCertificate, parse_pkcs12, token_endpoint_for
from .certificate_locator import CertificateLocator
from .error_classification import token_error_from_response, token_error_from_timeout
from .schemas import TokenResponse
from .secret_provider import ODATA_VERBOSE

JWT_BEARER_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
AUTHORITY_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}"
CERTIFICATE_CREDENTIAL_LABEL = "client ID or certificate"


def site_origin(url: str) -> str:
    """Scheme, host and explicit port of a SharePoint URL, e.g. ``https://contoso.sharepoint.com``."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        raise ConfigurationError("Site URL", f"Invalid SharePoint site URL: {url}")
    host_port = parsed.netloc.rpartition("@")[2]
    return f"{parsed.scheme}://{host_port}"


class CertificateCredentialProvider:
    """Builds authorization headers for certificate configurations."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        locator: Optional[CertificateLocator] = None,
        signer: Optional[AssertionSigner] = None,
        msal_app_factory: Optional[Callable[..., Any]] = msal.ConfidentialClientApplication,
        timeout: float = 30.0,
    ):
        self.http_client = http_client
        self.locator = locator or CertificateLocator()
        self.signer = signer or AssertionSigner()
        self.msal_app_factory = msal_app_factory
        self.timeout = timeout
        self.logger = logging.getLogger("sharepoint.auth.certificate")

    async def get_headers(self, url: str, config: CertificateAuthConfig) -> Dict[str, str]:
        scope = f"{site_origin(url)}/.default"
        self.logger.info(f"Authenticating to {url} with client ID {config.client_id[:5]}..., "
                         f"certificate {config.certificate_thumbprint[:5]}..., scope {scope}")

        async with self.locator.open(config.certificate_thumbprint, config.certificate_password) as material:
            self.logger.debug(f"Certificate material loaded from {material.source}")
            parsed = parse_pkcs12(material)

            access_token = None
            if self.msal_app_factory is not None:
                try:
                    access_token = await self._acquire_with_msal(parsed, config, scope)
                    self.logger.info("Authentication successful using MSAL with certificate")
                except Exception as e:
                    self.logger.warning(f"MSAL authentication failed, falling back to manual client assertion: {e}")

            if access_token is None:
                token_endpoint = token_endpoint_for(config.tenant_id)
                assertion = self.signer.sign(parsed, config.client_id, token_endpoint, config.certificate_thumbprint)
                access_token = await self._exchange_assertion(token_endpoint, assertion, config.client_id, scope)

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": ODATA_VERBOSE,
        }
        self.logger.info(f"SharePoint authentication successful, headers: {', '.join(headers)}")
        return headers

    async def _acquire_with_msal(self, parsed: ParsedCertificate, config: CertificateAuthConfig, scope: str) -> str:
        credential = {
            "private_key": parsed.private_key_pem().decode("ascii"),
            "thumbprint": parsed.thumbprint_hex,
        }

        def acquire() -> Dict[str, Any]:
            app = self.msal_app_factory(
                config.client_id,
                authority=AUTHORITY_TEMPLATE.format(tenant_id=config.tenant_id),
                client_credential=credential,
                timeout=self.timeout,
            )
            return app.acquire_token_for_client(scopes=[scope])

        result = await asyncio.wait_for(asyncio.to_thread(acquire), timeout=self.timeout)
        if not result or not result.get("access_token"):
            detail = (result or {}).get("error_description") or (result or {}).get("error") or "no access token returned"
            raise TokenExchangeError(f"MSAL token request failed: {detail}",
                                     error_code=(result or {}).get("error"))
        return result["access_token"]

    async def _exchange_assertion(self, token_endpoint: str, assertion: str, client_id: str, scope: str) -> str:
        form_data = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_assertion_type": JWT_BEARER_ASSERTION_TYPE,
            "client_assertion": assertion,
            "scope": scope,
        }

        self.logger.info("Requesting access token with client assertion...")
        try:
            response = await self.http_client.post(
                token_endpoint,
                data=form_data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise token_error_from_timeout(e) from e
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"Token request failed: {e}") from e

        if response.status_code >= 400:
            error = token_error_from_response(response, credential_label=CERTIFICATE_CREDENTIAL_LABEL)
            self.logger.error(f"Token request failed with status {response.status_code}: {error}")
            raise error

        try:
            token = TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            self.logger.error("Token response did not contain an access token")
            raise TokenExchangeError("Token request failed: No access token in response",
                                     status=response.status_code) from e

        self.logger.info("Access token obtained successfully")
        return token.access_token
