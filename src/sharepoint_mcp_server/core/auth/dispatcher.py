"""
Credential Dispatcher

Single entry point for authorization headers: validates the configuration
of the active scheme and hands off to the matching provider.
"""

import logging
from typing import Dict, Optional, Union

import httpx

from ..config import CertificateAuthConfig, SecretAuthConfig
from ..errors import ConfigurationError
from .certificate_locator import CertificateLocator
from .certificate_provider import CertificateCredentialProvider, site_origin
from .digest import DigestManager
from .secret_provider import AcsTokenIssuer, AppOnlyTokenIssuer, SecretCredentialProvider

logger = logging.getLogger("sharepoint.auth.dispatcher")


def validate_auth_config(config: Union[SecretAuthConfig, CertificateAuthConfig]) -> None:
    """Raise ConfigurationError naming the first missing field of the active variant."""
    if not isinstance(config, (SecretAuthConfig, CertificateAuthConfig)):
        raise ConfigurationError("Authentication Type", f"Unsupported authentication configuration: {type(config).__name__}")

    missing = config.missing_fields()
    if missing:
        scheme = "certificate" if isinstance(config, CertificateAuthConfig) else "client secret"
        raise ConfigurationError(
            missing[0],
            f"SharePoint {missing[0]} is missing from configuration ({scheme} authentication)",
        )


class CredentialDispatcher:
    """Selects a credential provider by configuration variant."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        secret_provider: Optional[SecretCredentialProvider] = None,
        certificate_provider: Optional[CertificateCredentialProvider] = None,
        token_issuer: Optional[AppOnlyTokenIssuer] = None,
        certificate_locator: Optional[CertificateLocator] = None,
    ):
        self.http_client = http_client
        self.secret_provider = secret_provider or SecretCredentialProvider(
            token_issuer or AcsTokenIssuer()
        )
        self.certificate_provider = certificate_provider or CertificateCredentialProvider(
            http_client, locator=certificate_locator
        )
        self.digest_manager = DigestManager(http_client)

    async def get_headers(self, url: str, config: Union[SecretAuthConfig, CertificateAuthConfig]) -> Dict[str, str]:
        """Fresh authorization headers for ``url``; never cached across calls."""
        validate_auth_config(config)
        site_origin(url)

        if isinstance(config, CertificateAuthConfig):
            logger.info("Using certificate authentication")
            return await self.certificate_provider.get_headers(url, config)

        logger.info("Using client secret authentication")
        return await self.secret_provider.get_headers(url, config)

    async def get_digest(self, url: str, headers: Dict[str, str]) -> str:
        """Form digest for ``url``; both schemes share the same contextinfo call."""
        return await self.digest_manager.get_digest(url, headers)


async def get_headers(url: str, config: Union[SecretAuthConfig, CertificateAuthConfig],
                      http_client: Optional[httpx.AsyncClient] = None) -> Dict[str, str]:
    """Convenience wrapper owning a short-lived client when none is supplied."""
    if http_client is not None:
        return await CredentialDispatcher(http_client).get_headers(url, config)
    validate_auth_config(config)
    async with httpx.AsyncClient(timeout=30.0) as client:
        return await CredentialDispatcher(client).get_headers(url, config)


async def get_digest(url: str, headers: Dict[str, str], http_client: Optional[httpx.AsyncClient] = None) -> str:
    if http_client is not None:
        return await DigestManager(http_client).get_digest(url, headers)
    async with httpx.AsyncClient(timeout=30.0) as client:
        return await DigestManager(client).get_digest(url, headers)
