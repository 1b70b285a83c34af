"""
SharePoint MCP Server - Authentication Package

Credential issuance (shared secret or Azure AD certificate) and request
authorization (bearer headers and form digests).
"""

from .assertion_signer import AssertionSigner, ParsedCertificate, parse_pkcs12, token_endpoint_for
from .certificate_locator import CertificateLocator, CertificateMaterial
from .certificate_provider import CertificateCredentialProvider, site_origin
from .certificate_store import (
    CertificateStore,
    NoCertificateStore,
    WindowsCertificateStore,
    default_certificate_store,
)
from .digest import DigestManager
from .dispatcher import CredentialDispatcher, get_digest, get_headers, validate_auth_config
from .secret_provider import AcsTokenIssuer, AppOnlyTokenIssuer, RealmACSTokenProvider, SecretCredentialProvider

__all__ = [
    "AcsTokenIssuer",
    "RealmACSTokenProvider",
    "AppOnlyTokenIssuer",
    "AssertionSigner",
    "CertificateCredentialProvider",
    "CertificateLocator",
    "CertificateMaterial",
    "CertificateStore",
    "CredentialDispatcher",
    "DigestManager",
    "NoCertificateStore",
    "ParsedCertificate",
    "SecretCredentialProvider",
    "WindowsCertificateStore",
    "default_certificate_store",
    "get_digest",
    "get_headers",
    "parse_pkcs12",
    "site_origin",
    "token_endpoint_for",
    "validate_auth_config",
]
