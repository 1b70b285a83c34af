#!/usr/bin/env python3
"""
SharePoint MCP Server - Authentication Errors

Error taxonomy for credential issuance and request authorization.
Every error carries a human-readable message suitable for a tool result.
"""

from typing import List, Optional


class SharePointAuthError(Exception):
    """Base class for authentication and authorization failures."""
    pass


class ConfigurationError(SharePointAuthError):
    """A required configuration field is missing; raised before any network call."""

    def __init__(self, field_name: str, message: Optional[str] = None):
        self.field_name = field_name
        super().__init__(message or f"{field_name} is missing from configuration")


class CertificateStoreError(SharePointAuthError):
    """The platform certificate store could not export the certificate."""
    pass


class CertificateAcquisitionError(SharePointAuthError):
    """No PKCS#12 bundle could be found on disk or exported from the store."""

    def __init__(self, attempted_paths: List[str], store_error: Optional[str] = None, reason: Optional[str] = None):
        self.attempted_paths = list(attempted_paths)
        self.store_error = store_error
        self.reason = reason
        header = reason or "Certificate not found in file system or certificate store"
        lines = [f"{header}. Paths attempted:"]
        lines.extend(f"  - {path}" for path in self.attempted_paths)
        if store_error:
            lines.append(f"Certificate store: {store_error}")
        super().__init__("\n".join(lines))


class CertificateDecryptionError(SharePointAuthError):
    """The PKCS#12 bundle could not be decrypted (wrong password or corrupt file)."""
    pass


class AssertionSigningError(SharePointAuthError):
    """The client assertion could not be built from the certificate bundle."""
    pass


class MissingKeyError(AssertionSigningError):
    """The certificate bundle contains no private key."""
    pass


class MissingCertificateError(AssertionSigningError):
    """The certificate bundle contains no certificate."""
    pass


class TokenExchangeError(SharePointAuthError):
    """The identity provider refused or failed to issue an access token."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        description: Optional[str] = None,
        error_code: Optional[str] = None,
        category: Optional[str] = None,
    ):
        self.status = status
        self.description = description
        self.error_code = error_code
        self.category = category
        super().__init__(message)


class DigestUnavailableError(SharePointAuthError):
    """SharePoint did not return a usable form digest."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)
