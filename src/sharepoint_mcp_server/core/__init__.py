#!/usr/bin/env python3
"""
SharePoint MCP Server - Core Module

Core functionality including configuration, authentication, validation and
the SharePoint REST pipeline.
"""

from .config import SharePointConfig, SecretAuthConfig, CertificateAuthConfig, AuthConfig
from .errors import (
    SharePointAuthError,
    ConfigurationError,
    CertificateAcquisitionError,
    CertificateDecryptionError,
    CertificateStoreError,
    AssertionSigningError,
    MissingKeyError,
    MissingCertificateError,
    TokenExchangeError,
    DigestUnavailableError,
)
from .rest import SharePointRestClient, SharePointRequestError
from .validation import (
    ValidationError,
    validate_integer_param,
    validate_string_param,
    validate_site_url,
)

__all__ = [
    "SharePointConfig",
    "SecretAuthConfig",
    "CertificateAuthConfig",
    "AuthConfig",
    "SharePointAuthError",
    "ConfigurationError",
    "CertificateAcquisitionError",
    "CertificateDecryptionError",
    "CertificateStoreError",
    "AssertionSigningError",
    "MissingKeyError",
    "MissingCertificateError",
    "TokenExchangeError",
    "DigestUnavailableError",
    "SharePointRestClient",
    "SharePointRequestError",
    "ValidationError",
    "validate_integer_param",
    "validate_string_param",
    "validate_site_url",
]
