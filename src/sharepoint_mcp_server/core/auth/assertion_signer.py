"""
Assertion Signer

Parses a PKCS#12 bundle and builds the RS256 JWT client assertion
(RFC 7523) presented to the Azure AD token endpoint.
"""

import logging
import re
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

import jwt
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from jwt.utils import base64url_encode

from ..errors import (
    AssertionSigningError,
    CertificateDecryptionError,
    MissingCertificateError,
    MissingKeyError,
)
from .certificate_locator import CertificateMaterial

TOKEN_ENDPOINT_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
ASSERTION_LIFETIME_SECONDS = 600

logger = logging.getLogger("sharepoint.auth.assertion_signer")


def token_endpoint_for(tenant_id: str) -> str:
    return TOKEN_ENDPOINT_TEMPLATE.format(tenant_id=tenant_id)


def normalize_thumbprint(thumbprint: str) -> str:
    """Uppercase hex with separators and whitespace removed."""
    return re.sub(r"[^0-9A-Fa-f]", "", thumbprint or "").upper()


@dataclass
class ParsedCertificate:
    private_key: rsa.RSAPrivateKey
    certificate: x509.Certificate

    @property
    def sha1_thumbprint(self) -> bytes:
        """SHA-1 over the certificate's DER encoding."""
        return self.certificate.fingerprint(hashes.SHA1())

    @property
    def thumbprint_hex(self) -> str:
        return self.sha1_thumbprint.hex().upper()

    @property
    def x5t(self) -> str:
        return base64url_encode(self.sha1_thumbprint).decode("ascii")

    def private_key_pem(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )


def parse_pkcs12(material: CertificateMaterial) -> ParsedCertificate:
    """Decrypt the bundle and pull out its private key and certificate.

    Raises:
        CertificateDecryptionError: wrong password or corrupt bundle.
        MissingKeyError: the bundle holds no private key.
        MissingCertificateError: the bundle holds no certificate.
        AssertionSigningError: the key is not an RSA key.
    """
    password = material.password.encode("utf-8") if material.password else None
    try:
        private_key, certificate, _ = pkcs12.load_key_and_certificates(material.data, password)
    except ValueError as e:
        raise CertificateDecryptionError(
            f"Could not decrypt certificate bundle from {material.source or 'memory'}: "
            "check the certificate password (the file was found)"
        ) from e

    if private_key is None:
        raise MissingKeyError("Private key not found in certificate bundle")
    if certificate is None:
        raise MissingCertificateError("Certificate not found in certificate bundle")
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise AssertionSigningError(
            f"Certificate key must be RSA for RS256 signing, got {type(private_key).__name__}"
        )

    return ParsedCertificate(private_key=private_key, certificate=certificate)


class AssertionSigner:
    """Signs JWT-bearer client assertions with a certificate's private key."""

    def __init__(self, clock: Callable[[], float] = time.time,
                 lifetime_seconds: int = ASSERTION_LIFETIME_SECONDS):
        self.clock = clock
        self.lifetime_seconds = lifetime_seconds

    def sign(self, parsed: ParsedCertificate, client_id: str, token_endpoint: str,
             configured_thumbprint: Optional[str] = None) -> str:
        """Return a compact three-part JWT audience-bound to ``token_endpoint``.

        The x5t header is recomputed from the certificate itself; a configured
        thumbprint that disagrees only produces a warning.
        """
        if configured_thumbprint and normalize_thumbprint(configured_thumbprint) != parsed.thumbprint_hex:
            logger.warning(
                f"Configured thumbprint {normalize_thumbprint(configured_thumbprint)[:5]}... does not match "
                f"certificate thumbprint {parsed.thumbprint_hex[:5]}...; using the certificate's"
            )

        now = int(self.clock())
        payload = {
            "aud": token_endpoint,
            "iss": client_id,
            "sub": client_id,
            "jti": str(uuid.uuid4()),
            "nbf": now,
            "exp": now + self.lifetime_seconds,
        }
        headers = {"alg": "RS256", "typ": "JWT", "x5t": parsed.x5t}

        try:
            return jwt.encode(payload, parsed.private_key, algorithm="RS256", headers=headers)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            raise AssertionSigningError(f"Failed to sign client assertion: {e}") from e

    def create_client_assertion(self, material: CertificateMaterial, client_id: str, tenant_id: str,
                                configured_thumbprint: Optional[str] = None) -> str:
        """Parse ``material`` and sign an assertion for the tenant's v2.0 token endpoint."""
        parsed = parse_pkcs12(material)
        return self.sign(parsed, client_id, token_endpoint_for(tenant_id), configured_thumbprint)
