#!/usr/bin/env python3
"""
SharePoint MCP Server - Core Configuration

Handles environment variables, CLI overrides, configuration validation and
the authentication configuration handed to the credential dispatcher.
"""

import os
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables
load_dotenv()


class SecretAuthConfig(BaseModel):
    """Shared-secret (ACS app-only) credentials."""

    model_config = ConfigDict(frozen=True)

    auth_type: Literal["secret"] = "secret"
    client_id: str = ""
    client_secret: str = ""
    tenant_id: str = ""

    REQUIRED_FIELDS: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("client_id", "Client ID"),
        ("client_secret", "Client Secret"),
        ("tenant_id", "Tenant ID"),
    )

    def missing_fields(self) -> List[str]:
        return [label for attr, label in self.REQUIRED_FIELDS if not str(getattr(self, attr) or "").strip()]


class CertificateAuthConfig(BaseModel):
    """Azure AD certificate (JWT-bearer client assertion) credentials."""

    model_config = ConfigDict(frozen=True)

    auth_type: Literal["certificate"] = "certificate"
    client_id: str = ""
    certificate_thumbprint: str = ""
    certificate_password: str = ""
    tenant_id: str = ""

    REQUIRED_FIELDS: ClassVar[Tuple[Tuple[str, str], ...]] = (
        ("client_id", "Client ID"),
        ("certificate_thumbprint", "Certificate Thumbprint"),
        ("certificate_password", "Certificate Password"),
        ("tenant_id", "Tenant ID"),
    )

    def missing_fields(self) -> List[str]:
        return [label for attr, label in self.REQUIRED_FIELDS if not str(getattr(self, attr) or "").strip()]


AuthConfig = Annotated[Union[SecretAuthConfig, CertificateAuthConfig], Field(discriminator="auth_type")]


class SharePointConfig:
    """Configuration management for the SharePoint MCP Server.

    Priority: CLI arguments, then environment variables (including ``.env``).
    """

    def __init__(self, cli_args: Optional[Dict[str, Any]] = None):
        args = {key: value for key, value in (cli_args or {}).items() if value not in (None, "")}

        # Server Configuration
        self.server_name = os.getenv("MCP_SERVER_NAME", "SharePoint MCP Server")
        self.server_version = os.getenv("MCP_SERVER_VERSION", "1.0.0")

        # Transport Configuration
        self.transport = str(args.get("transport") or os.getenv("TRANSPORT", "stdio")).lower()
        self.http_host = args.get("host") or os.getenv("HTTP_HOST", "0.0.0.0")
        self.http_port = int(args.get("port") or os.getenv("HTTP_PORT", "8000"))

        # Logging Configuration
        self.log_level = str(args.get("log_level") or os.getenv("LOG_LEVEL", "INFO")).upper()

        # Read-Only Mode
        self.read_only_mode = bool(args.get("read_only")) or os.getenv("READ_ONLY_MODE", "false").lower() == "true"

        # SharePoint site
        self.site_url = (args.get("siteUrl") or os.getenv("SHAREPOINT_SITE_URL", "")).rstrip("/")

        # Shared-secret credentials
        self.client_id = args.get("clientId") or os.getenv("SHAREPOINT_CLIENT_ID", "")
        self.client_secret = args.get("clientSecret") or os.getenv("SHAREPOINT_CLIENT_SECRET", "")
        self.tenant_id = args.get("tenantId") or os.getenv("SHAREPOINT_TENANT_ID", "")

        # Certificate credentials
        self.azure_app_id = args.get("clientId") or os.getenv("AZURE_APPLICATION_ID", "") or self.client_id
        self.certificate_thumbprint = (
            args.get("certificateThumbprint") or os.getenv("AZURE_APPLICATION_CERTIFICATE_THUMBPRINT", "")
        )
        self.certificate_password = (
            args.get("certificatePassword") or os.getenv("AZURE_APPLICATION_CERTIFICATE_PASSWORD", "")
        )

        auth_type = args.get("authType") or os.getenv("SHAREPOINT_AUTH_TYPE", "")
        if not auth_type:
            auth_type = "certificate" if self.certificate_thumbprint else "secret"
        self.auth_type = auth_type.lower()

        # Validate configuration
        self._validate_config()

    def _validate_config(self):
        """Validate configuration settings."""
        if self.transport not in ["stdio", "streamable-http"]:
            raise ValueError(f"Invalid transport mode: {self.transport}. Must be 'stdio' or 'streamable-http'")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}")

        if not (1 <= self.http_port <= 65535):
            raise ValueError(f"Invalid HTTP port: {self.http_port}. Must be between 1 and 65535")

        if self.auth_type not in ["secret", "certificate"]:
            raise ValueError(f"Invalid auth type: {self.auth_type}. Must be 'secret' or 'certificate'")

        if self.site_url and not self.site_url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid SharePoint site URL: {self.site_url}")

    def to_auth_config(self) -> Union[SecretAuthConfig, CertificateAuthConfig]:
        """Build the authentication configuration for the active scheme."""
        if self.auth_type == "certificate":
            return CertificateAuthConfig(
                client_id=self.azure_app_id,
                certificate_thumbprint=self.certificate_thumbprint,
                certificate_password=self.certificate_password,
                tenant_id=self.tenant_id,
            )
        return SecretAuthConfig(
            client_id=self.client_id,
            client_secret=self.client_secret,
            tenant_id=self.tenant_id,
        )

    def missing_fields(self) -> List[str]:
        """Names of required settings that are not configured."""
        missing = self.to_auth_config().missing_fields()
        if not self.site_url:
            missing.append("Site URL")
        return missing

    def is_auth_configured(self) -> bool:
        """Check if credentials for the active scheme are configured."""
        return not self.to_auth_config().missing_fields()

    def get_server_info(self) -> Dict[str, Any]:
        """Get server information for logging and status."""
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
            "http_host": self.http_host,
            "http_port": self.http_port,
            "log_level": self.log_level,
            "read_only_mode": self.read_only_mode,
            "auth_type": self.auth_type,
            "auth_configured": self.is_auth_configured(),
            "site_url": self.site_url,
        }
