"""
Response schemas for the endpoints the authentication layer talks to.

Each endpoint gets an explicit model; parsing fails closed when a required
field is absent or empty instead of walking untyped dictionaries.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TokenResponse(BaseModel):
    """Successful OAuth2 token endpoint response (Azure AD v2 or ACS)."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    token_type: Optional[str] = None
    expires_in: Optional[Union[int, str]] = None


class TokenErrorResponse(BaseModel):
    """OAuth2 error body: RFC 6749 section 5.2 plus the Azure AD extensions."""

    model_config = ConfigDict(extra="ignore")

    error: Optional[str] = None
    error_description: Optional[str] = None
    error_codes: Optional[List[int]] = None
    trace_id: Optional[str] = None
    correlation_id: Optional[str] = None


class ContextWebInformation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    FormDigestValue: str = Field(min_length=1)
    FormDigestTimeoutSeconds: Optional[int] = None
    WebFullUrl: Optional[str] = None


class ContextInfoBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    GetContextWebInformation: ContextWebInformation


class ContextInfoResponse(BaseModel):
    """``POST {site}/_api/contextinfo`` verbose OData response."""

    model_config = ConfigDict(extra="ignore")

    d: ContextInfoBody

    @property
    def form_digest_value(self) -> str:
        return self.d.GetContextWebInformation.FormDigestValue
