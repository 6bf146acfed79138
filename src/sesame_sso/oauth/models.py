"""Response models returned by the Sesame SSO client."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginUrl(BaseModel):
    """Authorization URL plus the state value embedded in it."""

    url: str
    state: str


class TokenResponse(BaseModel):
    """Token endpoint response per RFC 6749 section 5.1."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., repr=False)
    refresh_token: Optional[str] = Field(default=None, repr=False)
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    id_token: Optional[str] = Field(default=None, repr=False)
    scope: Optional[str] = None


class ExchangeResult(BaseModel):
    """Result of a successful authorization code exchange."""

    access_token: str = Field(..., repr=False)
    refresh_token: Optional[str] = Field(default=None, repr=False)
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    user_data: Optional[Dict[str, Any]] = Field(default=None, repr=False)
    sesame_credentials: Optional[Dict[str, Any]] = Field(default=None, repr=False)
