"""OAuth 2.0 client for Sesame SSO with CSRF state management."""

from .config import SSOSettings
from .errors import (
    ConfigurationError,
    EndpointNotFoundError,
    InvalidInputError,
    OAuthRequestError,
    SesameApiError,
    SesameSSOError,
    StateValidationError,
)
from .http_client import SesameApiClient
from .oauth import (
    ExchangeResult,
    InMemoryTTLStore,
    LoginUrl,
    SesameSSO,
    StateStore,
    TokenResponse,
)

__version__ = "0.1.0"

__all__ = [
    "SSOSettings",
    "SesameSSO",
    "SesameApiClient",
    "InMemoryTTLStore",
    "StateStore",
    "LoginUrl",
    "TokenResponse",
    "ExchangeResult",
    "SesameSSOError",
    "ConfigurationError",
    "InvalidInputError",
    "StateValidationError",
    "OAuthRequestError",
    "EndpointNotFoundError",
    "SesameApiError",
]
