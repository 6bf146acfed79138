"""Exceptions raised by the Sesame SSO client."""

from typing import Optional


class SesameSSOError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(SesameSSOError):
    """Raised when required client configuration is missing."""


class InvalidInputError(SesameSSOError, ValueError):
    """Raised when a required call argument is empty."""


class StateValidationError(SesameSSOError):
    """Raised when the OAuth state is missing, expired or already used."""


class OAuthRequestError(SesameSSOError):
    """Exception raised when a call to the SSO server fails."""

    def __init__(
        self,
        message: str,
        *,
        context: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        description: Optional[str] = None,
    ):
        self.context = context
        self.status_code = status_code
        self.error_code = error_code
        self.description = description
        super().__init__(message)


class EndpointNotFoundError(OAuthRequestError):
    """The SSO server does not expose the requested endpoint (HTTP 404)."""


class SesameApiError(SesameSSOError):
    """Exception raised when a Sesame API call fails."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Sesame API error {status_code}: {message}")
