"""Helpers for building OAuth requests against the Sesame SSO server."""

import base64
import re
import secrets
from typing import Any, Dict, Optional
from urllib.parse import urlencode


def generate_random_hex(nbytes: int = 32) -> str:
    """
    Generate a cryptographically random hex string.

    Used as the OAuth ``state`` parameter. With the default of 32 bytes
    the result is 64 lowercase hex characters.

    Args:
        nbytes: Number of random bytes to draw from the OS CSPRNG

    Returns:
        Lowercase hex encoding of the random bytes
    """
    return secrets.token_hex(nbytes)


def normalize_base_url(url: str) -> str:
    """Strip trailing slashes from a base URL."""
    return re.sub(r"/+$", "", url)


def build_basic_auth(client_id: str, client_secret: str) -> str:
    """
    Build the value of a Basic ``Authorization`` header.

    Args:
        client_id: OAuth client ID
        client_secret: OAuth client secret

    Returns:
        ``"Basic <base64(client_id:client_secret)>"``
    """
    credentials = f"{client_id}:{client_secret}".encode("utf-8")
    return f"Basic {base64.b64encode(credentials).decode('ascii')}"


def to_form_urlencoded(data: Dict[str, Any]) -> str:
    """Encode a mapping as application/x-www-form-urlencoded, skipping None values."""
    return urlencode({key: str(value) for key, value in data.items() if value is not None})


def format_oauth_error(
    context: str,
    status_code: Optional[int] = None,
    error_code: Optional[str] = None,
    description: Optional[str] = None,
) -> str:
    """
    Format a failed OAuth call as a single human-readable message.

    Example:
        ``OAuth token exchange failed [400] (invalid_grant): Code expired``

    Args:
        context: Label of the operation that failed (e.g. "token refresh")
        status_code: HTTP status returned by the server, if any
        error_code: OAuth ``error`` value returned by the server, if any
        description: Human-readable error description

    Returns:
        The formatted message
    """
    status = f" [{status_code}]" if status_code else ""
    return (
        f"OAuth {context} failed{status} "
        f"({error_code or 'unknown'}): {description or 'Unknown error'}"
    )


def redact_secret(value: Optional[str], keep_chars: int = 4) -> str:
    """Keep the first ``keep_chars`` characters of a secret for logging."""
    if not value:
        return ""
    return f"{value[:keep_chars]}...[redacted]"
