"""Async HTTP client for Sesame API calls."""

import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import InvalidInputError, SesameApiError
from .helpers import get_api_url

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pick the most useful error text from a failed Sesame response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("message", "error_description", "error"):
            if isinstance(payload.get(key), str) and payload[key]:
                return payload[key]
    return response.text or response.reason_phrase or f"HTTP {response.status_code}"


class SesameApiClient:
    """
    Async HTTP client for the Sesame API.

    Authenticates with the ``sesame_private_token`` obtained from the SSO
    server and targets the regional API host.

    Example:
        client = SesameApiClient.create(result.sesame_credentials)
        me = await client.get("/api/v3/security/me-oauth")
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,  # Don't follow redirects to prevent token leakage
            transport=transport,
        )

    @classmethod
    def create(
        cls,
        sesame_credentials: Optional[Dict[str, Any]],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SesameApiClient":
        """
        Create a client from the credentials returned by the SSO server.

        Args:
            sesame_credentials: Payload of ``get_sesame_credentials``
            timeout: Request timeout in seconds
            transport: Optional httpx transport (testing, proxies)

        Raises:
            InvalidInputError: If the token or region is missing
        """
        if not isinstance(sesame_credentials, dict):
            raise InvalidInputError("Sesame credentials are required")

        token = sesame_credentials.get("sesame_private_token")
        if not token:
            raise InvalidInputError("sesame_private_token is required in credentials")

        region = sesame_credentials.get("region")
        if not region:
            raise InvalidInputError("region is required in credentials")

        return cls(get_api_url(region), token, timeout=timeout, transport=transport)

    def __repr__(self) -> str:
        return f"SesameApiClient(base_url={self.base_url!r})"

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, data: Any = None) -> Any:
        return await self.request("POST", path, json=data if data is not None else {})

    async def put(self, path: str, data: Any = None) -> Any:
        return await self.request("PUT", path, json=data if data is not None else {})

    async def patch(self, path: str, data: Any = None) -> Any:
        return await self.request("PATCH", path, json=data if data is not None else {})

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request to the Sesame API.

        Returns:
            Decoded JSON body, or None for an empty response

        Raises:
            SesameApiError: If Sesame returns non-2xx status or is unreachable
        """
        logger.debug(f"Sesame API request: {method} {path}")

        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            logger.error(f"Sesame {method} {path} failed: {e}")
            raise SesameApiError(502, f"Failed to connect to {self.base_url}: {e}") from e

        if not response.is_success:
            message = _error_message(response)
            if response.status_code in (401, 403):
                # Expired token or a user without access to this company
                logger.warning(f"Sesame rejected {method} {path}: {response.status_code} {message}")
            else:
                logger.error(f"Sesame {method} {path} returned {response.status_code}")
            raise SesameApiError(response.status_code, message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise SesameApiError(response.status_code, "Invalid JSON in response") from e

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "SesameApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
