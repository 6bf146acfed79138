"""OAuth 2.0 client for Sesame SSO. Backend use only: it holds the client secret."""

import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

import httpx
from pydantic import ValidationError

from ..config import SSOSettings
from ..errors import (
    ConfigurationError,
    EndpointNotFoundError,
    InvalidInputError,
    OAuthRequestError,
    StateValidationError,
)
from .models import ExchangeResult, LoginUrl, TokenResponse
from .state import InMemoryTTLStore, StateStore
from .utils import (
    build_basic_auth,
    format_oauth_error,
    generate_random_hex,
    normalize_base_url,
    redact_secret,
    to_form_urlencoded,
)

logger = logging.getLogger(__name__)

AUTHORIZE_PATH = "/oauth/authorize"
TOKEN_PATH = "/oauth/token"
REVOKE_PATH = "/oauth/revoke"
USERINFO_PATH = "/api/oauth/userinfo"
SESAME_TOKEN_PATH = "/api/oauth/sesame-token"


class SesameSSO:
    """
    OAuth 2.0 client for the Sesame SSO server.

    Builds login URLs protected by a single-use ``state`` value, exchanges
    authorization codes for tokens and fetches user data. States live in a
    pluggable :class:`StateStore` (in-memory by default).

    Example:
        sso = SesameSSO.from_values(
            sso_base_url="https://sso.example.com",
            client_id="my-client",
            client_secret="...",
            redirect_uri="https://app.example.com/callback",
        )
        login = await sso.get_login_url()
        ...
        result = await sso.exchange_code_for_token(code, state)
    """

    def __init__(
        self,
        settings: SSOSettings,
        state_store: Optional[StateStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Client configuration
            state_store: Store for CSRF state values, defaults to InMemoryTTLStore
            http_client: Optional preconfigured httpx client (not closed by aclose)

        Raises:
            ConfigurationError: If a required setting is empty or the store lacks an operation
        """
        missing = settings.missing_required()
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )

        self.sso_base_url = normalize_base_url(settings.sso_base_url)
        self.client_id = settings.client_id
        self.redirect_uri = settings.redirect_uri
        self.default_scope = settings.default_scope
        self.timeout = settings.timeout
        self._client_secret = settings.client_secret

        if state_store is None:
            state_store = InMemoryTTLStore(
                ttl_seconds=settings.state_ttl_seconds,
                max_entries=settings.state_max_entries,
                cleanup_interval_seconds=settings.state_cleanup_interval_seconds,
            )
        elif not isinstance(state_store, StateStore):
            raise ConfigurationError(
                "state_store must provide set, get, has, delete and pop"
            )
        self._state_store: StateStore = state_store

        self._client_owned = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout),
            follow_redirects=False,  # Don't follow redirects to prevent token leakage
        )

    @classmethod
    def from_values(
        cls,
        *,
        state_store: Optional[StateStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        **values: Any,
    ) -> "SesameSSO":
        """Create a client from keyword settings (``sso_base_url=...``, ``client_id=...``)."""
        return cls(SSOSettings(**values), state_store=state_store, http_client=http_client)

    @property
    def state_store(self) -> StateStore:
        return self._state_store

    def __repr__(self) -> str:
        return (
            f"SesameSSO(sso_base_url={self.sso_base_url!r}, "
            f"client_id={self.client_id!r}, redirect_uri={self.redirect_uri!r})"
        )

    async def get_login_url(
        self,
        scope: Optional[str] = None,
        extra_params: Optional[Dict[str, Any]] = None,
    ) -> LoginUrl:
        """
        Generate the authorization URL for login with CSRF protection.

        The returned state is also kept in the state store until it is
        consumed by :meth:`exchange_code_for_token` or expires. The caller
        should keep it (e.g. in the user session) to compare on callback.

        Args:
            scope: OAuth scopes; overrides the default scope. Empty disables it.
            extra_params: Additional query params (prompt, login_hint, ...).
                These override any of the standard params.

        Returns:
            LoginUrl with the authorization URL and the generated state
        """
        state = generate_random_hex(32)
        final_scope = scope if scope is not None else self.default_scope

        await self._state_store.set(state, {"created_at": time.time()})

        params: Dict[str, Any] = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "state": state,
        }
        if final_scope:
            params["scope"] = final_scope
        if extra_params:
            params.update(extra_params)

        query = urlencode(params, quote_via=quote)
        return LoginUrl(url=f"{self.sso_base_url}{AUTHORIZE_PATH}?{query}", state=state)

    async def validate_state(self, state: Optional[str]) -> bool:
        """
        Check a state returned by the SSO server and consume it.

        A state is valid once: a successful check removes it from the store.

        Args:
            state: The state parameter from the callback

        Returns:
            True if the state was issued by this client and not yet used or expired
        """
        if not state:
            return False
        return await self._state_store.pop(state) is not None

    async def exchange_code_for_token(
        self,
        code: str,
        state: Optional[str],
        include_user_info: bool = True,
        include_sesame_credentials: bool = True,
    ) -> ExchangeResult:
        """
        Exchange an authorization code for tokens and optionally fetch user data.

        Args:
            code: The authorization code from the callback
            state: The state parameter from the callback
            include_user_info: Also fetch the userinfo claims
            include_sesame_credentials: Also fetch the Sesame credentials

        Returns:
            ExchangeResult with tokens, user data and Sesame credentials

        Raises:
            InvalidInputError: If code is empty
            StateValidationError: If state is unknown, used or expired
            OAuthRequestError: If any call to the SSO server fails
        """
        if not code:
            raise InvalidInputError("Authorization code is required")

        if not await self.validate_state(state):
            logger.warning(f"Rejected OAuth callback with state {redact_secret(state)!r}")
            raise StateValidationError(
                "Invalid or expired state parameter. Possible CSRF attack."
            )

        tokens = await self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
            context="token exchange",
        )

        result = ExchangeResult(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
            token_type=tokens.token_type,
        )
        if include_user_info:
            result.user_data = await self.get_user_info(tokens.access_token)
        if include_sesame_credentials:
            result.sesame_credentials = await self.get_sesame_credentials(tokens.access_token)

        return result

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        """
        Get new tokens using a refresh token.

        Raises:
            InvalidInputError: If refresh_token is empty
            OAuthRequestError: If the SSO server rejects the request
        """
        if not refresh_token:
            raise InvalidInputError("refresh_token is required")

        return await self._request_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            context="token refresh",
        )

    async def revoke_token(self, token: str, token_type_hint: str = "access_token") -> bool:
        """
        Revoke a token (RFC 7009).

        Args:
            token: The token to revoke
            token_type_hint: "access_token" or "refresh_token"

        Returns:
            True on success

        Raises:
            InvalidInputError: If token is empty
            EndpointNotFoundError: If the server has no revocation endpoint
            OAuthRequestError: For any other failure
        """
        if not token:
            raise InvalidInputError("token is required")

        response = await self._send(
            "POST",
            REVOKE_PATH,
            context="token revoke",
            content=to_form_urlencoded({"token": token, "token_type_hint": token_type_hint}),
            headers=self._client_auth_headers(),
        )
        if response.status_code == 404:
            raise EndpointNotFoundError(
                f"Token revocation endpoint not found at {REVOKE_PATH}",
                context="token revoke",
                status_code=404,
            )
        if not response.is_success:
            raise self._provider_error("token revoke", response)
        return True

    async def get_user_info(self, access_token: str) -> Dict[str, Any]:
        """Fetch the userinfo claims for an access token."""
        if not access_token:
            raise InvalidInputError("access_token is required")
        return await self._get_json(USERINFO_PATH, access_token, context="userinfo fetch")

    async def get_sesame_credentials(self, access_token: str) -> Dict[str, Any]:
        """
        Fetch Sesame-specific credentials for an access token.

        The payload carries ``sesame_private_token``, ``sesame_public_token``,
        ``region`` and the ``employees`` linked to the user.
        """
        if not access_token:
            raise InvalidInputError("access_token is required")
        return await self._get_json(
            SESAME_TOKEN_PATH, access_token, context="sesame credentials fetch"
        )

    def destroy(self) -> None:
        """Stop the state store cleanup timer (call when shutting down)."""
        stop = getattr(self._state_store, "stop", None)
        if callable(stop):
            stop()

    async def aclose(self) -> None:
        """Close the HTTP client (if owned) and stop the state store."""
        if self._client_owned:
            await self._http.aclose()
        self.destroy()

    async def __aenter__(self) -> "SesameSSO":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _client_auth_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": build_basic_auth(
                self.client_id, self._client_secret.get_secret_value()
            ),
        }

    async def _request_token(self, form: Dict[str, Any], context: str) -> TokenResponse:
        response = await self._send(
            "POST",
            TOKEN_PATH,
            context=context,
            content=to_form_urlencoded(form),
            headers=self._client_auth_headers(),
        )
        if not response.is_success:
            raise self._provider_error(context, response)

        data = self._decode_json(context, response)
        if not isinstance(data, dict) or not data.get("access_token"):
            raise OAuthRequestError(
                format_oauth_error(context, description="Token response missing access_token"),
                context=context,
                status_code=response.status_code,
                description="Token response missing access_token",
            )
        try:
            return TokenResponse.model_validate(data)
        except ValidationError as e:
            description = f"Malformed token response: {e.error_count()} invalid field(s)"
            raise OAuthRequestError(
                format_oauth_error(context, description=description),
                context=context,
                status_code=response.status_code,
                description=description,
            ) from e

    async def _get_json(self, path: str, access_token: str, context: str) -> Dict[str, Any]:
        response = await self._send(
            "GET",
            path,
            context=context,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )
        if not response.is_success:
            raise self._provider_error(context, response)
        return self._decode_json(context, response)

    async def _send(
        self,
        method: str,
        path: str,
        context: str,
        headers: Dict[str, str],
        content: Optional[str] = None,
    ) -> httpx.Response:
        url = f"{self.sso_base_url}{path}"
        logger.debug(f"SSO {context}: {method} {url}")
        try:
            return await self._http.request(method, url, content=content, headers=headers)
        except httpx.TimeoutException as e:
            description = f"Request timed out after {self.timeout}s"
            logger.error(f"SSO {context} timed out: {url}")
            raise OAuthRequestError(
                format_oauth_error(context, error_code="timeout", description=description),
                context=context,
                error_code="timeout",
                description=description,
            ) from e
        except httpx.RequestError as e:
            description = str(e) or type(e).__name__
            logger.error(f"SSO {context} request failed: {description}")
            raise OAuthRequestError(
                format_oauth_error(context, description=description),
                context=context,
                description=description,
            ) from e

    @staticmethod
    def _provider_error(context: str, response: httpx.Response) -> OAuthRequestError:
        """Build an OAuthRequestError from a non-2xx SSO response."""
        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        error_code = payload.get("error")
        description = (
            payload.get("error_description")
            or payload.get("message")
            or response.reason_phrase
            or None
        )
        logger.error(f"SSO {context} error: {response.status_code} ({error_code})")
        return OAuthRequestError(
            format_oauth_error(context, response.status_code, error_code, description),
            context=context,
            status_code=response.status_code,
            error_code=error_code,
            description=description,
        )

    @staticmethod
    def _decode_json(context: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            description = "Invalid JSON in response"
            raise OAuthRequestError(
                format_oauth_error(context, response.status_code, description=description),
                context=context,
                status_code=response.status_code,
                description=description,
            ) from e
