"""Authenticators that inject credentials into requests."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from http import HTTPStatus
from typing import Annotated

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from spotapi.http.constants import DEFAULT_TOKEN_ENDPOINT
from spotapi.http.errors import AuthenticationError
from spotapi.http.models import Request


logger = structlog.get_logger()

# Refresh slightly before the advertised expiry
_EXPIRY_LEEWAY_SECONDS = 30


class AccessToken(BaseModel):
    """OAuth access token as returned by the accounts service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: Annotated[str, Field(min_length=1)]
    token_type: str = "Bearer"
    expires_in: Annotated[int, Field(ge=0)] = 3600
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def expires_at(self) -> datetime:
        """Instant after which the token is no longer valid."""
        return self.created_at + timedelta(seconds=self.expires_in)

    def is_expired(self, leeway_seconds: int = _EXPIRY_LEEWAY_SECONDS) -> bool:
        """Check if the token is expired or about to expire."""
        return datetime.now(UTC) + timedelta(seconds=leeway_seconds) >= self.expires_at

    @property
    def authorization(self) -> str:
        """Value for the Authorization header."""
        token_type = "Bearer" if self.token_type.lower() == "bearer" else self.token_type
        return f"{token_type} {self.access_token}"


class NoAuthenticator:
    """Authenticator for public endpoints; leaves requests untouched."""

    async def apply(self, request: Request) -> None:
        return None


class TokenAuthenticator:
    """Applies a fixed token.

    Args:
        token: Access token.
        token_type: Authorization scheme.
    """

    def __init__(self, token: str, token_type: str = "Bearer") -> None:
        if not token:
            msg = "TokenAuthenticator requires a non-empty token"
            raise AuthenticationError(msg)
        self._authorization = f"{token_type} {token}"

    async def apply(self, request: Request) -> None:
        request.headers["Authorization"] = self._authorization


class RefreshingTokenAuthenticator:
    """Applies a token and refreshes it when missing or expired.

    Concurrent calls share one refresh: the first caller awaits the
    refresher while the others wait on the lock and reuse its token.

    Args:
        refresher: Coroutine function returning a fresh ``AccessToken``.
        token: Optional initial token.
    """

    def __init__(
        self,
        refresher: Callable[[], Awaitable[AccessToken]],
        token: AccessToken | None = None,
    ) -> None:
        self._refresher = refresher
        self._token = token
        self._lock = asyncio.Lock()
        self._log = logger.bind(component="http", subcomponent="auth")

    @property
    def token(self) -> AccessToken | None:
        """The current token, if one has been obtained."""
        return self._token

    async def apply(self, request: Request) -> None:
        """Set the Authorization header, refreshing the token if needed.

        Raises:
            AuthenticationError: If the refresh fails.
        """
        token = await self._current_token()
        request.headers["Authorization"] = token.authorization

    async def _current_token(self) -> AccessToken:
        async with self._lock:
            if self._token is None or self._token.is_expired():
                self._token = await self._refresh()
            return self._token

    async def _refresh(self) -> AccessToken:
        self._log.info("access_token_refresh_attempt")
        try:
            token = await self._refresher()
        except AuthenticationError:
            self._log.warning("access_token_refresh_failed")
            raise
        except Exception as exc:  # noqa: BLE001
            self._log.warning("access_token_refresh_failed", error=str(exc))
            msg = f"Access token refresh failed: {exc}"
            raise AuthenticationError(msg) from exc

        self._log.info("access_token_refreshed", expires_in=token.expires_in)
        return token


async def request_client_credentials_token(
    client_id: str,
    client_secret: str,
    *,
    token_endpoint: str = DEFAULT_TOKEN_ENDPOINT,
    client: httpx.AsyncClient | None = None,
    timeout: float = 15.0,
) -> AccessToken:
    """Obtain an app access token with the OAuth client-credentials grant.

    Args:
        client_id: OAuth client ID.
        client_secret: OAuth client secret.
        token_endpoint: Accounts service token URL.
        client: Optional HTTP client to send the request with.
        timeout: Request timeout in seconds.

    Returns:
        Fresh access token.

    Raises:
        AuthenticationError: If the token request fails.
    """
    log = logger.bind(component="http", subcomponent="auth")
    data = {"grant_type": "client_credentials"}
    auth = httpx.BasicAuth(client_id, client_secret)

    try:
        if client is None:
            async with httpx.AsyncClient() as own_client:
                response = await own_client.post(
                    token_endpoint, data=data, auth=auth, timeout=timeout
                )
        else:
            response = await client.post(
                token_endpoint, data=data, auth=auth, timeout=timeout
            )
    except httpx.HTTPError as exc:
        log.warning("client_credentials_network_error", error=str(exc))
        msg = f"Network error during token request: {exc}"
        raise AuthenticationError(msg) from exc

    if response.status_code != HTTPStatus.OK:
        log.warning("client_credentials_failed", status_code=response.status_code)
        msg = f"Token request failed with status {response.status_code}"
        raise AuthenticationError(msg)

    try:
        return AccessToken.model_validate_json(response.content)
    except ValidationError as exc:
        msg = "No valid access_token in token response"
        raise AuthenticationError(msg) from exc


def client_credentials_authenticator(
    client_id: str,
    client_secret: str,
    *,
    token_endpoint: str = DEFAULT_TOKEN_ENDPOINT,
    client: httpx.AsyncClient | None = None,
) -> RefreshingTokenAuthenticator:
    """Create an authenticator using the client-credentials grant.

    Args:
        client_id: OAuth client ID.
        client_secret: OAuth client secret.
        token_endpoint: Accounts service token URL.
        client: Optional HTTP client for token requests.

    Returns:
        Authenticator that fetches and renews app tokens on demand.
    """
    if not client_id or not client_secret:
        msg = "Client credentials require both client_id and client_secret"
        raise AuthenticationError(msg)

    async def _refresher() -> AccessToken:
        return await request_client_credentials_token(
            client_id,
            client_secret,
            token_endpoint=token_endpoint,
            client=client,
        )

    return RefreshingTokenAuthenticator(_refresher)
