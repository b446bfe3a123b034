"""HTTP transport backed by httpx."""

import time
from types import TracebackType
from typing import Self

import httpx
import structlog
from pydantic import ValidationError

from spotapi.http.constants import DEFAULT_TIMEOUT_SECONDS
from spotapi.http.errors import TransportError
from spotapi.http.models import Request, Response
from spotapi.http.redact import redact_url_credentials


logger = structlog.get_logger()


class HttpxTransport:
    """Transport using ``httpx.AsyncClient``.

    The timeout is read when a request is dispatched, so changing it never
    affects attempts already in flight.

    Args:
        timeout_seconds: Per-attempt timeout in seconds.
        client: Optional preconfigured client (proxies, mock transports).
            A client passed in is not closed by this transport.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._client = client
        self._owns_client = client is None
        self._log = logger.bind(component="http", subcomponent="transport")

    @property
    def timeout(self) -> float:
        """Per-attempt timeout in seconds."""
        return self._timeout

    def set_request_timeout(self, seconds: float) -> None:
        """Set the timeout used by subsequent requests.

        Args:
            seconds: Timeout in seconds.
        """
        if seconds <= 0:
            msg = f"Request timeout must be positive, got {seconds}"
            raise ValueError(msg)
        self._timeout = seconds

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def do_request(self, request: Request) -> Response:
        """Execute a single HTTP request.

        Args:
            request: Fully prepared request.

        Returns:
            Raw response.

        Raises:
            TransportError: On timeout or connection failure.
        """
        client = self._ensure_client()
        timeout = self._timeout
        url = request.url
        content, json_body = _encode_body(request.body)
        log = self._log.bind(
            method=request.method,
            url=redact_url_credentials(str(url)),
            timeout=timeout,
        )

        start_time_ns = time.perf_counter_ns()
        try:
            response = await client.request(
                request.method,
                url,
                params=request.parameters or None,
                headers=request.headers,
                content=content,
                json=json_body,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            log.warning("transport_timeout", error=str(e))
            msg = f"Request timed out after {timeout}s: {e}"
            raise TransportError(msg, request, timed_out=True) from e
        except httpx.RequestError as e:
            log.warning("transport_failed", error=str(e))
            msg = f"Request failed: {e}"
            raise TransportError(msg, request) from e

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        log.debug(
            "transport_response",
            status_code=response.status_code,
            bytes=len(response.content),
            duration_ms=round(duration_ms, 2),
        )

        try:
            return Response(
                status_code=response.status_code,
                headers=dict(response.headers),
                body=response.content,
                url=str(response.url),
                elapsed_ms=round(duration_ms, 2),
            )
        except ValidationError as e:
            log.warning(
                "transport_invalid_response", status_code=response.status_code
            )
            msg = f"Invalid response status {response.status_code}"
            raise TransportError(msg, request) from e

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _encode_body(body: object | None) -> tuple[str | bytes | None, object | None]:
    """Split a request body into raw content or a JSON payload.

    Serialized bodies arrive as ``str`` or ``bytes``; anything else is
    handed to httpx as JSON.
    """
    if body is None:
        return None, None
    if isinstance(body, str | bytes):
        return body, None
    return None, body
