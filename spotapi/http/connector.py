"""API connector orchestrating the request lifecycle."""

import time
from http import HTTPStatus
from types import TracebackType
from typing import Any, Self, TypeVar

import structlog

from spotapi.http.classify import classify_response
from spotapi.http.errors import InvalidArgumentError, TransportError
from spotapi.http.metrics import ConnectorMetrics
from spotapi.http.models import HttpMethod, Request, Response
from spotapi.http.protocols import (
    AttemptOutcome,
    Authenticator,
    HTTPClient,
    JSONSerializer,
    RetryHandler,
)
from spotapi.http.redact import redact_headers, redact_url_credentials
from spotapi.http.serializer import PydanticJSONSerializer
from spotapi.http.transport import HttpxTransport


T = TypeVar("T")

logger = structlog.get_logger()


class APIConnector:
    """Turns logical API calls into authenticated, retried, checked requests.

    For every call the connector:

    1. builds the request, failing with ``InvalidArgumentError`` before any
       I/O when the URI or method is missing,
    2. serializes the body,
    3. applies the authenticator, then executes the transport,
    4. hands the outcome to the retry handler, if one is configured,
    5. classifies the final response, raising ``APIError`` kinds,
    6. decodes the body into the requested type (typed calls only).

    The connector holds no per-call state, so any number of calls may run
    concurrently against one instance.

    Args:
        base_address: Base URL relative endpoints are resolved against.
        authenticator: Credential injector.
        serializer: Body encoder/decoder (defaults to pydantic JSON).
        http_client: Transport (defaults to ``HttpxTransport``).
        retry_handler: Optional retry policy; None means never retry.
    """

    def __init__(
        self,
        base_address: str,
        authenticator: Authenticator,
        serializer: JSONSerializer | None = None,
        http_client: HTTPClient | None = None,
        retry_handler: RetryHandler | None = None,
    ) -> None:
        self._base_address = base_address
        self._authenticator = authenticator
        self._serializer = serializer or PydanticJSONSerializer()
        self._http_client = http_client or HttpxTransport()
        self._retry_handler = retry_handler
        self._metrics = ConnectorMetrics.get_instance()
        self._log = logger.bind(component="http", subcomponent="connector")

    @property
    def base_address(self) -> str:
        """Base URL relative endpoints are resolved against."""
        return self._base_address

    async def get(
        self,
        uri: str,
        response_type: type[T] = Any,  # type: ignore[assignment]
        parameters: dict[str, str] | None = None,
    ) -> T:
        """Send a GET request and decode the response body."""
        return await self.send_api_request(
            uri, HttpMethod.GET, response_type, parameters
        )

    async def post(
        self,
        uri: str,
        response_type: type[T] = Any,  # type: ignore[assignment]
        parameters: dict[str, str] | None = None,
        body: object | None = None,
    ) -> T:
        """Send a POST request and decode the response body."""
        return await self.send_api_request(
            uri, HttpMethod.POST, response_type, parameters, body
        )

    async def put(
        self,
        uri: str,
        response_type: type[T] = Any,  # type: ignore[assignment]
        parameters: dict[str, str] | None = None,
        body: object | None = None,
    ) -> T:
        """Send a PUT request and decode the response body."""
        return await self.send_api_request(
            uri, HttpMethod.PUT, response_type, parameters, body
        )

    async def delete(
        self,
        uri: str,
        response_type: type[T] = Any,  # type: ignore[assignment]
        parameters: dict[str, str] | None = None,
        body: object | None = None,
    ) -> T:
        """Send a DELETE request and decode the response body."""
        return await self.send_api_request(
            uri, HttpMethod.DELETE, response_type, parameters, body
        )

    async def put_raw(
        self,
        uri: str,
        parameters: dict[str, str] | None = None,
        body: object | None = None,
    ) -> int:
        """Send a PUT request and return only its status code.

        The response body is never parsed.
        """
        response = await self.send_raw_request(uri, HttpMethod.PUT, parameters, body)
        return _status(response.status_code)

    def set_request_timeout(self, seconds: float) -> None:
        """Set the transport timeout for all subsequent calls.

        Calls already in flight keep the timeout they were dispatched with.
        """
        self._http_client.set_request_timeout(seconds)

    async def send_api_request(
        self,
        uri: str,
        method: HttpMethod | str,
        response_type: type[T] = Any,  # type: ignore[assignment]
        parameters: dict[str, str] | None = None,
        body: object | None = None,
    ) -> T:
        """Execute a call and decode the response body into ``response_type``.

        Raises:
            InvalidArgumentError: If the URI or method is missing.
            AuthenticationError: If credentials cannot be applied.
            TransportError: If the network call fails and is not retried.
            APIError: If the final response is not a success.
            DeserializationError: If the body cannot be decoded.
        """
        request = self._create_request(uri, method, parameters, body)
        response = await self._send_request(request)
        api_response = self._serializer.deserialize_response(response, response_type)
        return api_response.body

    async def send_raw_request(
        self,
        uri: str,
        method: HttpMethod | str,
        parameters: dict[str, str] | None = None,
        body: object | None = None,
    ) -> Response:
        """Execute a call and return the raw, classified response."""
        request = self._create_request(uri, method, parameters, body)
        return await self._send_request(request)

    def _create_request(
        self,
        uri: str,
        method: HttpMethod | str,
        parameters: dict[str, str] | None,
        body: object | None,
    ) -> Request:
        if not uri:
            msg = "uri must not be empty"
            raise InvalidArgumentError(msg)
        if not method:
            msg = "method must not be empty"
            raise InvalidArgumentError(msg)

        request = Request(
            endpoint=uri,
            method=method,
            base_address=self._base_address,
            parameters=parameters or {},
            body=body,
        )
        # Resolve now so a bad URL fails before any network I/O
        _ = request.url
        return request

    async def _send_request(self, request: Request) -> Response:
        start_time_ns = time.perf_counter_ns()
        log = self._log.bind(
            method=request.method,
            url=redact_url_credentials(str(request.url)),
        )

        try:
            self._serializer.serialize_request(request)
            response = await self._execute(request)
            classify_response(response)
        except Exception as e:
            self._metrics.record_failure(type(e).__name__)
            log.warning(
                "api_request_failed",
                error_kind=type(e).__name__,
                error=str(e),
                headers=redact_headers(request.headers),
            )
            raise

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_request(response.status_code, duration_ms)
        log.info(
            "api_request_complete",
            status_code=response.status_code,
            bytes=len(response.body),
            duration_ms=round(duration_ms, 2),
        )
        return response

    async def _execute(self, request: Request) -> Response:
        """Authenticate and execute, delegating failures to the retry handler."""
        if self._retry_handler is None:
            return await self._attempt(request)

        outcome: AttemptOutcome
        try:
            outcome = await self._attempt(request)
        except TransportError as e:
            outcome = e
        return await self._retry_handler.handle_retry(request, outcome, self._attempt)

    async def _attempt(self, request: Request) -> Response:
        """Apply credentials, then run one transport execution."""
        await self._authenticator.apply(request)
        self._metrics.record_attempt()
        return await self._http_client.do_request(request)

    async def aclose(self) -> None:
        """Close the transport if it supports closing."""
        aclose = getattr(self._http_client, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _status(code: int) -> int:
    try:
        return HTTPStatus(code)
    except ValueError:
        return code
