"""Protocol interfaces for the connector's collaborators.

Each capability is a narrow structural interface: any object with the
matching methods can be plugged into ``APIConnector``, whether it is one of
the implementations in this package or a test stub.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar, runtime_checkable

from spotapi.http.errors import TransportError
from spotapi.http.models import APIResponse, Request, Response


T = TypeVar("T")

# Outcome of a single transport attempt
AttemptOutcome = Response | TransportError

# Re-applies authentication and re-executes transport for a request
Reattempt = Callable[[Request], Awaitable[Response]]


@runtime_checkable
class Authenticator(Protocol):
    """Injects credentials into a request."""

    async def apply(self, request: Request) -> None:
        """Add credentials to the request, typically an Authorization header.

        May perform network I/O (e.g. a token refresh).

        Raises:
            AuthenticationError: If no valid credentials can be produced.
        """
        ...


@runtime_checkable
class HTTPClient(Protocol):
    """Executes requests over the network."""

    async def do_request(self, request: Request) -> Response:
        """Execute the request and return the raw response.

        Raises:
            TransportError: On connection failure or timeout.
        """
        ...

    def set_request_timeout(self, seconds: float) -> None:
        """Set the per-attempt timeout used by subsequent requests."""
        ...


@runtime_checkable
class JSONSerializer(Protocol):
    """Encodes request bodies and decodes typed response bodies."""

    def serialize_request(self, request: Request) -> None:
        """Replace the request body with its wire representation."""
        ...

    def deserialize_response(
        self, response: Response, type_: type[T]
    ) -> APIResponse[T]:
        """Decode the response body into ``type_``.

        Raises:
            DeserializationError: If the body cannot be decoded.
        """
        ...


@runtime_checkable
class RetryHandler(Protocol):
    """Decides whether and how to re-issue a failed request."""

    async def handle_retry(
        self,
        request: Request,
        outcome: AttemptOutcome,
        reattempt: Reattempt,
    ) -> Response:
        """Return the response the connector should classify.

        Args:
            request: The original request.
            outcome: Response of the first attempt, or the transport error
                it raised.
            reattempt: Callback producing a fresh response for a request.

        Returns:
            The first response unmodified, or the last reattempted one.

        Raises:
            TransportError: If no response could be obtained at all.
        """
        ...
