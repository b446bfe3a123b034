"""Domain-specific error types for the request-execution core."""

import json
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from spotapi.http.models import Request, Response


class InvalidArgumentError(ValueError):
    """Malformed call construction, raised before any network I/O."""


class AuthenticationError(Exception):
    """Authenticator could not produce valid credentials."""


class TransportError(Exception):
    """Connection or timeout failure at the network layer.

    Attributes:
        request: The request that was being executed, if known.
        timed_out: Whether the failure was a timeout.
    """

    def __init__(
        self,
        message: str,
        request: "Request | None" = None,
        *,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.timed_out = timed_out


class APIError(Exception):
    """Non-success response from the API.

    The message is taken from the response body when the API sent one in
    either of its two error shapes, otherwise it falls back to the status.

    Attributes:
        response: The full response, for caller inspection.
    """

    def __init__(self, response: "Response", message: str | None = None) -> None:
        self.response = response
        super().__init__(message or _error_message(response))

    @property
    def status_code(self) -> int:
        """HTTP status code of the failed response."""
        return self.response.status_code


class APIUnauthorizedError(APIError):
    """Response status 401."""


class APITooManyRequestsError(APIError):
    """Response status 429.

    Attributes:
        retry_after: Seconds the API asked the client to wait, if given.
    """

    def __init__(self, response: "Response", retry_after: int | None = None) -> None:
        super().__init__(response)
        self.retry_after = retry_after


class DeserializationError(Exception):
    """Response body could not be decoded into the requested type.

    Attributes:
        response: The response whose body failed to decode.
        target: The type the body was decoded into.
    """

    def __init__(self, message: str, response: "Response", target: object) -> None:
        super().__init__(message)
        self.response = response
        self.target = target


def _error_message(response: "Response") -> str:
    """Extract a human-readable message from an error response body.

    Handles ``{"error": {"status": 400, "message": "..."}}`` as returned by
    the web API and ``{"error": "...", "error_description": "..."}`` as
    returned by the accounts service.
    """
    fallback = f"API request failed with status {response.status_code}"
    if not response.body:
        return fallback

    try:
        payload = json.loads(response.body)
    except (ValueError, UnicodeDecodeError):
        return fallback

    if not isinstance(payload, dict):
        return fallback

    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    if isinstance(error, str) and error:
        description = payload.get("error_description")
        if isinstance(description, str) and description:
            return description
        return error

    return fallback
