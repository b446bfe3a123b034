"""Status-code classification of raw responses."""

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

from spotapi.http.constants import (
    HTTP_STATUS_SUCCESS_MAX,
    HTTP_STATUS_SUCCESS_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    HTTP_STATUS_UNAUTHORIZED,
)
from spotapi.http.errors import APIError, APITooManyRequestsError, APIUnauthorizedError
from spotapi.http.models import Response


def classify_response(response: Response) -> None:
    """Raise the matching error kind for a non-success response.

    Statuses in [200, 400) pass through. 401 raises
    ``APIUnauthorizedError``, 429 raises ``APITooManyRequestsError`` and any
    other status raises ``APIError``. Both specific kinds are ``APIError``
    subclasses.

    Args:
        response: The final response of a call, after any retries.

    Raises:
        APIError: If the status is outside the success range.
    """
    status = response.status_code
    if HTTP_STATUS_SUCCESS_MIN <= status < HTTP_STATUS_SUCCESS_MAX:
        return

    if status == HTTP_STATUS_UNAUTHORIZED:
        raise APIUnauthorizedError(response)

    if status == HTTP_STATUS_TOO_MANY_REQUESTS:
        raise APITooManyRequestsError(
            response, retry_after=parse_retry_after(response.header("retry-after"))
        )

    raise APIError(response)


def parse_retry_after(value: str | None) -> int | None:
    """Parse Retry-After header value.

    Args:
        value: Header value (seconds or HTTP date).

    Returns:
        Seconds to wait, or None if not parseable.
    """
    if not value:
        return None

    # Try parsing as integer seconds
    try:
        return max(0, int(value))
    except ValueError:
        pass

    # Try parsing as HTTP date
    try:
        dt = parsedate_to_datetime(value)
        delta = dt - datetime.now(UTC)
        return max(0, int(delta.total_seconds()))
    except (ValueError, TypeError):
        pass

    return None
