"""Retry policy and the default retry handler."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import Annotated

import structlog
from pydantic import BaseModel, ConfigDict, Field

from spotapi.http.classify import parse_retry_after
from spotapi.http.constants import (
    DEFAULT_RETRY_STATUS_CODES,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    MAX_RATE_LIMITED_REATTEMPTS,
    MAX_RETRY_AFTER_SECONDS,
)
from spotapi.http.errors import TransportError
from spotapi.http.metrics import ConnectorMetrics
from spotapi.http.models import Request, Response
from spotapi.http.protocols import AttemptOutcome, Reattempt
from spotapi.http.redact import redact_url_credentials


logger = structlog.get_logger()


class RetryPolicy(BaseModel):
    """Configuration for retry behavior.

    Controls which failures are retried, how many times, and the backoff
    between attempts. Uses exponential backoff:
    delay = base_delay_ms * (exponential_base ^ attempt)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=50)] = 10
    base_delay_ms: Annotated[int, Field(ge=0, le=60000)] = 50
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 5000
    exponential_base: Annotated[float, Field(ge=1.0, le=5.0)] = 2.0
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1
    retry_status_codes: frozenset[int] = DEFAULT_RETRY_STATUS_CODES
    too_many_requests_consumes_a_retry: bool = False
    max_retry_after_seconds: Annotated[int, Field(ge=0, le=3600)] = (
        MAX_RETRY_AFTER_SECONDS
    )
    retry_on_transport_error: bool = True

    def should_retry_status(self, status_code: int, attempt: int) -> bool:
        """Determine if a response status should be retried.

        Args:
            status_code: Status of the latest response.
            attempt: Retries already made (0-indexed).

        Returns:
            True if the request should be retried.
        """
        if attempt >= self.max_retries:
            return False
        return status_code in self.retry_status_codes

    def should_retry_error(self, attempt: int) -> bool:
        """Determine if a transport error should be retried."""
        return self.retry_on_transport_error and attempt < self.max_retries

    def get_delay_ms(self, attempt: int) -> int:
        """Calculate delay before the next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        delay = self.base_delay_ms * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay_ms)

        # Add jitter to prevent thundering herd
        jitter = delay * self.jitter_factor * random.random()  # noqa: S311
        return int(delay + jitter)


class SimpleRetryHandler:
    """Retries server errors, rate limits and transport failures.

    - 429 with a Retry-After header waits the advertised time (capped) and
      reattempts. It only uses up a retry when
      ``too_many_requests_consumes_a_retry`` is set.
    - Statuses in ``retry_status_codes`` wait the backoff delay and
      reattempt while retries remain.
    - Transport errors are reattempted like retryable statuses; once the
      retries are used up the last error is raised again.

    Every other outcome is returned unchanged for the connector to classify.

    Args:
        policy: Retry policy (defaults to ``RetryPolicy()``).
        sleep: Awaitable sleep function, replaceable in tests.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._metrics = ConnectorMetrics.get_instance()
        self._log = logger.bind(component="http", subcomponent="retry")

    async def handle_retry(
        self,
        request: Request,
        outcome: AttemptOutcome,
        reattempt: Reattempt,
    ) -> Response:
        """Reattempt the request until it succeeds or the policy gives up.

        Args:
            request: The original request; reattempts replay it verbatim.
            outcome: First response, or the transport error it raised.
            reattempt: Callback re-authenticating and re-executing a request.

        Returns:
            The last response obtained.

        Raises:
            TransportError: If the last attempt failed without a response.
        """
        policy = self.policy
        log = self._log.bind(
            method=request.method,
            endpoint=redact_url_credentials(str(request.endpoint)),
        )
        retries = 0
        rate_limited = 0

        while True:
            decision = self._next_delay(outcome, retries, rate_limited)
            if decision is None:
                if isinstance(outcome, TransportError):
                    raise outcome
                return outcome

            delay_seconds, honors_retry_after = decision
            if honors_retry_after:
                rate_limited += 1
                if policy.too_many_requests_consumes_a_retry:
                    retries += 1
            else:
                retries += 1

            self._metrics.record_retry()
            log.debug(
                "retry_attempt",
                retries=retries,
                rate_limited=rate_limited,
                delay_seconds=round(delay_seconds, 3),
                max_retries=policy.max_retries,
                reason=_describe(outcome),
            )
            await self._sleep(delay_seconds)

            try:
                outcome = await reattempt(request)
            except TransportError as e:
                outcome = e

    def _next_delay(
        self,
        outcome: AttemptOutcome,
        retries: int,
        rate_limited: int,
    ) -> tuple[float, bool] | None:
        """Return the wait before reattempting, or None to stop.

        The flag tells whether the wait follows a Retry-After header.
        """
        policy = self.policy

        if isinstance(outcome, TransportError):
            if policy.should_retry_error(retries):
                return policy.get_delay_ms(retries) / 1000.0, False
            return None

        if _is_rate_limited(outcome):
            retry_after = parse_retry_after(outcome.header("retry-after"))
            if retry_after is not None:
                if policy.too_many_requests_consumes_a_retry:
                    allowed = retries < policy.max_retries
                else:
                    allowed = rate_limited < MAX_RATE_LIMITED_REATTEMPTS
                if allowed:
                    self._log.info(
                        "rate_limited",
                        retry_after=retry_after,
                        rate_limited=rate_limited,
                    )
                    return float(min(retry_after, policy.max_retry_after_seconds)), True

        if policy.should_retry_status(outcome.status_code, retries):
            return policy.get_delay_ms(retries) / 1000.0, False

        return None


def _is_rate_limited(outcome: AttemptOutcome) -> bool:
    return (
        isinstance(outcome, Response)
        and outcome.status_code == HTTP_STATUS_TOO_MANY_REQUESTS
        and outcome.header("retry-after") is not None
    )


def _describe(outcome: AttemptOutcome) -> str:
    if isinstance(outcome, TransportError):
        return "timeout" if outcome.timed_out else "transport_error"
    return f"status_{outcome.status_code}"
