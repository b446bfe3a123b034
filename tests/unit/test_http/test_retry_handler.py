"""Unit tests for retry policy decisions and the retry handler."""

import pytest
from pydantic import ValidationError

from spotapi.http.errors import TransportError
from spotapi.http.metrics import ConnectorMetrics
from spotapi.http.models import Request, Response
from spotapi.http.retry import RetryPolicy, SimpleRetryHandler
from tests.helpers.stubs import json_response


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedReattempt:
    """Reattempt callback replaying scripted outcomes; the last one repeats."""

    def __init__(self, *outcomes: Response | TransportError) -> None:
        self._outcomes = list(outcomes)
        self.requests: list[Request] = []

    async def __call__(self, request: Request) -> Response:
        self.requests.append(request)
        index = min(len(self.requests) - 1, len(self._outcomes) - 1)
        outcome = self._outcomes[index]
        if isinstance(outcome, TransportError):
            raise outcome
        return outcome

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Start every test with fresh metrics."""
    ConnectorMetrics.reset()


@pytest.fixture
def request_() -> Request:
    return Request(endpoint="me", method="GET", base_address="https://api.example.com/")


def _handler(sleep: FakeSleep, **policy: object) -> SimpleRetryHandler:
    defaults: dict[str, object] = {"jitter_factor": 0.0}
    defaults.update(policy)
    return SimpleRetryHandler(RetryPolicy(**defaults), sleep=sleep)  # type: ignore[arg-type]


class TestRetryPolicy:
    """Tests for RetryPolicy model."""

    def test_default_values(self) -> None:
        """Test default retry policy values."""
        policy = RetryPolicy()

        assert policy.max_retries == 10
        assert policy.base_delay_ms == 50
        assert policy.retry_status_codes == frozenset({500, 502, 503})
        assert policy.too_many_requests_consumes_a_retry is False
        assert policy.retry_on_transport_error is True

    def test_should_retry_status(self) -> None:
        policy = RetryPolicy(max_retries=2)

        assert policy.should_retry_status(500, attempt=0) is True
        assert policy.should_retry_status(503, attempt=1) is True
        assert policy.should_retry_status(503, attempt=2) is False
        for status in (200, 400, 401, 404, 429):
            assert policy.should_retry_status(status, attempt=0) is False

    def test_exponential_backoff(self) -> None:
        policy = RetryPolicy(
            base_delay_ms=100, exponential_base=2.0, jitter_factor=0.0
        )

        assert policy.get_delay_ms(0) == 100
        assert policy.get_delay_ms(1) == 200
        assert policy.get_delay_ms(3) == 800

    def test_max_delay_cap(self) -> None:
        policy = RetryPolicy(base_delay_ms=1000, max_delay_ms=3000, jitter_factor=0.0)

        assert policy.get_delay_ms(5) == 3000

    def test_jitter_bounds(self) -> None:
        policy = RetryPolicy(base_delay_ms=1000, jitter_factor=0.1)

        for _ in range(10):
            assert 1000 <= policy.get_delay_ms(0) <= 1100

    def test_policy_immutable(self) -> None:
        policy = RetryPolicy()
        with pytest.raises(ValidationError):
            policy.max_retries = 1  # type: ignore[misc]


class TestSimpleRetryHandler:
    """Tests for the handler's retry loop."""

    @pytest.mark.asyncio
    async def test_success_returned_unchanged(self, request_: Request) -> None:
        """A successful first response is returned without reattempts."""
        sleep = FakeSleep()
        first = json_response(200, {})
        reattempt = ScriptedReattempt(json_response(500))

        result = await _handler(sleep).handle_retry(request_, first, reattempt)

        assert result is first
        assert reattempt.calls == 0
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_non_retryable_error_returned(self, request_: Request) -> None:
        """Non-retryable failures are returned for classification, not raised."""
        first = json_response(404)
        reattempt = ScriptedReattempt(json_response(200))

        result = await _handler(FakeSleep()).handle_retry(request_, first, reattempt)

        assert result is first
        assert reattempt.calls == 0

    @pytest.mark.asyncio
    async def test_server_error_retried_until_success(self, request_: Request) -> None:
        sleep = FakeSleep()
        success = json_response(200, {"ok": True})
        reattempt = ScriptedReattempt(json_response(502), success)

        result = await _handler(sleep, base_delay_ms=100).handle_retry(
            request_, json_response(500), reattempt
        )

        assert result is success
        assert reattempt.calls == 2
        assert sleep.delays == [0.1, 0.2]
        assert ConnectorMetrics.get_instance().api_retry_total == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted_returns_last_response(
        self, request_: Request
    ) -> None:
        """N retries give N+1 total attempts and the last response."""
        last = json_response(503)
        reattempt = ScriptedReattempt(json_response(500), last)

        result = await _handler(FakeSleep(), max_retries=3).handle_retry(
            request_, json_response(500), reattempt
        )

        assert result is last
        assert reattempt.calls == 3

    @pytest.mark.asyncio
    async def test_zero_retries(self, request_: Request) -> None:
        first = json_response(500)
        reattempt = ScriptedReattempt(json_response(200))

        result = await _handler(FakeSleep(), max_retries=0).handle_retry(
            request_, first, reattempt
        )

        assert result is first
        assert reattempt.calls == 0

    @pytest.mark.asyncio
    async def test_rate_limit_waits_retry_after(self, request_: Request) -> None:
        """429 waits the advertised seconds and does not use a retry."""
        sleep = FakeSleep()
        limited = json_response(429, headers={"Retry-After": "2"})
        success = json_response(200)
        reattempt = ScriptedReattempt(limited, limited, success)

        result = await _handler(sleep, max_retries=1).handle_retry(
            request_, limited, reattempt
        )

        assert result is success
        assert sleep.delays == [2.0, 2.0, 2.0]

    @pytest.mark.asyncio
    async def test_rate_limit_consumes_retry_when_configured(
        self, request_: Request
    ) -> None:
        limited = json_response(429, headers={"Retry-After": "1"})
        reattempt = ScriptedReattempt(limited)

        result = await _handler(
            FakeSleep(), max_retries=2, too_many_requests_consumes_a_retry=True
        ).handle_retry(request_, limited, reattempt)

        assert result is limited
        assert reattempt.calls == 2

    @pytest.mark.asyncio
    async def test_rate_limit_wait_is_capped(self, request_: Request) -> None:
        sleep = FakeSleep()
        limited = json_response(429, headers={"Retry-After": "3600"})
        reattempt = ScriptedReattempt(json_response(200))

        await _handler(sleep, max_retry_after_seconds=5).handle_retry(
            request_, limited, reattempt
        )

        assert sleep.delays == [5.0]

    @pytest.mark.asyncio
    async def test_rate_limit_without_header_not_retried(
        self, request_: Request
    ) -> None:
        limited = json_response(429)
        reattempt = ScriptedReattempt(json_response(200))

        result = await _handler(FakeSleep()).handle_retry(request_, limited, reattempt)

        assert result is limited
        assert reattempt.calls == 0

    @pytest.mark.asyncio
    async def test_transport_error_retried(self, request_: Request) -> None:
        """A first-attempt transport error is reattempted."""
        success = json_response(200)
        reattempt = ScriptedReattempt(TransportError("reset"), success)

        result = await _handler(FakeSleep()).handle_retry(
            request_, TransportError("timeout", timed_out=True), reattempt
        )

        assert result is success
        assert reattempt.calls == 2

    @pytest.mark.asyncio
    async def test_transport_error_reraised_when_exhausted(
        self, request_: Request
    ) -> None:
        last = TransportError("still down")
        reattempt = ScriptedReattempt(last)

        with pytest.raises(TransportError) as exc_info:
            await _handler(FakeSleep(), max_retries=2).handle_retry(
                request_, TransportError("down"), reattempt
            )

        assert exc_info.value is last
        assert reattempt.calls == 2

    @pytest.mark.asyncio
    async def test_transport_error_not_retried_when_disabled(
        self, request_: Request
    ) -> None:
        first = TransportError("down")
        reattempt = ScriptedReattempt(json_response(200))

        with pytest.raises(TransportError) as exc_info:
            await _handler(FakeSleep(), retry_on_transport_error=False).handle_retry(
                request_, first, reattempt
            )

        assert exc_info.value is first
        assert reattempt.calls == 0

    @pytest.mark.asyncio
    async def test_reattempts_replay_original_request(self, request_: Request) -> None:
        reattempt = ScriptedReattempt(json_response(500), json_response(200))

        await _handler(FakeSleep()).handle_retry(
            request_, json_response(500), reattempt
        )

        assert all(request is request_ for request in reattempt.requests)
