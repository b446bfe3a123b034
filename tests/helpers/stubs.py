"""In-memory collaborators for connector tests."""

import json
from typing import Any, TypeVar

from spotapi.http.errors import TransportError
from spotapi.http.models import APIResponse, Request, Response
from spotapi.http.protocols import AttemptOutcome, Reattempt
from spotapi.http.serializer import PydanticJSONSerializer


T = TypeVar("T")


def json_response(
    status_code: int,
    payload: Any = None,
    headers: dict[str, str] | None = None,
) -> Response:
    """Build a JSON response; ``None`` payload means an empty body."""
    body = b"" if payload is None else json.dumps(payload).encode()
    return Response(
        status_code=status_code,
        headers={"Content-Type": "application/json", **(headers or {})},
        body=body,
    )


class RecordingAuthenticator:
    """Authenticator that numbers the tokens it applies."""

    def __init__(
        self,
        events: list[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.calls = 0
        self.events = events if events is not None else []
        self._error = error

    async def apply(self, request: Request) -> None:
        self.events.append("auth")
        if self._error is not None:
            raise self._error
        self.calls += 1
        request.headers["Authorization"] = f"Bearer token-{self.calls}"


class StubTransport:
    """Transport replaying scripted outcomes; the last one repeats."""

    def __init__(
        self,
        outcomes: list[Response | TransportError] | Response,
        events: list[str] | None = None,
    ) -> None:
        self._outcomes = outcomes if isinstance(outcomes, list) else [outcomes]
        self.events = events if events is not None else []
        self.requests: list[Request] = []
        self.authorizations: list[str | None] = []
        self.timeout = 30.0

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def do_request(self, request: Request) -> Response:
        self.events.append("transport")
        self.requests.append(request)
        self.authorizations.append(request.headers.get("Authorization"))
        index = min(len(self.requests) - 1, len(self._outcomes) - 1)
        outcome = self._outcomes[index]
        if isinstance(outcome, TransportError):
            raise outcome
        return outcome

    def set_request_timeout(self, seconds: float) -> None:
        self.timeout = seconds


class EchoTransport:
    """Transport returning the serialized request body verbatim."""

    def __init__(self) -> None:
        self.requests: list[Request] = []

    async def do_request(self, request: Request) -> Response:
        self.requests.append(request)
        body = request.body
        if isinstance(body, str):
            body = body.encode()
        return Response(
            status_code=200,
            headers={"Content-Type": request.headers.get("Content-Type", "")},
            body=body or b"",
        )

    def set_request_timeout(self, seconds: float) -> None:
        return None


class CountingSerializer(PydanticJSONSerializer):
    """Pydantic serializer that counts decode calls."""

    def __init__(self) -> None:
        super().__init__()
        self.deserialize_calls = 0

    def deserialize_response(
        self, response: Response, type_: type[T]
    ) -> APIResponse[T]:
        self.deserialize_calls += 1
        return super().deserialize_response(response, type_)


class FixedRetryHandler:
    """Retry handler that always reattempts exactly ``count`` times."""

    def __init__(self, count: int) -> None:
        self.count = count
        self.outcomes: list[AttemptOutcome] = []

    async def handle_retry(
        self,
        request: Request,
        outcome: AttemptOutcome,
        reattempt: Reattempt,
    ) -> Response:
        self.outcomes.append(outcome)
        for _ in range(self.count):
            outcome = await reattempt(request)
        if isinstance(outcome, TransportError):
            raise outcome
        return outcome
