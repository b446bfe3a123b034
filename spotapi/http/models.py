"""Data models for outbound requests and inbound responses."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field

from spotapi.http.constants import (
    HTTP_STATUS_MAX,
    HTTP_STATUS_MIN,
    HTTP_STATUS_SUCCESS_MAX,
    HTTP_STATUS_SUCCESS_MIN,
)
from spotapi.http.errors import InvalidArgumentError


T = TypeVar("T")


class HttpMethod(str, Enum):
    """HTTP methods used by the API.

    Requests also accept any other method name as a plain string.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass
class Request:
    """Description of one outbound call.

    Built once per call by the connector. ``headers`` is the slot
    authenticators and serializers are allowed to populate; ``body`` is
    replaced in place by its wire representation before transport.
    """

    endpoint: str
    method: str
    base_address: str | None = None
    parameters: dict[str, str] = field(default_factory=dict)
    body: object | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.endpoint:
            msg = "Request endpoint must not be empty"
            raise InvalidArgumentError(msg)

        method = self.method.value if isinstance(self.method, HttpMethod) else self.method
        if not method:
            msg = "Request method must not be empty"
            raise InvalidArgumentError(msg)

        self.method = str(method).upper()
        self.parameters = dict(self.parameters or {})

    @property
    def url(self) -> httpx.URL:
        """Absolute URL of the request, without query parameters.

        Absolute endpoints are used as-is, relative ones are resolved
        against ``base_address``.

        Raises:
            InvalidArgumentError: If no absolute URL can be resolved.
        """
        try:
            endpoint = httpx.URL(str(self.endpoint))
            if endpoint.is_absolute_url:
                resolved = endpoint
            elif self.base_address:
                resolved = httpx.URL(str(self.base_address)).join(endpoint)
            else:
                msg = f"Relative endpoint '{self.endpoint}' without a base address"
                raise InvalidArgumentError(msg)
        except httpx.InvalidURL as exc:
            msg = f"Invalid request URL: {exc}"
            raise InvalidArgumentError(msg) from exc

        if not resolved.is_absolute_url:
            msg = f"Could not resolve an absolute URL for '{self.endpoint}'"
            raise InvalidArgumentError(msg)
        return resolved

    def copy(self) -> "Request":
        """Return an independent copy for policies that alter a reattempt."""
        return Request(
            endpoint=self.endpoint,
            method=self.method,
            base_address=self.base_address,
            parameters=dict(self.parameters),
            body=copy.deepcopy(self.body),
            headers=dict(self.headers),
        )


class Response(BaseModel):
    """Raw response from the transport.

    Always carries a status code; the body is left undecoded.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(
        ge=HTTP_STATUS_MIN, le=HTTP_STATUS_MAX, description="HTTP status code"
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Response headers"
    )
    body: bytes = Field(default=b"", description="Undecoded response body")
    url: str | None = Field(default=None, description="Final request URL")
    elapsed_ms: float = Field(default=0.0, ge=0.0, description="Transport time")

    def header(self, name: str) -> str | None:
        """Look up a header value case-insensitively.

        Args:
            name: Header name.

        Returns:
            The header value, or None if absent.
        """
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def content_type(self) -> str | None:
        """Media type of the body, without parameters."""
        value = self.header("content-type")
        if value is None:
            return None
        return value.split(";", 1)[0].strip().lower()

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def is_success(self) -> bool:
        """Check if the status is in the success range [200, 400)."""
        return HTTP_STATUS_SUCCESS_MIN <= self.status_code < HTTP_STATUS_SUCCESS_MAX


@dataclass(frozen=True)
class APIResponse(Generic[T]):
    """Raw response together with its successfully decoded body."""

    response: Response
    body: T
