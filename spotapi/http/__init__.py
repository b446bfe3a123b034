"""Request-execution core of the web API client.

This module turns logical API calls into network requests with:
- Pluggable authentication, transport, serialization and retry policy
- Status-code classification into typed errors
- Typed response decoding via pydantic
- Header redaction for logging
- Metrics collection for observability
"""

from spotapi.http.auth import (
    AccessToken,
    NoAuthenticator,
    RefreshingTokenAuthenticator,
    TokenAuthenticator,
    client_credentials_authenticator,
    request_client_credentials_token,
)
from spotapi.http.classify import classify_response, parse_retry_after
from spotapi.http.connector import APIConnector
from spotapi.http.errors import (
    APIError,
    APITooManyRequestsError,
    APIUnauthorizedError,
    AuthenticationError,
    DeserializationError,
    InvalidArgumentError,
    TransportError,
)
from spotapi.http.factory import create_authenticator, create_connector
from spotapi.http.metrics import ConnectorMetrics
from spotapi.http.models import APIResponse, HttpMethod, Request, Response
from spotapi.http.protocols import (
    AttemptOutcome,
    Authenticator,
    HTTPClient,
    JSONSerializer,
    Reattempt,
    RetryHandler,
)
from spotapi.http.redact import redact_headers, redact_url_credentials
from spotapi.http.retry import RetryPolicy, SimpleRetryHandler
from spotapi.http.serializer import PydanticJSONSerializer
from spotapi.http.transport import HttpxTransport


__all__ = [
    # Connector
    "APIConnector",
    "create_connector",
    "create_authenticator",
    # Models
    "Request",
    "Response",
    "APIResponse",
    "HttpMethod",
    # Errors
    "InvalidArgumentError",
    "AuthenticationError",
    "TransportError",
    "APIError",
    "APIUnauthorizedError",
    "APITooManyRequestsError",
    "DeserializationError",
    "classify_response",
    "parse_retry_after",
    # Capabilities
    "Authenticator",
    "HTTPClient",
    "JSONSerializer",
    "RetryHandler",
    "AttemptOutcome",
    "Reattempt",
    # Authenticators
    "AccessToken",
    "NoAuthenticator",
    "TokenAuthenticator",
    "RefreshingTokenAuthenticator",
    "client_credentials_authenticator",
    "request_client_credentials_token",
    # Collaborators
    "HttpxTransport",
    "PydanticJSONSerializer",
    "RetryPolicy",
    "SimpleRetryHandler",
    # Metrics
    "ConnectorMetrics",
    # Redaction
    "redact_headers",
    "redact_url_credentials",
]
