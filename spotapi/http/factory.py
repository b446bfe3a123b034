"""Factory for creating connectors with appropriate authentication."""

import structlog

from spotapi.http.auth import (
    NoAuthenticator,
    TokenAuthenticator,
    client_credentials_authenticator,
)
from spotapi.http.connector import APIConnector
from spotapi.http.protocols import Authenticator
from spotapi.http.retry import RetryPolicy, SimpleRetryHandler
from spotapi.http.transport import HttpxTransport
from spotapi.observability.logging import configure_logging
from spotapi.settings import ConnectorSettings, get_settings


logger = structlog.get_logger()


def create_authenticator(settings: ConnectorSettings) -> Authenticator:
    """Pick an authenticator from the configured credentials.

    Priority: static access token > client credentials > none.
    """
    if settings.access_token:
        return TokenAuthenticator(settings.access_token)
    if settings.client_id and settings.client_secret:
        return client_credentials_authenticator(
            settings.client_id, settings.client_secret
        )
    return NoAuthenticator()


def create_connector(settings: ConnectorSettings | None = None) -> APIConnector:
    """Create a connector wired with the default collaborators.

    Logging is configured from the settings before the connector is built.

    Args:
        settings: Connector settings; read from the environment if omitted.

    Returns:
        APIConnector ready for use.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    log = logger.bind(component="http", subcomponent="factory")

    authenticator = create_authenticator(settings)
    retry_handler = None
    if settings.retry_enabled:
        retry_handler = SimpleRetryHandler(
            RetryPolicy(max_retries=settings.max_retries)
        )

    log.info(
        "connector_created",
        base_url=settings.base_url,
        auth_method=type(authenticator).__name__,
        retry_enabled=retry_handler is not None,
        timeout_seconds=settings.timeout_seconds,
    )
    return APIConnector(
        settings.base_url,
        authenticator,
        http_client=HttpxTransport(timeout_seconds=settings.timeout_seconds),
        retry_handler=retry_handler,
    )
