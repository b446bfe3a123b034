"""Async web API client core."""

from spotapi.http import (
    APIConnector,
    APIError,
    APIUnauthorizedError,
    create_connector,
)


__version__ = "0.1.0"

__all__ = [
    "APIConnector",
    "APIError",
    "APIUnauthorizedError",
    "__version__",
    "create_connector",
]
