"""HTTP constants for the request-execution core.

Centralizes all HTTP-related constants to avoid duplication across modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_SUCCESS_MIN = 200
HTTP_STATUS_SUCCESS_MAX = 400
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_MIN = 100
HTTP_STATUS_MAX = 599

# Default retryable server errors
DEFAULT_RETRY_STATUS_CODES = frozenset({500, 502, 503})

# Maximum retry delay cap for rate limiting (seconds)
MAX_RETRY_AFTER_SECONDS = 60

# Hard ceiling on reattempts when 429 responses do not consume a retry
MAX_RATE_LIMITED_REATTEMPTS = 50

DEFAULT_BASE_ADDRESS = "https://api.spotify.com/v1/"
DEFAULT_TOKEN_ENDPOINT = "https://accounts.spotify.com/api/token"  # noqa: S105
DEFAULT_TIMEOUT_SECONDS = 30.0

JSON_CONTENT_TYPE = "application/json"
