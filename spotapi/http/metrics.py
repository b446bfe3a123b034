"""Metrics collection for the request-execution core."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class ConnectorMetrics:
    """Metrics for API calls issued through connectors.

    Singleton class that tracks request counts by final status, transport
    attempts, retries and failures by error kind.
    """

    api_requests_total: dict[int, int] = field(default_factory=dict)
    api_attempts_total: int = 0
    api_retry_total: int = 0
    api_failures_total: dict[str, int] = field(default_factory=dict)
    api_duration_ms_total: float = 0.0
    api_request_count: int = 0

    _instance: ClassVar["ConnectorMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "ConnectorMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_request(self, status_code: int, duration_ms: float) -> None:
        """Record a call that produced a final response.

        Args:
            status_code: Status of the response that was classified.
            duration_ms: Wall time of the whole call, retries included.
        """
        self.api_requests_total[status_code] = (
            self.api_requests_total.get(status_code, 0) + 1
        )
        self.api_duration_ms_total += duration_ms
        self.api_request_count += 1

    def record_attempt(self) -> None:
        """Record one transport execution."""
        self.api_attempts_total += 1

    def record_retry(self) -> None:
        """Record a retry attempt."""
        self.api_retry_total += 1

    def record_failure(self, error_kind: str) -> None:
        """Record a failed call.

        Args:
            error_kind: Exception class name of the failure.
        """
        self.api_failures_total[error_kind] = (
            self.api_failures_total.get(error_kind, 0) + 1
        )

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary."""
        return {
            "api_requests_total": dict(self.api_requests_total),
            "api_attempts_total": self.api_attempts_total,
            "api_retry_total": self.api_retry_total,
            "api_failures_total": dict(self.api_failures_total),
            "api_duration_ms_total": self.api_duration_ms_total,
            "api_request_count": self.api_request_count,
        }

    @property
    def avg_duration_ms(self) -> float:
        """Average call duration in milliseconds."""
        if self.api_request_count == 0:
            return 0.0
        return self.api_duration_ms_total / self.api_request_count
