"""Metrics collection for executed requests."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class RequesterMetrics:
    """Metrics for request execution.

    Singleton class that tracks response status counts, bytes read,
    transport failures and status rejections.
    """

    http_requests_total: dict[int, int] = field(default_factory=dict)
    http_transport_failures_total: int = 0
    http_status_rejections_total: int = 0
    http_bytes_total: int = 0
    http_duration_ms_total: float = 0.0
    http_request_count: int = 0

    _instance: ClassVar["RequesterMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RequesterMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_response(self, status_code: int, duration_ms: float) -> None:
        """Record a response received from the transport.

        Args:
            status_code: HTTP status code.
            duration_ms: Time from dispatch to response headers.
        """
        self.http_requests_total[status_code] = (
            self.http_requests_total.get(status_code, 0) + 1
        )
        self.http_duration_ms_total += duration_ms
        self.http_request_count += 1

    def record_bytes(self, bytes_received: int) -> None:
        """Record response body bytes drained by a reader."""
        self.http_bytes_total += bytes_received

    def record_transport_failure(self) -> None:
        """Record a request the transport failed to complete."""
        self.http_transport_failures_total += 1

    def record_status_rejection(self) -> None:
        """Record a response rejected by the status policy."""
        self.http_status_rejections_total += 1

    def to_dict(self) -> dict[str, int | float | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "http_requests_total": dict(self.http_requests_total),
            "http_transport_failures_total": self.http_transport_failures_total,
            "http_status_rejections_total": self.http_status_rejections_total,
            "http_bytes_total": self.http_bytes_total,
            "http_duration_ms_total": self.http_duration_ms_total,
            "http_request_count": self.http_request_count,
        }

    @property
    def avg_duration_ms(self) -> float:
        """Calculate average request duration.

        Returns:
            Average duration in milliseconds.
        """
        if self.http_request_count == 0:
            return 0.0
        return self.http_duration_ms_total / self.http_request_count
