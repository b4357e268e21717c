"""
Metrics Collection with Prometheus.

Exposes ledger, oracle and store metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from gamebridge.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    OPERATION = "operation"
    OUTCOME = "outcome"
    PURCHASE_KIND = "purchase_kind"
    ERROR_TYPE = "error_type"


class BridgeMetrics:
    """
    Centralized metrics for the game bridge.

    Covers:
    - HTTP requests (rate, duration)
    - Ledger operations (rate, success/failure, duration)
    - Receipt verifications against the billing platform
    - Record store calls
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "gamebridge_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "gamebridge_http_requests_total",
            "Total HTTP requests",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.http_request_duration_seconds = Histogram(
            "gamebridge_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "gamebridge_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
        )

        # ====================================================================
        # Ledger Metrics
        # ====================================================================
        self.ledger_operations_total = Counter(
            "gamebridge_ledger_operations_total",
            "Ledger operations by outcome",
            [MetricLabels.OPERATION, MetricLabels.OUTCOME],
        )

        self.ledger_operation_duration_seconds = Histogram(
            "gamebridge_ledger_operation_duration_seconds",
            "Ledger operation duration in seconds",
            [MetricLabels.OPERATION],
            buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
        )

        self.duplicate_purchase_tokens_total = Counter(
            "gamebridge_duplicate_purchase_tokens_total",
            "Purchases rejected because the token was already recorded",
            [MetricLabels.PURCHASE_KIND],
        )

        # ====================================================================
        # Oracle Metrics
        # ====================================================================
        self.oracle_verifications_total = Counter(
            "gamebridge_oracle_verifications_total",
            "Receipt verifications against the billing platform",
            [MetricLabels.PURCHASE_KIND, "success"],
        )

        # ====================================================================
        # Store Metrics
        # ====================================================================
        self.store_operations_total = Counter(
            "gamebridge_store_operations_total",
            "Total record store operations",
            [MetricLabels.OPERATION, "success"],
        )

        self.store_operation_duration_seconds = Histogram(
            "gamebridge_store_operation_duration_seconds",
            "Record store operation duration in seconds",
            [MetricLabels.OPERATION],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "gamebridge_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_ledger_operation(self, operation: str, succeeded: bool, duration: float) -> None:
        """Record one ledger operation."""
        outcome = "succeeded" if succeeded else "failed"
        self.ledger_operations_total.labels(operation=operation, outcome=outcome).inc()
        self.ledger_operation_duration_seconds.labels(operation=operation).observe(duration)

    def record_duplicate_purchase(self, purchase_kind: str) -> None:
        """Record a replayed purchase token."""
        self.duplicate_purchase_tokens_total.labels(purchase_kind=purchase_kind).inc()

    def record_oracle_verification(self, purchase_kind: str, success: bool) -> None:
        """Record a billing platform verification."""
        self.oracle_verifications_total.labels(
            purchase_kind=purchase_kind, success=str(success)
        ).inc()

    def record_store_operation(self, operation: str, success: bool, duration: float) -> None:
        """Record record store metrics."""
        self.store_operations_total.labels(operation=operation, success=str(success)).inc()
        self.store_operation_duration_seconds.labels(operation=operation).observe(duration)

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = BridgeMetrics()
