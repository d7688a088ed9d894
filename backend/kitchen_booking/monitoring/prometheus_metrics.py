"""
Prometheus metrics for the booking engine.

Service operations are recorded by ``BaseService.measure_operation``; booking
outcomes are counted where they happen.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "kitchen_booking_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "kitchen_booking_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "kitchen_booking_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_outcomes_total = Counter(
    "kitchen_booking_booking_outcomes_total",
    "Kitchen booking creation outcomes",
    ["booking_type", "outcome"],
    registry=REGISTRY,
)

addon_failures_total = Counter(
    "kitchen_booking_addon_failures_total",
    "Storage/equipment addons skipped during booking creation",
    ["addon_type"],
    registry=REGISTRY,
)

overstay_records_total = Counter(
    "kitchen_booking_overstay_records_total",
    "Overstay records created or refreshed by detection sweeps",
    ["status"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade so callers do not depend on individual metric objects."""

    def record_service_operation(
        self,
        service: str,
        operation: str,
        duration: float,
        status: str,
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(duration)
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    def record_booking_outcome(self, booking_type: str, outcome: str) -> None:
        booking_outcomes_total.labels(booking_type=booking_type, outcome=outcome).inc()

    def record_addon_failure(self, addon_type: str) -> None:
        addon_failures_total.labels(addon_type=addon_type).inc()

    def record_overstay(self, status: str) -> None:
        overstay_records_total.labels(status=status).inc()

    def export(self) -> bytes:
        return generate_latest(REGISTRY)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
