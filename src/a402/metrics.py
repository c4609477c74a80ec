"""
Prometheus metrics for the facilitator.

Collectors live on a per-instance CollectorRegistry so several facilitators
(one per test, for instance) never collide on metric names.
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from prometheus_client.exposition import CONTENT_TYPE_LATEST


class FacilitatorMetrics:
    """Counters, histograms and gauges exported on /metrics"""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        # process_* and python_info, as the default registry exports them
        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            ["method", "route", "status"],
            registry=self.registry,
        )
        self.verify_requests = Counter(
            "b402_verify_requests_total",
            "Total number of verify requests",
            ["status"],
            registry=self.registry,
        )
        self.settle_requests = Counter(
            "b402_settle_requests_total",
            "Total number of settle requests",
            ["status"],
            registry=self.registry,
        )
        self.settle_gas_used = Gauge(
            "b402_settle_gas_used",
            "Gas used in settle transactions",
            registry=self.registry,
        )
        self.settle_transaction_time = Histogram(
            "b402_settle_transaction_seconds",
            "Time taken for settle transactions",
            registry=self.registry,
        )

    def observe_request(self, method: str, route: str, status: int, seconds: float) -> None:
        self.http_request_duration.labels(method, route, str(status)).observe(seconds)

    def render(self) -> bytes:
        """Prometheus text exposition of this registry"""
        return generate_latest(self.registry)
