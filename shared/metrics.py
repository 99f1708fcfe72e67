"""
Shared metrics configuration for the session service.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry
from typing import Dict, Any, Optional


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Session metrics
        self._metrics["session_cache_operations_total"] = Counter(
            "session_cache_operations_total",
            "Distributed cache calls issued by sessions",
            ["operation", "outcome"],
            registry=self.registry
        )

        self._metrics["session_cache_operation_duration_seconds"] = Histogram(
            "session_cache_operation_duration_seconds",
            "Distributed cache call duration in seconds",
            ["operation"],
            registry=self.registry
        )

        self._metrics["session_commits_total"] = Counter(
            "session_commits_total",
            "Session commits by result",
            ["result"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_cache_operation(self, operation: str, outcome: str, duration: Optional[float] = None):
        """Record one distributed cache call made on behalf of a session."""
        self._metrics["session_cache_operations_total"].labels(
            operation=operation,
            outcome=outcome
        ).inc()
        if duration is not None:
            self._metrics["session_cache_operation_duration_seconds"].labels(
                operation=operation
            ).observe(duration)

    def record_commit(self, result: str):
        """Record the result of a session commit."""
        self._metrics["session_commits_total"].labels(result=result).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
