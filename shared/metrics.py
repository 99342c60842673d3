"""
Shared metrics configuration for the task manager services.
"""

from typing import Dict, Any, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its registry unless one is supplied, so several
    services (or test instances) can live in one process without
    duplicate-timeseries errors.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service",
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

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        # Service-specific metrics
        if self.service_name == "todo":
            self._setup_todo_metrics()
        elif self.service_name == "users":
            self._setup_users_metrics()
        elif self.service_name == "gateway":
            self._setup_gateway_metrics()

    def _setup_todo_metrics(self):
        """Set up todo-service metrics."""
        self._metrics["cache_hits_total"] = Counter(
            "cache_hits_total",
            "Total task cache hits",
            registry=self.registry
        )

        self._metrics["cache_misses_total"] = Counter(
            "cache_misses_total",
            "Total task cache misses",
            registry=self.registry
        )

        self._metrics["cache_errors_total"] = Counter(
            "cache_errors_total",
            "Total failed cache operations",
            ["operation"],
            registry=self.registry
        )

        self._metrics["database_errors_total"] = Counter(
            "database_errors_total",
            "Total failed store operations",
            ["operation"],
            registry=self.registry
        )

        self._metrics["validation_errors_total"] = Counter(
            "validation_errors_total",
            "Total rejected task inputs",
            registry=self.registry
        )

        self._metrics["tasks_by_status"] = Gauge(
            "tasks_by_status",
            "Number of tasks by status",
            ["status"],
            registry=self.registry
        )

        self._metrics["tasks_by_priority"] = Gauge(
            "tasks_by_priority",
            "Number of tasks by priority",
            ["priority"],
            registry=self.registry
        )

    def _setup_users_metrics(self):
        """Set up user-service metrics."""
        self._metrics["user_operations_total"] = Counter(
            "user_operations_total",
            "Total user service operations",
            ["operation", "outcome"],
            registry=self.registry
        )

    def _setup_gateway_metrics(self):
        """Set up gateway-specific metrics."""
        self._metrics["auth_attempts_total"] = Counter(
            "auth_attempts_total",
            "Total authentication attempts",
            ["method", "outcome"],
            registry=self.registry
        )

        self._metrics["downstream_requests_total"] = Counter(
            "downstream_requests_total",
            "Total downstream service calls",
            ["service", "outcome"],
            registry=self.registry
        )

    def export(self) -> bytes:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.registry)

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

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._labelled(metric_name, labels).inc()

    def adjust_gauge(self, metric_name: str, delta: float, **labels):
        """Move a gauge metric up or down by ``delta``."""
        if metric_name in self._metrics:
            self._labelled(metric_name, labels).inc(delta)

    def _labelled(self, metric_name: str, labels: Dict[str, Any]):
        metric = self._metrics[metric_name]
        return metric.labels(**labels) if labels else metric


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
