"""
Shared metrics configuration for the Kratos Session Access Layer.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import Counter, Histogram, Info, CollectorRegistry, REGISTRY


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else REGISTRY
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

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_identity_metrics()

    def _setup_identity_metrics(self):
        """Set up session and identity provider metrics."""
        self._metrics["session_validations_total"] = Counter(
            "session_validations_total",
            "Total session authentication attempts",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["email_verification_lookups_total"] = Counter(
            "email_verification_lookups_total",
            "Total email verification lookups",
            ["result"],
            registry=self.registry
        )

        self._metrics["identity_gateway_requests_total"] = Counter(
            "identity_gateway_requests_total",
            "Total identity provider calls",
            ["operation", "status"],
            registry=self.registry
        )

        self._metrics["identity_gateway_request_duration_seconds"] = Histogram(
            "identity_gateway_request_duration_seconds",
            "Identity provider call duration in seconds",
            ["operation"],
            registry=self.registry
        )

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

    def record_session_validation(self, outcome: str):
        """Record the outcome of one authentication attempt."""
        self._metrics["session_validations_total"].labels(outcome=outcome).inc()

    def record_verification_lookup(self, result: str):
        """Record the result of an email verification lookup."""
        self._metrics["email_verification_lookups_total"].labels(result=result).inc()

    def record_gateway_call(self, operation: str, status: str, duration: float):
        """Record one identity provider call.

        ``status`` is the HTTP status code, or ``"error"`` when no response
        was received.
        """
        self._metrics["identity_gateway_requests_total"].labels(
            operation=operation,
            status=status
        ).inc()
        self._metrics["identity_gateway_request_duration_seconds"].labels(
            operation=operation
        ).observe(duration)


_collectors: Dict[str, MetricsCollector] = {}
_collectors_lock = threading.Lock()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service.

    Collectors bound to the default registry are cached per service name,
    since prometheus_client refuses to register the same series twice.
    """
    if registry is not None:
        return MetricsCollector(service_name, registry)

    with _collectors_lock:
        collector = _collectors.get(service_name)
        if collector is None:
            collector = MetricsCollector(service_name)
            _collectors[service_name] = collector
        return collector
