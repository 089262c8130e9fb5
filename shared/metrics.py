"""
Prometheus metrics for the rule group reconciler.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server


class MetricsCollector:
    """Metrics collector for mutation and retry activity."""

    def __init__(self, service_name: str = "rule_groups", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # Private registry by default so several collectors can coexist in one process.
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up reconciler metrics."""
        self._metrics["mutation_attempts_total"] = Counter(
            "rulegroup_mutation_attempts_total",
            "Total token-protected mutation attempts",
            ["operation", "outcome"],
            registry=self.registry
        )

        self._metrics["retries_total"] = Counter(
            "rulegroup_retries_total",
            "Total mutation retries",
            ["reason"],
            registry=self.registry
        )

        self._metrics["updates_submitted_total"] = Counter(
            "rulegroup_updates_submitted_total",
            "Total activated rule updates submitted",
            ["action"],
            registry=self.registry
        )

        self._metrics["mutation_duration_seconds"] = Histogram(
            "rulegroup_mutation_duration_seconds",
            "Wall-clock duration of a token-protected mutation including retries",
            ["operation"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def start_metrics_server(self, port: int = 9090):
        """Start the Prometheus metrics server."""
        start_http_server(port, registry=self.registry)

    def record_attempt(self, operation: str, outcome: str):
        self._metrics["mutation_attempts_total"].labels(operation=operation, outcome=outcome).inc()

    def record_retry(self, reason: str):
        self._metrics["retries_total"].labels(reason=reason).inc()

    def record_updates(self, action: str, count: int = 1):
        if count:
            self._metrics["updates_submitted_total"].labels(action=action).inc(count)

    @contextmanager
    def time_operation(self, operation: str):
        """Context manager to time a mutation."""
        start_time = time.time()
        try:
            yield
        finally:
            self._metrics["mutation_duration_seconds"].labels(operation=operation).observe(
                time.time() - start_time
            )

    def sample(self, name: str, **labels) -> float:
        """Read the current value of a sample, 0.0 when never recorded."""
        value = self.registry.get_sample_value(name, labels)
        return value if value is not None else 0.0


def get_metrics_collector(service_name: str = "rule_groups",
                          registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for the reconciler."""
    return MetricsCollector(service_name, registry)
