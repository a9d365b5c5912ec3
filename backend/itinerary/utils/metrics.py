"""Prometheus metrics for outbound calls and job lifecycle."""

from prometheus_client import Counter, Histogram

# Outbound call metrics (token exchange, document store, model)
outbound_latency_ms = Histogram(
    "outbound_latency_ms",
    "Outbound call latency in milliseconds",
    ["operation", "outcome"],
    buckets=[10, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000],
)

outbound_attempts_total = Counter(
    "outbound_attempts_total",
    "Total outbound call attempts",
    ["operation", "outcome"],
)

# Job lifecycle metrics
job_transitions_total = Counter(
    "job_transitions_total",
    "Total job status transitions",
    ["status"],
)

stuck_jobs_total = Counter(
    "stuck_jobs_total",
    "Jobs left in processing because the failure write failed",
)


class PrometheusRetryMetrics:
    """Prometheus-based retry metrics implementation."""

    def record_attempt(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record one attempt of an outbound call."""
        outbound_attempts_total.labels(operation=operation, outcome=outcome).inc()
        outbound_latency_ms.labels(operation=operation, outcome=outcome).observe(latency_ms)
