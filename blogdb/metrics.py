"""Prometheus metrics for BlogDB engine operations.

Metrics live in a custom ``CollectorRegistry`` so that only BlogDB's own
series are exported (no default process/platform collectors).

Metric Types:
    Counters:
        - blogdb_operations_total: Engine operations by operation and outcome
        - blogdb_storage_errors_total: Storage failures by operation
        - blogdb_claps_total: Sum of all clap increments applied
    Histograms:
        - blogdb_operation_duration_seconds: Engine operation latency

Usage:
    ```python
    from blogdb.metrics import generate_metrics_output

    @app.route("/metrics")
    def metrics():
        return generate_metrics_output(), 200, {"Content-Type": "text/plain"}
    ```

References:
    - Prometheus Python Client: https://github.com/prometheus/client_python
    - Best Practices: https://prometheus.io/docs/practices/instrumentation/
"""

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from blogdb.config import settings

registry = CollectorRegistry()

# Latency buckets in seconds, from sub-millisecond SQLite reads to slow
# network round trips to a remote database
OPERATION_LATENCY_BUCKETS = (
    0.001,  # 1ms
    0.005,  # 5ms
    0.01,   # 10ms
    0.025,  # 25ms
    0.05,   # 50ms
    0.1,    # 100ms
    0.25,   # 250ms
    0.5,    # 500ms
    1.0,    # 1s
    2.5,    # 2.5s
)


# ========== COUNTER METRICS ==========

operations_total = Counter(
    "blogdb_operations_total",
    "Total number of engine operations",
    labelnames=["operation", "status"],
    registry=registry,
)
"""Counter of engine operations.

Labels:
    operation: Engine method name (e.g. "list_posts", "add_clap")
    status: "success", "validation_error", "not_found", "unauthorized",
        "storage_error"
"""

storage_errors_total = Counter(
    "blogdb_storage_errors_total",
    "Total number of storage engine failures",
    labelnames=["operation"],
    registry=registry,
)

claps_total = Counter(
    "blogdb_claps_total",
    "Sum of clap increments applied",
    registry=registry,
)


# ========== HISTOGRAM METRICS ==========

operation_duration_seconds = Histogram(
    "blogdb_operation_duration_seconds",
    "Duration of engine operations in seconds",
    labelnames=["operation"],
    buckets=OPERATION_LATENCY_BUCKETS,
    registry=registry,
)


# ========== HELPER FUNCTIONS ==========


def record_operation(operation: str, status: str, duration: float) -> None:
    """Record the outcome and latency of one engine operation.

    No-op when ``settings.metrics_enabled`` is False.
    """
    if not settings.metrics_enabled:
        return
    operations_total.labels(operation=operation, status=status).inc()
    operation_duration_seconds.labels(operation=operation).observe(duration)
    if status == "storage_error":
        storage_errors_total.labels(operation=operation).inc()


def record_claps(increment: int) -> None:
    if settings.metrics_enabled:
        claps_total.inc(increment)


def generate_metrics_output() -> bytes:
    """Render all registered metrics in Prometheus exposition format."""
    return generate_latest(registry)


__all__ = [
    "registry",
    "operations_total",
    "storage_errors_total",
    "claps_total",
    "operation_duration_seconds",
    "record_operation",
    "record_claps",
    "generate_metrics_output",
    "OPERATION_LATENCY_BUCKETS",
]
