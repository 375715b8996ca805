"""Prometheus metrics for record stores and counter maintenance.

Metric Types:
    Counters (always increase):
        - store_operations_total: Record store calls by backend, collection, operation, status
        - store_errors_total: Failures caught at the record store boundary
        - counter_adjustments_total: Denormalized counter changes by collection and field

    Gauges (can go up or down):
        - mirror_records: Records held in each local mirror

    Histograms (track distributions):
        - store_operation_duration_seconds: Record store call latency

Usage:
    ```python
    from ither.metrics import observe_operation, store_errors_total

    start = time.perf_counter()
    ...
    observe_operation("remote", "books", "list", "success", time.perf_counter() - start)
    ```

    Rendering the registry:

    ```python
    from ither.metrics import generate_metrics_output

    print(generate_metrics_output().decode())
    ```
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from ither.logging import logger

# Custom registry: only the metrics below, no process/platform collectors
registry = CollectorRegistry()

# Store calls are local SQLite or in-memory work: sub-millisecond to ~1s
STORE_LATENCY_BUCKETS = (
    0.0005,  # 0.5ms
    0.001,   # 1ms
    0.005,   # 5ms
    0.01,    # 10ms
    0.05,    # 50ms
    0.1,     # 100ms
    0.5,     # 500ms
    1.0,     # 1s
)


# ========== COUNTER METRICS (always increase) ==========

store_operations_total = Counter(
    "store_operations_total",
    "Total number of record store operations",
    labelnames=["backend", "collection", "operation", "status"],
    registry=registry,
)
"""Counter for record store calls.

Labels:
    backend: "mock" or "remote"
    collection: Logical collection name (e.g., "forumPosts")
    operation: "list", "get", "create", "update", "upsert" or "remove"
    status: "success" or "error"
"""

store_errors_total = Counter(
    "store_errors_total",
    "Total number of errors caught at the record store boundary",
    labelnames=["backend", "collection", "operation"],
    registry=registry,
)
"""Counter for swallowed-and-logged store failures.

Example:
    ```python
    store_errors_total.labels(backend="remote", collection="books", operation="update").inc()
    ```
"""

counter_adjustments_total = Counter(
    "counter_adjustments_total",
    "Total number of denormalized counter adjustments",
    labelnames=["collection", "field", "direction"],
    registry=registry,
)
"""Counter for parent-record counter changes.

Labels:
    collection: Parent collection (e.g., "books")
    field: Counter field (e.g., "likeCount", "avgRating")
    direction: "up", "down" or "set"
"""


# ========== GAUGE METRICS (can go up or down) ==========

mirror_records = Gauge(
    "mirror_records",
    "Number of records held in a local mirror",
    labelnames=["collection"],
    registry=registry,
)


# ========== HISTOGRAM METRICS (track distributions) ==========

store_operation_duration_seconds = Histogram(
    "store_operation_duration_seconds",
    "Duration of record store operations in seconds",
    labelnames=["backend", "operation"],
    buckets=STORE_LATENCY_BUCKETS,
    registry=registry,
)
"""Histogram for record store latency.

Buckets: 0.5ms, 1ms, 5ms, 10ms, 50ms, 100ms, 500ms, 1s
"""


# ========== HELPER FUNCTIONS ==========


def observe_operation(
    backend: str,
    collection: str,
    operation: str,
    status: str,
    duration: float,
) -> None:
    """Record one store call in the operation counter and latency histogram."""
    store_operations_total.labels(
        backend=backend, collection=collection, operation=operation, status=status
    ).inc()
    store_operation_duration_seconds.labels(backend=backend, operation=operation).observe(duration)
    if status == "error":
        store_errors_total.labels(backend=backend, collection=collection, operation=operation).inc()


def observe_counter(collection: str, field: str, delta: float | None) -> None:
    """Record a counter adjustment (``delta=None`` for recomputed values)."""
    if delta is None:
        direction = "set"
    elif delta >= 0:
        direction = "up"
    else:
        direction = "down"
    counter_adjustments_total.labels(collection=collection, field=field, direction=direction).inc()


def generate_metrics_output() -> bytes:
    """Generate Prometheus metrics output in text format.

    Returns:
        Metrics output as bytes, exposition format

    Note:
        This uses the custom registry, so only the metrics above are included.
    """
    return generate_latest(registry)


def initialize_metrics() -> None:
    """Log metrics initialization (call once at application startup)."""
    logger.debug("Prometheus metrics initialized (custom registry)")


__all__ = [
    "registry",
    "store_operations_total",
    "store_errors_total",
    "counter_adjustments_total",
    "mirror_records",
    "store_operation_duration_seconds",
    "observe_operation",
    "observe_counter",
    "generate_metrics_output",
    "initialize_metrics",
    "STORE_LATENCY_BUCKETS",
]
