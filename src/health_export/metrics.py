"""
Prometheus metrics for the export engine.
Simply import this module at app startup to register them.
"""

from prometheus_client import Counter, Gauge, Histogram

# --- Queue metrics ---

EXPORT_JOBS_TOTAL = Counter(
    "health_export_jobs_total",
    "Queued export jobs handled by the processor",
    ["outcome"],  # success | failed | evicted
)

EXPORT_QUEUE_DEPTH = Gauge(
    "health_export_queue_depth",
    "Pending export jobs remaining after the last drain",
)

EXPORT_ATTEMPT_LATENCY = Histogram(
    "health_export_attempt_seconds",
    "Duration of a single export job attempt",
    buckets=[0.1, 0.25, 0.5, 1, 2.5, 5, 10, 25, 60, 300],
)

# --- Format metrics ---

EXPORT_FORMAT_TOTAL = Counter(
    "health_export_format_total",
    "Per-format export results",
    ["format", "outcome"],
)


class MetricsRegistry:
    """Centralized access to export metrics."""

    jobs_total = EXPORT_JOBS_TOTAL
    queue_depth = EXPORT_QUEUE_DEPTH
    attempt_latency = EXPORT_ATTEMPT_LATENCY
    format_total = EXPORT_FORMAT_TOTAL


# Singleton instance
metrics_registry = MetricsRegistry()
