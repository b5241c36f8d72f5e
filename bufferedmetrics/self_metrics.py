"""Self-monitoring metrics for the buffered logger, exposed via prometheus_client."""
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class SelfMetrics:
    """Self-monitoring metrics for flush activity."""

    def __init__(self, registry=None, prefix=""):
        if registry is None:
            registry = CollectorRegistry()
        self.registry = registry

        self.flushes_total = Counter(
            f"{prefix}flushes_total",
            "Total number of flushes",
            ["trigger"],
            registry=registry
        )

        self.series_flushed_total = Counter(
            f"{prefix}series_flushed_total",
            "Total number of series points handed to the reporter",
            registry=registry
        )

        self.report_errors_total = Counter(
            f"{prefix}report_errors_total",
            "Total number of failed report calls",
            registry=registry
        )

        self.flush_duration_seconds = Histogram(
            f"{prefix}flush_duration_seconds",
            "Duration of each flush in seconds",
            buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            registry=registry
        )

        self.buffered_series = Gauge(
            f"{prefix}buffered_series",
            "Number of series currently buffered",
            registry=registry
        )

    def record_flush(self, trigger: str, series_count: int, duration: float):
        """Record a completed flush."""
        self.flushes_total.labels(trigger=trigger).inc()
        self.series_flushed_total.inc(series_count)
        self.flush_duration_seconds.observe(duration)

    def record_report_error(self):
        """Record a failed report."""
        self.report_errors_total.inc()

    def set_buffered_series(self, count: int):
        """Set the number of buffered series."""
        self.buffered_series.set(count)

    def exposition(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)
