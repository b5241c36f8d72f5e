"""In-process metrics buffering and aggregation."""
from bufferedmetrics.aggregator import Aggregator
from bufferedmetrics.errors import (
    BufferedMetricsError,
    ConfigurationError,
    MetricTypeMismatchError,
    ReportError,
)
from bufferedmetrics.logger import BufferedMetricsLogger
from bufferedmetrics.metrics import Counter, Gauge, Histogram, MetricType, create_metric
from bufferedmetrics.reporters import DataDogReporter, NullReporter, Reporter
from bufferedmetrics.series import SeriesPoint, make_series_key

__all__ = [
    "Aggregator",
    "BufferedMetricsError",
    "BufferedMetricsLogger",
    "ConfigurationError",
    "Counter",
    "DataDogReporter",
    "Gauge",
    "Histogram",
    "MetricType",
    "MetricTypeMismatchError",
    "NullReporter",
    "ReportError",
    "Reporter",
    "SeriesPoint",
    "create_metric",
    "make_series_key",
]
