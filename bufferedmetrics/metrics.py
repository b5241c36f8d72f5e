"""Metric accumulators: gauges, counters and histograms."""
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from bufferedmetrics.series import Number, SeriesPoint, posix_timestamp, round_half_up


class MetricType(str, Enum):
    """Kinds of metric a point can be reported as."""
    GAUGE = "gauge"
    COUNTER = "counter"
    HISTOGRAM = "histogram"


class Metric(ABC):
    """Base class for per-series accumulators.

    An accumulator lives for a single flush window. ``flush`` only reads the
    accumulated state; the owning aggregator discards the instance afterwards.
    """

    metric_type: MetricType

    def __init__(self, name: str, tags: Optional[Sequence[str]] = None, host: Optional[str] = None):
        self.name = name
        self.tags = list(tags) if tags else []
        self.host = host or ""
        self.timestamp: Optional[int] = None

    @abstractmethod
    def add_point(self, value: Number, timestamp_ms: Optional[Number] = None) -> None:
        """Accumulate one observation."""
        pass

    @abstractmethod
    def flush(self) -> List[SeriesPoint]:
        """Render the accumulated state as series points."""
        pass

    def update_timestamp(self, timestamp_ms: Optional[Number] = None):
        self.timestamp = posix_timestamp(timestamp_ms)

    def serialize(self, value: Number, series_type: str, name: Optional[str] = None) -> SeriesPoint:
        """Build a series point for this metric."""
        if self.timestamp is None:
            # Nothing recorded yet, stamp the flush time
            self.update_timestamp()
        return SeriesPoint(
            metric=name or self.name,
            points=[(self.timestamp, value)],
            type=series_type,
            host=self.host,
            tags=list(self.tags),
        )


class Gauge(Metric):
    """Records the most recent value reported within a flush window."""

    metric_type = MetricType.GAUGE

    def __init__(self, name: str, tags: Optional[Sequence[str]] = None, host: Optional[str] = None):
        super().__init__(name, tags, host)
        self.value: Number = 0

    def add_point(self, value: Number, timestamp_ms: Optional[Number] = None) -> None:
        self.value = value
        self.update_timestamp(timestamp_ms)

    def flush(self) -> List[SeriesPoint]:
        return [self.serialize(self.value, "gauge")]


class Counter(Metric):
    """Sums every value reported within a flush window."""

    metric_type = MetricType.COUNTER

    def __init__(self, name: str, tags: Optional[Sequence[str]] = None, host: Optional[str] = None):
        super().__init__(name, tags, host)
        self.value: Number = 0

    def add_point(self, value: Number, timestamp_ms: Optional[Number] = None) -> None:
        self.value += value
        self.update_timestamp(timestamp_ms)

    def flush(self) -> List[SeriesPoint]:
        return [self.serialize(self.value, "count")]


class Histogram(Metric):
    """Summarizes the distribution of values reported within a flush window.

    Emits min, max, sum, count and average series, plus one series per
    configured percentile selected with the nearest-rank method. Every raw
    sample is kept until flush, so memory grows with sample volume.
    """

    metric_type = MetricType.HISTOGRAM
    percentiles = (0.75, 0.85, 0.95, 0.99)

    def __init__(self, name: str, tags: Optional[Sequence[str]] = None, host: Optional[str] = None):
        super().__init__(name, tags, host)
        self.min: Number = math.inf
        self.max: Number = -math.inf
        self.sum: Number = 0
        self.count = 0
        self.samples: List[Number] = []

    def add_point(self, value: Number, timestamp_ms: Optional[Number] = None) -> None:
        self.update_timestamp(timestamp_ms)

        self.min = min(value, self.min)
        self.max = max(value, self.max)
        self.sum += value
        self.count += 1
        self.samples.append(value)

    def flush(self) -> List[SeriesPoint]:
        # An empty histogram reports zeros instead of infinities and has no percentiles
        empty = self.count == 0
        points = [
            self.serialize(0 if empty else self.min, "gauge", f"{self.name}.min"),
            self.serialize(0 if empty else self.max, "gauge", f"{self.name}.max"),
            self.serialize(self.sum, "gauge", f"{self.name}.sum"),
            self.serialize(self.count, "count", f"{self.name}.count"),
            self.serialize(self.average(), "gauge", f"{self.name}.avg"),
        ]
        if empty:
            return points

        # Object dtype keeps the recorded values exact, without float64 coercion
        ordered = np.sort(np.asarray(self.samples, dtype=object))
        for p in self.percentiles:
            index = round_half_up(p * len(ordered)) - 1
            value = ordered[max(index, 0)]
            suffix = f".{math.floor(p * 100)}percentile"
            points.append(self.serialize(value, "gauge", f"{self.name}{suffix}"))

        return points

    def average(self) -> float:
        """Mean of the recorded samples, 0 when nothing was recorded."""
        if self.count == 0:
            return 0
        return self.sum / self.count


def create_metric(
    metric_type: MetricType,
    name: str,
    tags: Optional[Sequence[str]] = None,
    host: Optional[str] = None
) -> Metric:
    """Factory function to create the accumulator for a metric type."""
    metric_type = MetricType(metric_type)

    if metric_type == MetricType.GAUGE:
        return Gauge(name, tags, host)
    elif metric_type == MetricType.COUNTER:
        return Counter(name, tags, host)
    elif metric_type == MetricType.HISTOGRAM:
        return Histogram(name, tags, host)
    else:
        raise ValueError(f"Unknown metric type: {metric_type}")
