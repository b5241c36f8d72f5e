"""Aggregation of reported points into per-series accumulators."""
import logging
import threading
from typing import Dict, List, Optional, Sequence

from bufferedmetrics.errors import MetricTypeMismatchError
from bufferedmetrics.metrics import Metric, MetricType, create_metric
from bufferedmetrics.series import Number, SeriesPoint, make_series_key

logger = logging.getLogger(__name__)


class Aggregator:
    """Buffers points per series until the next flush.

    ``add_point`` and ``flush`` are serialized with a lock so that a timer
    thread can flush while application threads keep reporting.
    """

    def __init__(self, default_tags: Optional[Sequence[str]] = None):
        self.default_tags: List[str] = list(default_tags) if default_tags else []
        self.buffer: Dict[str, Metric] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self.buffer)

    def add_point(
        self,
        metric_type: MetricType,
        name: str,
        value: Number,
        tags: Optional[Sequence[str]] = None,
        host: Optional[str] = None,
        timestamp_ms: Optional[Number] = None
    ):
        """Route a point to its series accumulator, creating it on first use."""
        metric_type = MetricType(metric_type)
        series_key = make_series_key(name, tags)

        with self._lock:
            metric = self.buffer.get(series_key)
            if metric is None:
                metric = create_metric(metric_type, name, tags, host)
                self.buffer[series_key] = metric
            elif metric.metric_type != metric_type:
                raise MetricTypeMismatchError(
                    series_key, metric.metric_type.value, metric_type.value
                )

            metric.add_point(value, timestamp_ms)

    def flush(self) -> List[SeriesPoint]:
        """Drain every accumulator into a flat list and reset the buffer."""
        with self._lock:
            buffered = self.buffer
            self.buffer = {}

        series: List[SeriesPoint] = []
        for metric in buffered.values():
            series.extend(metric.flush())

        if self.default_tags:
            for point in series:
                point.tags = self.default_tags + point.tags

        logger.debug(f"Drained {len(buffered)} buffered series into {len(series)} points")
        return series
