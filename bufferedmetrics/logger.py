"""Buffered metrics logger and its auto-flush scheduler.

Reporting every data point over the network is wasteful, so the logger
buffers all points reported within a time slice in an ``Aggregator`` and
periodically hands the aggregated batch to a ``Reporter``.
"""
import logging
import threading
import time
from typing import Optional, Sequence

from bufferedmetrics.aggregator import Aggregator
from bufferedmetrics.metrics import MetricType
from bufferedmetrics.reporters import DataDogReporter, ErrorCallback, Reporter, SuccessCallback
from bufferedmetrics.self_metrics import SelfMetrics
from bufferedmetrics.series import Number

logger = logging.getLogger(__name__)


class BufferedMetricsLogger:
    """Public facade for reporting gauges, counters and histograms.

    The aggregator and reporter can be injected, which is useful for testing.
    Any extra keyword arguments are passed to the default ``DataDogReporter``.
    """

    def __init__(
        self,
        aggregator: Optional[Aggregator] = None,
        reporter: Optional[Reporter] = None,
        default_tags: Optional[Sequence[str]] = None,
        host: Optional[str] = None,
        prefix: Optional[str] = None,
        flush_interval_seconds: Optional[float] = None,
        self_metrics: Optional[SelfMetrics] = None,
        autostart: bool = True,
        **reporter_opts
    ):
        self.aggregator = aggregator if aggregator is not None else Aggregator(default_tags)
        self.reporter = reporter if reporter is not None else DataDogReporter(**reporter_opts)
        self.host = host
        self.prefix = prefix or ""
        self.flush_interval_seconds = flush_interval_seconds
        self.self_metrics = self_metrics

        self._running = False
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()

        if self.flush_interval_seconds:
            logger.info(f"Auto-flushing every {self.flush_interval_seconds} seconds")
        else:
            logger.info("Auto-flushing is disabled")

        if autostart:
            self.start()

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Flush once and, if an interval is configured, keep flushing on a timer."""
        with self._timer_lock:
            if self._running:
                return
            self._running = True
            self._generation += 1
            generation = self._generation

        logger.debug("Starting buffered metrics logger")
        self._auto_flush(generation)

    def stop(self, flush: bool = False):
        """Cancel the pending auto-flush, optionally flushing what is buffered."""
        with self._timer_lock:
            self._running = False
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        logger.debug("Stopped buffered metrics logger")

        if flush:
            self.flush()

    def _auto_flush(self, generation: int):
        # One-shot timer, rescheduled before the flush so report latency does not shift the cadence
        with self._timer_lock:
            if not self._running or generation != self._generation:
                # Fired after stop() or a restart, that chain is dead
                return
            if self.flush_interval_seconds:
                self._timer = threading.Timer(
                    self.flush_interval_seconds, self._auto_flush, args=(generation,)
                )
                self._timer.daemon = True
                self._timer.start()

        try:
            self._flush("timer", None, self._log_report_error)
        except Exception as e:
            logger.error(f"Error during auto-flush: {e}", exc_info=True)

    def _log_report_error(self, err, response, status):
        logger.warning(f"Auto-flush report failed: {err} (status={status})")

    def add_point(
        self,
        metric_type: MetricType,
        name: str,
        value: Number,
        tags: Optional[Sequence[str]] = None,
        timestamp_ms: Optional[Number] = None
    ):
        """Prepend the key prefix, stamp the default host and buffer the point."""
        self.aggregator.add_point(
            metric_type,
            self.prefix + name,
            value,
            tags,
            self.host,
            timestamp_ms
        )

    def gauge(self, name: str, value: Number, tags: Optional[Sequence[str]] = None, timestamp_ms: Optional[Number] = None):
        """Record the current value of a metric."""
        self.add_point(MetricType.GAUGE, name, value, tags, timestamp_ms)

    def increment(self, name: str, value: Optional[Number] = None, tags: Optional[Sequence[str]] = None, timestamp_ms: Optional[Number] = None):
        """Increment a counter, by 1 unless a value is given."""
        if value is None:
            value = 1
        self.add_point(MetricType.COUNTER, name, value, tags, timestamp_ms)

    def histogram(self, name: str, value: Number, tags: Optional[Sequence[str]] = None, timestamp_ms: Optional[Number] = None):
        """Sample a value into a histogram."""
        self.add_point(MetricType.HISTOGRAM, name, value, tags, timestamp_ms)

    def flush(self, on_success: SuccessCallback = None, on_error: ErrorCallback = None):
        """Drain the aggregator and hand the batch to the reporter."""
        self._flush("manual", on_success, on_error)

    def _flush(self, trigger: str, on_success: SuccessCallback, on_error: ErrorCallback):
        flush_start = time.time()
        series = self.aggregator.flush()

        if series:
            logger.debug(f"Flushing {len(series)} series")
            self.reporter.report(series, on_success, self._wrap_error(on_error))
        else:
            logger.debug("Nothing to flush")
            if on_success is not None:
                on_success()

        if self.self_metrics:
            self.self_metrics.record_flush(trigger, len(series), time.time() - flush_start)
            self.self_metrics.set_buffered_series(len(self.aggregator))

    def _wrap_error(self, on_error: ErrorCallback) -> ErrorCallback:
        if not self.self_metrics:
            return on_error

        def callback(err, response, status):
            self.self_metrics.record_report_error()
            if on_error is not None:
                on_error(err, response, status)

        return callback

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.stop(flush=True)
        return False
