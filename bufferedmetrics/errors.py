"""Exception types raised by the metrics buffer."""
from typing import Optional


class BufferedMetricsError(Exception):
    """Base class for all buffered metrics errors."""


class ConfigurationError(BufferedMetricsError):
    """Raised when a reporter or logger cannot be configured."""


class MetricTypeMismatchError(BufferedMetricsError, ValueError):
    """Raised when a point's metric type differs from the buffered series."""

    def __init__(self, series_key: str, existing: str, requested: str):
        self.series_key = series_key
        self.existing = existing
        self.requested = requested
        super().__init__(
            f"Series '{series_key}' is buffered as {existing}, cannot add {requested} point"
        )


class ReportError(BufferedMetricsError):
    """Raised (or passed to error callbacks) when a reporter rejects a batch."""

    def __init__(self, message: str, status: Optional[int] = None, response: Optional[str] = None):
        self.status = status
        self.response = response
        super().__init__(message)
