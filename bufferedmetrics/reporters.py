"""Reporters deliver flushed series batches to a metrics backend."""
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import requests

from bufferedmetrics.errors import ConfigurationError, ReportError
from bufferedmetrics.series import SeriesPoint

logger = logging.getLogger(__name__)

SuccessCallback = Optional[Callable[[], None]]
ErrorCallback = Optional[Callable[[Optional[Exception], Any, Optional[int]], None]]

DEFAULT_DATADOG_API_HOST = "https://api.datadoghq.com"


class Reporter(ABC):
    """Delivers a batch of series points.

    Implementations invoke exactly one of ``on_success`` or ``on_error`` per
    call. ``on_error`` receives ``(err, raw_response, status)``.
    """

    @abstractmethod
    def report(self, series: List[SeriesPoint], on_success: SuccessCallback = None, on_error: ErrorCallback = None):
        """Deliver a batch of series points."""
        pass

    def shutdown(self):
        """Release any resources held by the reporter."""
        pass


class NullReporter(Reporter):
    """Discards every batch. Useful for tests and disabled environments."""

    def report(self, series: List[SeriesPoint], on_success: SuccessCallback = None, on_error: ErrorCallback = None):
        if on_success is not None:
            on_success()


class DataDogReporter(Reporter):
    """Posts series batches to the DataDog metrics HTTP API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        app_key: Optional[str] = None,
        api_host: str = DEFAULT_DATADOG_API_HOST,
        timeout_s: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.api_key = api_key or os.getenv("DATADOG_API_KEY")
        self.app_key = app_key or os.getenv("DATADOG_APP_KEY")

        if not self.api_key:
            raise ConfigurationError("DATADOG_API_KEY environment variable not set")

        self.api_host = api_host.rstrip("/")
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.api_host}/api/v1/series"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "DD-API-KEY": self.api_key,
        }
        if self.app_key:
            headers["DD-APPLICATION-KEY"] = self.app_key
        return headers

    def report(self, series: List[SeriesPoint], on_success: SuccessCallback = None, on_error: ErrorCallback = None):
        payload = {"series": [point.to_dict() for point in series]}

        if logger.isEnabledFor(logging.DEBUG):
            # Only serialize when debugging
            logger.debug(f"Posting series to {self.url}: {json.dumps(payload)}")

        try:
            response = self._session.post(
                self.url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout_s
            )
        except requests.exceptions.RequestException as e:
            logger.debug(f"Series submission failed: {e}")
            if on_error is not None:
                on_error(e, None, None)
            return

        status = response.status_code
        if 200 <= status < 300:
            logger.debug(f"Series submission succeeded (status={status})")
            if on_success is not None:
                on_success()
        else:
            logger.debug(f"Series submission failed: {response.text} (status={status})")
            if on_error is not None:
                err = ReportError(
                    f"DataDog rejected series batch with status {status}",
                    status=status,
                    response=response.text
                )
                on_error(err, response.text, status)

    def shutdown(self):
        self._session.close()


def tags_to_attributes(tags: List[str], host: str = "") -> Dict[str, str]:
    """Convert ``key:value`` tags into an attribute mapping."""
    attributes = {}
    for tag in tags:
        if not tag:
            continue
        key, _, value = tag.partition(":")
        attributes[key] = value
    if host:
        attributes["host"] = host
    return attributes


class OTELReporter(Reporter):
    """Records flushed series on OpenTelemetry instruments.

    Count series are added to a Counter. Gauge series are written through an
    UpDownCounter: the reporter tracks the cumulative value it has sent per
    series and adds the delta needed to reach the flushed gauge value.
    """

    def __init__(
        self,
        endpoint: str = "localhost:4317",
        insecure: bool = True,
        headers: Optional[Dict[str, str]] = None,
        resource: Optional[Dict[str, str]] = None,
        export_interval_s: int = 10,
        meter=None
    ):
        self.meter_provider = None
        self.instruments: Dict[str, Any] = {}
        self.gauge_cumulative: Dict[str, float] = {}

        if meter is None:
            meter = self._initialize_otel(endpoint, insecure, headers or {}, resource or {}, export_interval_s)
        self.meter = meter

    def _initialize_otel(self, endpoint, insecure, headers, resource_attrs, export_interval_s):
        """Initialize the OpenTelemetry SDK with an OTLP exporter."""
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource

        attrs = {"service.name": "bufferedmetrics"}
        attrs.update(resource_attrs)

        exporter = OTLPMetricExporter(
            endpoint=endpoint,
            insecure=insecure,
            headers=tuple(headers.items()) if headers else None
        )
        reader = PeriodicExportingMetricReader(
            exporter,
            export_interval_millis=export_interval_s * 1000
        )
        self.meter_provider = MeterProvider(
            resource=Resource.create(attrs),
            metric_readers=[reader]
        )

        logger.info(f"OTEL reporter initialized, pushing to {endpoint}")
        return self.meter_provider.get_meter(__name__)

    def _instrument(self, name: str, series_type: str):
        key = f"{series_type}:{name}"
        if key not in self.instruments:
            if series_type == "count":
                self.instruments[key] = self.meter.create_counter(name=name, unit="1")
            else:
                self.instruments[key] = self.meter.create_up_down_counter(name=name, unit="1")
        return self.instruments[key]

    def _series_key(self, name: str, attributes: Dict[str, str]) -> str:
        label_str = ",".join(f"{k}={v}" for k, v in sorted(attributes.items()))
        return f"{name}:{label_str}"

    def record(self, point: SeriesPoint):
        """Record one series point on its instrument."""
        attributes = tags_to_attributes(point.tags, point.host)
        instrument = self._instrument(point.metric, point.type)

        for _, value in point.points:
            if point.type == "count":
                # Counters cannot decrease
                if value > 0:
                    instrument.add(value, attributes=attributes)
            else:
                series_key = self._series_key(point.metric, attributes)
                delta = value - self.gauge_cumulative.get(series_key, 0.0)
                if delta != 0:
                    instrument.add(delta, attributes=attributes)
                    self.gauge_cumulative[series_key] = value

    def report(self, series: List[SeriesPoint], on_success: SuccessCallback = None, on_error: ErrorCallback = None):
        try:
            for point in series:
                self.record(point)
        except Exception as e:
            logger.debug(f"Failed to record series on OTEL instruments: {e}")
            if on_error is not None:
                on_error(e, None, None)
            return

        if on_success is not None:
            on_success()

    def shutdown(self):
        if self.meter_provider is not None:
            self.meter_provider.shutdown()
            logger.info("OTEL reporter shutdown complete")
