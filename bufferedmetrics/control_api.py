"""Control API for point ingestion and runtime management using FastAPI."""
from typing import List, Optional
from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel
import logging
import time

from bufferedmetrics.errors import MetricTypeMismatchError
from bufferedmetrics.logger import BufferedMetricsLogger
from bufferedmetrics.metrics import MetricType

logger = logging.getLogger(__name__)


class PointRequest(BaseModel):
    """A single point to buffer."""
    type: MetricType
    name: str
    value: Optional[float] = None
    tags: Optional[List[str]] = None
    timestamp_ms: Optional[float] = None


class LogLevelRequest(BaseModel):
    """Request to change log level."""
    level: str


class ControlAPI:
    """FastAPI-based HTTP surface in front of a buffered metrics logger."""

    def __init__(self, metrics_logger: BufferedMetricsLogger):
        """
        Initialize control API.

        Args:
            metrics_logger: The logger that receives points and flushes
        """
        self.metrics_logger = metrics_logger
        self.start_time = time.time()
        self.app = FastAPI(title="Buffered Metrics Control API")

        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": time.time()}

        @self.app.get("/status")
        async def status():
            """Get current logger status."""
            ml = self.metrics_logger
            return {
                "uptime_seconds": time.time() - self.start_time,
                "running": ml.running,
                "flush_interval_seconds": ml.flush_interval_seconds,
                "buffered_series": len(ml.aggregator),
                "prefix": ml.prefix,
                "host": ml.host,
                "default_tags": ml.aggregator.default_tags,
            }

        @self.app.post("/points")
        def add_point(request: PointRequest):
            """Buffer one point."""
            if request.value is None and request.type != MetricType.COUNTER:
                raise HTTPException(
                    status_code=422,
                    detail=f"A value is required for {request.type.value} points"
                )

            try:
                if request.type == MetricType.GAUGE:
                    self.metrics_logger.gauge(request.name, request.value, request.tags, request.timestamp_ms)
                elif request.type == MetricType.COUNTER:
                    self.metrics_logger.increment(request.name, request.value, request.tags, request.timestamp_ms)
                else:
                    self.metrics_logger.histogram(request.name, request.value, request.tags, request.timestamp_ms)
            except MetricTypeMismatchError as e:
                raise HTTPException(status_code=409, detail=str(e))

            return {"status": "buffered", "name": request.name, "type": request.type.value}

        @self.app.post("/control/flush")
        def flush():
            """Flush buffered points to the reporter."""
            errors = []

            def on_error(err, response, status):
                errors.append({"error": str(err), "status": status})

            logger.info("Flush requested via control API")
            self.metrics_logger.flush(on_error=on_error)

            if errors:
                raise HTTPException(status_code=502, detail=errors[0])

            return {"status": "flushed", "timestamp": time.time()}

        @self.app.post("/control/loglevel")
        async def set_log_level(request: LogLevelRequest):
            """Change log level at runtime."""
            level = request.level.upper()

            if level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid log level: {level}"
                )

            logging.getLogger().setLevel(getattr(logging, level))
            logger.info(f"Log level changed to: {level}")

            return {
                "status": "log_level_changed",
                "level": level,
                "timestamp": time.time()
            }

        @self.app.get("/metrics")
        async def metrics():
            """Expose self-monitoring metrics in Prometheus text format."""
            if not self.metrics_logger.self_metrics:
                raise HTTPException(status_code=404, detail="Self metrics are disabled")

            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(
                content=self.metrics_logger.self_metrics.exposition(),
                media_type=CONTENT_TYPE_LATEST
            )

    def run(self, host: str = "127.0.0.1", port: int = 8125):
        """Run the API server."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="info")
